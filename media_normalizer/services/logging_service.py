"""
This module provides classes for the file-based logs of the application.

Errors from the external media engine are appended to a human-readable text
file (ErrorLog), while each batch run appends one structured entry to a YAML
report (SummaryLog). Both are separate from the real-time console logging done
through loguru.
"""

from datetime import datetime
from pathlib import Path
from typing import Dict, List

import yaml
from loguru import logger

from ..domain.plan import BatchSummary


class Log:
    """
    Base class for the file logs. Makes sure the log directory exists.
    """

    linesep_marker: str = "=" * 50

    def __init__(self, log_dir: Path):
        self.log_file_path: Path
        self.log_dir: Path = log_dir.resolve()
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def write(self, *args):
        raise NotImplementedError("Subclasses must implement the write() method.")


class ErrorLog(Log):
    """
    Appends error messages to a plain text file, one block per event.
    """

    DEFAULT_ERROR_FILENAME = "error.txt"

    def __init__(self, error_log_dir: Path, filename: str = DEFAULT_ERROR_FILENAME):
        super().__init__(error_log_dir)
        self.log_file_path = self.log_dir / filename

    def write(self, *error_messages: str):
        if not error_messages:
            return

        content_to_write = "\n".join(error_messages) + "\n" + self.linesep_marker + "\n"
        try:
            with self.log_file_path.open("a", encoding="utf-8") as f:
                f.write(content_to_write)
        except OSError as e:
            # Fall back to the console so the message is not lost.
            logger.error(f"Failed to write to error log {self.log_file_path}: {e}")
            for msg in error_messages:
                logger.error(f"  - {msg}")


class SummaryLog(Log):
    """
    Structured per-run report in YAML format.

    The file holds a list with one entry per batch run: when it ran, on which
    directory, the counts and every per-file outcome. New runs are appended so
    the file doubles as a history of what was converted when.
    """

    def __init__(self, log_file_path: Path):
        super().__init__(log_file_path.parent)
        self.log_file_path = self.log_dir / log_file_path.name

    def _load_entries(self) -> List[Dict]:
        if not self.log_file_path.is_file():
            return []
        try:
            with self.log_file_path.open("r", encoding="utf-8") as f:
                loaded_entries = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error reading summary log {self.log_file_path}: {e}. Starting a new log.")
            return []
        if loaded_entries is None:
            return []
        if not isinstance(loaded_entries, list):
            logger.warning(f"Summary log {self.log_file_path} contained unexpected data. Starting a new log.")
            return []
        return loaded_entries

    def write(self, summary: BatchSummary, working_dir: Path):
        """Appends one entry describing `summary` to the YAML report."""
        entries = self._load_entries()
        entries.append(
            {
                "index": len(entries) + 1,
                "finished_at": datetime.now().isoformat(timespec="seconds"),
                "working_dir": str(working_dir),
                "converted": summary.converted,
                "skipped": summary.skipped,
                "failed": summary.failed,
                "interrupted": summary.interrupted,
                "files": [outcome.as_dict() for outcome in summary.outcomes],
            }
        )
        try:
            with self.log_file_path.open("w", encoding="utf-8") as f:
                yaml.dump(
                    entries,
                    f,
                    default_flow_style=False,
                    sort_keys=False,
                    allow_unicode=True,
                    indent=4,
                    width=220,
                )
        except OSError as e:
            logger.error(f"Failed to write summary log {self.log_file_path}: {e}")
