"""
This module provides utility functions related to FFmpeg.

It resolves the ffmpeg/ffprobe executables (from a configured directory, the
scratch `codecs` directory, or the system PATH) and provides a robust wrapper
for running command-line processes with command and error logging.
"""

import os
import shlex
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from loguru import logger

from ..services.logging_service import ErrorLog


def resolve_executable(name: str, *search_dirs: Optional[Path]) -> str:
    """
    Finds an executable, looking in the given directories first.

    Args:
        name: Executable name without extension (e.g. "ffmpeg").
        *search_dirs: Directories to search in order. None entries are ignored.

    Returns:
        The absolute path of the first match, or `name` unchanged so that the
        lookup is deferred to the operating system at execution time.
    """
    for directory in search_dirs:
        if directory is None or not directory.is_dir():
            continue
        found = shutil.which(name, path=str(directory))
        if found:
            logger.debug(f"Using {name} from {directory}: {found}")
            return found
    found = shutil.which(name)
    if found:
        return found
    logger.debug(f"{name} not found in configured directories or PATH; deferring to the OS.")
    return name


def format_command(cmd_list: Sequence[str]) -> str:
    """Returns a display/log friendly, correctly quoted version of a command list."""
    if os.name == "nt":
        return subprocess.list2cmdline(list(cmd_list))
    return shlex.join(cmd_list)


def run_cmd(
    cmd_list: List[str],
    src_file_for_log: Path = Path(),
    error_log_dir_for_run_cmd: Optional[Path] = None,
    show_cmd: bool = False,
    cmd_log_file_path: Optional[Path] = None,
) -> Optional[subprocess.CompletedProcess]:
    """
    Executes an external command safely and captures its output.

    This is a wrapper around `subprocess.run` that adds logging of the executed
    command and of failures. The call blocks until the process exits; no
    timeout is imposed.

    Args:
        cmd_list: The command to execute as a list of arguments (never a shell string).
        src_file_for_log: The source file being processed, for logging context.
        error_log_dir_for_run_cmd: Directory where an error log is written if
                                   the command cannot be started.
        show_cmd: If True, the command is logged at DEBUG level before execution.
        cmd_log_file_path: If provided, the command line is appended to this file.

    Returns:
        A `subprocess.CompletedProcess` (check `returncode`), or None if the
        command could not be started at all (e.g. executable not found).
    """
    if not cmd_list:
        logger.error("run_cmd received an empty command list.")
        return None

    display_cmd_str = format_command(cmd_list)
    if show_cmd:
        logger.debug(f"Executing: {display_cmd_str}")

    if cmd_log_file_path:
        try:
            cmd_log_file_path.parent.mkdir(parents=True, exist_ok=True)
            with cmd_log_file_path.open("a", encoding="utf-8") as cmd_f:
                cmd_f.write(display_cmd_str + "\n")
        except OSError as e:
            logger.error(f"Failed to write command to log file {cmd_log_file_path}: {e}")

    try:
        result = subprocess.run(
            cmd_list,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            shell=False,
        )
    except FileNotFoundError:
        logger.error(
            f"Command not found: '{cmd_list[0]}'. Put it in the codecs directory, "
            f"configure ffmpeg_dir, or add it to PATH."
        )
        if error_log_dir_for_run_cmd:
            ErrorLog(error_log_dir_for_run_cmd).write(
                f"Command execution error for: {src_file_for_log.name}",
                f"Command: {display_cmd_str}",
                "Error: Command not found (FileNotFoundError).",
            )
        return None
    except OSError as e:
        logger.error(f"Could not start command for {src_file_for_log.name}: {e}")
        if error_log_dir_for_run_cmd:
            ErrorLog(error_log_dir_for_run_cmd).write(
                f"Command execution error for: {src_file_for_log.name}",
                f"Command: {display_cmd_str}",
                f"Exception: {type(e).__name__} - {e}",
            )
        return None

    if result.stdout:
        logger.trace(f"Command stdout: {result.stdout[:500]}")
    if result.stderr and result.returncode != 0:
        logger.debug(f"Command stderr (rc={result.returncode}): {result.stderr[-2000:]}")
    elif result.stderr:
        logger.trace(f"Command stderr (rc={result.returncode}): {result.stderr[-500:]}")
    return result
