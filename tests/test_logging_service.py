"""Tests for the file logs."""

from datetime import timedelta

import yaml

from media_normalizer.domain.plan import BatchSummary, FileOutcome, OutcomeStatus
from media_normalizer.services.logging_service import ErrorLog, SummaryLog


def test_error_log_appends_blocks(tmp_path):
    log = ErrorLog(tmp_path / "codecs")
    log.write("first problem")
    log.write("second problem", "details")
    log.write()

    text = (tmp_path / "codecs" / "error.txt").read_text(encoding="utf-8")
    assert text.count(ErrorLog.linesep_marker) == 2
    assert text.index("first problem") < text.index("second problem")


def test_summary_log_entry(tmp_path):
    summary = BatchSummary()
    summary.add(
        FileOutcome(
            source=tmp_path / "movie.avi",
            status=OutcomeStatus.CONVERTED,
            action="FullTranscode",
            output=tmp_path / "converted" / "movie.mkv",
            elapsed=timedelta(seconds=12.5),
        )
    )
    summary.add(FileOutcome(source=tmp_path / "show.mkv", status=OutcomeStatus.SKIPPED, reason="already normalized"))
    log_path = tmp_path / "converted" / "normalize_log.yaml"

    SummaryLog(log_path).write(summary, tmp_path)

    entries = yaml.safe_load(log_path.read_text(encoding="utf-8"))
    assert len(entries) == 1
    entry = entries[0]
    assert entry["working_dir"] == str(tmp_path)
    assert (entry["converted"], entry["skipped"], entry["failed"]) == (1, 1, 0)
    assert entry["files"][0] == {
        "file": "movie.avi",
        "status": "converted",
        "reason": None,
        "action": "FullTranscode",
        "stage": None,
        "output": str(tmp_path / "converted" / "movie.mkv"),
        "elapsed_seconds": 12.5,
    }


def test_summary_log_recovers_from_garbage(tmp_path):
    log_path = tmp_path / "normalize_log.yaml"
    log_path.write_text("just a string\n", encoding="utf-8")

    SummaryLog(log_path).write(BatchSummary(), tmp_path)

    entries = yaml.safe_load(log_path.read_text(encoding="utf-8"))
    assert [entry["index"] for entry in entries] == [1]
