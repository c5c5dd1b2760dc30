"""Tests for the batch driver."""

import concurrent.futures
from dataclasses import replace
from pathlib import Path

import pytest
import yaml

from conftest import ORIGINAL_BYTES, audio_stream, video_stream
from media_normalizer.config.common import configure_logger
from media_normalizer.domain.plan import FileOutcome, OutcomeStatus
from media_normalizer.pipeline import batch
from media_normalizer.pipeline.batch import BatchDriver, discover_working_set, split_by_stem


@pytest.fixture
def library(make_source, engine):
    """The three files of the reference scenario."""
    movie = make_source("movie.avi", video_stream("mpeg4", 640, 480, tag="XVID"), audio_stream("mp3"))
    show = make_source("show.mkv", video_stream("hevc", 1920, 1080), audio_stream("aac", channels=6))
    broken = make_source("broken.mp4", video_stream("h264"))
    engine.probe_errors.add("broken.mp4")
    return {"movie": movie, "show": show, "broken": broken}


def by_name(summary):
    return {outcome.source.name: outcome for outcome in summary.outcomes}


def test_working_set(working_dir):
    for name in ("movie.avi", "SHOW.MKV", "clip.Mp4", "notes.txt", "cover.jpg"):
        (working_dir / name).write_bytes(b"x")
    (working_dir / "nested").mkdir()
    (working_dir / "nested" / "episode.mkv").write_bytes(b"x")
    (working_dir / "converted").mkdir()
    (working_dir / "converted" / "movie.mkv").write_bytes(b"x")
    (working_dir / "folder.avi").mkdir()

    names = [path.name for path in discover_working_set(working_dir)]

    assert names == ["SHOW.MKV", "clip.Mp4", "movie.avi"]


def test_split_by_stem():
    files = [Path("a.avi"), Path("a.mp4"), Path("b.mkv"), Path("a.mkv")]
    first_wave, deferred = split_by_stem(files)
    assert first_wave == [Path("a.avi"), Path("b.mkv")]
    assert deferred == [Path("a.mkv"), Path("a.mp4")]


def test_reference_batch(engine, config, library):
    summary = BatchDriver(config, engine=engine).run()
    outcomes = by_name(summary)

    assert outcomes["movie.avi"].status is OutcomeStatus.CONVERTED
    assert outcomes["show.mkv"].status is OutcomeStatus.SKIPPED
    assert outcomes["broken.mp4"].status is OutcomeStatus.FAILED
    assert (summary.converted, summary.skipped, summary.failed) == (1, 1, 1)
    assert not summary.all_succeeded

    assert sorted(p.name for p in config.output_dir.iterdir()) == ["movie.mkv", "normalize_log.yaml"]
    for path in library.values():
        assert path.read_bytes() == ORIGINAL_BYTES


def test_second_run_is_a_no_op(engine, config, library):
    BatchDriver(config, engine=engine).run()
    calls_after_first_run = len(engine.transcode_calls)

    summary = BatchDriver(config, engine=engine).run()
    outcomes = by_name(summary)

    assert len(engine.transcode_calls) == calls_after_first_run
    assert outcomes["movie.avi"].status is OutcomeStatus.SKIPPED
    assert outcomes["movie.avi"].reason == "already converted"
    assert outcomes["show.mkv"].status is OutcomeStatus.SKIPPED


def test_failure_does_not_stop_the_batch(engine, config, make_source):
    first = make_source("a_first.avi", video_stream("h264"), audio_stream("ac3"))
    make_source("b_second.mp4", video_stream("h264"), audio_stream("aac"))
    engine.fail_stage("transcode")

    summary = BatchDriver(config, engine=engine).run()

    assert summary.failed == 2
    assert first.read_bytes() == ORIGINAL_BYTES
    assert {call.input_path.name.split("__")[0] for call in engine.transcode_calls} == {"a_first.avi", "b_second.mp4"}


def test_same_stem_is_written_once(engine, config, make_source):
    make_source("movie.avi", video_stream("h264"), audio_stream("aac"))
    make_source("movie.mp4", video_stream("h264"), audio_stream("aac"))

    outcomes = by_name(BatchDriver(config, engine=engine).run())

    assert outcomes["movie.avi"].status is OutcomeStatus.CONVERTED
    assert outcomes["movie.mp4"].status is OutcomeStatus.SKIPPED
    assert outcomes["movie.mp4"].reason == "already converted"


def test_unexpected_error_is_contained(engine, config, make_source):
    make_source("movie.avi")
    make_source("other.avi")

    class ExplodingOrchestrator:
        def run(self, source):
            if source.name == "movie.avi":
                raise RuntimeError("disk on fire")
            return FileOutcome(source=source, status=OutcomeStatus.SKIPPED, reason="already normalized")

    summary = BatchDriver(config, engine=engine, orchestrator=ExplodingOrchestrator()).run()
    outcomes = by_name(summary)

    assert outcomes["movie.avi"].status is OutcomeStatus.FAILED
    assert "disk on fire" in outcomes["movie.avi"].reason
    assert outcomes["other.avi"].status is OutcomeStatus.SKIPPED
    assert (config.scratch_dir / "error.txt").is_file()


def test_directory_creation_failure(engine, config, make_source, working_dir):
    make_source("movie.avi", video_stream("h264"), audio_stream("aac"))
    make_source("show.mkv", video_stream("hevc"), audio_stream("aac"))
    (working_dir / "converted").write_bytes(b"not a directory")

    summary = BatchDriver(config, engine=engine).run()

    assert summary.failed == 2
    assert all("Could not create" in outcome.reason for outcome in summary.outcomes)
    assert engine.transcode_calls == []


def test_empty_directory(engine, config):
    summary = BatchDriver(config, engine=engine).run()
    assert summary.outcomes == []
    assert summary.all_succeeded


def test_summary_log(engine, config, library):
    BatchDriver(config, engine=engine).run()
    BatchDriver(config, engine=engine).run()

    with config.summary_log_path.open(encoding="utf-8") as f:
        entries = yaml.safe_load(f)

    assert [entry["index"] for entry in entries] == [1, 2]
    first = entries[0]
    assert (first["converted"], first["skipped"], first["failed"]) == (1, 1, 1)
    files = {item["file"]: item for item in first["files"]}
    assert files["broken.mp4"]["status"] == "failed"
    assert files["broken.mp4"]["stage"] == "inspecting"
    assert entries[1]["converted"] == 0


class InlineExecutor:
    """Runs submitted work immediately; records how the pool was set up."""

    created = []

    def __init__(self, max_workers=None, initializer=None, initargs=()):
        self.max_workers = max_workers
        self.initializer = initializer
        self.initargs = initargs
        InlineExecutor.created.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def submit(self, fn, *args):
        future = concurrent.futures.Future()
        future.set_result(fn(*args))
        return future


def test_parallel_workers_get_logger_setup(monkeypatch, engine, config, make_source):
    make_source("movie.avi", video_stream("h264"), audio_stream("aac"))
    make_source("movie.mp4", video_stream("h264"), audio_stream("aac"))
    make_source("show.mkv", video_stream("hevc"), audio_stream("aac"))
    InlineExecutor.created.clear()
    monkeypatch.setattr(batch.concurrent.futures, "ProcessPoolExecutor", InlineExecutor)

    driver = BatchDriver(replace(config, processes=4), engine=engine, log_level="WARNING")
    outcomes = by_name(driver.run())

    pool = InlineExecutor.created[0]
    assert pool.initializer is configure_logger
    assert pool.initargs == ("WARNING",)
    assert pool.max_workers == 2
    assert outcomes["movie.avi"].status is OutcomeStatus.CONVERTED
    assert outcomes["movie.mp4"].reason == "already converted"
    assert outcomes["show.mkv"].status is OutcomeStatus.SKIPPED
