"""
The Batch Driver: finds the working set in the working directory and runs the
orchestrator over every file in it, sequentially or in a process pool.

A file's failure never stops the batch. Files whose final artifact already
exists in the output directory are skipped before any probing, which makes a
rerun over the same directory a no-op for everything that was converted.
"""
import concurrent.futures
import traceback
from collections import defaultdict
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from loguru import logger

from ..config.common import NormalizerConfig, configure_logger
from ..config.video import VIDEO_EXTENSIONS
from ..domain.exceptions import FilesystemError
from ..domain.plan import BatchSummary, FileOutcome, OutcomeStatus
from ..services.logging_service import ErrorLog, SummaryLog
from ..services.media_engine import MediaEngine
from ..utils.format_utils import format_timedelta
from .orchestrator import PipelineOrchestrator, final_path


def discover_working_set(working_dir: Path) -> List[Path]:
    """
    Regular files directly inside `working_dir` whose extension is a supported
    container, compared case-insensitively. Sub-directories (the output and
    scratch directories included) are not searched.
    """
    return sorted(
        path
        for path in working_dir.iterdir()
        if path.is_file() and path.suffix.lower() in VIDEO_EXTENSIONS
    )


def split_by_stem(files: List[Path]) -> Tuple[List[Path], List[Path]]:
    """
    Splits files into those that can run concurrently and those that must wait.

    `movie.avi` and `movie.mp4` both map to `converted/movie.mkv`; only the
    first file of each stem goes into the concurrent wave.
    """
    by_stem: Dict[str, List[Path]] = defaultdict(list)
    for path in files:
        by_stem[path.stem].append(path)
    first_wave = [paths[0] for paths in by_stem.values()]
    deferred = [path for paths in by_stem.values() for path in paths[1:]]
    return sorted(first_wave), sorted(deferred)


class BatchDriver:
    """
    Runs one batch over the configured working directory.

    Attributes:
        config: Run configuration.
        engine: Media engine handed to the orchestrator.
        orchestrator: Processes single files.
        log_level: Console log level re-applied in every pool worker.
    """

    def __init__(
        self,
        config: NormalizerConfig,
        engine=None,
        orchestrator: Optional[PipelineOrchestrator] = None,
        log_level: str = "INFO",
    ):
        self.config = config
        self.log_level = log_level
        self.engine = engine or MediaEngine.from_config(config)
        self.orchestrator = orchestrator or PipelineOrchestrator(self.engine, config)

    def prepare_directories(self):
        for directory in (self.config.output_dir, self.config.scratch_dir):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise FilesystemError(f"Could not create {directory}: {e}", path=directory) from e

    def process_file(self, source: Path) -> FileOutcome:
        """
        Processes one file and always returns its outcome. Any error raised
        while processing it becomes a FAILED outcome.
        """
        target = final_path(self.config, source)
        if target.exists():
            logger.info(f"{source.name}: {target.name} already exists in {target.parent.name}/, skipping.")
            return FileOutcome(source=source, status=OutcomeStatus.SKIPPED, reason="already converted", output=target)

        start = datetime.now()
        try:
            return self.orchestrator.run(source)
        except Exception as e:
            tb_str = traceback.format_exception(type(e), e, e.__traceback__)
            logger.error(
                f"Unhandled error while processing {source.name}\n"
                f"Exception type: {type(e).__name__}\n"
                f"Exception message: {e}\n"
                f"Traceback:\n{''.join(tb_str)}"
            )
            ErrorLog(self.config.scratch_dir).write(f"{source.name}: {type(e).__name__}: {e}", "".join(tb_str))
            return FileOutcome(
                source=source,
                status=OutcomeStatus.FAILED,
                reason=f"{type(e).__name__}: {e}",
                elapsed=datetime.now() - start,
            )

    def run(self) -> BatchSummary:
        start = datetime.now()
        summary = BatchSummary()
        files = discover_working_set(self.config.working_dir)
        logger.info(f"Found {len(files)} file(s) to consider in {self.config.working_dir}")
        for i, path in enumerate(files):
            logger.trace(f"  {i + 1}. {path.name}")

        if not files:
            logger.info("Nothing to do.")
            return summary

        try:
            self.prepare_directories()
        except FilesystemError as e:
            logger.error(e.message)
            for path in files:
                summary.add(FileOutcome(source=path, status=OutcomeStatus.FAILED, reason=e.message, stage="setup"))
            self._report(summary, start, write_log=False)
            return summary

        try:
            if self.config.processes > 1 and len(files) > 1:
                self._run_parallel(files, summary)
            else:
                for path in files:
                    self._record(summary, self.process_file(path))
        except KeyboardInterrupt:
            logger.warning("Interrupted; files not yet finished are left for the next run.")
            summary.interrupted = True

        self._report(summary, start)
        return summary

    def _run_parallel(self, files: List[Path], summary: BatchSummary):
        first_wave, deferred = split_by_stem(files)
        max_workers = max(1, min(self.config.processes, len(first_wave)))
        logger.info(f"Using {max_workers} worker process(es).")

        outcomes: Dict[Path, FileOutcome] = {}
        with concurrent.futures.ProcessPoolExecutor(
            max_workers=max_workers, initializer=configure_logger, initargs=(self.log_level,)
        ) as executor:
            futures = {executor.submit(self.process_file, path): path for path in first_wave}
            for future in concurrent.futures.as_completed(futures):
                path = futures[future]
                try:
                    outcomes[path] = future.result()
                except Exception as exc:
                    # The worker itself died (e.g. BrokenProcessPool); process_file never raises.
                    tb_str = traceback.format_exception(type(exc), exc, exc.__traceback__)
                    logger.error(f"Worker for {path.name} failed:\n{''.join(tb_str)}")
                    outcomes[path] = FileOutcome(
                        source=path, status=OutcomeStatus.FAILED, reason=f"{type(exc).__name__}: {exc}"
                    )
                self._log_outcome(outcomes[path])

        for path in first_wave:
            summary.add(outcomes[path])

        if deferred:
            logger.info(f"Processing {len(deferred)} file(s) sharing a name with another input.")
        for path in deferred:
            self._record(summary, self.process_file(path))

    def _record(self, summary: BatchSummary, outcome: FileOutcome):
        summary.add(outcome)
        self._log_outcome(outcome)

    @staticmethod
    def _log_outcome(outcome: FileOutcome):
        line = f"[{outcome.status.value}] {outcome.source.name}"
        if outcome.reason:
            line += f": {outcome.reason}"
        if outcome.status is OutcomeStatus.FAILED:
            logger.error(line)
        else:
            logger.info(line)

    def _report(self, summary: BatchSummary, start: datetime, write_log: bool = True):
        logger.success(f"Batch finished in {format_timedelta(datetime.now() - start)}: {summary.tally()}")
        for outcome in summary.outcomes:
            if outcome.status is OutcomeStatus.FAILED:
                stage = f" ({outcome.stage})" if outcome.stage else ""
                logger.warning(f"  failed{stage}: {outcome.source.name}: {outcome.reason}")
        if write_log:
            SummaryLog(self.config.summary_log_path).write(summary, self.config.working_dir)
