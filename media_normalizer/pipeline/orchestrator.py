"""
The Pipeline Orchestrator: runs the per-file state machine.

    INSPECTING -> DECIDING -> SKIPPED
                           -> REPAIRING -> UNPACKING -> TRANSCODING -> FINALIZING
                           -> TRANSCODING -> FINALIZING            (audio-only repair)
                           -> CLEANING -> DONE | FAILED

The current artifact is an immutable `Artifact` handle that every stage
replaces with the one it returns, so on a failure path it is always clear which
file the next stage reads. Intermediates created for a file are deleted in
CLEANING whatever happened; the original input is never written, moved or
deleted.
"""
import glob
import os
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from loguru import logger

from ..config.common import INTERMEDIATE_SEPARATOR, PARTIAL_SUFFIX, NormalizerConfig
from ..config.video import OUTPUT_EXTENSION
from ..domain.exceptions import FilesystemError, InspectionError, NormalizerException, TranscodeFailure
from ..domain.media import ContainerKind, MediaProperties
from ..domain.plan import (
    Action,
    Artifact,
    AudioMode,
    AudioRepairOnly,
    FileOutcome,
    FullTranscode,
    OutcomeStatus,
    Skip,
    StageKind,
    StageResult,
)
from ..services.decision import audio_mode_for, decide, needs_upscale
from ..services.inspector import MediaInspector
from ..services.stage_executor import StageExecutor
from ..utils.format_utils import format_timedelta


class PipelineState(Enum):
    INSPECTING = "inspecting"
    DECIDING = "deciding"
    SKIPPED = "skipped"
    REPAIRING = "repairing"
    UNPACKING = "unpacking"
    TRANSCODING = "transcoding"
    FINALIZING = "finalizing"
    CLEANING = "cleaning"
    DONE = "done"
    FAILED = "failed"


@dataclass
class FileRun:
    """Bookkeeping for one file: its state and the intermediates it owns."""

    source: Path
    state: PipelineState = PipelineState.INSPECTING
    action: Optional[Action] = None
    intermediates: List[Path] = field(default_factory=list)
    history: List[PipelineState] = field(default_factory=list)

    def transition(self, state: PipelineState):
        logger.trace(f"{self.source.name}: {self.state.value} -> {state.value}")
        self.history.append(self.state)
        self.state = state

    def adopt(self, result: StageResult) -> Artifact:
        """Records a successful stage output as owned; returns the artifact to continue with."""
        if result.ok:
            self.intermediates.append(result.artifact.path)
        return result.artifact


def final_path(config: NormalizerConfig, source: Path) -> Path:
    """converted/<stem>.mkv, whatever the input container."""
    return config.output_dir / f"{source.stem}{OUTPUT_EXTENSION}"


def partial_path(config: NormalizerConfig, source: Path) -> Path:
    return config.output_dir / f".{source.stem}{OUTPUT_EXTENSION}{PARTIAL_SUFFIX}"


class PipelineOrchestrator:
    """
    Sequences the stages of an action plan for one file at a time.

    Attributes:
        config: Run configuration.
        inspector: Used for the initial inspection and the re-inspection
                   before transcoding.
        executor: Runs the individual stages.
    """

    def __init__(
        self,
        engine,
        config: NormalizerConfig,
        inspector: Optional[MediaInspector] = None,
        executor: Optional[StageExecutor] = None,
    ):
        self.config = config
        self.inspector = inspector or MediaInspector(engine)
        self.executor = executor or StageExecutor(engine, config)

    def purge_orphans(self, source: Path) -> List[Path]:
        """
        Deletes leftovers of an interrupted earlier run for `source`: its
        intermediates in the scratch directory and a partial final artifact.
        """
        pattern = f"{glob.escape(source.name)}{INTERMEDIATE_SEPARATOR}*"
        orphans = [p for p in self.config.scratch_dir.glob(pattern) if p.is_file()]
        partial = partial_path(self.config, source)
        if partial.is_file():
            orphans.append(partial)

        for orphan in orphans:
            try:
                orphan.unlink()
                logger.info(f"Removed leftover artifact from an earlier run: {orphan.name}")
            except OSError as e:
                logger.warning(f"Could not remove leftover artifact {orphan}: {e}")
        return orphans

    def run(self, source: Path) -> FileOutcome:
        """
        Processes one file through the whole state machine.

        Failures of this file (inspection, final transcode, moving the result
        into place) come back as a FAILED outcome; only unexpected exceptions
        propagate, and cleanup has run by then.
        """
        start = datetime.now()
        file_run = FileRun(source=source)
        self.purge_orphans(source)

        outcome_status = OutcomeStatus.FAILED
        reason = ""
        failed_stage: Optional[str] = None
        output: Optional[Path] = None

        try:
            properties = self.inspector.inspect(source)

            file_run.transition(PipelineState.DECIDING)
            file_run.action = decide(properties)
            logger.info(f"{source.name}: {properties.describe()} -> {self._describe_action(file_run.action)}")

            if isinstance(file_run.action, Skip):
                file_run.transition(PipelineState.SKIPPED)
                outcome_status = OutcomeStatus.SKIPPED
                reason = "already normalized"
            elif isinstance(file_run.action, AudioRepairOnly):
                output = self._run_audio_repair(file_run)
                outcome_status = OutcomeStatus.CONVERTED
            else:
                output = self._run_full_transcode(file_run, properties)
                outcome_status = OutcomeStatus.CONVERTED
        except NormalizerException as e:
            reason = e.message
            failed_stage = e.stage or file_run.state.value
            logger.error(f"{source.name}: failed during {failed_stage}: {e.message}")
        finally:
            file_run.transition(PipelineState.CLEANING)
            self._cleanup(file_run)

        file_run.transition(PipelineState.FAILED if outcome_status is OutcomeStatus.FAILED else PipelineState.DONE)
        elapsed = datetime.now() - start
        if outcome_status is OutcomeStatus.CONVERTED:
            logger.success(f"{source.name}: converted to {output.name} in {format_timedelta(elapsed)}")

        return FileOutcome(
            source=source,
            status=outcome_status,
            reason=reason,
            action=file_run.action.name if file_run.action else None,
            stage=failed_stage,
            output=output,
            elapsed=elapsed,
        )

    @staticmethod
    def _describe_action(action: Action) -> str:
        if isinstance(action, FullTranscode):
            steps = [
                name
                for name, enabled in (
                    ("avi repair", action.needs_avi_repair),
                    ("b-frame unpack", action.needs_bframe_unpack),
                    ("upscale", action.needs_upscale),
                )
                if enabled
            ]
            return f"{action.name}(audio={action.audio_mode.value}{', ' if steps else ''}{', '.join(steps)})"
        return action.name

    def _run_audio_repair(self, file_run: FileRun) -> Path:
        original = Artifact.original(file_run.source)
        file_run.transition(PipelineState.TRANSCODING)
        result = self.executor.run_stage(StageKind.AUDIO_ONLY_REPAIR, original, file_run.source)
        if not result.ok:
            raise TranscodeFailure(result.error.message, path=file_run.source, stage=StageKind.AUDIO_ONLY_REPAIR.slug)
        artifact = file_run.adopt(result)

        file_run.transition(PipelineState.FINALIZING)
        return self._finalize(artifact, file_run.source)

    def _run_full_transcode(self, file_run: FileRun, properties: MediaProperties) -> Path:
        action: FullTranscode = file_run.action
        source = file_run.source
        current = Artifact.original(source)
        if action.needs_avi_repair:
            file_run.transition(PipelineState.REPAIRING)
            result = self.executor.run_stage(
                StageKind.AVI_AUDIO_REPAIR, current, source, audio_mode=action.audio_mode
            )
            if not result.ok:
                logger.warning(
                    f"{source.name}: AVI repair failed ({result.error.message}); continuing with the original file."
                )
            current = file_run.adopt(result)

        if action.needs_bframe_unpack:
            file_run.transition(PipelineState.UNPACKING)
            result = self.executor.run_stage(StageKind.BFRAME_UNPACK, current, source)
            if not result.ok:
                logger.warning(
                    f"{source.name}: B-frame unpack failed ({result.error.message}); "
                    f"continuing with {result.artifact.path.name}."
                )
            current = file_run.adopt(result)

        file_run.transition(PipelineState.TRANSCODING)
        upscale, audio_mode = self._refresh_plan(current, properties.container, action)
        current = self._transcode(file_run, current, upscale, audio_mode)

        file_run.transition(PipelineState.FINALIZING)
        return self._finalize(current, source)

    def _refresh_plan(
        self, current: Artifact, container: ContainerKind, action: FullTranscode
    ) -> Tuple[bool, AudioMode]:
        """
        Re-inspects the current artifact right before transcoding, since repair
        stages can change what the probe reports. Falls back to the plan's own
        values when the re-inspection fails.
        """
        try:
            properties = self.inspector.inspect(current.path, container=container)
        except InspectionError as e:
            logger.warning(f"Re-inspection of {current.path.name} failed ({e.message}); using the original plan.")
            return action.needs_upscale, action.audio_mode

        upscale = needs_upscale(properties.height, properties.width) if properties.has_video else False
        audio_mode = audio_mode_for(properties)
        if upscale != action.needs_upscale or audio_mode is not action.audio_mode:
            logger.info(
                f"Re-inspection of {current.path.name}: upscale={upscale}, audio={audio_mode.value} "
                f"(planned upscale={action.needs_upscale}, audio={action.audio_mode.value})"
            )
        return upscale, audio_mode

    def _transcode(self, file_run: FileRun, current: Artifact, upscale: bool, audio_mode: AudioMode) -> Artifact:
        source = file_run.source
        result = self.executor.run_stage(
            StageKind.FINAL_TRANSCODE, current, source, audio_mode=audio_mode, upscale=upscale
        )
        fallback_encoder = self.config.fallback_encoder
        if not result.ok and fallback_encoder and fallback_encoder != self.config.hevc_encoder:
            logger.warning(
                f"{source.name}: {self.config.hevc_encoder} failed ({result.error.message}); "
                f"retrying with {fallback_encoder}."
            )
            result = self.executor.run_stage(
                StageKind.FINAL_TRANSCODE,
                current,
                source,
                audio_mode=audio_mode,
                upscale=upscale,
                encoder=fallback_encoder,
            )
        if not result.ok:
            raise TranscodeFailure(result.error.message, path=source, stage=StageKind.FINAL_TRANSCODE.slug)
        return file_run.adopt(result)

    def _finalize(self, artifact: Artifact, source: Path) -> Path:
        """
        Moves a verified artifact into the output directory: first under a
        hidden partial name, then renamed into place with `os.replace`, so
        `converted/<stem>.mkv` only ever appears complete.
        """
        target = final_path(self.config, source)
        partial = partial_path(self.config, source)
        if target.exists():
            raise FilesystemError(f"{target.name} already exists in the output directory", path=source, stage="finalizing")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(artifact.path), str(partial))
            os.replace(partial, target)
        except OSError as e:
            raise FilesystemError(f"Could not move {artifact.path.name} into place: {e}", path=source, stage="finalizing") from e
        return target

    def _cleanup(self, file_run: FileRun):
        """Best-effort removal of every intermediate this run created. Never touches the original."""
        leftovers = [*file_run.intermediates, partial_path(self.config, file_run.source)]
        for path in leftovers:
            if path.resolve() == file_run.source.resolve():
                continue
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Could not delete intermediate {path}: {e}")
        file_run.intermediates.clear()
