"""
Action plans, artifacts and outcomes.

These are the immutable values passed between the decision engine, the stage
executor, the orchestrator and the batch driver. An `Artifact` handle is never
mutated: every stage returns a new handle, so "the current file" is always the
value held by the orchestrator, on success and failure paths alike.
"""
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Optional

from .exceptions import StageFailure


class AudioMode(Enum):
    COPY = "copy"
    REENCODE_AAC = "reencode_aac"


@dataclass(frozen=True)
class Action:
    """Base of the action variants produced by the decision engine."""

    @property
    def name(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class Skip(Action):
    """The file is already normalized. Nothing is written."""


@dataclass(frozen=True)
class AudioRepairOnly(Action):
    """Video is kept bit-for-bit; only the MP3 audio is upgraded to AAC."""


@dataclass(frozen=True)
class FullTranscode(Action):
    needs_avi_repair: bool = False
    needs_bframe_unpack: bool = False
    needs_upscale: bool = False
    audio_mode: AudioMode = AudioMode.COPY


class StageKind(Enum):
    """Transform stages, with the slug and extension of their output artifact."""

    AVI_AUDIO_REPAIR = ("avi_repair", ".avi")
    BFRAME_UNPACK = ("bframe_unpack", ".avi")
    AUDIO_ONLY_REPAIR = ("audio_repair", ".mkv")
    FINAL_TRANSCODE = ("transcode", ".mkv")

    def __init__(self, slug: str, extension: str):
        self.slug = slug
        self.extension = extension


class ArtifactRole(Enum):
    ORIGINAL = "original"
    INTERMEDIATE = "intermediate"
    FINAL = "final"


@dataclass(frozen=True)
class Artifact:
    path: Path
    role: ArtifactRole
    stage: Optional[StageKind] = None

    @classmethod
    def original(cls, path: Path) -> "Artifact":
        return cls(path=path, role=ArtifactRole.ORIGINAL)

    @property
    def is_original(self) -> bool:
        return self.role is ArtifactRole.ORIGINAL


@dataclass(frozen=True)
class StageResult:
    """
    Outcome of one stage.

    On success `artifact` is the freshly produced intermediate. On failure it is
    the fallback the pipeline should continue with (the stage's own input), and
    `error` describes what went wrong.
    """

    stage: StageKind
    artifact: Artifact
    error: Optional[StageFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, stage: StageKind, artifact: Artifact) -> "StageResult":
        return cls(stage=stage, artifact=artifact)

    @classmethod
    def failure(cls, stage: StageKind, fallback: Artifact, reason: str) -> "StageResult":
        return cls(
            stage=stage,
            artifact=fallback,
            error=StageFailure(reason, path=fallback.path, stage=stage.slug),
        )


class OutcomeStatus(Enum):
    SKIPPED = "skipped"
    CONVERTED = "converted"
    FAILED = "failed"


@dataclass(frozen=True)
class FileOutcome:
    source: Path
    status: OutcomeStatus
    reason: str = ""
    action: Optional[str] = None
    stage: Optional[str] = None
    output: Optional[Path] = None
    elapsed: timedelta = timedelta(0)

    def as_dict(self) -> dict:
        return {
            "file": self.source.name,
            "status": self.status.value,
            "reason": self.reason or None,
            "action": self.action,
            "stage": self.stage,
            "output": str(self.output) if self.output else None,
            "elapsed_seconds": round(self.elapsed.total_seconds(), 2),
        }


@dataclass
class BatchSummary:
    outcomes: list[FileOutcome] = field(default_factory=list)
    interrupted: bool = False

    def add(self, outcome: FileOutcome):
        self.outcomes.append(outcome)

    def count(self, status: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is status)

    @property
    def skipped(self) -> int:
        return self.count(OutcomeStatus.SKIPPED)

    @property
    def converted(self) -> int:
        return self.count(OutcomeStatus.CONVERTED)

    @property
    def failed(self) -> int:
        return self.count(OutcomeStatus.FAILED)

    @property
    def all_succeeded(self) -> bool:
        return self.failed == 0 and not self.interrupted

    def tally(self) -> str:
        return f"{self.converted} converted, {self.skipped} skipped, {self.failed} failed"
