"""
Defines custom exception types for the Media Normalizer application.

These exceptions mirror the error taxonomy of the pipeline. Each one carries
enough context (file, stage, underlying message) for the batch driver to turn
it into a per-file outcome. None of them is allowed to terminate a whole batch.

All custom exceptions inherit from the base `NormalizerException`.
"""
from pathlib import Path
from typing import Optional


class NormalizerException(Exception):
    """Base class for all custom exceptions in the Media Normalizer application."""

    def __init__(self, message: str, path: Optional[Path] = None, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.path = path
        self.stage = stage


class InspectionError(NormalizerException):
    """
    Raised when probing a media file failed or returned unusable data.

    Typical causes are a missing ffprobe executable, a non-zero probe exit,
    malformed JSON output, or a file without any video or audio stream.
    Recovered at file granularity: the file is marked failed and the batch
    continues.
    """


class StageFailure(NormalizerException):
    """
    A repair or unpack stage did not produce a usable artifact.

    This is never raised out of the pipeline. It is carried inside a failed
    `StageResult` and the orchestrator continues with the fallback artifact.
    """


class TranscodeFailure(NormalizerException):
    """
    Raised when the stage producing the final artifact failed.

    Fatal for the file (no final artifact is produced), non-fatal for the batch.
    """


class FilesystemError(NormalizerException):
    """
    Raised when a working directory could not be created, or an artifact could
    not be moved into place or deleted.
    """
