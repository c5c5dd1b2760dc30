"""
The Media Inspector: turns ffprobe output into a `MediaProperties` snapshot.

The first video stream and the first audio stream are probed independently, so
a file may report video without audio or the other way around. Resolution is
optional; a corrupt header yields `width=None, height=None` instead of an error
and the decision engine applies its documented fallback.
"""
from pathlib import Path
from pprint import pformat
from typing import Optional

import ffmpeg
from loguru import logger

from ..domain.exceptions import InspectionError
from ..domain.media import ContainerKind, MediaProperties

VIDEO_SELECTOR = "v:0"
AUDIO_SELECTOR = "a:0"


def _positive_int(value) -> Optional[int]:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def _first_stream(probe_data, codec_type: str) -> Optional[dict]:
    if not isinstance(probe_data, dict):
        raise InspectionError(f"Unexpected probe payload of type {type(probe_data).__name__}")
    streams = probe_data.get("streams")
    if streams is None:
        return None
    if not isinstance(streams, list):
        raise InspectionError("Probe payload 'streams' is not a list")
    return next(
        (s for s in streams if isinstance(s, dict) and s.get("codec_type", codec_type) == codec_type),
        None,
    )


class MediaInspector:
    """Read-only queries against the media engine."""

    def __init__(self, engine):
        self.engine = engine

    def _probe(self, path: Path, selector: str) -> dict:
        try:
            return self.engine.probe(path, selector)
        except ffmpeg.Error as e:
            stderr = e.stderr.decode("utf-8", errors="replace") if isinstance(e.stderr, bytes) else e.stderr
            raise InspectionError(
                f"ffprobe failed for {path.name} ({selector}): {(stderr or '').strip()[-300:]}",
                path=path,
            ) from e
        except FileNotFoundError as e:
            raise InspectionError(f"ffprobe is not available: {e}", path=path) from e
        except ValueError as e:
            raise InspectionError(f"ffprobe returned malformed data for {path.name}: {e}", path=path) from e
        except OSError as e:
            raise InspectionError(f"ffprobe could not be run for {path.name}: {e}", path=path) from e

    def inspect(self, path: Path, container: Optional[ContainerKind] = None) -> MediaProperties:
        """
        Probes `path` and returns its properties.

        Args:
            path: The file to inspect.
            container: Container kind to record. Defaults to the one implied by
                       the file extension.

        Raises:
            InspectionError: The file is missing, its container is not
                             recognized, the probe failed, or it has neither a
                             video nor an audio stream.
        """
        if not path.is_file():
            raise InspectionError(f"File not found: {path}", path=path)
        container = container or ContainerKind.from_path(path)
        if container is None:
            raise InspectionError(f"Unsupported container for {path.name}", path=path)

        try:
            video = _first_stream(self._probe(path, VIDEO_SELECTOR), "video")
            audio = _first_stream(self._probe(path, AUDIO_SELECTOR), "audio")
        except InspectionError as e:
            e.path = e.path or path
            raise

        logger.trace(f"Video stream for {path.name}:\n{pformat(video)}")
        logger.trace(f"Audio stream for {path.name}:\n{pformat(audio)}")

        if video is None and audio is None:
            raise InspectionError(f"No video or audio stream found in {path.name}", path=path)

        properties = MediaProperties(
            container=container,
            video_codec=(video.get("codec_name") or "unknown").lower() if video else None,
            video_tag=video.get("codec_tag_string") if video else None,
            audio_codec=(audio.get("codec_name") or "unknown").lower() if audio else None,
            width=_positive_int(video.get("width")) if video else None,
            height=_positive_int(video.get("height")) if video else None,
            audio_channels=_positive_int(audio.get("channels")) if audio else None,
        )
        if video is not None and properties.height is None:
            logger.warning(f"Resolution of {path.name} could not be determined.")
        logger.debug(f"Inspected {path.name}: {properties.describe()}")
        return properties
