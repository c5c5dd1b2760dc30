"""
Media model: containers, codec families and the inspected properties of a file.

Codec identity is reduced to closed enumerations here. The decision engine only
ever looks at families; the raw ffprobe strings are kept on `MediaProperties`
so that an unknown codec can still be reported by name.
"""
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from ..config.audio import AUDIO_MP3_CODECS
from ..config.video import (
    EFFICIENT_CODECS,
    H264_CODECS,
    HEVC_CODECS,
    MPEG4_FAMILY_CODECS,
    MPEG4_FAMILY_TAGS,
)


class ContainerKind(Enum):
    AVI = "avi"
    MP4 = "mp4"
    MKV = "mkv"

    @classmethod
    def from_path(cls, path: Path) -> Optional["ContainerKind"]:
        """Maps a file extension (case-insensitive) to a container kind, or None."""
        suffix = path.suffix.lower().lstrip(".")
        for kind in cls:
            if kind.value == suffix:
                return kind
        return None


class VideoFamily(Enum):
    HEVC = "hevc"
    VP9 = "vp9"
    AV1 = "av1"
    H264 = "h264"
    MPEG4 = "mpeg4"
    UNKNOWN = "unknown"
    NONE = "none"

    @property
    def needs_transcode(self) -> bool:
        """Unknown codecs are never assumed safe to keep."""
        return self not in (VideoFamily.HEVC, VideoFamily.VP9, VideoFamily.AV1, VideoFamily.NONE)


class AudioFamily(Enum):
    MP3 = "mp3"
    AAC = "aac"
    AC3 = "ac3"
    EAC3 = "eac3"
    DTS = "dts"
    TRUEHD = "truehd"
    FLAC = "flac"
    OPUS = "opus"
    UNKNOWN = "unknown"
    NONE = "none"


_AUDIO_NAMES = {
    "aac": AudioFamily.AAC,
    "ac3": AudioFamily.AC3,
    "eac3": AudioFamily.EAC3,
    "dts": AudioFamily.DTS,
    "dts-hd": AudioFamily.DTS,
    "dca": AudioFamily.DTS,
    "truehd": AudioFamily.TRUEHD,
    "flac": AudioFamily.FLAC,
    "opus": AudioFamily.OPUS,
}


def classify_video(codec_name: Optional[str], codec_tag: Optional[str] = None) -> VideoFamily:
    """
    Classifies a video codec. The checks run in a fixed order and the first
    match wins: HEVC, VP9/AV1, H.264, the MPEG-4 Part 2 family, then unknown.
    """
    if not codec_name:
        return VideoFamily.NONE
    name = codec_name.strip().lower()
    tag = (codec_tag or "").strip().lower()

    if name in HEVC_CODECS:
        return VideoFamily.HEVC
    if name in EFFICIENT_CODECS:
        return VideoFamily(name)
    if name in H264_CODECS:
        return VideoFamily.H264
    if name in MPEG4_FAMILY_CODECS or tag in MPEG4_FAMILY_TAGS:
        return VideoFamily.MPEG4
    return VideoFamily.UNKNOWN


def classify_audio(codec_name: Optional[str]) -> AudioFamily:
    if not codec_name:
        return AudioFamily.NONE
    name = codec_name.strip().lower()
    if name in AUDIO_MP3_CODECS:
        return AudioFamily.MP3
    return _AUDIO_NAMES.get(name, AudioFamily.UNKNOWN)


@dataclass(frozen=True)
class MediaProperties:
    """
    Immutable snapshot of what the inspector found in one file.

    It is never cached: every stage that rewrites an artifact invalidates it and
    the orchestrator probes the new artifact again.

    Attributes:
        container: Container kind derived from the file extension.
        video_codec: ffprobe codec_name of the first video stream, if any.
        video_tag: FourCC (codec_tag_string) of the first video stream, if any.
        audio_codec: ffprobe codec_name of the first audio stream, if any.
        width: Width in pixels, None when the probe could not report it.
        height: Height in pixels, None when the probe could not report it.
        audio_channels: Channel count of the first audio stream, informational.
    """

    container: ContainerKind
    video_codec: Optional[str] = None
    video_tag: Optional[str] = None
    audio_codec: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    audio_channels: Optional[int] = None

    @property
    def video_family(self) -> VideoFamily:
        return classify_video(self.video_codec, self.video_tag)

    @property
    def audio_family(self) -> AudioFamily:
        return classify_audio(self.audio_codec)

    @property
    def has_video(self) -> bool:
        return self.video_codec is not None

    @property
    def has_audio(self) -> bool:
        return self.audio_codec is not None

    def describe(self) -> str:
        resolution = f"{self.width}x{self.height}" if self.width and self.height else "unknown resolution"
        return (
            f"{self.container.value} | video={self.video_codec or '-'} "
            f"audio={self.audio_codec or '-'} | {resolution}"
        )
