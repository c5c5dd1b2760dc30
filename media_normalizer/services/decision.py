"""
The Decision Engine: maps inspected media properties to an action plan.

This module holds every domain rule of the normalizer (which codecs are kept,
which are repaired, when to upscale) and nothing else. All functions are pure
and deterministic; they do no I/O.

Rules, in short:
- Video: HEVC, VP9 and AV1 are kept; H.264, the MPEG-4 Part 2 family and any
  unknown codec are transcoded to HEVC.
- Audio: MP3 is re-encoded to AAC; every other codec is bitstream-copied.
- MKV with kept video is skipped (or only has its MP3 audio upgraded).
- AVI is always transcoded, always gets the audio framing repair, and gets
  B-frame unpacking when the video is MPEG-4 Part 2.
- MP4 is always transcoded, without repair stages.
- Sources under 720 lines (or of unknown height) are upscaled to 1280 wide.
"""
from typing import Optional

from loguru import logger

from ..config.video import UPSCALE_HEIGHT_THRESHOLD, UPSCALE_TARGET_WIDTH
from ..domain.media import AudioFamily, ContainerKind, MediaProperties, VideoFamily
from ..domain.plan import Action, AudioMode, AudioRepairOnly, FullTranscode, Skip


def audio_mode_for(properties: MediaProperties) -> AudioMode:
    """MP3 is always upgraded; anything else is copied untouched (no downmix, no bitrate change)."""
    if properties.audio_family is AudioFamily.MP3:
        return AudioMode.REENCODE_AAC
    return AudioMode.COPY


def needs_upscale(height: Optional[int], width: Optional[int] = None) -> bool:
    """
    True when the video should be scaled up to 1280 pixels wide.

    An unknown height is treated as a 480p source. A source that is already at
    least 1280 wide is never scaled, whatever its height, so nothing is ever
    downscaled.
    """
    if width is not None and width >= UPSCALE_TARGET_WIDTH:
        return False
    if height is None:
        return True
    return height < UPSCALE_HEIGHT_THRESHOLD


def decide(properties: MediaProperties, container: Optional[ContainerKind] = None) -> Action:
    """
    Produces the action plan for one file.

    Args:
        properties: The inspected properties of the original file.
        container: Container kind of the original. Defaults to `properties.container`.
    """
    container = container or properties.container
    video = properties.video_family
    audio_mode = audio_mode_for(properties)
    upscale = needs_upscale(properties.height, properties.width) if video is not VideoFamily.NONE else False

    if video is VideoFamily.UNKNOWN:
        logger.warning(f"Unrecognized video codec '{properties.video_codec}', transcoding to be safe.")

    if container is ContainerKind.MKV:
        if not video.needs_transcode:
            if audio_mode is AudioMode.COPY:
                return Skip()
            return AudioRepairOnly()
        return FullTranscode(
            needs_avi_repair=False,
            needs_bframe_unpack=False,
            needs_upscale=upscale,
            audio_mode=audio_mode,
        )

    if container is ContainerKind.AVI:
        return FullTranscode(
            needs_avi_repair=True,
            needs_bframe_unpack=video is VideoFamily.MPEG4,
            needs_upscale=upscale,
            audio_mode=audio_mode,
        )

    return FullTranscode(
        needs_avi_repair=False,
        needs_bframe_unpack=False,
        needs_upscale=upscale,
        audio_mode=audio_mode,
    )
