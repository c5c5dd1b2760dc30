"""
The Stage Executor runs one transform stage through the media engine.

Each stage writes to its own intermediate path inside the scratch directory,
named after the source file so that files processed in parallel never collide.
Success is decided by the output file, not by ffmpeg's exit status: ffmpeg can
exit 0 after writing nothing usable, and a missing or empty output is always a
failure. A failed stage hands back its own input as the fallback artifact.
"""
from pathlib import Path
from typing import List, Optional

from loguru import logger

from ..config.audio import (
    AAC_BITRATE,
    AAC_ENCODER,
    AVI_REPAIR_AUDIO_BITRATE,
    AVI_REPAIR_AUDIO_ENCODER,
)
from ..config.common import INTERMEDIATE_SEPARATOR, NormalizerConfig
from ..config.video import (
    BFRAME_UNPACK_BSF,
    FALLBACK_HEVC_PIX_FMT,
    FALLBACK_HEVC_PRESET,
    HEVC_PIX_FMT,
    HEVC_PRESET,
    HEVC_PROFILE,
    UPSCALE_FILTER,
)
from ..domain.plan import Artifact, ArtifactRole, AudioMode, StageKind, StageResult
from ..utils.format_utils import formatted_size
from .media_engine import ArgumentSet

# First video and first audio stream; "?" keeps ffmpeg going when one is absent.
STREAM_MAP = ["-map", "0:v:0?", "-map", "0:a:0?"]


def intermediate_path(scratch_dir: Path, source: Path, stage: StageKind) -> Path:
    """e.g. codecs/movie.avi__bframe_unpack.avi"""
    return scratch_dir / f"{source.name}{INTERMEDIATE_SEPARATOR}{stage.slug}{stage.extension}"


def audio_options(audio_mode: AudioMode) -> List[str]:
    if audio_mode is AudioMode.REENCODE_AAC:
        return ["-c:a", AAC_ENCODER, "-b:a", AAC_BITRATE]
    return ["-c:a", "copy"]


def hevc_video_options(encoder: str, quality: int, preset: Optional[str] = None) -> List[str]:
    """
    Constant-quality HEVC options with a 10-bit profile.

    NVENC encoders use VBR with a CQ target and no bitrate cap; software
    encoders (libx265 and anything else) use CRF.
    """
    if encoder.endswith("_nvenc"):
        return [
            "-c:v", encoder,
            "-preset", preset or HEVC_PRESET,
            "-tune", "hq",
            "-rc", "vbr",
            "-cq", str(quality),
            "-b:v", "0",
            "-profile:v", HEVC_PROFILE,
            "-pix_fmt", HEVC_PIX_FMT,
        ]
    return [
        "-c:v", encoder,
        "-preset", preset or FALLBACK_HEVC_PRESET,
        "-crf", str(quality),
        "-profile:v", HEVC_PROFILE,
        "-pix_fmt", FALLBACK_HEVC_PIX_FMT,
    ]


class StageExecutor:
    """
    Builds the ffmpeg argument set of a stage, runs it and verifies the artifact.

    Attributes:
        engine: The media engine (`MediaEngine` or a compatible object).
        config: Run configuration (scratch directory, encoder settings).
    """

    def __init__(self, engine, config: NormalizerConfig):
        self.engine = engine
        self.config = config

    def arguments_for(
        self,
        stage: StageKind,
        audio_mode: AudioMode = AudioMode.COPY,
        upscale: bool = False,
        encoder: Optional[str] = None,
    ) -> ArgumentSet:
        if stage is StageKind.AVI_AUDIO_REPAIR:
            # MP3 sources get their frames rebuilt; any other codec is only
            # remuxed so that channels and bitrate stay untouched.
            if audio_mode is AudioMode.REENCODE_AAC:
                audio = ["-c:a", AVI_REPAIR_AUDIO_ENCODER, "-b:a", AVI_REPAIR_AUDIO_BITRATE]
            else:
                audio = ["-c:a", "copy"]
            return ArgumentSet(
                input_options=["-err_detect", "ignore_err"],
                output_options=[*STREAM_MAP, "-c:v", "copy", *audio],
            )
        if stage is StageKind.BFRAME_UNPACK:
            return ArgumentSet(
                output_options=[*STREAM_MAP, "-c:v", "copy", "-bsf:v", BFRAME_UNPACK_BSF, "-c:a", "copy"],
            )
        if stage is StageKind.AUDIO_ONLY_REPAIR:
            return ArgumentSet(
                output_options=[*STREAM_MAP, "-c:v", "copy", *audio_options(AudioMode.REENCODE_AAC)],
            )

        encoder = encoder or self.config.hevc_encoder
        preset = self.config.preset if encoder == self.config.hevc_encoder else None
        output_options = [*STREAM_MAP, *hevc_video_options(encoder, self.config.quality, preset)]
        if upscale:
            output_options += ["-vf", UPSCALE_FILTER]
        output_options += audio_options(audio_mode)
        return ArgumentSet(output_options=output_options)

    def run_stage(
        self,
        stage: StageKind,
        input_artifact: Artifact,
        source: Path,
        audio_mode: AudioMode = AudioMode.COPY,
        upscale: bool = False,
        encoder: Optional[str] = None,
    ) -> StageResult:
        """
        Runs `stage` on `input_artifact`.

        Args:
            stage: Which transform to run.
            input_artifact: The artifact to read.
            source: The original input file; names the intermediate.
            audio_mode: Audio handling. For the AVI repair, REENCODE_AAC marks
                        an MP3 source whose frames are rebuilt.
            upscale: Apply the Lanczos upscale filter (final transcode only).
            encoder: Video encoder override (final transcode only).

        Returns:
            A successful `StageResult` holding the new intermediate artifact, or
            a failed one holding `input_artifact` as the fallback.
        """
        output_path = intermediate_path(self.config.scratch_dir, source, stage)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.unlink(missing_ok=True)

        argument_set = self.arguments_for(stage, audio_mode=audio_mode, upscale=upscale, encoder=encoder)
        logger.info(f"[{stage.slug}] {input_artifact.path.name} -> {output_path.name}")
        result = self.engine.transcode(input_artifact.path, argument_set, output_path)

        produced = output_path.is_file() and output_path.stat().st_size > 0
        if produced:
            if not result.exited_cleanly:
                logger.warning(
                    f"[{stage.slug}] ffmpeg exited with rc={result.returncode} but produced "
                    f"{output_path.name}; discarding it."
                )
            else:
                logger.debug(f"[{stage.slug}] produced {output_path.name} ({formatted_size(output_path.stat().st_size)})")
                return StageResult.success(
                    stage, Artifact(path=output_path, role=ArtifactRole.INTERMEDIATE, stage=stage)
                )

        output_path.unlink(missing_ok=True)
        if not result.exited_cleanly:
            reason = f"ffmpeg failed (rc={result.returncode}): {result.error_tail() or 'no output'}"
        else:
            reason = "ffmpeg exited cleanly but the output is missing or empty"
        return StageResult.failure(stage, fallback=input_artifact, reason=reason)
