"""
Common configuration settings used throughout the application.

This module contains the shared constants (logging format, directory layout,
report file names) and the `NormalizerConfig` object that replaces a global
working-directory constant. User overrides are read from a 'config.user.yaml'
file so that paths and encoder choices can be adjusted without touching code.
"""
import sys
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Optional

import yaml
from loguru import logger

from .video import FALLBACK_HEVC_ENCODER, HEVC_ENCODER, HEVC_PRESET, HEVC_QUALITY

# --- User-Defined Configuration ---
# 'config.user.yaml' at the project root is optional. Recognized keys:
#   paths: {working_dir, ffmpeg_dir}
#   encoding: {hevc_encoder, fallback_encoder, quality, preset}
#   processes: int
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
USER_CONFIG_PATH = PROJECT_ROOT / "config.user.yaml"


# --- Logging Configuration ---
LOGGER_FORMAT = (
    "<green>{time:MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "{process} - <level>{message}</level>"
)


def configure_logger(level: str = "INFO"):
    """Replaces every loguru sink with one stderr sink using `LOGGER_FORMAT`."""
    logger.remove()
    logger.add(sys.stderr, level=level, format=LOGGER_FORMAT)


# --- Directory and File Management ---
# Final artifacts land in <working_dir>/converted, named <stem>.mkv.
OUTPUT_DIR_NAME = "converted"

# Holds the ffmpeg/ffprobe binaries and doubles as scratch space for intermediates.
SCRATCH_DIR_NAME = "codecs"

# Separator between the source file name and the stage slug of an intermediate,
# e.g. "movie.avi__avi_repair.avi".
INTERMEDIATE_SEPARATOR = "__"

# Suffix of the in-flight final artifact inside the output directory.
PARTIAL_SUFFIX = ".part"

# Every executed ffmpeg command line is appended here (inside the scratch dir).
COMMAND_TEXT = "cmd.txt"

# Per-run YAML report, written inside the output directory.
SUMMARY_LOG_FILE_NAME = "normalize_log.yaml"


@dataclass(frozen=True)
class NormalizerConfig:
    """
    Runtime configuration for one batch run.

    Attributes:
        working_dir: Directory holding the input files.
        ffmpeg_dir: Directory containing ffmpeg/ffprobe. None means the scratch
                    directory is searched first, then the system PATH.
        processes: Number of files processed in parallel. 1 is sequential.
        hevc_encoder: Preferred (GPU) HEVC encoder for the final transcode.
        fallback_encoder: Software encoder retried when the preferred one fails.
                          None disables the retry.
        quality: Constant-quality value on the encoder's own scale.
        preset: Quality/speed preset of the preferred encoder.
    """

    working_dir: Path
    ffmpeg_dir: Optional[Path] = None
    processes: int = 1
    hevc_encoder: str = HEVC_ENCODER
    fallback_encoder: Optional[str] = FALLBACK_HEVC_ENCODER
    quality: int = HEVC_QUALITY
    preset: str = HEVC_PRESET

    @property
    def output_dir(self) -> Path:
        return self.working_dir / OUTPUT_DIR_NAME

    @property
    def scratch_dir(self) -> Path:
        return self.working_dir / SCRATCH_DIR_NAME

    @property
    def cmd_log_path(self) -> Path:
        return self.scratch_dir / COMMAND_TEXT

    @property
    def summary_log_path(self) -> Path:
        return self.output_dir / SUMMARY_LOG_FILE_NAME


def _read_user_config(config_path: Path) -> dict:
    """Returns the parsed YAML mapping, or an empty dict if it is missing or unreadable."""
    if not config_path.is_file():
        logger.debug(f"User config '{config_path}' not found. Using defaults.")
        return {}
    try:
        with config_path.open("r", encoding="utf-8") as f:
            user_config = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not load or parse '{config_path}': {e}")
        return {}
    if not isinstance(user_config, dict):
        logger.warning(f"Ignoring '{config_path}': expected a mapping at the top level.")
        return {}
    return user_config


def load_config(
    config_path: Optional[Path] = None,
    working_dir: Optional[Path] = None,
    ffmpeg_dir: Optional[Path] = None,
    processes: Optional[int] = None,
    no_fallback: bool = False,
) -> NormalizerConfig:
    """
    Builds the effective configuration.

    Precedence, lowest first: built-in defaults, the YAML user config, then the
    explicit arguments (usually coming from the command line).

    Raises:
        ValueError: If the resulting working directory does not exist or the
                    process count is not positive.
    """
    user_config = _read_user_config(config_path or USER_CONFIG_PATH)
    paths_config: dict[str, Any] = user_config.get("paths") or {}
    encoding_config: dict[str, Any] = user_config.get("encoding") or {}

    config = NormalizerConfig(working_dir=Path.cwd())

    if paths_config.get("working_dir"):
        config = replace(config, working_dir=Path(paths_config["working_dir"]))
    if paths_config.get("ffmpeg_dir"):
        config = replace(config, ffmpeg_dir=Path(paths_config["ffmpeg_dir"]))
    if user_config.get("processes"):
        config = replace(config, processes=int(user_config["processes"]))
    if encoding_config.get("hevc_encoder"):
        config = replace(config, hevc_encoder=str(encoding_config["hevc_encoder"]))
    if "fallback_encoder" in encoding_config:
        fallback = encoding_config["fallback_encoder"]
        config = replace(config, fallback_encoder=str(fallback) if fallback else None)
    if encoding_config.get("quality") is not None:
        config = replace(config, quality=int(encoding_config["quality"]))
    if encoding_config.get("preset"):
        config = replace(config, preset=str(encoding_config["preset"]))

    if working_dir is not None:
        config = replace(config, working_dir=working_dir)
    if ffmpeg_dir is not None:
        config = replace(config, ffmpeg_dir=ffmpeg_dir)
    if processes is not None:
        config = replace(config, processes=processes)
    if no_fallback:
        config = replace(config, fallback_encoder=None)

    config = replace(config, working_dir=config.working_dir.expanduser().resolve())
    if not config.working_dir.is_dir():
        raise ValueError(f"Working directory does not exist: {config.working_dir}")
    if config.processes < 1:
        raise ValueError(f"processes must be at least 1, got {config.processes}")

    logger.debug(f"Effective configuration: {config}")
    return config
