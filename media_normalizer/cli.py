"""
Command-Line Interface (CLI) setup for the Media Normalizer.

This module uses Python's `argparse` to define and parse the command-line
arguments. Every option is optional; unset options fall back to
'config.user.yaml' and then to the built-in defaults.
"""
import argparse
from pathlib import Path
from typing import Optional, Sequence


def get_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """
    Parses command-line arguments for the Media Normalizer.

    Args:
        argv: Arguments to parse. None means `sys.argv[1:]`.

    Returns:
        argparse.Namespace: The parsed arguments. Options the user did not
                            pass are None (or False for flags).
    """
    parser = argparse.ArgumentParser(
        description="Normalize AVI/MP4/MKV files in a directory into HEVC Matroska files under 'converted/'."
    )
    parser.add_argument(
        "--working-dir", type=Path, default=None,
        help="Directory holding the input files (default: the current directory)."
    )
    parser.add_argument(
        "--ffmpeg-dir", type=Path, default=None,
        help="Directory containing ffmpeg and ffprobe (default: <working-dir>/codecs, then PATH)."
    )
    parser.add_argument(
        "--config", type=Path, default=None,
        help="Path of the YAML user config (default: config.user.yaml at the project root)."
    )
    parser.add_argument(
        "--processes", type=int, default=None,
        help="Number of files to process in parallel (default: 1)."
    )
    parser.add_argument(
        "--no-fallback", action="store_true",
        help="Do not retry a failed GPU transcode with the software encoder."
    )
    parser.add_argument(
        "--log-level", type=str, default="INFO", choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set the logging level."
    )
    parser.add_argument(
        "--debug", action="store_true",
        help="Shortcut for --log-level DEBUG."
    )

    args = parser.parse_args(argv)
    if args.processes is not None and args.processes < 1:
        parser.error("--processes must be at least 1")
    return args
