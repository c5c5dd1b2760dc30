"""
The boundary to the external media engine (ffprobe and ffmpeg).

Everything the pipeline knows about codecs is delegated through two calls:
`probe` returns the ffprobe JSON for one stream selector, and `transcode` runs
ffmpeg with a stage-specific argument set. Both block until the external
process exits. Tests substitute this class with a scripted fake.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

import ffmpeg
from loguru import logger

from ..config.common import NormalizerConfig
from ..utils.ffmpeg_utils import resolve_executable, run_cmd
from .logging_service import ErrorLog

# Options placed before every input: quiet banner, never wait on stdin,
# overwrite stale outputs.
BASE_OPTIONS = ("-hide_banner", "-nostdin", "-y")


@dataclass(frozen=True)
class ArgumentSet:
    """ffmpeg options for one invocation, split around the `-i <input>` argument."""

    input_options: Sequence[str] = ()
    output_options: Sequence[str] = ()


@dataclass(frozen=True)
class TranscodeResult:
    """
    Raw result of an ffmpeg invocation.

    `returncode` is None when the process could not be started. A zero return
    code alone does not mean success; callers must verify the output file.
    """

    output_path: Path
    returncode: Optional[int]
    stderr: str = ""

    @property
    def exited_cleanly(self) -> bool:
        return self.returncode == 0

    def error_tail(self, lines: int = 5) -> str:
        tail = [line for line in self.stderr.strip().splitlines() if line.strip()][-lines:]
        return " | ".join(tail)


class MediaEngine:
    """
    Wraps ffprobe (through ffmpeg-python) and ffmpeg (through `run_cmd`).

    Attributes:
        ffmpeg_cmd: Resolved ffmpeg executable.
        ffprobe_cmd: Resolved ffprobe executable.
        cmd_log_file_path: Every ffmpeg command line is appended here, if set.
        error_log_dir: Failed invocations are appended to `error.txt` here, if set.
    """

    def __init__(
        self,
        ffmpeg_cmd: str = "ffmpeg",
        ffprobe_cmd: str = "ffprobe",
        cmd_log_file_path: Optional[Path] = None,
        error_log_dir: Optional[Path] = None,
    ):
        self.ffmpeg_cmd = ffmpeg_cmd
        self.ffprobe_cmd = ffprobe_cmd
        self.cmd_log_file_path = cmd_log_file_path
        self.error_log_dir = error_log_dir

    @classmethod
    def from_config(cls, config: NormalizerConfig) -> "MediaEngine":
        search_dirs = (config.ffmpeg_dir, config.scratch_dir)
        return cls(
            ffmpeg_cmd=resolve_executable("ffmpeg", *search_dirs),
            ffprobe_cmd=resolve_executable("ffprobe", *search_dirs),
            cmd_log_file_path=config.cmd_log_path,
            error_log_dir=config.scratch_dir,
        )

    def probe(self, path: Path, stream_selector: str) -> dict:
        """
        Returns ffprobe's JSON for the streams matching `stream_selector`
        (e.g. "v:0" or "a:0"), plus the format section.

        Raises:
            ffmpeg.Error: ffprobe exited with a non-zero status.
            FileNotFoundError: ffprobe could not be started.
            ValueError: ffprobe produced output that is not valid JSON.
        """
        return ffmpeg.probe(str(path), cmd=self.ffprobe_cmd, select_streams=stream_selector)

    def transcode(self, input_path: Path, argument_set: ArgumentSet, output_path: Path) -> TranscodeResult:
        cmd_list = [
            self.ffmpeg_cmd,
            *BASE_OPTIONS,
            *argument_set.input_options,
            "-i",
            str(input_path),
            *argument_set.output_options,
            str(output_path),
        ]
        res = run_cmd(
            cmd_list,
            src_file_for_log=input_path,
            error_log_dir_for_run_cmd=self.error_log_dir,
            show_cmd=True,
            cmd_log_file_path=self.cmd_log_file_path,
        )
        if res is None:
            return TranscodeResult(output_path=output_path, returncode=None, stderr="ffmpeg could not be started")

        result = TranscodeResult(output_path=output_path, returncode=res.returncode, stderr=res.stderr or "")
        if not result.exited_cleanly:
            logger.debug(f"ffmpeg exited with rc={res.returncode} for {input_path.name}")
            if self.error_log_dir:
                ErrorLog(self.error_log_dir).write(
                    f"ffmpeg failed for: {input_path}",
                    f"Output: {output_path}",
                    f"Return code: {res.returncode}",
                    f"Stderr: {result.error_tail(20)}",
                )
        return result
