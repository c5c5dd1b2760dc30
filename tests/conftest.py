"""Shared test fixtures for the Media Normalizer."""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import ffmpeg
import pytest

from media_normalizer.config.common import INTERMEDIATE_SEPARATOR, NormalizerConfig
from media_normalizer.services.media_engine import ArgumentSet, TranscodeResult

ORIGINAL_BYTES = b"original media payload"


def video_stream(codec: str, width: Optional[int] = 640, height: Optional[int] = 480, tag: str = "") -> dict:
    stream = {"codec_type": "video", "codec_name": codec, "codec_tag_string": tag}
    if width is not None:
        stream["width"] = width
    if height is not None:
        stream["height"] = height
    return stream


def audio_stream(codec: str, channels: int = 2) -> dict:
    return {"codec_type": "audio", "codec_name": codec, "channels": channels}


@dataclass
class TranscodeCall:
    input_path: Path
    output_path: Path
    input_options: List[str]
    output_options: List[str]

    @property
    def slug(self) -> str:
        """Stage slug taken from the intermediate name, e.g. "bframe_unpack"."""
        return self.output_path.name.split(INTERMEDIATE_SEPARATOR)[-1].rsplit(".", 1)[0]

    @property
    def video_encoder(self) -> Optional[str]:
        options = self.output_options
        if "-c:v" in options:
            return options[options.index("-c:v") + 1]
        return None


class FakeEngine:
    """
    Scripted stand-in for `MediaEngine`.

    Probe results are looked up by file name. Intermediates
    (`<source name>__<slug>.<ext>`) report the streams of their source unless
    an entry for their own name was added. Transcodes write a small file to the
    output path, except for the stages and encoders configured to fail.
    """

    def __init__(self):
        self.files: Dict[str, Dict[str, Optional[dict]]] = {}
        self.probe_errors: set = set()
        self.failing_stages: Dict[str, str] = {}
        self.failing_encoders: set = set()
        self.probe_calls: List[tuple] = []
        self.transcode_calls: List[TranscodeCall] = []

    def add_file(self, name: str, video: Optional[dict] = None, audio: Optional[dict] = None):
        self.files[name] = {"v:0": video, "a:0": audio}

    def fail_stage(self, slug: str, mode: str = "rc"):
        """mode "rc": non-zero exit, no output. mode "empty": exit 0 with an empty output."""
        self.failing_stages[slug] = mode

    def _entry(self, path: Path) -> Optional[Dict[str, Optional[dict]]]:
        if path.name in self.files:
            return self.files[path.name]
        return self.files.get(path.name.split(INTERMEDIATE_SEPARATOR)[0])

    def probe(self, path: Path, stream_selector: str) -> dict:
        path = Path(path)
        self.probe_calls.append((path, stream_selector))
        entry = self._entry(path)
        if path.name in self.probe_errors or entry is None:
            raise ffmpeg.Error("ffprobe", b"", b"Invalid data found when processing input")
        stream = entry.get(stream_selector)
        return {"streams": [stream] if stream else [], "format": {"filename": str(path)}}

    def transcode(self, input_path: Path, argument_set: ArgumentSet, output_path: Path) -> TranscodeResult:
        call = TranscodeCall(
            input_path=Path(input_path),
            output_path=Path(output_path),
            input_options=list(argument_set.input_options),
            output_options=list(argument_set.output_options),
        )
        self.transcode_calls.append(call)

        mode = self.failing_stages.get(call.slug)
        if mode is None and call.video_encoder in self.failing_encoders:
            mode = "rc"
        if mode == "empty":
            call.output_path.write_bytes(b"")
            return TranscodeResult(output_path=call.output_path, returncode=0)
        if mode == "rc":
            return TranscodeResult(
                output_path=call.output_path, returncode=1, stderr="Error while decoding stream #0:0"
            )

        call.output_path.write_bytes(b"transcoded:" + call.input_path.name.encode())
        return TranscodeResult(output_path=call.output_path, returncode=0)

    @property
    def slugs(self) -> List[str]:
        return [call.slug for call in self.transcode_calls]


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def working_dir(tmp_path: Path) -> Path:
    """An empty working directory."""
    path = tmp_path / "videos"
    path.mkdir()
    return path


@pytest.fixture
def config(working_dir: Path) -> NormalizerConfig:
    return NormalizerConfig(working_dir=working_dir)


@pytest.fixture
def make_source(working_dir: Path, engine: FakeEngine):
    """Creates an input file in the working directory and registers its streams."""

    def _make(name: str, video: Optional[dict] = None, audio: Optional[dict] = None) -> Path:
        path = working_dir / name
        path.write_bytes(ORIGINAL_BYTES)
        engine.add_file(name, video=video, audio=audio)
        return path

    return _make
