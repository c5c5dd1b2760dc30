"""Tests for container and codec classification."""

from pathlib import Path

import pytest

from media_normalizer.domain.media import (
    AudioFamily,
    ContainerKind,
    MediaProperties,
    VideoFamily,
    classify_audio,
    classify_video,
)


@pytest.mark.parametrize(
    "filename,expected",
    [
        ("movie.avi", ContainerKind.AVI),
        ("MOVIE.AVI", ContainerKind.AVI),
        ("clip.Mp4", ContainerKind.MP4),
        ("show.mkv", ContainerKind.MKV),
        ("clip.mov", None),
        ("noextension", None),
    ],
)
def test_container_from_path(filename, expected):
    assert ContainerKind.from_path(Path(filename)) is expected


@pytest.mark.parametrize(
    "codec,tag,expected",
    [
        ("hevc", None, VideoFamily.HEVC),
        ("HEVC", None, VideoFamily.HEVC),
        ("vp9", None, VideoFamily.VP9),
        ("av1", None, VideoFamily.AV1),
        ("h264", "avc1", VideoFamily.H264),
        ("mpeg4", "XVID", VideoFamily.MPEG4),
        ("msmpeg4v3", "DIV3", VideoFamily.MPEG4),
        ("some_codec", "DX50", VideoFamily.MPEG4),
        ("wmv3", None, VideoFamily.UNKNOWN),
        (None, None, VideoFamily.NONE),
    ],
)
def test_classify_video(codec, tag, expected):
    assert classify_video(codec, tag) is expected


@pytest.mark.parametrize(
    "codec,expected",
    [
        ("mp3", AudioFamily.MP3),
        ("mp3float", AudioFamily.MP3),
        ("aac", AudioFamily.AAC),
        ("ac3", AudioFamily.AC3),
        ("dts", AudioFamily.DTS),
        ("truehd", AudioFamily.TRUEHD),
        ("opus", AudioFamily.OPUS),
        ("pcm_s16le", AudioFamily.UNKNOWN),
        (None, AudioFamily.NONE),
    ],
)
def test_classify_audio(codec, expected):
    assert classify_audio(codec) is expected


def test_only_efficient_video_is_kept():
    kept = {family for family in VideoFamily if not family.needs_transcode}
    assert kept == {VideoFamily.HEVC, VideoFamily.VP9, VideoFamily.AV1, VideoFamily.NONE}


def test_media_properties_describe():
    props = MediaProperties(
        container=ContainerKind.AVI, video_codec="mpeg4", audio_codec="mp3", width=640, height=480
    )
    assert props.has_video and props.has_audio
    assert props.video_family is VideoFamily.MPEG4
    assert props.describe() == "avi | video=mpeg4 audio=mp3 | 640x480"


def test_media_properties_without_streams():
    props = MediaProperties(container=ContainerKind.MKV)
    assert not props.has_video
    assert props.audio_family is AudioFamily.NONE
    assert "unknown resolution" in props.describe()
