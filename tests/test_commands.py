"""
FFmpeg command builder tests.
"""

from pathlib import Path

import pytest

from vodpack.config import EncodingConfig
from vodpack.models import RenditionSpec, SourceStream, StreamKind
from vodpack.transcoding.commands import CommandBuilder


@pytest.fixture
def builder() -> CommandBuilder:
    return CommandBuilder("ffmpeg", EncodingConfig())


def _stream(kind: StreamKind, index: int) -> SourceStream:
    return SourceStream(index=index, kind=kind, codec_name="x", extracted_path=Path(f"/j/s{index}"))


def test_extract_video(builder):
    cmd = builder.build_extract_command(Path("/in.mkv"), _stream(StreamKind.VIDEO, 0))
    assert cmd[cmd.index("-i") + 1] == "/in.mkv"
    assert cmd[cmd.index("-map") + 1] == "0:0"
    assert cmd[cmd.index("-c:v") + 1] == "copy"
    assert "-c:a" not in cmd
    assert cmd[-1] == "/j/s0"


def test_extract_audio(builder):
    cmd = builder.build_extract_command(Path("/in.mkv"), _stream(StreamKind.AUDIO, 3))
    assert cmd[cmd.index("-map") + 1] == "0:3"
    assert cmd[cmd.index("-c:a") + 1] == "copy"
    assert "-c:v" not in cmd


def test_rate_control(builder):
    args = builder.rate_control_args(RenditionSpec(720, 1200))
    assert args == [
        "-x264-params", "keyint=48:min-keyint=48:scenecut=-1:nal-hrd=cbr",
        "-b:v", "1200k",
        "-bufsize", "2400k",
        "-maxrate", "1200k",
        "-profile:v", "high",
        "-level", "4.2",
    ]


def test_pass_commands_differ_only_in_pass_and_output(builder):
    spec = RenditionSpec(480, 500)
    pass1 = builder.build_pass_command(Path("/j/src.mp4"), spec, 1, Path("/j/p1"), Path("/j/p1"))
    pass2 = builder.build_pass_command(Path("/j/src.mp4"), spec, 2, Path("/j/p1"), Path("/j/final.mp4"))

    assert pass1[pass1.index("-pass") + 1] == "1"
    assert pass2[pass2.index("-pass") + 1] == "2"
    assert pass1[pass1.index("-vf") + 1] == "scale=-2:480"
    assert pass1[pass1.index("-c:v") + 1] == "libx264"
    assert "-an" in pass1 and "-an" in pass2
    assert "-movflags" not in pass1
    assert pass2[pass2.index("-movflags") + 1] == "+faststart"
    assert pass2[-3:] == ["-f", "mp4", "/j/final.mp4"]


def test_invalid_pass_number(builder):
    with pytest.raises(ValueError):
        builder.build_pass_command(Path("a"), RenditionSpec(480, 500), 3, Path("b"), Path("c"))


def test_audio_command(builder):
    cmd = builder.build_audio_command(Path("/j/src.m4a"), Path("/j/audio_aac_192k_1.m4a"))
    assert cmd[cmd.index("-c:a") + 1] == "aac"
    assert cmd[cmd.index("-b:a") + 1] == "192k"
    assert "-vn" in cmd
    assert cmd[-3:] == ["-f", "mp4", "/j/audio_aac_192k_1.m4a"]


def test_keyframe_interval_from_config():
    builder = CommandBuilder("ffmpeg", EncodingConfig(keyframe_interval=60))
    args = builder.rate_control_args(RenditionSpec(480, 500))
    assert args[1] == "keyint=60:min-keyint=60:scenecut=-1:nal-hrd=cbr"
