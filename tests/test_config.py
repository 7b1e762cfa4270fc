"""
Configuration loading tests.
"""

import pytest
from pydantic import ValidationError

from vodpack.config import VODPackConfig, load_config
from vodpack.pipeline import catalog_from_config
from vodpack.models import RenditionSpec


def test_defaults():
    config = VODPackConfig()
    assert catalog_from_config(config.encoding) == (
        RenditionSpec(320, 200),
        RenditionSpec(480, 500),
        RenditionSpec(720, 1200),
        RenditionSpec(1080, 2000),
    )
    assert config.encoding.keyframe_interval == 48
    assert config.encoding.audio_bitrate_kbps == 192
    assert config.encoding.fragment_duration_ms == 2000
    assert config.packaging.manifest_name == "manifest.mpd"
    assert config.pipeline.concurrent_categories is False


def test_load_yaml(tmp_path):
    path = tmp_path / "vodpack.yaml"
    path.write_text(
        "encoding:\n"
        "  renditions:\n"
        "    - {height: 360, bitrate_kbps: 400}\n"
        "packaging:\n"
        "  enable_hls: false\n"
        "logging:\n"
        "  format: json\n"
    )
    config = load_config(str(path))

    assert catalog_from_config(config.encoding) == (RenditionSpec(360, 400),)
    assert config.packaging.enable_hls is False
    assert config.logging.format == "json"
    assert config.tools.ffmpeg_path == "auto"


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "vodpack.yaml"
    path.write_text("")
    assert load_config(str(path)).packaging.output_subdirectory == "output"


def test_missing_explicit_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "absent.yaml"))


def test_empty_catalog_rejected():
    with pytest.raises(ValidationError):
        VODPackConfig(encoding={"renditions": []})


def test_non_positive_rendition_rejected():
    with pytest.raises(ValidationError):
        VODPackConfig(encoding={"renditions": [{"height": 0, "bitrate_kbps": 500}]})


def test_environment_override(monkeypatch):
    monkeypatch.setenv("VODPACK_PIPELINE__STALL_TIMEOUT", "30")
    monkeypatch.setenv("VODPACK_TOOLS__BENTO4_PATH", "/opt/bento4/bin")
    config = VODPackConfig()
    assert config.pipeline.stall_timeout == 30
    assert config.tools.bento4_path == "/opt/bento4/bin"
