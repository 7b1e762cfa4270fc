"""
VODPack Test Configuration and Fixtures

Provides:
- A scripted process runner that records commands and writes the files each
  external tool would produce (no FFmpeg or Bento4 needed)
- Auto-generated test media files for real-binary integration tests
- Shared config/orchestrator fixtures
"""

import json
import shutil
import subprocess
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
import pytest

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from vodpack.config import VODPackConfig, RenditionConfig
from vodpack.models import RenditionSpec
from vodpack.pipeline import PipelineOrchestrator
from vodpack.transcoding.models import ProcessResult


# =============================================================================
# SCRIPTED PROCESS RUNNER
# =============================================================================

FailurePredicate = Callable[[List[str], str], bool]


def sample_probe_data(
    video: bool = True,
    audio: bool = True,
    extra: Optional[List[Dict[str, Any]]] = None
) -> Dict[str, Any]:
    """ffprobe JSON for a 1080p H.264 + stereo AAC source."""
    streams: List[Dict[str, Any]] = []
    if video:
        streams.append({
            "index": 0,
            "codec_name": "h264",
            "codec_type": "video",
            "codec_tag_string": "avc1",
            "width": 1920,
            "height": 1080,
            "bit_rate": "4000000",
            "duration": "10.000000",
            "disposition": {"default": 1, "attached_pic": 0},
        })
    if audio:
        streams.append({
            "index": 1,
            "codec_name": "aac",
            "codec_type": "audio",
            "codec_tag_string": "mp4a",
            "sample_rate": "48000",
            "channel_layout": "stereo",
            "bit_rate": "128000",
            "duration": "10.000000",
            "disposition": {"default": 1, "attached_pic": 0},
        })
    streams.extend(extra or [])
    return {"streams": streams, "format": {"duration": "10.000000"}}


class ScriptedRunner:
    """
    Stands in for ProcessRunner.

    Records every command, answers ffprobe with canned JSON, writes each
    tool's output files, and fails any command matched by a failure predicate.
    """

    def __init__(self, probe_data: Optional[Dict[str, Any]] = None):
        self.probe_data = probe_data if probe_data is not None else sample_probe_data()
        self.calls: List[List[str]] = []
        self.stages: List[str] = []
        self.failures: List[FailurePredicate] = []

    def fail_when(self, predicate: FailurePredicate) -> None:
        self.failures.append(predicate)

    def calls_for(self, stage: str) -> List[List[str]]:
        return [cmd for cmd, s in zip(self.calls, self.stages) if s == stage]

    def _write_outputs(self, cmd: List[str]) -> None:
        tool = Path(cmd[0]).name
        if tool == "mp4dash":
            out_dir = Path(cmd[cmd.index("-o") + 1])
            out_dir.mkdir(parents=True, exist_ok=True)
            (out_dir / cmd[cmd.index("--mpd-name") + 1]).write_text("<MPD/>")
            if "--hls" in cmd:
                (out_dir / "master.m3u8").write_text("#EXTM3U\n")
            return

        output = Path(cmd[-1])
        output.write_bytes(b"\x00" * 64)
        if "-pass" in cmd and cmd[cmd.index("-pass") + 1] == "1":
            prefix = cmd[cmd.index("-passlogfile") + 1]
            Path(f"{prefix}-0.log").write_text("stats")
            Path(f"{prefix}-0.log.mbtree").write_bytes(b"\x00")

    async def run(
        self,
        cmd: List[str],
        stage: str = "transcoding",
        label: str = "",
        duration: float = 0.0,
        progress_callback=None
    ) -> ProcessResult:
        cmd = [str(part) for part in cmd]
        self.calls.append(cmd)
        self.stages.append(stage)

        for predicate in self.failures:
            if predicate(cmd, stage):
                return ProcessResult(
                    cmd=cmd,
                    return_code=1,
                    error_output="Error: injected failure\nConversion failed!\n",
                )

        if stage == "probe":
            return ProcessResult(cmd=cmd, return_code=0, stdout=json.dumps(self.probe_data))

        self._write_outputs(cmd)
        return ProcessResult(cmd=cmd, return_code=0)


# =============================================================================
# TEST MEDIA GENERATION
# =============================================================================

class TestMediaGenerator:
    """
    Generates test media files using FFmpeg.
    No external downloads - creates synthetic test videos.
    """

    def __init__(self, output_dir: Path):
        self.output_dir = output_dir
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self._ffmpeg = shutil.which("ffmpeg")

    @property
    def has_ffmpeg(self) -> bool:
        return self._ffmpeg is not None

    def generate_test_video(
        self,
        name: str = "test_video",
        duration: int = 3,
        width: int = 640,
        height: int = 360,
        fps: int = 24,
        audio: bool = True
    ) -> Optional[Path]:
        """
        Generate a test video with color bars and a sine tone.

        Returns:
            Path to generated video, or None if FFmpeg not available
        """
        if not self.has_ffmpeg:
            return None

        output_path = self.output_dir / f"{name}.mp4"

        cmd = [
            self._ffmpeg,
            "-y",
            "-f", "lavfi",
            "-i", f"testsrc=duration={duration}:size={width}x{height}:rate={fps}",
        ]
        if audio:
            cmd.extend([
                "-f", "lavfi",
                "-i", f"sine=frequency=440:duration={duration}",
            ])
        cmd.extend([
            "-c:v", "libx264",
            "-preset", "ultrafast",
            "-pix_fmt", "yuv420p",
        ])
        if audio:
            cmd.extend(["-c:a", "aac", "-b:a", "128k"])
        cmd.append(str(output_path))

        try:
            result = subprocess.run(cmd, capture_output=True, timeout=60)
            if result.returncode == 0 and output_path.exists():
                return output_path
        except (subprocess.TimeoutExpired, OSError) as e:
            print(f"Failed to generate test video: {e}")

        return None


# =============================================================================
# PYTEST FIXTURES
# =============================================================================

@pytest.fixture
def source_file(tmp_path) -> Path:
    """A placeholder source file; its content is never read by the scripted runner."""
    path = tmp_path / "input" / "movie.mkv"
    path.parent.mkdir()
    path.write_bytes(b"not really a movie")
    return path


@pytest.fixture
def output_root(tmp_path) -> Path:
    root = tmp_path / "jobs"
    root.mkdir()
    return root


@pytest.fixture
def test_config(output_root) -> VODPackConfig:
    config = VODPackConfig()
    config.tools.ffmpeg_path = "ffmpeg"
    config.tools.ffprobe_path = "ffprobe"
    config.tools.bento4_path = "/opt/bento4/bin"
    config.encoding.renditions = [
        RenditionConfig(height=480, bitrate_kbps=500),
        RenditionConfig(height=720, bitrate_kbps=1200),
    ]
    config.pipeline.output_root = str(output_root)
    return config


@pytest.fixture
def runner() -> ScriptedRunner:
    return ScriptedRunner()


@pytest.fixture
def orchestrator(test_config, runner) -> PipelineOrchestrator:
    return PipelineOrchestrator(test_config, runner=runner)


@pytest.fixture
def two_rendition_catalog() -> List[RenditionSpec]:
    return [RenditionSpec(480, 500), RenditionSpec(720, 1200)]


@pytest.fixture(scope="session")
def media_generator(tmp_path_factory) -> TestMediaGenerator:
    return TestMediaGenerator(tmp_path_factory.mktemp("vodpack_test_media"))


@pytest.fixture(scope="session")
def real_source(media_generator) -> Path:
    """Small H.264 + AAC file generated with FFmpeg."""
    if not media_generator.has_ffmpeg:
        pytest.skip("FFmpeg not available for test media generation")
    path = media_generator.generate_test_video("sample")
    if path is None:
        pytest.skip("Failed to generate test video")
    return path


# =============================================================================
# SKIP CONDITIONS
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "requires_ffmpeg: marks tests that require FFmpeg"
    )


@pytest.fixture
def requires_ffmpeg():
    """Skip test if FFmpeg or ffprobe is not available."""
    if not shutil.which("ffmpeg") or not shutil.which("ffprobe"):
        pytest.skip("FFmpeg not available")


@pytest.fixture
def requires_bento4():
    """Skip test if Bento4 tools are not available."""
    if not shutil.which("mp4fragment") or not shutil.which("mp4dash"):
        pytest.skip("Bento4 not available")
