"""
Data model for VODPack jobs: probed streams, renditions and artifacts.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from .errors import PipelineError


class StreamKind(str, Enum):
    VIDEO = "video"
    AUDIO = "audio"


class Stage(str, Enum):
    DIRECTORY = "directory"
    PROBE = "probe"
    EXTRACT = "extract"
    ENCODE = "encode"
    TRANSCODE = "transcode"
    FRAGMENT = "fragment"
    MANIFEST = "manifest"


@dataclass(frozen=True)
class SourceStream:
    """One elementary stream of the source file, as reported by the prober."""
    index: int
    kind: StreamKind
    codec_name: str
    extracted_path: Path
    bit_rate: Optional[int] = None
    dimensions: Optional[Tuple[int, int]] = None  # (width, height), video only
    sample_rate: Optional[int] = None
    channel_layout: Optional[str] = None
    codec_tag: Optional[str] = None
    duration: float = 0.0

    @property
    def is_video(self) -> bool:
        return self.kind == StreamKind.VIDEO

    @property
    def is_audio(self) -> bool:
        return self.kind == StreamKind.AUDIO


@dataclass(frozen=True)
class RenditionSpec:
    target_height: int
    target_bitrate_kbps: int

    def __str__(self) -> str:
        return f"{self.target_height}p@{self.target_bitrate_kbps}k"


@dataclass(frozen=True)
class RenditionArtifact:
    stream_index: int
    spec: RenditionSpec
    pass1_log_path: Path
    final_mp4_path: Path
    fragmented_mp4_path: Path


@dataclass(frozen=True)
class AudioArtifact:
    stream_index: int
    extracted_path: Path
    transcoded_path: Path
    fragmented_path: Path


@dataclass(frozen=True)
class Job:
    """Complete, immutable plan for one source file."""
    source_file: Path
    output_directory: Path
    streams: Tuple[SourceStream, ...]
    rendition_catalog: Tuple[RenditionSpec, ...]
    renditions: Tuple[RenditionArtifact, ...] = ()
    audio: Tuple[AudioArtifact, ...] = ()

    @property
    def video_streams(self) -> List[SourceStream]:
        return [s for s in self.streams if s.is_video]

    @property
    def audio_streams(self) -> List[SourceStream]:
        return [s for s in self.streams if s.is_audio]

    def renditions_for(self, stream_index: int) -> List[RenditionArtifact]:
        return [r for r in self.renditions if r.stream_index == stream_index]

    def audio_for(self, stream_index: int) -> AudioArtifact:
        for artifact in self.audio:
            if artifact.stream_index == stream_index:
                return artifact
        raise KeyError(stream_index)

    @property
    def fragmented_assets(self) -> List[Path]:
        """All fragmented assets in manifest order: video renditions, then audio."""
        assets = [r.fragmented_mp4_path for r in self.renditions]
        assets.extend(a.fragmented_path for a in self.audio)
        return assets


@dataclass
class JobResult:
    """Outcome of one pipeline run."""
    source_file: Path
    output_directory: Optional[Path] = None
    success: bool = False
    stage: Optional[Stage] = None
    error: Optional["PipelineError"] = None
    manifest_path: Optional[Path] = None
    assets: List[Path] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def describe(self) -> str:
        if self.success:
            return f"Job complete: {self.manifest_path} ({len(self.assets)} assets)"
        return f"Job failed at stage '{self.stage.value if self.stage else 'unknown'}': {self.error}"
