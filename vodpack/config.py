"""
Configuration management for VODPack
"""

import yaml
from pathlib import Path
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ToolsConfig(BaseModel):
    ffmpeg_path: str = "auto"
    ffprobe_path: str = "auto"
    bento4_path: str = "auto"  # Directory holding mp4fragment/mp4dash


class RenditionConfig(BaseModel):
    height: int = Field(gt=0)
    bitrate_kbps: int = Field(gt=0)


def _default_renditions() -> List[RenditionConfig]:
    # Order defines the manifest variant order
    return [
        RenditionConfig(height=320, bitrate_kbps=200),
        RenditionConfig(height=480, bitrate_kbps=500),
        RenditionConfig(height=720, bitrate_kbps=1200),
        RenditionConfig(height=1080, bitrate_kbps=2000),
    ]


class EncodingConfig(BaseModel):
    renditions: List[RenditionConfig] = Field(default_factory=_default_renditions)
    keyframe_interval: int = Field(default=48, gt=0)
    video_profile: str = "high"
    video_level: str = "4.2"
    audio_bitrate_kbps: int = Field(default=192, gt=0)
    fragment_duration_ms: int = Field(default=2000, gt=0)

    @field_validator("renditions")
    @classmethod
    def _catalog_not_empty(cls, value: List[RenditionConfig]) -> List[RenditionConfig]:
        if not value:
            raise ValueError("rendition catalog must not be empty")
        return value


class PackagingConfig(BaseModel):
    manifest_name: str = "manifest.mpd"
    output_subdirectory: str = "output"  # mp4dash -o target inside the job directory
    enable_hls: bool = True


class PipelineConfig(BaseModel):
    output_root: str = "."
    concurrent_categories: bool = False  # Run video and audio sub-pipelines together
    stall_timeout: int = 0  # Seconds without progress before killing a process (0 = off)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "text"  # text | json
    file: Optional[str] = None


class VODPackConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="VODPACK_",
        env_nested_delimiter="__",
    )

    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    encoding: EncodingConfig = Field(default_factory=EncodingConfig)
    packaging: PackagingConfig = Field(default_factory=PackagingConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def find_config_file() -> Optional[Path]:
    """Find the configuration file in standard locations."""
    search_paths = [
        Path.cwd() / "vodpack.yaml",
        Path.cwd() / "vodpack.yml",
        Path.cwd() / "config" / "vodpack.yaml",
        Path.home() / ".config" / "vodpack" / "vodpack.yaml",
        Path("/etc/vodpack/vodpack.yaml"),
    ]

    for path in search_paths:
        if path.exists():
            return path

    return None


def load_config(config_path: Optional[str] = None) -> VODPackConfig:
    """Load configuration from YAML file or use defaults."""
    config_file = Path(config_path) if config_path else find_config_file()

    if config_path and not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_file}")

    if config_file and config_file.exists():
        with open(config_file, "r") as f:
            yaml_data = yaml.safe_load(f) or {}
        return VODPackConfig(**yaml_data)

    return VODPackConfig()


# Global config instance
_config: Optional[VODPackConfig] = None


def get_config() -> VODPackConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: VODPackConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
