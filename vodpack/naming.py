"""
Artifact naming scheme.

Every path a job writes is derived here from probe metadata and rendition
parameters, so later stages (and external tooling) can find files by name.
Functions are pure: they never touch the filesystem.
"""

import os
from pathlib import Path
from typing import Any, Optional, Tuple

from .models import RenditionSpec, StreamKind

MISSING = "unknown"
FRAGMENT_SUFFIX = "_fragments"
PASS1_SUFFIX = ".pass1"

VIDEO_EXTENSION = ".mp4"
AUDIO_EXTENSION = ".m4a"


def _field(value: Any) -> str:
    """Render one probe value for use inside a file name."""
    if value is None or value == "":
        return MISSING
    text = str(value)
    for sep in (os.sep, os.altsep):
        if sep:
            text = text.replace(sep, "_")
    return text


def job_directory(source_file: Path, output_root: Path) -> Path:
    """Job output directory: the source base name without its extension."""
    return output_root / Path(source_file).stem


def extracted_path(
    output_dir: Path,
    index: int,
    kind: StreamKind,
    codec_name: str,
    bit_rate: Optional[int] = None,
    codec_tag: Optional[str] = None,
    dimensions: Optional[Tuple[int, int]] = None,
    sample_rate: Optional[int] = None,
    channel_layout: Optional[str] = None,
) -> Path:
    """Path of the stream-copied elementary stream.

    source_<index>_<kind>_<codec>_<dims-or-rate>_<bitrate>_<tag>.<ext>
    """
    if kind == StreamKind.VIDEO:
        if dimensions:
            shape = f"{_field(dimensions[0])}x{_field(dimensions[1])}"
        else:
            shape = MISSING
        ext = VIDEO_EXTENSION
    else:
        shape = f"{_field(sample_rate)}_{_field(channel_layout)}"
        ext = AUDIO_EXTENSION

    name = (
        f"source_{index}_{kind.value}_{_field(codec_name)}_{shape}"
        f"_{_field(bit_rate)}_{_field(codec_tag)}{ext}"
    )
    return output_dir / name


def pass1_log_path(output_dir: Path, spec: RenditionSpec) -> Path:
    """Pass-1 statistics artifact for a rendition.

    The name carries no stream index, so two video streams must never run
    their analysis passes for the same rendition at the same time.
    """
    return output_dir / (
        f"video_{spec.target_height}p_{spec.target_bitrate_kbps}{VIDEO_EXTENSION}{PASS1_SUFFIX}"
    )


def rendition_path(output_dir: Path, stream_index: int, spec: RenditionSpec) -> Path:
    return output_dir / (
        f"video_{stream_index}_{spec.target_height}p_{spec.target_bitrate_kbps}{VIDEO_EXTENSION}"
    )


def transcoded_audio_path(output_dir: Path, stream_index: int, bitrate_kbps: int = 192) -> Path:
    return output_dir / f"audio_aac_{bitrate_kbps}k_{stream_index}{AUDIO_EXTENSION}"


def fragmented_path(path: Path) -> Path:
    """video_0_480p_500.mp4 -> video_0_480p_500_fragments.mp4"""
    path = Path(path)
    return path.with_name(f"{path.stem}{FRAGMENT_SUFFIX}{path.suffix}")
