"""
Stream probing with ffprobe.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..errors import ProbeError
from ..models import SourceStream, StreamKind
from .. import naming
from .error_classifier import get_error_classifier
from .runner import ProcessRunner

logger = logging.getLogger(__name__)


def _to_int(value: Any) -> Optional[int]:
    if value in (None, "", "N/A"):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return None


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


class MediaProbe:
    """Turns ffprobe output into SourceStream descriptors."""

    def __init__(self, ffprobe_path: str, runner: ProcessRunner):
        self.ffprobe_path = ffprobe_path
        self.runner = runner

    def build_command(self, source: Path) -> List[str]:
        return [
            self.ffprobe_path,
            "-v", "error",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            str(source),
        ]

    async def probe(self, source: Path, output_dir: Path) -> List[SourceStream]:
        """
        Probe ``source`` and return its video and audio streams in index order.

        Raises:
            ProbeError: the file is missing, unparseable, or has no video/audio stream
        """
        source = Path(source)
        if not source.is_file():
            raise ProbeError(f"Cannot probe {source}: file not found")

        result = await self.runner.run(self.build_command(source), stage="probe", label=source.name)
        if not result.ok:
            detail = get_error_classifier().summarize(result.return_code, result.error_output)
            raise ProbeError(f"ffprobe failed for {source}", detail)

        try:
            data = json.loads(result.stdout or "{}")
        except json.JSONDecodeError as e:
            raise ProbeError(f"Unparseable ffprobe output for {source}", str(e)) from e

        streams = self.parse_streams(data, output_dir)
        if not streams:
            raise ProbeError(f"No video or audio streams found in {source}")

        logger.info(
            f"[Probe] {source.name}: {sum(s.is_video for s in streams)} video, "
            f"{sum(s.is_audio for s in streams)} audio stream(s)"
        )
        return streams

    def parse_streams(self, data: Dict[str, Any], output_dir: Path) -> List[SourceStream]:
        """Build descriptors from parsed ffprobe JSON; pure."""
        format_duration = _to_float(data.get("format", {}).get("duration"))
        streams: List[SourceStream] = []

        for raw in data.get("streams", []):
            codec_type = raw.get("codec_type")
            if codec_type not in (StreamKind.VIDEO.value, StreamKind.AUDIO.value):
                logger.debug(f"[Probe] Skipping stream {raw.get('index')} ({codec_type})")
                continue

            if raw.get("disposition", {}).get("attached_pic"):
                logger.info(f"[Probe] Skipping cover art stream {raw.get('index')}")
                continue

            kind = StreamKind(codec_type)
            index = int(raw["index"])
            codec_name = raw.get("codec_name") or naming.MISSING
            bit_rate = _to_int(raw.get("bit_rate"))
            codec_tag = raw.get("codec_tag_string")
            duration = _to_float(raw.get("duration")) or format_duration

            if kind == StreamKind.VIDEO:
                width, height = _to_int(raw.get("width")), _to_int(raw.get("height"))
                dimensions = (width, height) if width and height else None
                path = naming.extracted_path(
                    output_dir, index, kind, codec_name,
                    bit_rate=bit_rate, codec_tag=codec_tag, dimensions=dimensions,
                )
                streams.append(SourceStream(
                    index=index,
                    kind=kind,
                    codec_name=codec_name,
                    extracted_path=path,
                    bit_rate=bit_rate,
                    dimensions=dimensions,
                    codec_tag=codec_tag,
                    duration=duration,
                ))
            else:
                sample_rate = _to_int(raw.get("sample_rate"))
                channel_layout = raw.get("channel_layout")
                path = naming.extracted_path(
                    output_dir, index, kind, codec_name,
                    bit_rate=bit_rate, codec_tag=codec_tag,
                    sample_rate=sample_rate, channel_layout=channel_layout,
                )
                streams.append(SourceStream(
                    index=index,
                    kind=kind,
                    codec_name=codec_name,
                    extracted_path=path,
                    bit_rate=bit_rate,
                    sample_rate=sample_rate,
                    channel_layout=channel_layout,
                    codec_tag=codec_tag,
                    duration=duration,
                ))

        streams.sort(key=lambda s: s.index)
        return streams
