"""
FFmpeg command building for extraction, two-pass video and AAC audio.
"""

import logging
from pathlib import Path
from typing import List

from ..config import EncodingConfig
from ..models import RenditionSpec, SourceStream
from .constants import VIDEO_ENCODER, AUDIO_ENCODER, X264_PARAMS_TEMPLATE, BUFSIZE_FACTOR

logger = logging.getLogger(__name__)


class CommandBuilder:
    """Builds FFmpeg commands for each pipeline stage."""

    def __init__(self, ffmpeg_path: str, encoding_config: EncodingConfig):
        self.ffmpeg_path = ffmpeg_path
        self.encoding_config = encoding_config

    def _base(self, source: Path) -> List[str]:
        return [self.ffmpeg_path, "-y", "-hide_banner", "-nostdin", "-i", str(source)]

    def build_extract_command(self, source: Path, stream: SourceStream) -> List[str]:
        """Stream-copy one elementary stream into its own container."""
        cmd = self._base(source)
        cmd.extend(["-map", f"0:{stream.index}"])
        if stream.is_video:
            cmd.extend(["-c:v", "copy"])
        else:
            cmd.extend(["-c:a", "copy"])
        cmd.append(str(stream.extracted_path))
        return cmd

    def rate_control_args(self, spec: RenditionSpec) -> List[str]:
        """Constant-bitrate x264 parameters shared by both passes."""
        rate = spec.target_bitrate_kbps
        keyint = self.encoding_config.keyframe_interval
        return [
            "-x264-params", X264_PARAMS_TEMPLATE.format(keyint=keyint),
            "-b:v", f"{rate}k",
            "-bufsize", f"{rate * BUFSIZE_FACTOR}k",
            "-maxrate", f"{rate}k",
            "-profile:v", self.encoding_config.video_profile,
            "-level", self.encoding_config.video_level,
        ]

    def build_pass_command(
        self,
        source: Path,
        spec: RenditionSpec,
        pass_num: int,
        passlog_prefix: Path,
        output_path: Path
    ) -> List[str]:
        """
        Build one pass of the two-pass encode.

        Both passes share every rate-control argument; only the pass number,
        movflags and output differ.
        """
        if pass_num not in (1, 2):
            raise ValueError(f"Invalid pass number: {pass_num}")

        cmd = self._base(source)
        cmd.extend(["-map", "0:v:0"])
        cmd.extend(["-c:v", VIDEO_ENCODER])
        cmd.extend(["-vf", f"scale=-2:{spec.target_height}"])
        cmd.extend(self.rate_control_args(spec))
        cmd.extend(["-pass", str(pass_num), "-passlogfile", str(passlog_prefix)])
        cmd.append("-an")
        if pass_num == 2:
            cmd.extend(["-movflags", "+faststart"])
        cmd.extend(["-f", "mp4", str(output_path)])
        return cmd

    def build_audio_command(self, source: Path, output_path: Path) -> List[str]:
        """Single-pass AAC transcode into an MP4 audio container."""
        cmd = self._base(source)
        cmd.extend(["-map", "0:a:0", "-vn"])
        cmd.extend(["-c:a", AUDIO_ENCODER])
        cmd.extend(["-b:a", f"{self.encoding_config.audio_bitrate_kbps}k"])
        cmd.extend(["-f", "mp4", str(output_path)])
        return cmd
