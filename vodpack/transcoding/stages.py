"""
Single-process pipeline stages: stream extraction and audio transcoding.
"""

import logging
from pathlib import Path

from ..errors import ExtractionError, TranscodeError
from ..models import SourceStream
from .commands import CommandBuilder
from .constants import PROGRESS_LOG_STEP
from .error_classifier import get_error_classifier
from .models import TranscodeProgress
from .runner import ProcessRunner

logger = logging.getLogger(__name__)


class ProgressLogger:
    """Progress callback that logs every PROGRESS_LOG_STEP percent."""

    def __init__(self, label: str):
        self.label = label
        self._next = PROGRESS_LOG_STEP

    def __call__(self, progress: TranscodeProgress) -> None:
        if progress.percent >= self._next:
            logger.info(f"{self.label} {progress.percent:.0f}% done")
            while self._next <= progress.percent:
                self._next += PROGRESS_LOG_STEP


class StreamExtractor:
    """Demuxes one elementary stream without re-encoding."""

    def __init__(self, runner: ProcessRunner, command_builder: CommandBuilder):
        self.runner = runner
        self.command_builder = command_builder

    async def extract(self, source_file: Path, stream: SourceStream) -> Path:
        """
        Copy ``stream`` out of ``source_file`` into ``stream.extracted_path``.

        Raises:
            ExtractionError: ffmpeg could not be started or exited non-zero
        """
        cmd = self.command_builder.build_extract_command(source_file, stream)
        logger.info(f"[Extract] Stream {stream.index} ({stream.kind.value}) -> {stream.extracted_path.name}")

        result = await self.runner.run(
            cmd,
            stage="extract",
            label=stream.extracted_path.name,
            duration=stream.duration,
            progress_callback=ProgressLogger(f"[Extract] {stream.extracted_path.name}"),
        )
        if not result.ok:
            detail = get_error_classifier().summarize(result.return_code, result.error_output)
            raise ExtractionError(
                f"Extraction of stream {stream.index} ({stream.kind.value}) from {source_file} "
                f"to {stream.extracted_path} failed",
                detail,
            )
        return stream.extracted_path


class AudioTranscoder:
    """Re-encodes an extracted audio stream to AAC in an MP4 container."""

    def __init__(self, runner: ProcessRunner, command_builder: CommandBuilder):
        self.runner = runner
        self.command_builder = command_builder

    async def transcode(self, stream: SourceStream, destination: Path) -> Path:
        """
        Raises:
            TranscodeError: ffmpeg could not be started or exited non-zero
        """
        cmd = self.command_builder.build_audio_command(stream.extracted_path, destination)
        logger.info(f"[Transcode] Audio stream {stream.index} -> {destination.name}")

        result = await self.runner.run(
            cmd,
            stage="transcode",
            label=destination.name,
            duration=stream.duration,
            progress_callback=ProgressLogger(f"[Transcode] {destination.name}"),
        )
        if not result.ok:
            detail = get_error_classifier().summarize(result.return_code, result.error_output)
            raise TranscodeError(
                f"AAC transcode of stream {stream.index} ({stream.extracted_path}) "
                f"to {destination} failed",
                detail,
            )
        return destination
