"""
Pipeline orchestrator: turns one source file into fragmented ABR assets and a
DASH/HLS manifest.

Stage order per job:

    directory -> probe -> video: extract -> N x [two-pass encode -> fragment]
                       -> audio: extract -> AAC transcode -> fragment
              -> manifest

Every stage waits for the stage producing its input. The first failure aborts
the job; completed artifacts are left on disk for diagnosis.
"""

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from . import naming
from .config import EncodingConfig, VODPackConfig, get_config
from .errors import DirectoryError, PipelineError
from .models import (
    AudioArtifact, Job, JobResult, RenditionArtifact, RenditionSpec, SourceStream
)
from .packaging import Fragmenter, ManifestBuilder
from .transcoding.commands import CommandBuilder
from .transcoding.probe import MediaProbe
from .transcoding.runner import ProcessRunner
from .transcoding.stages import AudioTranscoder, StreamExtractor
from .transcoding.two_pass import TwoPassEncoder

logger = logging.getLogger(__name__)


def catalog_from_config(encoding: EncodingConfig) -> Tuple[RenditionSpec, ...]:
    return tuple(RenditionSpec(r.height, r.bitrate_kbps) for r in encoding.renditions)


def plan_job(
    source_file: Path,
    output_dir: Path,
    streams: Sequence[SourceStream],
    catalog: Sequence[RenditionSpec],
    audio_bitrate_kbps: int = 192
) -> Job:
    """
    Compute every artifact path for a job. Pure: nothing is created.

    Renditions are ordered by video stream, then catalog order; this is also
    the manifest variant order.
    """
    renditions: List[RenditionArtifact] = []
    audio: List[AudioArtifact] = []

    for stream in streams:
        if stream.is_video:
            for spec in catalog:
                final_path = naming.rendition_path(output_dir, stream.index, spec)
                renditions.append(RenditionArtifact(
                    stream_index=stream.index,
                    spec=spec,
                    pass1_log_path=naming.pass1_log_path(output_dir, spec),
                    final_mp4_path=final_path,
                    fragmented_mp4_path=naming.fragmented_path(final_path),
                ))
        elif stream.is_audio:
            transcoded = naming.transcoded_audio_path(output_dir, stream.index, audio_bitrate_kbps)
            audio.append(AudioArtifact(
                stream_index=stream.index,
                extracted_path=stream.extracted_path,
                transcoded_path=transcoded,
                fragmented_path=naming.fragmented_path(transcoded),
            ))

    return Job(
        source_file=source_file,
        output_directory=output_dir,
        streams=tuple(streams),
        rendition_catalog=tuple(catalog),
        renditions=tuple(renditions),
        audio=tuple(audio),
    )


class PipelineOrchestrator:
    """Runs one job end to end."""

    def __init__(
        self,
        config: Optional[VODPackConfig] = None,
        runner: Optional[ProcessRunner] = None,
        catalog: Optional[Iterable[RenditionSpec]] = None
    ):
        self.config = config or get_config()
        self.runner = runner or ProcessRunner(self.config.pipeline.stall_timeout)
        if catalog is not None:
            self.catalog = tuple(catalog)
        else:
            self.catalog = catalog_from_config(self.config.encoding)
        if not self.catalog:
            raise ValueError("Rendition catalog must not be empty")

        tools = self.config.tools
        self.ffmpeg_path = self._find_tool(tools.ffmpeg_path, "ffmpeg")
        self.ffprobe_path = self._find_tool(tools.ffprobe_path, "ffprobe")
        self.mp4fragment_path = self._find_bento4_tool("mp4fragment")
        self.mp4dash_path = self._find_bento4_tool("mp4dash")

        self.command_builder = CommandBuilder(self.ffmpeg_path, self.config.encoding)
        self.probe = MediaProbe(self.ffprobe_path, self.runner)
        self.extractor = StreamExtractor(self.runner, self.command_builder)
        self.encoder = TwoPassEncoder(self.runner, self.command_builder)
        self.audio_transcoder = AudioTranscoder(self.runner, self.command_builder)
        self.fragmenter = Fragmenter(
            self.mp4fragment_path, self.runner, self.config.encoding.fragment_duration_ms
        )
        self.manifest_builder = ManifestBuilder(self.mp4dash_path, self.runner, self.config.packaging)

    @staticmethod
    def _find_tool(configured: str, name: str) -> str:
        """Resolve an executable; unresolved names surface as stage failures on launch."""
        if configured != "auto":
            return configured
        return shutil.which(name) or name

    def _find_bento4_tool(self, name: str) -> str:
        bin_dir = self.config.tools.bento4_path
        if bin_dir != "auto":
            return str(Path(bin_dir) / name)
        return shutil.which(name) or name

    def output_directory_for(self, source_file: Path) -> Path:
        output_root = Path(self.config.pipeline.output_root).expanduser().resolve()
        return naming.job_directory(source_file, output_root)

    def prepare_output_directory(self, output_dir: Path) -> None:
        """Create the job directory; an existing directory is reused."""
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DirectoryError(f"Cannot create output directory {output_dir}", str(e)) from e

    async def _process_video_stream(self, job: Job, stream: SourceStream, result: JobResult) -> None:
        await self.extractor.extract(job.source_file, stream)

        for artifact in job.renditions_for(stream.index):
            outcome = await self.encoder.encode(stream, artifact)
            if outcome.cleanup_error:
                result.warnings.append(outcome.cleanup_error)
            await self.fragmenter.fragment(artifact.final_mp4_path, artifact.fragmented_mp4_path)

    async def _process_audio_stream(self, job: Job, stream: SourceStream) -> None:
        artifact = job.audio_for(stream.index)
        await self.extractor.extract(job.source_file, stream)
        await self.audio_transcoder.transcode(stream, artifact.transcoded_path)
        await self.fragmenter.fragment(artifact.transcoded_path, artifact.fragmented_path)

    async def _run_video(self, job: Job, result: JobResult) -> None:
        # Sequential: the pass-1 artifact name is shared between video streams
        for stream in job.video_streams:
            await self._process_video_stream(job, stream, result)

    async def _run_audio(self, job: Job) -> None:
        for stream in job.audio_streams:
            await self._process_audio_stream(job, stream)

    async def _execute(self, job: Job, result: JobResult) -> None:
        if not self.config.pipeline.concurrent_categories:
            await self._run_video(job, result)
            await self._run_audio(job)
            return

        tasks = [
            asyncio.create_task(self._run_video(job, result)),
            asyncio.create_task(self._run_audio(job)),
        ]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def run(self, source_file: Path) -> JobResult:
        """
        Process ``source_file`` to completion or first failure.

        Returns a JobResult; stage failures are reported on it, never raised.
        """
        source = Path(source_file).expanduser().resolve()
        result = JobResult(source_file=source)

        try:
            output_dir = self.output_directory_for(source)
            result.output_directory = output_dir
            logger.info(f"[Pipeline] Source {source}")
            logger.info(f"[Pipeline] Output {output_dir}")
            self.prepare_output_directory(output_dir)

            streams = await self.probe.probe(source, output_dir)
            job = plan_job(
                source, output_dir, streams, self.catalog, self.config.encoding.audio_bitrate_kbps
            )
            logger.info(
                f"[Pipeline] {len(job.video_streams)} video stream(s) x {len(job.rendition_catalog)} "
                f"rendition(s), {len(job.audio_streams)} audio stream(s)"
            )

            await self._execute(job, result)

            assets = job.fragmented_assets
            result.manifest_path = await self.manifest_builder.build(assets, output_dir)
            result.assets = assets
            result.success = True
            logger.info(f"[Pipeline] {result.describe()}")

        except PipelineError as e:
            result.stage = e.stage
            result.error = e
            logger.error(f"[Pipeline] {result.describe()}")

        return result
