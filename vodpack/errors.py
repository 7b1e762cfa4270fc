"""
Error taxonomy for the VODPack pipeline.

Every stage failure is a PipelineError subclass tagged with the stage that
raised it. The orchestrator never retries; the first error ends the job.
"""

from pathlib import Path
from typing import List, Optional, Sequence

from .models import RenditionSpec, Stage


class PipelineError(Exception):
    """Base class for stage failures."""

    stage: Stage = Stage.PROBE

    def __init__(self, message: str, detail: Optional[str] = None):
        self.message = message
        self.detail = detail
        super().__init__(message)

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message} ({self.detail})"
        return self.message


class DirectoryError(PipelineError):
    stage = Stage.DIRECTORY


class ProbeError(PipelineError):
    stage = Stage.PROBE


class ExtractionError(PipelineError):
    stage = Stage.EXTRACT


class EncodeError(PipelineError):
    stage = Stage.ENCODE

    def __init__(
        self,
        message: str,
        pass_number: int,
        spec: RenditionSpec,
        detail: Optional[str] = None
    ):
        self.pass_number = pass_number
        self.spec = spec
        super().__init__(message, detail)


class TranscodeError(PipelineError):
    stage = Stage.TRANSCODE


class FragmentationError(PipelineError):
    stage = Stage.FRAGMENT


class ManifestError(PipelineError):
    stage = Stage.MANIFEST

    def __init__(self, message: str, assets: Sequence[Path], detail: Optional[str] = None):
        self.assets: List[Path] = list(assets)
        super().__init__(message, detail)
