"""
Transcoding package for VODPack.
FFmpeg-backed probing, extraction, two-pass video and AAC audio stages.
"""

from .models import TranscodeProgress, ProcessResult
from .constants import FRAGMENT_DURATION_MS
from .runner import ProcessRunner, parse_progress
from .error_classifier import ErrorClassifier, get_error_classifier
from .commands import CommandBuilder
from .probe import MediaProbe
from .stages import StreamExtractor, AudioTranscoder, ProgressLogger
from .two_pass import EncodeState, EncodeOutcome, TwoPassEncode, TwoPassEncoder

__all__ = [
    # Models
    "TranscodeProgress",
    "ProcessResult",
    # Constants
    "FRAGMENT_DURATION_MS",
    # Process
    "ProcessRunner",
    "parse_progress",
    "ErrorClassifier",
    "get_error_classifier",
    # Stages
    "CommandBuilder",
    "MediaProbe",
    "StreamExtractor",
    "AudioTranscoder",
    "ProgressLogger",
    "EncodeState",
    "EncodeOutcome",
    "TwoPassEncode",
    "TwoPassEncoder",
]
