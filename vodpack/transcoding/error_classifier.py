"""
Error classification for external tool failures.

Maps known FFmpeg, ffprobe and Bento4 stderr patterns to a category and a
human-readable description that is attached to the stage error. The pipeline
never retries, so the category only informs the report.
"""

import logging
from dataclasses import dataclass
from typing import List, Tuple, Optional

from .constants import ERROR_DETAIL_CHARS

logger = logging.getLogger(__name__)


@dataclass
class ToolError:
    """Represents a classified tool error."""
    pattern: str
    category: str  # 'input', 'resource', 'encoder', 'packaging', 'fatal'
    description: str


TOOL_ERROR_MAP: List[ToolError] = [
    # === Input problems ===
    ToolError("no such file", "input", "File not found"),
    ToolError("invalid data found", "input", "Invalid input data"),
    ToolError("moov atom not found", "input", "Invalid or truncated MP4 file"),
    ToolError("stream map", "input", "Stream selector matches no stream"),
    ToolError("could not find tag for codec", "input", "Codec not supported by output container"),
    ToolError("end of file", "input", "Unexpected end of file"),

    # === Encoder problems ===
    ToolError("unknown encoder", "encoder", "Encoder not available in this FFmpeg build"),
    ToolError("encoder not found", "encoder", "Encoder not found"),
    ToolError("error reading log file", "encoder", "Pass-1 statistics missing or unreadable"),
    ToolError("ratecontrol_init", "encoder", "Pass-1 statistics do not match this encode"),
    ToolError("error initializing output stream", "encoder", "Encoder rejected its parameters"),
    ToolError("invalid argument", "encoder", "Invalid argument"),

    # === Bento4 problems ===
    ToolError("cannot open input", "packaging", "Packager cannot open its input"),
    ToolError("cannot open output", "packaging", "Packager cannot open its output"),
    ToolError("no movie found", "packaging", "Input is not an MP4 movie"),
    ToolError("already fragmented", "packaging", "Input is already fragmented"),
    ToolError("output directory", "packaging", "Manifest output directory problem"),

    # === Resource problems ===
    ToolError("no space left", "resource", "No disk space"),
    ToolError("disk quota", "resource", "Disk quota exceeded"),
    ToolError("out of memory", "resource", "Out of memory"),
    ToolError("cannot allocate", "resource", "Memory allocation failed"),
    ToolError("too many open files", "resource", "File descriptor limit"),

    # === Fatal ===
    ToolError("[stalled", "fatal", "Process stalled and was terminated"),
    ToolError("permission denied", "fatal", "Permission denied"),
    ToolError("not found", "fatal", "Tool or file not found"),
]


class ErrorClassifier:
    """Classifies tool errors for reporting."""

    def __init__(self, error_map: Optional[List[ToolError]] = None):
        self.error_map = error_map or TOOL_ERROR_MAP

    def classify(self, error_msg: str) -> Tuple[Optional[ToolError], str]:
        """
        Classify an error message using the error map.

        Args:
            error_msg: stderr of the failed tool

        Returns:
            Tuple of (matched_error, category). Category is 'unknown' if no match.
        """
        error_lower = error_msg.lower()

        for error in self.error_map:
            if error.pattern in error_lower:
                return error, error.category

        return None, "unknown"

    def get_error_description(self, error_msg: str) -> str:
        """Get human-readable description of the error."""
        error, _ = self.classify(error_msg)
        if error:
            return error.description
        return "Unknown error"

    def summarize(self, return_code: int, error_output: str) -> str:
        """One-line detail for a failed process: exit code, description, last stderr line."""
        tail = error_output[-ERROR_DETAIL_CHARS:].strip()
        last_line = tail.splitlines()[-1].strip() if tail else ""
        description = self.get_error_description(error_output)
        summary = f"exit code {return_code}: {description}"
        if last_line:
            summary += f": {last_line}"
        return summary


# Global classifier instance
_classifier: Optional[ErrorClassifier] = None


def get_error_classifier() -> ErrorClassifier:
    """Get or create the global error classifier."""
    global _classifier
    if _classifier is None:
        _classifier = ErrorClassifier()
    return _classifier
