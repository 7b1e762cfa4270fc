"""
Process-level models shared by the transcoding stages.
"""

from dataclasses import dataclass
from typing import List


@dataclass
class TranscodeProgress:
    """Progress parsed from an external tool's stderr."""
    stage: str = "transcoding"
    label: str = ""
    frame: int = 0
    fps: float = 0.0
    time: float = 0.0
    bitrate: str = ""
    total_size: int = 0
    speed: float = 0.0
    percent: float = 0.0


@dataclass
class ProcessResult:
    """Terminal event of one external process."""
    cmd: List[str]
    return_code: int
    stdout: str = ""
    error_output: str = ""
    stalled: bool = False

    @property
    def ok(self) -> bool:
        return self.return_code == 0
