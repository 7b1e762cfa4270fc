"""
Two-pass constant-bitrate video encode, modelled as an explicit state machine.

    INIT -> PASS1_RUNNING -> PASS1_DONE -> PASS2_RUNNING -> PASS2_DONE
                  |                              |
                  +------------> FAILED <--------+

Pass 1 analyses the extracted stream and writes encoder statistics next to
the pass-1 artifact. Pass 2 re-reads the extracted stream with the same rate
control and those statistics and writes the final MP4. The pass-1 files are
deleted only after pass 2 succeeds; on failure they stay for diagnosis.
"""

import glob
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Set

from ..errors import EncodeError
from ..models import RenditionArtifact, SourceStream
from .commands import CommandBuilder
from .error_classifier import get_error_classifier
from .runner import ProcessRunner
from .stages import ProgressLogger

logger = logging.getLogger(__name__)


class EncodeState(str, Enum):
    INIT = "init"
    PASS1_RUNNING = "pass1_running"
    PASS1_DONE = "pass1_done"
    PASS2_RUNNING = "pass2_running"
    PASS2_DONE = "pass2_done"
    FAILED = "failed"


TRANSITIONS: Dict[EncodeState, Set[EncodeState]] = {
    EncodeState.INIT: {EncodeState.PASS1_RUNNING},
    EncodeState.PASS1_RUNNING: {EncodeState.PASS1_DONE, EncodeState.FAILED},
    EncodeState.PASS1_DONE: {EncodeState.PASS2_RUNNING},
    EncodeState.PASS2_RUNNING: {EncodeState.PASS2_DONE, EncodeState.FAILED},
    EncodeState.PASS2_DONE: set(),
    EncodeState.FAILED: set(),
}


@dataclass
class EncodeOutcome:
    artifact: RenditionArtifact
    state: EncodeState
    history: List[EncodeState] = field(default_factory=list)
    cleanup_error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state == EncodeState.PASS2_DONE


def pass1_files(pass1_path: Path) -> List[Path]:
    """The pass-1 artifact plus every statistics file written under its prefix."""
    parent = pass1_path.parent
    if not parent.exists():
        return []
    return sorted(p for p in parent.glob(f"{glob.escape(pass1_path.name)}*") if p.is_file())


class TwoPassEncode:
    """One two-pass encode of one video stream at one rendition."""

    def __init__(
        self,
        stream: SourceStream,
        artifact: RenditionArtifact,
        runner: ProcessRunner,
        command_builder: CommandBuilder
    ):
        self.stream = stream
        self.artifact = artifact
        self.runner = runner
        self.command_builder = command_builder
        self.state = EncodeState.INIT
        self.history: List[EncodeState] = [EncodeState.INIT]

    def _transition(self, new_state: EncodeState) -> None:
        if new_state not in TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal encode transition {self.state.value} -> {new_state.value}")
        logger.debug(
            f"[Encode] stream {self.stream.index} {self.artifact.spec}: "
            f"{self.state.value} -> {new_state.value}"
        )
        self.state = new_state
        self.history.append(new_state)

    async def _run_pass(self, pass_num: int, output_path: Path) -> None:
        spec = self.artifact.spec
        cmd = self.command_builder.build_pass_command(
            self.stream.extracted_path,
            spec,
            pass_num,
            self.artifact.pass1_log_path,
            output_path,
        )
        label = f"[Encode] stream {self.stream.index} {spec} pass {pass_num}"
        result = await self.runner.run(
            cmd,
            stage=f"encode-pass{pass_num}",
            label=output_path.name,
            duration=self.stream.duration,
            progress_callback=ProgressLogger(label),
        )
        if not result.ok:
            self._transition(EncodeState.FAILED)
            detail = get_error_classifier().summarize(result.return_code, result.error_output)
            raise EncodeError(
                f"Pass {pass_num} encode of stream {self.stream.index} "
                f"({self.stream.extracted_path}) at {spec} failed",
                pass_number=pass_num,
                spec=spec,
                detail=detail,
            )

    def _remove_pass1_files(self) -> Optional[str]:
        """Delete pass-1 output and statistics. Returns an error description on failure."""
        failures = []
        for path in pass1_files(self.artifact.pass1_log_path):
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                failures.append(f"{path.name}: {e}")

        if failures:
            message = "Could not delete pass-1 files: " + "; ".join(failures)
            logger.warning(f"[Encode] {message}")
            return message
        return None

    async def run(self) -> EncodeOutcome:
        """
        Drive the state machine to PASS2_DONE.

        Raises:
            EncodeError: either pass failed; state is FAILED
        """
        spec = self.artifact.spec
        logger.info(f"[Encode] stream {self.stream.index} {spec}: starting pass 1")

        self._transition(EncodeState.PASS1_RUNNING)
        await self._run_pass(1, self.artifact.pass1_log_path)
        self._transition(EncodeState.PASS1_DONE)

        logger.info(f"[Encode] stream {self.stream.index} {spec}: starting pass 2")
        self._transition(EncodeState.PASS2_RUNNING)
        await self._run_pass(2, self.artifact.final_mp4_path)
        self._transition(EncodeState.PASS2_DONE)

        cleanup_error = self._remove_pass1_files()
        logger.info(f"[Encode] stream {self.stream.index} {spec}: wrote {self.artifact.final_mp4_path.name}")

        return EncodeOutcome(
            artifact=self.artifact,
            state=self.state,
            history=list(self.history),
            cleanup_error=cleanup_error,
        )


class TwoPassEncoder:
    """Creates and runs a TwoPassEncode per (stream, rendition)."""

    def __init__(self, runner: ProcessRunner, command_builder: CommandBuilder):
        self.runner = runner
        self.command_builder = command_builder

    async def encode(self, stream: SourceStream, artifact: RenditionArtifact) -> EncodeOutcome:
        return await TwoPassEncode(stream, artifact, self.runner, self.command_builder).run()
