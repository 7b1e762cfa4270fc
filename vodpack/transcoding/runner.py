"""
Async runner for external tools (ffprobe, ffmpeg, mp4fragment, mp4dash).

Each invocation suspends the caller until the process exits. Output pipes are
drained by separate tasks so a chatty process never blocks, and an optional
stall watchdog terminates processes that stop reporting progress.
"""

import asyncio
import re
import signal
import subprocess
import sys
import time
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from .constants import (
    READ_CHUNK_SIZE, STALL_POLL_INTERVAL, STDERR_TAIL_LINES, TERMINATE_GRACE, TERMINATE_ESCALATE
)
from .models import ProcessResult, TranscodeProgress

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[TranscodeProgress], None]

_LINE_BREAK = re.compile(rb"[\r\n]")


def split_output_lines(data: bytes) -> Tuple[List[str], bytes]:
    """
    Split buffered tool output on \\r or \\n.

    Returns the complete, non-empty lines and the unterminated remainder.
    """
    *complete, remainder = _LINE_BREAK.split(data)
    lines = [part.decode("utf-8", errors="ignore") for part in complete if part.strip()]
    return lines, remainder


def parse_progress(line: str, progress: TranscodeProgress, duration: float = 0.0) -> bool:
    """
    Parse an FFmpeg status line into ``progress``.

    Returns True if the line carried progress information.
    """
    if "frame=" not in line and "size=" not in line and "time=" not in line:
        return False

    match = re.search(r"frame=\s*(\d+)", line)
    if match:
        progress.frame = int(match.group(1))

    # FPS may be "N/A"
    match = re.search(r"fps=\s*([\d.]+)", line)
    if match:
        try:
            progress.fps = float(match.group(1))
        except ValueError:
            pass

    match = re.search(r"bitrate=\s*([\d.]+\s*[kMG]?bits/s)", line)
    if match:
        progress.bitrate = match.group(1).strip()

    match = re.search(r"size=\s*(\d+)\s*(KiB|kB|MiB|MB|B)?", line)
    if match:
        size_val = int(match.group(1))
        unit = match.group(2) or "kB"
        if unit in ("MB", "MiB"):
            progress.total_size = size_val * 1024 * 1024
        elif unit in ("kB", "KiB"):
            progress.total_size = size_val * 1024
        else:
            progress.total_size = size_val

    match = re.search(r"time=\s*(\d+):(\d+):(\d+\.?\d*)", line)
    if match:
        h, m, s = match.groups()
        progress.time = int(h) * 3600 + int(m) * 60 + float(s)

    match = re.search(r"speed=\s*([\d.]+)x", line)
    if match:
        try:
            progress.speed = float(match.group(1))
        except ValueError:
            pass

    if duration > 0 and progress.time > 0:
        progress.percent = min(99.9, (progress.time / duration) * 100)

    return True


class ProcessRunner:
    """Runs one external command at a time per call, with progress tracking."""

    def __init__(self, stall_timeout: float = 0):
        self.stall_timeout = stall_timeout

    async def _graceful_terminate(self, process: asyncio.subprocess.Process) -> None:
        """
        Terminate a process, escalating SIGINT -> SIGTERM -> SIGKILL.

        SIGINT lets FFmpeg finalize its output; Windows gets CTRL_BREAK_EVENT.
        """
        if process.returncode is not None:
            return

        try:
            if sys.platform == "win32":
                process.send_signal(signal.CTRL_BREAK_EVENT)
            else:
                process.send_signal(signal.SIGINT)
        except (ProcessLookupError, OSError):
            pass

        try:
            await asyncio.wait_for(process.wait(), timeout=TERMINATE_GRACE)
            logger.debug("[Process] Terminated gracefully")
            return
        except asyncio.TimeoutError:
            pass

        try:
            process.terminate()
            await asyncio.wait_for(process.wait(), timeout=TERMINATE_ESCALATE)
            logger.debug("[Process] Terminated with SIGTERM")
            return
        except (asyncio.TimeoutError, ProcessLookupError, OSError):
            pass

        try:
            process.kill()
            await process.wait()
            logger.warning("[Process] Killed forcefully")
        except (ProcessLookupError, OSError):
            pass

    async def run(
        self,
        cmd: List[str],
        stage: str = "transcoding",
        label: str = "",
        duration: float = 0.0,
        progress_callback: Optional[ProgressCallback] = None
    ) -> ProcessResult:
        """
        Run ``cmd`` to completion.

        Returns a ProcessResult; return code is -1 if the process could not be
        started or had to be killed by the stall watchdog.
        """
        cmd = [str(part) for part in cmd]
        logger.info(f"[Process] {stage}: {' '.join(cmd)}")

        kwargs: Dict[str, Any] = {
            "stdout": asyncio.subprocess.PIPE,
            "stderr": asyncio.subprocess.PIPE,
            "stdin": asyncio.subprocess.DEVNULL,
        }
        if sys.platform == "win32":
            kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP

        try:
            process = await asyncio.create_subprocess_exec(*cmd, **kwargs)
        except OSError as e:
            logger.error(f"[Process] Failed to start {cmd[0]}: {e}")
            return ProcessResult(cmd=cmd, return_code=-1, error_output=str(e))

        progress = TranscodeProgress(stage=stage, label=label)
        stderr_lines: List[str] = []
        stdout_data: List[bytes] = []
        last_progress_time = time.monotonic()
        stalled = False
        read_error: Optional[str] = None

        def handle_stderr_line(line_str: str) -> None:
            nonlocal last_progress_time
            stderr_lines.append(line_str + "\n")
            if len(stderr_lines) > STDERR_TAIL_LINES:
                stderr_lines.pop(0)

            if parse_progress(line_str, progress, duration):
                last_progress_time = time.monotonic()
                if progress_callback:
                    try:
                        progress_callback(progress)
                    except Exception as e:
                        logger.warning(f"Progress callback error: {e}")

        async def read_stdout():
            while True:
                chunk = await process.stdout.read(READ_CHUNK_SIZE)
                if not chunk:
                    break
                stdout_data.append(chunk)

        async def read_stderr():
            # FFmpeg ends status updates with \r, everything else with \n
            pending = b""
            while True:
                chunk = await process.stderr.read(READ_CHUNK_SIZE)
                if not chunk:
                    break
                lines, pending = split_output_lines(pending + chunk)
                for line in lines:
                    handle_stderr_line(line)
            if pending.strip():
                handle_stderr_line(pending.decode("utf-8", errors="ignore").strip())

        async def guarded(reader, name: str):
            nonlocal read_error
            try:
                await reader()
            except Exception as e:
                read_error = f"{name} reader failed: {e}"
                logger.error(f"[Process] {stage}: {read_error}, terminating {cmd[0]}")
                await self._graceful_terminate(process)

        async def monitor_stall():
            nonlocal stalled
            while process.returncode is None:
                if time.monotonic() - last_progress_time > self.stall_timeout:
                    stalled = True
                    logger.error(
                        f"[Process] {stage} stalled for {self.stall_timeout}s, terminating"
                    )
                    await self._graceful_terminate(process)
                    return
                await asyncio.sleep(STALL_POLL_INTERVAL)

        tasks = [
            asyncio.create_task(guarded(read_stdout, "stdout")),
            asyncio.create_task(guarded(read_stderr, "stderr")),
        ]
        if self.stall_timeout > 0:
            tasks.append(asyncio.create_task(monitor_stall()))

        try:
            await asyncio.gather(*tasks[:2])
            await process.wait()
        except asyncio.CancelledError:
            logger.info(f"[Process] {stage} cancelled, terminating {cmd[0]}")
            await self._graceful_terminate(process)
            raise
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

        return_code = process.returncode
        if return_code is None or stalled or read_error:
            return_code = -1

        error_output = "".join(stderr_lines)
        if read_error:
            error_output = f"[{read_error}] " + error_output
        if stalled:
            error_output = f"[STALLED after {self.stall_timeout}s] " + error_output

        return ProcessResult(
            cmd=cmd,
            return_code=return_code,
            stdout=b"".join(stdout_data).decode("utf-8", errors="ignore"),
            error_output=error_output,
            stalled=stalled,
        )
