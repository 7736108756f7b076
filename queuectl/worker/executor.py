"""
Command executor.

Runs a job's command through the shell and normalizes whatever happens into
an ExecutionResult. Commands may run more than once for the same job (the
queue is at-least-once), so they should be idempotent.
"""

import asyncio
import logging
import os
import signal
import time

from queuectl.types.job import ExecutionResult

logger = logging.getLogger(__name__)

# Captured output kept per stream
MAX_OUTPUT_CHARS = 64 * 1024


def _decode(data: bytes | None) -> str:
    if not data:
        return ""
    text = data.decode("utf-8", errors="replace")
    if len(text) > MAX_OUTPUT_CHARS:
        return text[-MAX_OUTPUT_CHARS:]
    return text


def _kill_process_group(process: asyncio.subprocess.Process) -> None:
    """Kill the shell and anything it spawned."""
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


async def run_command(command: str, timeout: float | None = None) -> ExecutionResult:
    """
    Run a shell command and capture its result.

    Never raises for command failures: a nonzero exit, a spawn error or a
    timeout all come back as ``success=False``.

    Args:
        command: Shell command line.
        timeout: Optional limit in seconds. The process is killed when it
            expires.

    Returns:
        ExecutionResult for the run.
    """
    started = time.monotonic()

    try:
        process = await asyncio.create_subprocess_shell(
            command,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )
    except OSError as e:
        logger.warning("Failed to start command", extra={"command": command, "error": str(e)})
        return ExecutionResult(
            success=False,
            exit_code=None,
            error=f"Failed to start command: {e}",
            duration_seconds=time.monotonic() - started,
        )

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except TimeoutError:
        _kill_process_group(process)
        stdout, stderr = await process.communicate()
        logger.warning("Command timed out", extra={"command": command, "timeout": timeout})
        return ExecutionResult(
            success=False,
            exit_code=None,
            stdout=_decode(stdout),
            stderr=_decode(stderr),
            error=f"Command timed out after {timeout}s",
            duration_seconds=time.monotonic() - started,
        )

    exit_code = process.returncode
    return ExecutionResult(
        success=exit_code == 0,
        exit_code=exit_code,
        stdout=_decode(stdout),
        stderr=_decode(stderr),
        duration_seconds=time.monotonic() - started,
    )
