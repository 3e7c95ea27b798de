"""External command execution.

Provides:
- CapturedOutput: stderr chunks collected from a finished command
- run_command: spawn a command and wait for it, returning a Result

Only stderr is captured. stdout goes to DEVNULL so tool chatter never
interleaves with the console UI.
"""

from __future__ import annotations

import asyncio
import codecs
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from repokit.core.console import get_logger
from repokit.core.result import Err, Ok, ProcessError, Result

logger = get_logger(__name__)

_CHUNK_SIZE = 4096


@dataclass(slots=True)
class CapturedOutput:
    """Stderr of a finished command, in the order it was received."""

    stderr: list[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(self.stderr)


async def _drain(stream: asyncio.StreamReader, chunks: list[str]) -> None:
    # A multi-byte character may straddle two reads.
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    while True:
        data = await stream.read(_CHUNK_SIZE)
        text = decoder.decode(data, final=not data)
        if text:
            chunks.append(text)
        if not data:
            return


def _describe(command: str, args: Sequence[str]) -> str:
    return " ".join([command, *args])


async def run_command(
    command: str,
    args: Sequence[str],
    cwd: Path,
    *,
    timeout: float | None = None,
) -> Result[CapturedOutput, ProcessError]:
    """Run an external command and wait for it to exit.

    Args:
        command: Executable name or path.
        args: Arguments passed to the executable.
        cwd: Working directory for the process.
        timeout: Seconds to wait before killing the process. None waits forever.

    Returns:
        Ok(CapturedOutput) when the process exits with code 0,
        Err(ProcessError) on a non-zero exit, spawn failure or timeout.
    """
    description = _describe(command, args)
    logger.debug("Running %s in %s", description, cwd)

    try:
        proc = await asyncio.create_subprocess_exec(
            command,
            *args,
            cwd=cwd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        return Err(
            ProcessError(
                f"{description} could not be started: {exc}",
                command=command,
                spawn_failure=True,
                context={"cwd": str(cwd)},
            )
        )

    chunks: list[str] = []
    assert proc.stderr is not None

    async def _communicate() -> int:
        await _drain(proc.stderr, chunks)
        return await proc.wait()

    try:
        returncode = await asyncio.wait_for(_communicate(), timeout=timeout)
    except TimeoutError:
        proc.kill()
        await proc.wait()
        return Err(
            ProcessError(
                f"{description} timed out after {timeout} seconds",
                command=command,
                timed_out=True,
                stderr=chunks,
            )
        )

    if returncode != 0:
        return Err(
            ProcessError(
                f"{description} returned with code {returncode}",
                command=command,
                exit_code=returncode,
                stderr=chunks,
            )
        )

    return Ok(CapturedOutput(stderr=chunks))


__all__ = ["CapturedOutput", "run_command"]
