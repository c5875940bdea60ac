"""Async subprocess helper shared by the engine and mount adapters."""
from dataclasses import dataclass
from typing import Optional, Sequence
import asyncio
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Captured outcome of one external command."""
    args: tuple
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


async def run_command(
    args: Sequence[str],
    stdin: Optional[bytes] = None,
) -> CommandResult:
    """
    Run a command to completion and capture its output.

    Raises:
        OSError: if the executable cannot be spawned
    """
    logger.debug(f"exec: {' '.join(args)}")
    process = await asyncio.create_subprocess_exec(
        *args,
        stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await process.communicate(stdin)
    return CommandResult(
        args=tuple(args),
        returncode=process.returncode,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )
