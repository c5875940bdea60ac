"""Test doubles shared across test modules."""
from typing import List, Optional, Sequence

from quotasync.utils.process import CommandResult


class FakeRunner:
    """Records commands and replays queued results."""

    def __init__(self, *results: CommandResult):
        self.calls: List[tuple] = []
        self.stdins: List[Optional[bytes]] = []
        self._results = list(results)

    async def __call__(self, args: Sequence[str], stdin: Optional[bytes] = None) -> CommandResult:
        self.calls.append(tuple(args))
        self.stdins.append(stdin)
        if self._results:
            return self._results.pop(0)
        return CommandResult(args=tuple(args), returncode=0)


def ok(stdout: str = "", stderr: str = "") -> CommandResult:
    return CommandResult(args=(), returncode=0, stdout=stdout, stderr=stderr)


def failed(returncode: int = 1, stderr: str = "boom") -> CommandResult:
    return CommandResult(args=(), returncode=returncode, stderr=stderr)
