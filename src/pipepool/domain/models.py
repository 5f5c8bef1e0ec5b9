"""Domain models for batch process execution."""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, NamedTuple


class TerminationCause(str, Enum):
    """How a child process left the running state."""

    EXITED = "exited"
    SIGNALED = "signaled"
    STOPPED = "stopped"


@dataclass(frozen=True)
class ExitStatus:
    """Termination cause plus the exit code, signal or stop signal number."""

    cause: TerminationCause
    code: int

    @classmethod
    def from_wait_status(cls, status: int) -> "ExitStatus":
        """
        Decode a raw status word as returned by os.waitpid().

        Raises:
            ValueError: If the status word matches no known cause
        """
        if os.WIFEXITED(status):
            return cls(TerminationCause.EXITED, os.WEXITSTATUS(status))
        if os.WIFSIGNALED(status):
            return cls(TerminationCause.SIGNALED, os.WTERMSIG(status))
        if os.WIFSTOPPED(status):
            return cls(TerminationCause.STOPPED, os.WSTOPSIG(status))
        raise ValueError(f"Unrecognized wait status: {status:#x}")

    @property
    def success(self) -> bool:
        return self.cause is TerminationCause.EXITED and self.code == 0

    def __str__(self) -> str:
        return f"{self.cause.value} {self.code}"


class ItemResult(NamedTuple):
    """Outcome of one input payload."""

    status: ExitStatus
    stdout: bytes
    stderr: bytes


class BatchResult(NamedTuple):
    """Ordered outcome of a batch; position i belongs to input i."""

    statuses: List[ExitStatus]
    stdouts: List[bytes]
    stderrs: List[bytes]

    def results(self) -> Iterator[ItemResult]:
        """Yield per-item results in input order."""
        for status, out, err in zip(self.statuses, self.stdouts, self.stderrs):
            yield ItemResult(status, out, err)

    def item(self, index: int) -> ItemResult:
        return ItemResult(self.statuses[index], self.stdouts[index], self.stderrs[index])

    @property
    def all_succeeded(self) -> bool:
        return all(status.success for status in self.statuses)


@dataclass
class RunStats:
    """Counts kept by the scheduler over one run."""

    total: int
    spawned: int = 0
    reaped: int = 0
    live: int = 0
    peak_live: int = 0

    @property
    def unassigned(self) -> int:
        return self.total - self.spawned
