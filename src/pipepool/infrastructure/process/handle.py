"""Per-child bookkeeping for one in-flight payload."""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from pipepool.domain.exceptions import InvariantViolationError
from pipepool.domain.models import ExitStatus
from pipepool.domain.protocols import SpawnedProcess

# Bytes moved per read/write; well below the usual 64 KiB pipe capacity
CHUNK_SIZE = 8192


@dataclass
class ProcessHandle:
    """
    One child process and everything the scheduler knows about it.

    A descriptor field becomes None once that descriptor is closed. The
    handle is drained when all three are None, and only then may the
    child be reaped.
    """

    pid: int
    batch_index: int
    payload: bytes
    stdin_fd: Optional[int]
    stdout_fd: Optional[int]
    stderr_fd: Optional[int]
    input_cursor: int = 0
    stdout_chunks: List[bytes] = field(default_factory=list)
    stderr_chunks: List[bytes] = field(default_factory=list)
    exit_status: Optional[ExitStatus] = None

    @classmethod
    def from_spawned(cls, spawned: SpawnedProcess, batch_index: int, payload: bytes) -> "ProcessHandle":
        return cls(
            pid=spawned.pid,
            batch_index=batch_index,
            payload=payload,
            stdin_fd=spawned.stdin_fd,
            stdout_fd=spawned.stdout_fd,
            stderr_fd=spawned.stderr_fd,
        )

    @property
    def open_fds(self) -> List[int]:
        return [fd for fd in (self.stdin_fd, self.stdout_fd, self.stderr_fd) if fd is not None]

    @property
    def is_drained(self) -> bool:
        return self.stdin_fd is None and self.stdout_fd is None and self.stderr_fd is None

    @property
    def output_closed(self) -> bool:
        return self.stdout_fd is None and self.stderr_fd is None

    @property
    def input_exhausted(self) -> bool:
        return self.input_cursor >= len(self.payload)

    def pending_input(self) -> memoryview:
        """Next slice of the payload to write, at most CHUNK_SIZE bytes."""
        return memoryview(self.payload)[self.input_cursor:self.input_cursor + CHUNK_SIZE]

    def advance(self, written: int) -> None:
        """Move the input cursor past bytes the child has accepted."""
        if written < 0 or self.input_cursor + written > len(self.payload):
            raise InvariantViolationError(
                f"pid {self.pid}: cursor {self.input_cursor} + {written} exceeds payload of {len(self.payload)} bytes"
            )
        self.input_cursor += written

    def append_output(self, fd: int, chunk: bytes) -> None:
        if fd == self.stdout_fd:
            self.stdout_chunks.append(chunk)
        elif fd == self.stderr_fd:
            self.stderr_chunks.append(chunk)
        else:
            raise InvariantViolationError(f"pid {self.pid}: fd {fd} is not an open output of this handle")

    def close_stdin(self) -> None:
        """Close the stdin write end once; later calls do nothing."""
        if self.stdin_fd is not None:
            fd, self.stdin_fd = self.stdin_fd, None
            os.close(fd)

    def close_stream(self, fd: int) -> None:
        """Close the stdout or stderr descriptor ``fd`` and mark it absent."""
        if fd == self.stdout_fd:
            self.stdout_fd = None
        elif fd == self.stderr_fd:
            self.stderr_fd = None
        else:
            raise InvariantViolationError(f"pid {self.pid}: fd {fd} is not an open output of this handle")
        os.close(fd)

    def close_all(self) -> None:
        """Close whatever is still open. Used when a run is aborted."""
        for fd in self.open_fds:
            try:
                os.close(fd)
            except OSError:
                pass
        self.stdin_fd = self.stdout_fd = self.stderr_fd = None

    @property
    def stdout(self) -> bytes:
        return b''.join(self.stdout_chunks)

    @property
    def stderr(self) -> bytes:
        return b''.join(self.stderr_chunks)
