"""Readiness-driven scheduler that multiplexes the pipes of up to N children."""

import os
import selectors
import signal
from typing import Dict, List, Optional, Sequence

from pipepool.domain.exceptions import (
    InvariantViolationError,
    PipeIOError,
    PoolError,
    UnexpectedEventError,
)
from pipepool.domain.models import BatchResult, ExitStatus, RunStats
from pipepool.domain.protocols import ILogger, IMetricsCollector, ISpawner
from pipepool.infrastructure.process.handle import CHUNK_SIZE, ProcessHandle
from pipepool.infrastructure.process.spawner import spawn_process
from pipepool.shared.logging import LoggerAdapter, get_logger
from pipepool.shared.metrics import MetricsCollector
from pipepool.shared.types import Payload, to_bytes

STDIN = "stdin"
STDOUT = "stdout"
STDERR = "stderr"


class Scheduler:
    """
    Runs one command per input payload with at most ``max_procs`` children alive.

    Every call to :meth:`run` gets its own selector and pid table, so a
    Scheduler can be reused, but not shared between threads mid-run.
    """

    def __init__(
        self,
        max_procs: int,
        spawner: ISpawner = spawn_process,
        logger: Optional[ILogger] = None,
        metrics: Optional[IMetricsCollector] = None
    ):
        if isinstance(max_procs, bool) or not isinstance(max_procs, int) or max_procs < 1:
            raise ValueError(f"max_procs must be a positive integer, got: {max_procs!r}")
        self.max_procs = max_procs
        self._spawner = spawner
        self._logger = logger or LoggerAdapter(get_logger(__name__))
        self._metrics = metrics or MetricsCollector()

    @property
    def metrics(self) -> IMetricsCollector:
        return self._metrics

    def run(self, inputs: Sequence[Payload], command: str, *args: str) -> BatchResult:
        """
        Feed ``inputs[i]`` to its own ``command(args)`` child and collect the results.

        Returns:
            BatchResult whose position i holds the exit status, stdout and
            stderr of the child that received ``inputs[i]``

        Raises:
            PoolError: On any fatal condition; no partial results are returned
            and every child started by this run has been killed and reaped
        """
        if not command:
            raise ValueError("command must be a non-empty string")
        payloads = [to_bytes(p) for p in inputs]
        if not payloads:
            return BatchResult([], [], [])

        batch = _BatchRun(self, payloads, [command, *args])
        self._metrics.start_timer('run')
        try:
            return batch.execute()
        finally:
            self._metrics.stop_timer('run')


class _BatchRun:
    """State of a single Scheduler.run() invocation."""

    def __init__(self, scheduler: Scheduler, payloads: List[bytes], argv: List[str]):
        self._max_procs = scheduler.max_procs
        self._spawner = scheduler._spawner
        self._logger = scheduler._logger
        self._metrics = scheduler._metrics
        self._payloads = payloads
        self._argv = argv

        self._selector = selectors.DefaultSelector()
        self._live: Dict[int, ProcessHandle] = {}
        self._pending_reap: List[int] = []
        self._stats = RunStats(total=len(payloads))

        n = len(payloads)
        self._statuses: List[Optional[ExitStatus]] = [None] * n
        self._stdouts: List[Optional[bytes]] = [None] * n
        self._stderrs: List[Optional[bytes]] = [None] * n

    def execute(self) -> BatchResult:
        self._logger.info(
            f"Running {self._stats.total} input(s) through {self._argv[0]!r} "
            f"with max_procs={self._max_procs}"
        )
        try:
            while self._stats.reaped < self._stats.total:
                self._admit()
                self._pump()
                if not self._pending_reap:
                    raise InvariantViolationError(
                        f"I/O loop stalled with {len(self._live)} live handle(s) and nothing to reap"
                    )
                self._reap()
            self._check_completed()
        except BaseException as e:
            self._abort(e)
            raise
        finally:
            self._selector.close()

        self._logger.info(
            f"Completed {self._stats.reaped} input(s), peak concurrency {self._stats.peak_live}"
        )
        return BatchResult(self._statuses, self._stdouts, self._stderrs)

    # -- admission -------------------------------------------------------

    def _admit(self) -> None:
        while self._stats.live < self._max_procs and self._stats.unassigned > 0:
            index = self._stats.spawned
            spawned = self._spawner(*self._argv)
            handle = ProcessHandle.from_spawned(spawned, index, self._payloads[index])

            self._live[handle.pid] = handle
            self._stats.spawned += 1
            self._stats.live += 1
            self._stats.peak_live = max(self._stats.peak_live, self._stats.live)
            self._metrics.increment_counter('spawned')
            self._metrics.record_metric('live_handles', self._stats.live)

            self._selector.register(handle.stdout_fd, selectors.EVENT_READ, (handle, STDOUT))
            self._selector.register(handle.stderr_fd, selectors.EVENT_READ, (handle, STDERR))
            if handle.payload:
                self._selector.register(handle.stdin_fd, selectors.EVENT_WRITE, (handle, STDIN))
            else:
                handle.close_stdin()

            self._logger.debug(f"Input {index} assigned to pid {handle.pid} ({len(handle.payload)} bytes)")

    # -- I/O pump --------------------------------------------------------

    def _pump(self) -> None:
        while not self._pending_reap:
            if not self._selector.get_map():
                return
            for key, mask in self._selector.select():
                handle, role = key.data
                if role == STDIN:
                    if mask != selectors.EVENT_WRITE:
                        raise UnexpectedEventError(f"pid {handle.pid}: stdin fd {key.fd} reported event mask {mask}")
                    self._write_stdin(handle)
                else:
                    if mask != selectors.EVENT_READ:
                        raise UnexpectedEventError(f"pid {handle.pid}: {role} fd {key.fd} reported event mask {mask}")
                    self._read_output(handle, key.fd, role)

    def _write_stdin(self, handle: ProcessHandle) -> None:
        chunk = handle.pending_input()
        try:
            written = os.write(handle.stdin_fd, chunk)
        except BlockingIOError:
            written = 0
        except BrokenPipeError:
            # Child stopped reading; the rest of its payload is discarded
            self._logger.debug(
                f"pid {handle.pid} closed its stdin after {handle.input_cursor}/{len(handle.payload)} bytes"
            )
            self._metrics.increment_counter('stdin_broken_pipe')
            self._close_stdin(handle)
            return
        except OSError as e:
            raise PipeIOError(f"write to stdin of pid {handle.pid} failed: {e}") from e

        handle.advance(written)
        self._metrics.increment_counter('bytes_written', written)
        if handle.input_exhausted:
            self._close_stdin(handle)

    def _read_output(self, handle: ProcessHandle, fd: int, role: str) -> None:
        try:
            chunk = os.read(fd, CHUNK_SIZE)
        except OSError as e:
            raise PipeIOError(f"read from {role} of pid {handle.pid} failed: {e}") from e

        if chunk:
            handle.append_output(fd, chunk)
            self._metrics.increment_counter(f'bytes_read_{role}', len(chunk))
            return

        # End of stream: the child side of this pipe is closed
        self._selector.unregister(fd)
        handle.close_stream(fd)
        self._logger.debug(f"pid {handle.pid}: {role} reached end of stream")
        self._mark_if_drained(handle)

    def _close_stdin(self, handle: ProcessHandle) -> None:
        self._selector.unregister(handle.stdin_fd)
        handle.close_stdin()
        self._mark_if_drained(handle)

    def _mark_if_drained(self, handle: ProcessHandle) -> None:
        if handle.is_drained:
            self._pending_reap.append(handle.pid)

    # -- reaping ---------------------------------------------------------

    def _reap(self) -> None:
        for pid in self._pending_reap:
            handle = self._live.get(pid)
            if handle is None:
                raise InvariantViolationError(f"pid {pid} is not a live handle of this run")
            if not handle.is_drained:
                raise InvariantViolationError(f"pid {pid} queued for reaping with open descriptors {handle.open_fds}")

            try:
                _, raw_status = os.waitpid(pid, 0)
            except ChildProcessError as e:
                # Not our child any more; keep the abort path from signalling its pid
                del self._live[pid]
                raise InvariantViolationError(f"waitpid({pid}) failed: {e}") from e

            del self._live[pid]
            self._stats.live -= 1
            handle.exit_status = ExitStatus.from_wait_status(raw_status)
            index = handle.batch_index
            self._statuses[index] = handle.exit_status
            self._stdouts[index] = handle.stdout
            self._stderrs[index] = handle.stderr

            self._stats.reaped += 1
            self._metrics.increment_counter('reaped')
            self._logger.debug(f"Reaped pid {pid} for input {index}: {handle.exit_status}")
        self._pending_reap.clear()

    def _check_completed(self) -> None:
        stats = self._stats
        problems = []
        if stats.spawned != stats.total:
            problems.append(f"spawned {stats.spawned} of {stats.total}")
        if stats.reaped != stats.total:
            problems.append(f"reaped {stats.reaped} of {stats.total}")
        if stats.live or self._live:
            problems.append(f"{len(self._live)} handle(s) still live")
        if stats.unassigned:
            problems.append(f"{stats.unassigned} input(s) unassigned")
        if any(status is None for status in self._statuses):
            problems.append("missing exit status")
        if problems:
            raise InvariantViolationError("Run finished inconsistently: " + "; ".join(problems))

    # -- fatal path ------------------------------------------------------

    def _abort(self, error: BaseException) -> None:
        """Close every descriptor and kill and reap every child still live."""
        if isinstance(error, PoolError):
            self._logger.error(f"Aborting run: {error}")
        else:
            self._logger.error(f"Aborting run after {type(error).__name__}: {error}")

        for handle in list(self._live.values()):
            handle.close_all()
            try:
                os.kill(handle.pid, signal.SIGKILL)
            except ProcessLookupError:
                pass
            try:
                os.waitpid(handle.pid, 0)
            except ChildProcessError:
                pass
        self._live.clear()
        self._pending_reap.clear()
        self._stats.live = 0
