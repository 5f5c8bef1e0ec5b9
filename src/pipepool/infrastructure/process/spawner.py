"""Start a child process wired to three dedicated pipes."""

import os
import signal
from typing import List, Sequence

from pipepool.domain.exceptions import SpawnError
from pipepool.domain.protocols import SpawnedProcess
from pipepool.shared.logging import get_logger

logger = get_logger(__name__)

# Status a child exits with when the program image cannot be replaced
EXEC_FAILURE_STATUS = 127


def _close_quietly(fds: Sequence[int]) -> None:
    for fd in fds:
        try:
            os.close(fd)
        except OSError:
            pass


def _child_bootstrap(argv: List[str], stdin_r: int, stdout_w: int, stderr_w: int,
                     parent_ends: Sequence[int]) -> None:
    """
    Runs in the forked child only and never returns.

    Must not touch any scheduler state: it rebinds the pipe ends onto
    fds 0/1/2 and execs. Any failure ends in os._exit so the child can
    never fall back into the parent's code path.
    """
    try:
        signal.signal(signal.SIGPIPE, signal.SIG_DFL)
        for fd in parent_ends:
            os.close(fd)
        os.dup2(stdin_r, 0)
        os.dup2(stdout_w, 1)
        os.dup2(stderr_w, 2)
        for fd in (0, 1, 2):
            os.set_inheritable(fd, True)
        for fd in {stdin_r, stdout_w, stderr_w}:
            if fd > 2:
                os.close(fd)
        os.execvp(argv[0], argv)
    except OSError as e:
        try:
            os.write(2, f"pipepool: cannot execute {argv[0]!r}: {e.strerror}\n".encode('utf-8', 'replace'))
        except OSError:
            pass
    finally:
        os._exit(EXEC_FAILURE_STATUS)


def spawn_process(command: str, *args: str) -> SpawnedProcess:
    """
    Fork and exec ``command`` with ``args``, its stdin/stdout/stderr on pipes.

    Args:
        command: Program name (resolved through PATH) or path
        *args: Arguments passed to the program

    Returns:
        SpawnedProcess with the pid and the parent-side descriptors: stdin
        write end (non-blocking), stdout and stderr read ends

    Raises:
        SpawnError: If pipe creation or fork fails
    """
    if not hasattr(os, 'fork'):
        raise SpawnError("Process spawning requires os.fork (POSIX only)")

    argv = [command, *args]
    created: List[int] = []
    try:
        stdin_r, stdin_w = os.pipe()
        created += [stdin_r, stdin_w]
        stdout_r, stdout_w = os.pipe()
        created += [stdout_r, stdout_w]
        stderr_r, stderr_w = os.pipe()
        created += [stderr_r, stderr_w]
    except OSError as e:
        _close_quietly(created)
        raise SpawnError(f"pipe() failed for {command!r}: {e}") from e

    try:
        pid = os.fork()
    except OSError as e:
        _close_quietly(created)
        raise SpawnError(f"fork() failed for {command!r}: {e}") from e

    if pid == 0:
        _child_bootstrap(argv, stdin_r, stdout_w, stderr_w, (stdin_w, stdout_r, stderr_r))

    _close_quietly((stdin_r, stdout_w, stderr_w))
    os.set_blocking(stdin_w, False)

    logger.debug(f"Spawned pid {pid}: {' '.join(argv)}")
    return SpawnedProcess(pid=pid, stdin_fd=stdin_w, stdout_fd=stdout_r, stderr_fd=stderr_r)
