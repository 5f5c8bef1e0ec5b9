"""Child process spawning and per-child bookkeeping."""

from pipepool.infrastructure.process.spawner import spawn_process, EXEC_FAILURE_STATUS
from pipepool.infrastructure.process.handle import ProcessHandle, CHUNK_SIZE

__all__ = ["spawn_process", "EXEC_FAILURE_STATUS", "ProcessHandle", "CHUNK_SIZE"]
