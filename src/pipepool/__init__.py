"""Run many instances of one filter command concurrently over pipes.

Example::

    from pipepool import run_batch

    statuses, stdouts, stderrs = run_batch([b"one", b"two"], 2, "tr", "a-z", "A-Z")
"""

from pipepool.application import ProcessPool, Scheduler, run_batch, run_single
from pipepool.domain import (
    BatchResult,
    ConfigurationError,
    ExitStatus,
    InvariantViolationError,
    ItemResult,
    PipeIOError,
    PoolError,
    SpawnError,
    TerminationCause,
    UnexpectedEventError,
)
from pipepool.infrastructure.config import ConfigLoader, PoolConfig
from pipepool.infrastructure.process import CHUNK_SIZE, EXEC_FAILURE_STATUS, spawn_process

__version__ = "0.1.0"

__all__ = [
    "run_batch",
    "run_single",
    "spawn_process",
    "ProcessPool",
    "Scheduler",
    "ConfigLoader",
    "PoolConfig",
    "BatchResult",
    "ItemResult",
    "ExitStatus",
    "TerminationCause",
    "PoolError",
    "SpawnError",
    "PipeIOError",
    "UnexpectedEventError",
    "InvariantViolationError",
    "ConfigurationError",
    "CHUNK_SIZE",
    "EXEC_FAILURE_STATUS",
]
