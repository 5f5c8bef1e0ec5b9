"""Domain layer package."""

from .models import TerminationCause, ExitStatus, ItemResult, BatchResult, RunStats
from .exceptions import (
    PoolError,
    SpawnError,
    PipeIOError,
    UnexpectedEventError,
    InvariantViolationError,
    ConfigurationError,
)
from .protocols import SpawnedProcess, ISpawner, ILogger, IMetricsCollector

__all__ = [
    # Models
    "TerminationCause",
    "ExitStatus",
    "ItemResult",
    "BatchResult",
    "RunStats",
    # Exceptions
    "PoolError",
    "SpawnError",
    "PipeIOError",
    "UnexpectedEventError",
    "InvariantViolationError",
    "ConfigurationError",
    # Protocols
    "SpawnedProcess",
    "ISpawner",
    "ILogger",
    "IMetricsCollector",
]
