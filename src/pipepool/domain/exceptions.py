"""Domain exceptions for the process pool."""


class PoolError(Exception):
    """Base exception for all fatal pool errors."""
    pass


class SpawnError(PoolError):
    """Raised when pipe or process creation fails."""
    pass


class PipeIOError(PoolError):
    """Raised when a read or write on an active child pipe fails."""
    pass


class UnexpectedEventError(PoolError):
    """Raised when a readiness event does not match the descriptor's role."""
    pass


class InvariantViolationError(PoolError):
    """Raised when scheduler bookkeeping is found to be inconsistent."""
    pass


class ConfigurationError(PoolError):
    """Raised when configuration is invalid."""
    pass
