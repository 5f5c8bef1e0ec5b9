"""Protocol definitions for dependency inversion."""

from typing import Protocol, NamedTuple


class SpawnedProcess(NamedTuple):
    """Pid plus the parent-side ends of the three child pipes."""

    pid: int
    stdin_fd: int
    stdout_fd: int
    stderr_fd: int


class ISpawner(Protocol):
    """Interface for starting one child wired to three pipes."""

    def __call__(self, command: str, *args: str) -> SpawnedProcess:
        """Start command(args) and return its pid and parent-side descriptors."""
        ...


class ILogger(Protocol):
    """Interface for logging."""

    def debug(self, message: str, **kwargs) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, **kwargs) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, **kwargs) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, **kwargs) -> None:
        """Log error message."""
        ...

    def exception(self, message: str, **kwargs) -> None:
        """Log exception with traceback."""
        ...


class IMetricsCollector(Protocol):
    """Interface for collecting metrics."""

    def start_timer(self, name: str) -> None:
        """Start a named timer."""
        ...

    def stop_timer(self, name: str) -> float:
        """Stop a named timer and return elapsed time."""
        ...

    def record_metric(self, name: str, value: float) -> None:
        """Record a metric value."""
        ...

    def increment_counter(self, name: str, amount: int = 1) -> None:
        """Increment a counter."""
        ...

    def get_summary(self) -> dict:
        """Get summary of all metrics."""
        ...
