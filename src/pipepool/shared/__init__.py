"""Shared utilities package."""

from pipepool.shared.logging import setup_logger, get_logger, LoggerAdapter
from pipepool.shared.metrics import MetricsCollector
from pipepool.shared.types import PathLike, Payload, to_bytes

__all__ = [
    "setup_logger",
    "get_logger",
    "LoggerAdapter",
    "MetricsCollector",
    "PathLike",
    "Payload",
    "to_bytes",
]
