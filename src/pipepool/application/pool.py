"""Public entry points: run a batch of payloads through one command."""

from typing import Optional, Sequence

from pipepool.application.scheduler import Scheduler
from pipepool.domain.models import BatchResult, ItemResult
from pipepool.domain.protocols import ILogger, IMetricsCollector
from pipepool.infrastructure.config.loader import PoolConfig
from pipepool.shared.logging import LoggerAdapter, get_logger
from pipepool.shared.metrics import MetricsCollector
from pipepool.shared.types import Payload


def run_batch(inputs: Sequence[Payload], max_procs: int, command: str, *args: str) -> BatchResult:
    """
    Run ``command(args)`` once per input, at most ``max_procs`` at a time.

    Results come back in input order whatever order the children finish in.
    An empty ``inputs`` returns empty sequences without starting anything.

    Raises:
        ValueError: If max_procs is not a positive integer or command is empty
        TypeError: If an input is not bytes-like or str
        PoolError: On any fatal condition during the run
    """
    return Scheduler(max_procs).run(inputs, command, *args)


def run_single(payload: Payload, command: str, *args: str) -> ItemResult:
    """Run one payload through ``command(args)``; returns (status, stdout, stderr)."""
    return run_batch([payload], 1, command, *args).item(0)


class ProcessPool:
    """Pool facade bound to a PoolConfig, a logger and a metrics collector."""

    def __init__(
        self,
        config: Optional[PoolConfig] = None,
        logger: Optional[ILogger] = None,
        metrics: Optional[IMetricsCollector] = None
    ):
        self.config = config or PoolConfig()
        self._logger = logger or LoggerAdapter(get_logger(__name__))
        self._metrics = metrics or MetricsCollector()

    @property
    def metrics(self) -> IMetricsCollector:
        return self._metrics

    def _scheduler(self, max_procs: int) -> Scheduler:
        return Scheduler(max_procs, logger=self._logger, metrics=self._metrics)

    def run_batch(self, inputs: Sequence[Payload], command: str, *args: str) -> BatchResult:
        return self._scheduler(self.config.max_procs).run(inputs, command, *args)

    def run_single(self, payload: Payload, command: str, *args: str) -> ItemResult:
        return self._scheduler(1).run([payload], command, *args).item(0)
