"""Application layer: the scheduler and the pool entry points."""

from pipepool.application.scheduler import Scheduler
from pipepool.application.pool import ProcessPool, run_batch, run_single

__all__ = ["Scheduler", "ProcessPool", "run_batch", "run_single"]
