"""Metrics collection for pool runs."""

import time
from typing import Dict, Any, List
from collections import defaultdict


class MetricsCollector:
    """
    Collects timers, counters and value series for scheduler runs.
    Implements IMetricsCollector protocol.
    """

    def __init__(self):
        self._start_time = time.monotonic()
        self._timers: Dict[str, float] = {}
        self._metrics: Dict[str, List[Any]] = defaultdict(list)
        self._counters: Dict[str, int] = defaultdict(int)

    def start_timer(self, name: str) -> None:
        """Start a named timer."""
        self._timers[name] = time.monotonic()

    def stop_timer(self, name: str) -> float:
        """
        Stop a named timer and return elapsed time.

        Args:
            name: Timer name

        Returns:
            Elapsed time in seconds

        Raises:
            KeyError: If timer was not started
        """
        if name not in self._timers:
            raise KeyError(f"Timer '{name}' was not started")

        elapsed = time.monotonic() - self._timers.pop(name)
        self.record_metric(f"{name}_duration", elapsed)
        return elapsed

    def record_metric(self, name: str, value: Any) -> None:
        """Record a metric value."""
        self._metrics[name].append(value)

    def increment_counter(self, name: str, amount: int = 1) -> None:
        """Increment a counter."""
        self._counters[name] += amount

    def get_counter(self, name: str) -> int:
        return self._counters.get(name, 0)

    def get_metric(self, name: str) -> list:
        return list(self._metrics.get(name, []))

    def peak(self, name: str, default: float = 0) -> float:
        """Largest recorded value of a metric, or default if none recorded."""
        values = self._metrics.get(name)
        return max(values) if values else default

    def get_summary(self) -> Dict[str, Any]:
        """
        Get summary of all metrics.

        Returns:
            Dictionary with total elapsed time, counters and per-metric
            count/sum/avg/min/max for numeric series
        """
        summary = {
            "total_elapsed": self.elapsed_time(),
            "counters": dict(self._counters),
            "metrics": {}
        }

        for name, values in self._metrics.items():
            if not values:
                continue
            if all(isinstance(v, (int, float)) for v in values):
                summary["metrics"][name] = {
                    "count": len(values),
                    "sum": sum(values),
                    "avg": sum(values) / len(values),
                    "min": min(values),
                    "max": max(values),
                }
            else:
                summary["metrics"][name] = {
                    "count": len(values),
                    "values": values
                }

        return summary

    def elapsed_time(self) -> float:
        """Get total elapsed time since initialization."""
        return time.monotonic() - self._start_time

    def reset(self) -> None:
        """Reset all metrics and timers."""
        self._start_time = time.monotonic()
        self._timers.clear()
        self._metrics.clear()
        self._counters.clear()

    def format_summary(self) -> str:
        """Render the summary as a block of text."""
        summary = self.get_summary()
        lines = [
            "=" * 60,
            "METRICS SUMMARY",
            "=" * 60,
            f"Total Elapsed: {summary['total_elapsed']:.2f}s",
        ]

        if summary['counters']:
            lines.append("")
            lines.append("Counters:")
            for name, value in sorted(summary['counters'].items()):
                lines.append(f"  {name}: {value}")

        if summary['metrics']:
            lines.append("")
            lines.append("Metrics:")
            for name, data in sorted(summary['metrics'].items()):
                if 'avg' in data:
                    lines.append(f"  {name}:")
                    lines.append(f"    count: {data['count']}")
                    lines.append(f"    avg: {data['avg']:.3f}")
                    lines.append(f"    min: {data['min']:.3f}")
                    lines.append(f"    max: {data['max']:.3f}")

        lines.append("=" * 60)
        return "\n".join(lines)
