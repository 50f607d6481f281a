"""Performance metrics and statistics tracking."""

import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from functools import wraps
from typing import Any, Callable, Iterator, TypeVar

from .logging import get_logger

logger = get_logger("metrics")

T = TypeVar("T")


@dataclass
class TimingStats:
    """Statistics for timing measurements."""

    count: int = 0
    total_time: float = 0.0
    min_time: float = float("inf")
    max_time: float = 0.0

    def add(self, duration: float) -> None:
        """Add a timing measurement."""
        self.count += 1
        self.total_time += duration
        self.min_time = min(self.min_time, duration)
        self.max_time = max(self.max_time, duration)

    @property
    def avg_time(self) -> float:
        return self.total_time / self.count if self.count > 0 else 0.0


@dataclass
class OperationMetrics:
    """Timings, counters and error counts shared by the worker threads."""

    timing: dict[str, TimingStats] = field(default_factory=dict)
    counters: dict[str, int] = field(default_factory=dict)
    errors: dict[str, int] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_timing(self, operation: str, duration: float) -> None:
        """Record timing for an operation."""
        with self._lock:
            if operation not in self.timing:
                self.timing[operation] = TimingStats()
            self.timing[operation].add(duration)

    def increment(self, counter: str, value: int = 1) -> None:
        """Increment a counter."""
        with self._lock:
            self.counters[counter] = self.counters.get(counter, 0) + value

    def record_error(self, error_type: str) -> None:
        """Record an error occurrence."""
        with self._lock:
            self.errors[error_type] = self.errors.get(error_type, 0) + 1

    def reset(self) -> None:
        with self._lock:
            self.timing.clear()
            self.counters.clear()
            self.errors.clear()

    def summary(self) -> dict[str, Any]:
        """Get a summary of all metrics."""
        with self._lock:
            return {
                "timing": {
                    name: {
                        "count": stats.count,
                        "total": stats.total_time,
                        "avg": stats.avg_time,
                        "min": stats.min_time if stats.min_time != float("inf") else 0,
                        "max": stats.max_time,
                    }
                    for name, stats in self.timing.items()
                },
                "counters": dict(self.counters),
                "errors": dict(self.errors),
            }


# Global metrics instance
_operation_metrics: OperationMetrics | None = None
_metrics_lock = threading.Lock()


def get_operation_metrics() -> OperationMetrics:
    """Get or create the global operation metrics instance."""
    global _operation_metrics
    with _metrics_lock:
        if _operation_metrics is None:
            _operation_metrics = OperationMetrics()
        return _operation_metrics


@contextmanager
def timed_operation(name: str) -> Iterator[None]:
    """Context manager for timing an operation.

    Usage:
        with timed_operation("index_build"):
            # do work
    """
    metrics = get_operation_metrics()
    start = time.perf_counter()
    try:
        yield
    finally:
        duration = time.perf_counter() - start
        metrics.record_timing(name, duration)
        logger.debug(f"{name}: {duration:.3f}s")


def timed(name: str | None = None) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for timing function execution.

    Usage:
        @timed("call_graph")
        def build_call_graph(structure):
            ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        operation_name = name or func.__name__

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            with timed_operation(operation_name):
                return func(*args, **kwargs)

        return wrapper

    return decorator


def format_duration(seconds: float) -> str:
    """Format duration in human-readable format."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        return f"{seconds / 60:.1f}m"
    else:
        return f"{seconds / 3600:.1f}h"
