"""Performance logging for QueryBridge operations.

``PerformanceLogger.measure`` times a block, logs how it ended and records
the duration in a per-operation ``OperationStats``. Each operation keeps
only its most recent ``window`` durations, so memory stays flat however
long the process serves queries.

Example:
    >>> perf_logger = PerformanceLogger("querybridge.service")
    >>> with perf_logger.measure("query_execution", backend="postgres") as timer:
    ...     rows = await adapter.execute(handle, query)
    >>> perf_logger.snapshot()["query_execution"]["p95_ms"]
    12.4
"""

import math
import time
from collections import deque
from contextlib import contextmanager
from typing import Any, Deque, Dict, Generator, Optional

from .structured import StructuredLogger

DEFAULT_WINDOW = 1000


def _to_ms(seconds: Optional[float]) -> Optional[float]:
    return round(seconds * 1000, 3) if seconds is not None else None


class OperationStats:
    """Rolling latency statistics for one operation.

    ``calls``, ``failures`` and ``max_seconds`` count every recorded call.
    Percentiles are computed on demand over the last ``window`` samples.
    """

    def __init__(self, operation: str, window: int = DEFAULT_WINDOW) -> None:
        self.operation = operation
        self.calls = 0
        self.failures = 0
        self.total_seconds = 0.0
        self.max_seconds = 0.0
        self._samples: Deque[float] = deque(maxlen=window)

    @property
    def window(self) -> Optional[int]:
        return self._samples.maxlen

    @property
    def sample_count(self) -> int:
        return len(self._samples)

    def record(self, duration: float, *, success: bool = True) -> None:
        self.calls += 1
        if not success:
            self.failures += 1
        self.total_seconds += duration
        self.max_seconds = max(self.max_seconds, duration)
        self._samples.append(duration)

    def percentile(self, pct: float) -> Optional[float]:
        """Nearest-rank percentile of the windowed samples, in seconds."""
        if not self._samples:
            return None
        ordered = sorted(self._samples)
        rank = max(math.ceil(pct * len(ordered) / 100), 1)
        return ordered[rank - 1]

    def snapshot(self) -> Dict[str, Any]:
        mean = self.total_seconds / self.calls if self.calls else None
        return {
            "calls": self.calls,
            "failures": self.failures,
            "avg_ms": _to_ms(mean),
            "max_ms": _to_ms(self.max_seconds) if self.calls else None,
            "p50_ms": _to_ms(self.percentile(50)),
            "p95_ms": _to_ms(self.percentile(95)),
            "samples": self.sample_count,
        }


class TimingContext:
    """Times the enclosed block and optionally logs its outcome.

    Example:
        >>> with TimingContext("schema_introspection") as timer:
        ...     schema = await adapter.introspect_schema(handle)
        >>> timer.duration_ms
        3.1
    """

    def __init__(
        self,
        operation: str,
        logger: Optional[StructuredLogger] = None,
        metadata: Optional[Dict[str, Any]] = None,
        auto_log: bool = True,
    ) -> None:
        self.operation = operation
        self.logger = logger if auto_log else None
        self.metadata = metadata or {}
        self.started: Optional[float] = None
        self.finished: Optional[float] = None
        self.success = True
        self.error: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.finished is not None

    @property
    def duration(self) -> Optional[float]:
        """Seconds elapsed; live while the block is still running."""
        if self.started is None:
            return None
        end = self.finished if self.finished is not None else time.perf_counter()
        return end - self.started

    @property
    def duration_ms(self) -> Optional[float]:
        duration = self.duration
        return duration * 1000 if duration is not None else None

    def __enter__(self) -> "TimingContext":
        self.started = time.perf_counter()
        if self.logger:
            self.logger.debug("Operation started", operation=self.operation, **self.metadata)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.finished = time.perf_counter()
        self.success = exc_type is None
        self.error = str(exc_val) if exc_val else None
        if not self.logger:
            return

        if self.success:
            self.logger.info(
                "Operation completed",
                operation=self.operation,
                duration_ms=self.duration_ms,
                success=True,
                **self.metadata,
            )
        else:
            self.logger.warning(
                "Operation failed",
                operation=self.operation,
                duration_ms=self.duration_ms,
                success=False,
                error=self.error,
                **self.metadata,
            )


class PerformanceLogger:
    """Measures operations and keeps rolling statistics per operation name.

    Attributes:
        name: Logger name
        auto_log: Whether each measurement is logged
        window: Number of recent samples kept per operation
    """

    def __init__(
        self,
        name: str,
        *,
        auto_log: bool = True,
        window: int = DEFAULT_WINDOW,
        logger: Optional[StructuredLogger] = None,
    ) -> None:
        self.name = name
        self.auto_log = auto_log
        self.window = window
        self.logger = logger or StructuredLogger(f"perf.{name}")
        self._stats: Dict[str, OperationStats] = {}

    @contextmanager
    def measure(self, operation: str, **metadata: Any) -> Generator[TimingContext, None, None]:
        """Time the enclosed block and record it under ``operation``.

        Exceptions raised by the block are recorded as failures and
        propagate unchanged.
        """
        timer = TimingContext(operation, logger=self.logger, metadata=metadata, auto_log=self.auto_log)
        try:
            with timer:
                yield timer
        finally:
            if timer.is_complete:
                self.stats_for(operation).record(timer.duration, success=timer.success)

    def stats_for(self, operation: str) -> OperationStats:
        stats = self._stats.get(operation)
        if stats is None:
            stats = self._stats[operation] = OperationStats(operation, self.window)
        return stats

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        """Statistics of every measured operation, keyed by name."""
        return {name: stats.snapshot() for name, stats in self._stats.items()}

    def __repr__(self) -> str:
        return f"PerformanceLogger(name={self.name!r}, operations={len(self._stats)})"
