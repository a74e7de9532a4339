"""Per-handler request metrics and rate limiting.

Every capability handler owns one :class:`HandlerMetrics` and one
:class:`RateLimitPolicy`. Counters are updated synchronously under a lock, so
a handler shared between threads never loses an update.
"""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict

from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

from abap_adt_mcp import telemetry

logger = logging.getLogger(__name__)

MAX_TIMESTAMPS = 100
DEFAULT_RATE_LIMIT = "1/second"


@dataclass
class RequestMetrics:
    """Counters for the invocations executed by one handler.

    Rate-limited calls are never executed and only count in
    ``rate_limited_count``.
    """

    total_requests: int = 0
    success_count: int = 0
    error_count: int = 0
    rate_limited_count: int = 0
    total_duration_ms: float = 0.0
    last_request_timestamps: Deque[float] = field(
        default_factory=lambda: deque(maxlen=MAX_TIMESTAMPS)
    )

    @property
    def average_duration_ms(self) -> float:
        if not self.total_requests:
            return 0.0
        return self.total_duration_ms / self.total_requests

    @property
    def error_rate(self) -> float:
        if not self.total_requests:
            return 0.0
        return self.error_count / self.total_requests

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalRequests": self.total_requests,
            "successCount": self.success_count,
            "errorCount": self.error_count,
            "rateLimitedCount": self.rate_limited_count,
            "averageDurationMs": round(self.average_duration_ms, 3),
            "errorRate": round(self.error_rate, 4),
        }


class HandlerMetrics:
    """Thread-safe metrics recorder bound to one handler."""

    def __init__(self, handler_name: str):
        self.handler_name = handler_name
        self._metrics = RequestMetrics()
        self._lock = threading.Lock()
        self._requests_counter = telemetry.create_counter(
            "adt_mcp.tool.requests", "Tool invocations by handler and outcome", "requests"
        )
        self._duration_histogram = telemetry.create_histogram(
            "adt_mcp.tool.duration", "Tool invocation duration", "ms"
        )

    def track_request(self, start_time: float, success: bool) -> float:
        """
        Record one executed invocation.

        Args:
            start_time: ``time.perf_counter()`` value taken when the call began
            success: Whether the invocation succeeded

        Returns:
            Elapsed time in milliseconds
        """
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        with self._lock:
            self._metrics.total_requests += 1
            if success:
                self._metrics.success_count += 1
            else:
                self._metrics.error_count += 1
            self._metrics.total_duration_ms += elapsed_ms
            self._metrics.last_request_timestamps.append(time.time())

        attributes = {"handler": self.handler_name, "outcome": "success" if success else "error"}
        self._requests_counter.add(1, attributes)
        self._duration_histogram.record(elapsed_ms, {"handler": self.handler_name})
        return elapsed_ms

    def track_rate_limited(self) -> None:
        with self._lock:
            self._metrics.rate_limited_count += 1
        self._requests_counter.add(1, {"handler": self.handler_name, "outcome": "rate_limited"})

    def snapshot(self) -> RequestMetrics:
        """Return a consistent copy of the current counters."""
        with self._lock:
            return RequestMetrics(
                total_requests=self._metrics.total_requests,
                success_count=self._metrics.success_count,
                error_count=self._metrics.error_count,
                rate_limited_count=self._metrics.rate_limited_count,
                total_duration_ms=self._metrics.total_duration_ms,
                last_request_timestamps=deque(
                    self._metrics.last_request_timestamps, maxlen=MAX_TIMESTAMPS
                ),
            )


class RateLimitPolicy:
    """Sliding-window request gate keyed by caller identity."""

    def __init__(self, rate: str = DEFAULT_RATE_LIMIT, enabled: bool = True):
        """
        Args:
            rate: Limit in `limits` notation, e.g. "1/second" or "30 per minute"
            enabled: When False every call is accepted
        """
        self.rate = rate
        self.enabled = enabled
        self._item = parse(rate)
        self._limiter = MovingWindowRateLimiter(MemoryStorage())

    def check(self, key: str) -> bool:
        """Consume one slot for ``key``; False when the window is full."""
        if not self.enabled:
            return True
        return self._limiter.hit(self._item, key)
