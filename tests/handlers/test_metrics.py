"""Tests for RequestMetrics, HandlerMetrics and RateLimitPolicy."""

import threading
import time

from abap_adt_mcp.handlers.metrics import (
    MAX_TIMESTAMPS,
    HandlerMetrics,
    RateLimitPolicy,
    RequestMetrics,
)


class TestRequestMetrics:
    """Tests for derived values."""

    def test_empty_metrics(self):
        metrics = RequestMetrics()

        assert metrics.average_duration_ms == 0.0
        assert metrics.error_rate == 0.0

    def test_to_dict(self):
        metrics = RequestMetrics(
            total_requests=4, success_count=3, error_count=1, total_duration_ms=10.0
        )

        assert metrics.to_dict() == {
            "totalRequests": 4,
            "successCount": 3,
            "errorCount": 1,
            "rateLimitedCount": 0,
            "averageDurationMs": 2.5,
            "errorRate": 0.25,
        }


class TestHandlerMetrics:
    """Tests for request tracking."""

    def test_track_request_accumulates(self):
        metrics = HandlerMetrics("TestHandlers")

        elapsed = metrics.track_request(time.perf_counter(), True)
        metrics.track_request(time.perf_counter(), False)

        snapshot = metrics.snapshot()
        assert elapsed >= 0
        assert snapshot.total_requests == 2
        assert snapshot.success_count == 1
        assert snapshot.error_count == 1
        assert len(snapshot.last_request_timestamps) == 2

    def test_timestamps_are_bounded(self):
        metrics = HandlerMetrics("TestHandlers")

        for _ in range(MAX_TIMESTAMPS + 5):
            metrics.track_request(time.perf_counter(), True)

        snapshot = metrics.snapshot()
        assert snapshot.total_requests == MAX_TIMESTAMPS + 5
        assert len(snapshot.last_request_timestamps) == MAX_TIMESTAMPS

    def test_snapshot_is_a_copy(self):
        metrics = HandlerMetrics("TestHandlers")
        snapshot = metrics.snapshot()

        metrics.track_request(time.perf_counter(), True)

        assert snapshot.total_requests == 0

    def test_concurrent_updates_are_not_lost(self):
        metrics = HandlerMetrics("TestHandlers")

        def worker():
            for _ in range(500):
                metrics.track_request(time.perf_counter(), True)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        snapshot = metrics.snapshot()
        assert snapshot.total_requests == 4000
        assert snapshot.success_count == 4000

    def test_rate_limited_not_counted_as_request(self):
        metrics = HandlerMetrics("TestHandlers")

        metrics.track_rate_limited()

        snapshot = metrics.snapshot()
        assert snapshot.rate_limited_count == 1
        assert snapshot.total_requests == 0


class TestRateLimitPolicy:
    """Tests for the sliding window gate."""

    def test_default_allows_one_per_second(self):
        policy = RateLimitPolicy()

        assert policy.check("client-a") is True
        assert policy.check("client-a") is False

    def test_keys_are_independent(self):
        policy = RateLimitPolicy("1/minute")

        assert policy.check("client-a") is True
        assert policy.check("client-b") is True

    def test_window_slides(self):
        policy = RateLimitPolicy("1/second")

        assert policy.check("client-a") is True
        time.sleep(1.1)
        assert policy.check("client-a") is True

    def test_disabled(self):
        policy = RateLimitPolicy("1/minute", enabled=False)

        assert all(policy.check("client-a") for _ in range(5))
