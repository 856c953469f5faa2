"""
Unit tests for server statistics.
"""

import logging
import threading

from downloadserver.core.stats import ServerStats, StatsReporter, format_uptime


class TestServerStats:

    def test_counters(self):
        stats = ServerStats()
        stats.record_request()
        stats.record_request()
        stats.record_success()
        stats.record_failure()
        stats.record_bytes(100)

        data = stats.snapshot()

        assert data["total_requests"] == 2
        assert data["successful_requests"] == 1
        assert data["failed_requests"] == 1
        assert data["bytes_served"] == 100

    def test_thread_safe(self):
        stats = ServerStats()

        def work():
            for _ in range(1000):
                stats.record_request()

        threads = [threading.Thread(target=work) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert stats.snapshot()["total_requests"] == 8000

    def test_summary(self):
        stats = ServerStats()
        stats.record_request()
        stats.record_success()

        assert stats.summary().startswith("requests=1 ok=1 failed=0 bytes=0 uptime=")


def test_format_uptime():
    assert format_uptime(5) == "5s"
    assert format_uptime(125) == "2m 5s"
    assert format_uptime(3725) == "1h 2m 5s"


class TestStatsReporter:

    def test_stop_logs_final_stats(self, caplog):
        reporter = StatsReporter(ServerStats(), interval=60)
        reporter.start()

        with caplog.at_level(logging.INFO, logger="downloadserver.core.stats"):
            reporter.stop()

        assert "Final stats: requests=0" in caplog.text

    def test_disabled_with_zero_interval(self):
        reporter = StatsReporter(ServerStats(), interval=0)
        reporter.start()

        assert reporter._thread is None
        reporter.stop()
