from __future__ import annotations

import unittest

from customsops.observability.telemetry import (
    counter,
    get_counter,
    get_latency_stats,
    reset_telemetry,
    snapshot_counters,
    time_block,
)


class TelemetryTests(unittest.TestCase):
    def setUp(self):
        reset_telemetry()

    def test_time_block_appends_ms_suffix(self):
        metric_name = "upstream.logs.latency"

        with time_block(metric_name):
            pass

        stats = get_latency_stats(metric_name)
        self.assertEqual(stats["count"], 1)
        self.assertEqual(get_latency_stats("upstream.logs.latency_ms")["count"], 1)
        self.assertGreaterEqual(stats["p95"], 0.0)

    def test_time_block_records_on_error(self):
        with self.assertRaises(RuntimeError), time_block("upstream.master_records"):
            raise RuntimeError("boom")

        self.assertEqual(get_latency_stats("upstream.master_records")["count"], 1)

    def test_empty_stats(self):
        self.assertEqual(get_latency_stats("never.recorded")["count"], 0)

    def test_counter_increments(self):
        before = counter("test.counter", 0)
        counter("test.counter")
        after = counter("test.counter", 0)
        self.assertEqual(after, before + 1)

    def test_snapshot_is_a_copy(self):
        counter("tracking.entries_added", 3)
        snapshot = snapshot_counters()
        snapshot["tracking.entries_added"] = 99
        self.assertEqual(get_counter("tracking.entries_added"), 3)


if __name__ == "__main__":
    unittest.main()
