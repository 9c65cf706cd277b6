import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "engine"))

from telemetrylab_engine.metrics import MetricsAggregator


class MetricsAggregatorTests(unittest.TestCase):
    def test_reference_scenario(self):
        agg = MetricsAggregator()
        for latency in (10, 20, 5, 30):
            result = agg.record_cycle(latency)
        self.assertEqual(result.average_latency_ms, 16.25)
        self.assertEqual(result.jank_frame_count, 2)
        self.assertEqual(result.jank_percentage, 50.0)
        self.assertEqual(result.frame_count, 4)
        self.assertEqual(result.current_latency_ms, 30)
        self.assertEqual(result.history, (10, 20, 5, 30))

    def test_empty_aggregate_is_zero(self):
        result = MetricsAggregator().snapshot()
        self.assertEqual(result.average_latency_ms, 0.0)
        self.assertEqual(result.jank_percentage, 0.0)
        self.assertEqual(result.frame_count, 0)
        self.assertEqual(result.history, ())

    def test_threshold_is_strictly_greater_than(self):
        agg = MetricsAggregator()
        agg.record_cycle(16)
        result = agg.record_cycle(17)
        self.assertEqual(result.jank_frame_count, 1)

    def test_history_keeps_last_hundred_in_order(self):
        agg = MetricsAggregator()
        for latency in range(150):
            result = agg.record_cycle(latency)
        self.assertEqual(len(result.history), 100)
        self.assertEqual(result.history, tuple(range(50, 150)))
        # Cumulative stats still cover every sample, not just the window.
        self.assertEqual(result.frame_count, 150)
        self.assertEqual(result.average_latency_ms, sum(range(150)) / 150)
        self.assertEqual(result.jank_frame_count, len([v for v in range(150) if v > 16]))

    def test_average_and_jank_match_definitions(self):
        samples = [3, 17, 16, 40, 0, 22, 9, 16, 100, 1, 2]
        agg = MetricsAggregator()
        for value in samples:
            result = agg.record_cycle(value)
        self.assertEqual(result.average_latency_ms, sum(samples) / len(samples))
        jank = len([v for v in samples if v > 16])
        self.assertEqual(result.jank_frame_count, jank)
        self.assertEqual(result.jank_percentage, jank / len(samples) * 100.0)
        self.assertLessEqual(result.jank_frame_count, result.frame_count)

    def test_reset_discards_previous_run(self):
        agg = MetricsAggregator()
        for latency in (50, 60, 70):
            agg.record_cycle(latency)
        agg.reset()
        self.assertEqual(agg.frame_count, 0)
        result = agg.record_cycle(4)
        self.assertEqual(result.history, (4,))
        self.assertEqual(result.average_latency_ms, 4.0)
        self.assertEqual(result.jank_frame_count, 0)

    def test_custom_capacity_and_threshold(self):
        agg = MetricsAggregator(jank_threshold_ms=5, history_size=3)
        for latency in (1, 6, 2, 7):
            result = agg.record_cycle(latency)
        self.assertEqual(result.history, (6, 2, 7))
        self.assertEqual(result.jank_frame_count, 2)

    def test_history_is_an_independent_copy(self):
        agg = MetricsAggregator()
        first = agg.record_cycle(1)
        agg.record_cycle(2)
        self.assertEqual(first.history, (1,))


if __name__ == "__main__":
    unittest.main()
