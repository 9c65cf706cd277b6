import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "engine"))
sys.path.insert(0, str(ROOT / "packages" / "core"))

from telemetrylab_core.config import PerformanceConfig
from telemetrylab_core.performance import BudgetReport, BudgetStatus, PerformanceTargets, ResourceSampler
from telemetrylab_engine.models import PerformanceSnapshot

ROOMY = PerformanceTargets(cpu_percent_max=10_000.0, rss_mb_max=1_000_000.0, jank_percent_max=10.0)


def _status(cpu: float = 1.0, rss: float = 50.0, warning=None, load: int = 2) -> BudgetStatus:
    return BudgetStatus(
        cpu_percent=cpu,
        rss_mb=rss,
        jank_percentage=0.0,
        average_latency_ms=0.0,
        overloaded=False,
        warning=warning,
        recommended_compute_load=load,
    )


class ResourceSamplerTests(unittest.TestCase):
    def test_budget_sample_shape(self):
        status = ResourceSampler(ROOMY).sample(PerformanceSnapshot(compute_load=3, frame_counter=20))
        self.assertFalse(status.overloaded)
        self.assertIsNone(status.warning)
        self.assertEqual(status.recommended_compute_load, 3)
        self.assertGreaterEqual(status.rss_mb, 0.0)

    def test_jank_over_budget_recommends_lower_load(self):
        snap = PerformanceSnapshot(compute_load=4, frame_counter=10, jank_frame_count=5, jank_percentage=50.0)
        status = ResourceSampler(ROOMY).sample(snap)
        self.assertEqual(status.warning, "jank_over_budget")
        self.assertEqual(status.recommended_compute_load, 3)

    def test_cadence_overrun_outranks_jank(self):
        snap = PerformanceSnapshot(compute_load=5, frame_counter=10, average_latency_ms=70.0, jank_percentage=100.0)
        status = ResourceSampler(ROOMY).sample(snap, target_period_ms=50)
        self.assertEqual(status.warning, "cadence_overrun")
        self.assertEqual(status.recommended_compute_load, 4)

    def test_recommendation_never_drops_below_one(self):
        snap = PerformanceSnapshot(compute_load=1, frame_counter=10, jank_percentage=90.0)
        status = ResourceSampler(ROOMY).sample(snap)
        self.assertEqual(status.recommended_compute_load, 1)

    def test_idle_snapshot_has_no_warning(self):
        snap = PerformanceSnapshot(jank_percentage=80.0, average_latency_ms=500.0)
        status = ResourceSampler(ROOMY).sample(snap, target_period_ms=50)
        self.assertIsNone(status.warning)

    def test_targets_from_config(self):
        targets = PerformanceTargets.from_config(PerformanceConfig(cpu_percent_max=25.0))
        self.assertEqual(targets.cpu_percent_max, 25.0)
        self.assertEqual(targets.rss_mb_max, 400.0)


class BudgetReportTests(unittest.TestCase):
    def test_tracks_peaks_and_warnings(self):
        report = BudgetReport(PerformanceTargets(cpu_percent_max=50.0, rss_mb_max=100.0))
        report.add(_status(cpu=10.0, rss=60.0))
        report.add(_status(cpu=40.0, rss=55.0, warning="jank_over_budget", load=1))
        report.add(_status(cpu=20.0, rss=80.0, warning="jank_over_budget", load=1))

        final = PerformanceSnapshot(compute_load=2, frame_counter=30, jank_percentage=5.0)
        data = report.to_dict(final)
        self.assertEqual(data["samples"], 3)
        self.assertEqual(data["max_observed"]["cpu_percent"], 40.0)
        self.assertEqual(data["max_observed"]["rss_mb"], 80.0)
        self.assertEqual(data["warnings"], {"jank_over_budget": 2})
        self.assertEqual(data["recommended_compute_load"], 1)
        self.assertTrue(data["pass"])

    def test_fails_on_any_check(self):
        report = BudgetReport(PerformanceTargets(cpu_percent_max=50.0, rss_mb_max=100.0, jank_percent_max=10.0))
        report.add(_status(cpu=75.0))
        final = PerformanceSnapshot(frame_counter=10, jank_percentage=20.0)
        self.assertEqual(report.checks(final), {"cpu": False, "memory": True, "jank": False})
        self.assertFalse(report.passed(final))

    def test_empty_report_falls_back_to_final_load(self):
        report = BudgetReport(PerformanceTargets())
        data = report.to_dict(PerformanceSnapshot(compute_load=4))
        self.assertEqual(data["recommended_compute_load"], 4)
        self.assertEqual(data["samples"], 0)


if __name__ == "__main__":
    unittest.main()
