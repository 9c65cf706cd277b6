"""Process resource budgeting for measurement runs, with compute-load hints."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from telemetrylab_engine.models import PerformanceSnapshot, clamp_load

try:
    import psutil
except Exception:  # pragma: no cover
    psutil = None


@dataclass(frozen=True)
class PerformanceTargets:
    cpu_percent_max: float = 60.0
    rss_mb_max: float = 400.0
    jank_percent_max: float = 10.0

    @classmethod
    def from_config(cls, perf) -> PerformanceTargets:
        return cls(
            cpu_percent_max=float(perf.cpu_percent_max),
            rss_mb_max=float(perf.rss_mb_max),
            jank_percent_max=float(perf.jank_percent_max),
        )


@dataclass(frozen=True)
class BudgetStatus:
    cpu_percent: float
    rss_mb: float
    jank_percentage: float
    average_latency_ms: float
    overloaded: bool
    warning: str | None
    recommended_compute_load: int


class ResourceSampler:
    """Samples this process and judges a snapshot against the targets.

    Warnings, most severe first: ``resource_overload`` (CPU or RSS over budget),
    ``cadence_overrun`` (cycles take longer than the pacing period) and
    ``jank_over_budget``. Each one recommends stepping the compute load down.
    """

    def __init__(self, targets: PerformanceTargets | None = None) -> None:
        self.targets = targets or PerformanceTargets()
        self._process = psutil.Process() if psutil is not None else None
        if self._process is not None:
            # First call only primes the CPU counter.
            self._process.cpu_percent(interval=None)

    def _usage(self) -> tuple[float, float]:
        if self._process is None:
            return 0.0, 0.0
        cpu = float(self._process.cpu_percent(interval=None))
        rss_mb = float(self._process.memory_info().rss) / (1024 * 1024)
        return cpu, rss_mb

    def _warning_for(self, snapshot: PerformanceSnapshot, overloaded: bool, target_period_ms: int | None) -> str | None:
        if overloaded:
            return "resource_overload"
        if snapshot.frame_counter <= 0:
            return None
        if target_period_ms and snapshot.average_latency_ms > target_period_ms:
            return "cadence_overrun"
        if snapshot.jank_percentage > self.targets.jank_percent_max:
            return "jank_over_budget"
        return None

    def sample(self, snapshot: PerformanceSnapshot, target_period_ms: int | None = None) -> BudgetStatus:
        cpu, rss_mb = self._usage()
        overloaded = cpu > self.targets.cpu_percent_max or rss_mb > self.targets.rss_mb_max
        warning = self._warning_for(snapshot, overloaded, target_period_ms)
        load = clamp_load(snapshot.compute_load - 1) if warning else snapshot.compute_load
        return BudgetStatus(
            cpu_percent=cpu,
            rss_mb=rss_mb,
            jank_percentage=float(snapshot.jank_percentage),
            average_latency_ms=float(snapshot.average_latency_ms),
            overloaded=overloaded,
            warning=warning,
            recommended_compute_load=load,
        )


@dataclass
class BudgetReport:
    """Peak usage and warning tallies across one measurement run."""

    targets: PerformanceTargets
    samples: int = 0
    cpu_percent_peak: float = 0.0
    rss_mb_peak: float = 0.0
    warnings: dict[str, int] = field(default_factory=dict)
    last: BudgetStatus | None = None

    def add(self, status: BudgetStatus) -> None:
        self.samples += 1
        self.cpu_percent_peak = max(self.cpu_percent_peak, status.cpu_percent)
        self.rss_mb_peak = max(self.rss_mb_peak, status.rss_mb)
        if status.warning:
            self.warnings[status.warning] = self.warnings.get(status.warning, 0) + 1
        self.last = status

    def checks(self, final: PerformanceSnapshot) -> dict[str, bool]:
        return {
            "cpu": self.cpu_percent_peak <= self.targets.cpu_percent_max,
            "memory": self.rss_mb_peak <= self.targets.rss_mb_max,
            "jank": final.jank_percentage <= self.targets.jank_percent_max,
        }

    def passed(self, final: PerformanceSnapshot) -> bool:
        return all(self.checks(final).values())

    def to_dict(self, final: PerformanceSnapshot) -> dict[str, Any]:
        return {
            "targets": asdict(self.targets),
            "samples": self.samples,
            "max_observed": {
                "cpu_percent": self.cpu_percent_peak,
                "rss_mb": self.rss_mb_peak,
                "jank_percentage": final.jank_percentage,
            },
            "warnings": dict(self.warnings),
            "recommended_compute_load": (
                self.last.recommended_compute_load if self.last is not None else final.compute_load
            ),
            "pass": self.passed(final),
            "checks": self.checks(final),
        }
