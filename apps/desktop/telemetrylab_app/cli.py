"""CLI entrypoints for the Telemetry Lab desktop app, headless runs, benchmarks, and diagnostics."""

from __future__ import annotations

import argparse
import json
import time
from pathlib import Path

from telemetrylab_core import (
    BudgetReport,
    DiagnosticsExporter,
    PerformanceTargets,
    ResourceSampler,
    build_doctor_payload,
    build_pacer,
    load_config,
)
from telemetrylab_core.config import POWER_SOURCES, AppConfig
from telemetrylab_core.logging_setup import configure_logging
from telemetrylab_engine import FramePacer, WorkloadGenerator, clamp_load
from telemetrylab_platform import LoggingKeeper


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, sort_keys=True, default=str))


def _configured_pacer(args: argparse.Namespace) -> tuple[AppConfig, FramePacer]:
    cfg = load_config()
    if getattr(args, "load", None) is not None:
        cfg.loop.compute_load = clamp_load(args.load)
    if getattr(args, "power", None):
        cfg.power.source = args.power
    return cfg, build_pacer(cfg, keeper=LoggingKeeper())


def cmd_run(_args: argparse.Namespace) -> int:
    from .app import run_gui

    return run_gui()


def cmd_watch(args: argparse.Namespace) -> int:
    cfg, pacer = _configured_pacer(args)
    observer = pacer.channel.observe()
    pacer.start()
    deadline = time.monotonic() + max(0.0, args.seconds)
    try:
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            snap = observer.wait_next(timeout=remaining)
            if snap is not None:
                print(json.dumps(snap.to_dict(), sort_keys=True), flush=True)
    except KeyboardInterrupt:
        pass
    finally:
        pacer.shutdown(timeout=2.0)
    print(json.dumps(pacer.channel.value.to_dict(), sort_keys=True), flush=True)

    if args.export:
        out_dir = Path(args.out_dir).expanduser().resolve() if args.out_dir else None
        bundle = DiagnosticsExporter().bundle(
            cfg=cfg,
            doctor_payload=build_doctor_payload(cfg, measure_workload=False),
            pacer_events=pacer.recent_events(),
            snapshot=pacer.channel.value,
            output_dir=out_dir,
        )
        print(json.dumps({"diagnostics_bundle": str(bundle)}), flush=True)
    return 0


def cmd_bench(args: argparse.Namespace) -> int:
    cfg, pacer = _configured_pacer(args)
    profile = WorkloadGenerator().profile(repeats=args.repeats)

    sampler = ResourceSampler(PerformanceTargets.from_config(cfg.performance))
    report = BudgetReport(sampler.targets)
    observer = pacer.channel.observe()

    start = time.perf_counter()
    deadline = time.monotonic() + max(0.0, args.seconds)
    pacer.start()
    try:
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            snap = observer.wait_next(timeout=remaining)
            if snap is not None and snap.frame_counter > 0:
                period = pacer.settings.target_period_ms(snap.is_power_save_mode)
                report.add(sampler.sample(snap, target_period_ms=period))
    finally:
        pacer.shutdown(timeout=2.0)

    elapsed = max(time.perf_counter() - start, 1e-9)
    final = pacer.channel.value
    power_changes = [e for e in pacer.recent_events() if e["event"] == "power_save_changed"]

    _print_json(
        {
            "seconds": args.seconds,
            "compute_load": final.compute_load,
            "power_source": cfg.power.source,
            "workload_ms_by_intensity": {str(k): v for k, v in profile.items()},
            "cycles": final.frame_counter,
            "cycles_per_s": final.frame_counter / elapsed,
            "average_latency_ms": final.average_latency_ms,
            "jank_percentage": final.jank_percentage,
            "jank_frame_count": final.jank_frame_count,
            "power_save_seen": bool(power_changes) or final.is_power_save_mode,
            "budget": report.to_dict(final),
        }
    )
    return 0 if report.passed(final) else 2


def cmd_doctor(args: argparse.Namespace) -> int:
    cfg = load_config()
    payload = build_doctor_payload(cfg, measure_workload=not args.skip_workload)

    if args.export:
        exporter = DiagnosticsExporter()
        out_dir = Path(args.out_dir).expanduser().resolve() if args.out_dir else None
        bundle = exporter.bundle(cfg=cfg, doctor_payload=payload, pacer_events=[], output_dir=out_dir)
        payload["diagnostics_bundle"] = str(bundle)

    _print_json(payload)
    return 0


def _add_run_options(cmd: argparse.ArgumentParser, seconds: int) -> None:
    cmd.add_argument("--seconds", type=float, default=seconds)
    cmd.add_argument("--load", type=int, default=None, help="Compute load 1-5 (clamped)")
    cmd.add_argument("--power", choices=list(POWER_SOURCES), default=None, help="Power-save signal source override")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="telemetrylab", description="Telemetry Lab desktop app and tools")
    sub = parser.add_subparsers(dest="command", required=True)

    run_cmd = sub.add_parser("run", help="Run desktop app")
    run_cmd.set_defaults(func=cmd_run)

    watch_cmd = sub.add_parser("watch", help="Run the measurement loop headless and print snapshots as JSON lines")
    _add_run_options(watch_cmd, seconds=10)
    watch_cmd.add_argument("--export", action="store_true", help="Write a diagnostics bundle with this run's pacer events")
    watch_cmd.add_argument("--out-dir", default=None, help="Optional output directory for the diagnostics bundle")
    watch_cmd.set_defaults(func=cmd_watch)

    bench_cmd = sub.add_parser(
        "bench",
        help="Profile the workload and check the resource budget",
        description=(
            "Profile the workload per compute load, then run the loop and check the resource budget. "
            "The vectorised workload takes a few ms per cycle on desktop CPUs, so jank stays near 0% "
            "unless the host is slow or busy."
        ),
    )
    _add_run_options(bench_cmd, seconds=15)
    bench_cmd.add_argument("--repeats", type=int, default=5, help="Workload profiling repeats per intensity")
    bench_cmd.set_defaults(func=cmd_bench)

    doctor_cmd = sub.add_parser("doctor", help="Print platform and power-signal diagnostics")
    doctor_cmd.add_argument("--export", action="store_true", help="Export offline diagnostics bundle")
    doctor_cmd.add_argument("--out-dir", default=None, help="Optional output directory for diagnostics bundle")
    doctor_cmd.add_argument("--skip-workload", action="store_true", help="Skip timing the workload")
    doctor_cmd.set_defaults(func=cmd_doctor)

    return parser


def main(argv: list[str] | None = None) -> int:
    configure_logging(console=False)
    parser = build_parser()
    args = parser.parse_args(argv)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
