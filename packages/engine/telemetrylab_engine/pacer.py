"""Frame-paced measurement loop with power-save adaptation and cooperative cancellation."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Protocol

from .metrics import HISTORY_SIZE, JANK_THRESHOLD_MS, MetricsAggregator
from .models import PerformanceSnapshot, clamp_load
from .state import StateChannel
from .workload import WorkloadGenerator

logger = logging.getLogger("telemetrylab.engine")


class PowerSignal(Protocol):
    def is_power_save_mode_active(self) -> bool: ...


class Keeper(Protocol):
    def engage(self, intensity_hint: int) -> None: ...

    def release(self) -> None: ...


class Workload(Protocol):
    def run(self, intensity: int) -> None: ...


class PacerState(str, Enum):
    IDLE = "Idle"
    RUNNING = "Running"


@dataclass(frozen=True)
class PacerSettings:
    normal_rate_hz: int = 20
    power_save_rate_hz: int = 10
    publish_every: int = 5
    jank_threshold_ms: int = JANK_THRESHOLD_MS
    history_size: int = HISTORY_SIZE

    def target_period_ms(self, power_save: bool) -> int:
        rate = self.power_save_rate_hz if power_save else self.normal_rate_hz
        return 1000 // max(1, rate)


def effective_intensity(compute_load: int, power_save: bool) -> int:
    load = clamp_load(compute_load)
    if power_save:
        return max(1, load - 1)
    return load


class FramePacer:
    """Drives workload cycles on a background thread and publishes into a StateChannel.

    Only the channel and the per-run cancellation event cross threads. Metrics live
    in the loop thread and are rebuilt on every start().
    """

    def __init__(
        self,
        channel: StateChannel,
        workload: Workload | None = None,
        power_signal: PowerSignal | None = None,
        keeper: Keeper | None = None,
        settings: PacerSettings | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.channel = channel
        self.settings = settings or PacerSettings()
        self._workload = workload or WorkloadGenerator()
        self._power_signal = power_signal
        self._keeper = keeper
        self._clock = clock

        # start/stop are serialised by _control; _lock only guards quick reads.
        self._control = threading.RLock()
        self._lock = threading.RLock()
        self._cancel: threading.Event | None = None
        self._thread: threading.Thread | None = None
        self._events: list[dict[str, Any]] = []
        self._power_failures = 0

    @property
    def state(self) -> PacerState:
        with self._lock:
            return PacerState.RUNNING if self._cancel is not None else PacerState.IDLE

    @property
    def is_running(self) -> bool:
        return self.state == PacerState.RUNNING

    def recent_events(self, limit: int = 200) -> list[dict[str, Any]]:
        with self._lock:
            return self._events[-limit:]

    def _log_event(self, event: str, **fields: Any) -> None:
        row = {
            "ts_utc": datetime.now(timezone.utc).isoformat(),
            "event": event,
            "state": self.state.value,
        }
        row.update(fields)
        with self._lock:
            self._events.append(row)
            if len(self._events) > 1000:
                self._events = self._events[-1000:]

    def set_compute_load(self, value: int) -> int:
        load = clamp_load(value)
        self.channel.update(lambda s: s if s.compute_load == load else replace(s, compute_load=load))
        return load

    def start(self) -> None:
        with self._control:
            with self._lock:
                if self._cancel is not None:
                    return
                cancel = threading.Event()
                self._cancel = cancel
                self._power_failures = 0
            metrics = MetricsAggregator(
                jank_threshold_ms=self.settings.jank_threshold_ms,
                history_size=self.settings.history_size,
            )

            snapshot = self.channel.update(
                lambda s: replace(
                    s,
                    is_running=True,
                    current_latency_ms=0,
                    average_latency_ms=0.0,
                    jank_percentage=0.0,
                    jank_frame_count=0,
                    frame_counter=0,
                    latency_history=(),
                )
            )
            self._engage_keeper(snapshot.compute_load)

            thread = threading.Thread(
                target=self._run,
                args=(cancel, metrics),
                name="telemetrylab-pacer",
                daemon=True,
            )
            with self._lock:
                self._thread = thread
            thread.start()
            self._log_event("run_start", compute_load=snapshot.compute_load)
            logger.info(f"pacer started compute_load={snapshot.compute_load}", extra={"event": "pacer_start"})

    def stop(self) -> None:
        with self._control:
            with self._lock:
                cancel = self._cancel
                if cancel is None:
                    return
                cancel.set()
                self._cancel = None
            self.channel.update(lambda s: replace(s, is_running=False) if s.is_running else s)
            self._release_keeper()
            self._log_event("run_stop")
            logger.info("pacer stopped", extra={"event": "pacer_stop"})

    def join(self, timeout: float | None = None) -> bool:
        with self._lock:
            thread = self._thread
        if thread is None or thread is threading.current_thread():
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def shutdown(self, timeout: float | None = 1.0) -> bool:
        self.stop()
        return self.join(timeout)

    def _engage_keeper(self, intensity_hint: int) -> None:
        if self._keeper is None:
            return
        try:
            self._keeper.engage(intensity_hint)
        except Exception as exc:
            logger.warning(f"background keeper engage failed: {exc}", extra={"event": "keeper_engage_error"})
            self._log_event("keeper_engage_error", error=str(exc))

    def _release_keeper(self) -> None:
        if self._keeper is None:
            return
        try:
            self._keeper.release()
        except Exception as exc:
            logger.warning(f"background keeper release failed: {exc}", extra={"event": "keeper_release_error"})
            self._log_event("keeper_release_error", error=str(exc))

    def _query_power_save(self) -> bool:
        if self._power_signal is None:
            return False
        try:
            return bool(self._power_signal.is_power_save_mode_active())
        except Exception as exc:
            self._power_failures += 1
            if self._power_failures == 1:
                logger.warning(f"power-save signal unavailable: {exc}", extra={"event": "power_signal_error"})
                self._log_event("power_signal_error", error=str(exc))
            else:
                logger.debug(f"power-save signal unavailable: {exc}")
            return False

    def _publish(self, cancel: threading.Event, fn: Callable[[PerformanceSnapshot], PerformanceSnapshot]) -> None:
        # The cancellation check runs under the channel lock, so a stopped loop
        # cannot overwrite state written by stop() or by a later run.
        self.channel.update(lambda s: s if cancel.is_set() else fn(s))

    def _run(self, cancel: threading.Event, metrics: MetricsAggregator) -> None:
        try:
            self._loop(cancel, metrics)
        except Exception:
            logger.exception("pacer loop crashed", extra={"event": "pacer_crash"})
            self._log_event("pacer_crash")
            with self._control:
                if not cancel.is_set():
                    self.stop()

    def _loop(self, cancel: threading.Event, metrics: MetricsAggregator) -> None:
        settings = self.settings
        publish_every = max(1, settings.publish_every)
        last_power_save: bool | None = None

        while not cancel.is_set():
            started = self._clock()

            power_save = self._query_power_save()
            self._publish(
                cancel,
                lambda s: s if s.is_power_save_mode == power_save else replace(s, is_power_save_mode=power_save),
            )
            if power_save != last_power_save:
                if last_power_save is not None:
                    self._log_event("power_save_changed", active=power_save)
                last_power_save = power_save

            period_ms = settings.target_period_ms(power_save)
            intensity = effective_intensity(self.channel.value.compute_load, power_save)

            self._workload.run(intensity)

            latency_ms = max(0, int((self._clock() - started) * 1000))
            cycle_index = metrics.frame_count
            cycle = metrics.record_cycle(latency_ms)

            if cycle_index % publish_every == 0:
                self._publish(
                    cancel,
                    lambda s: replace(
                        s,
                        current_latency_ms=cycle.current_latency_ms,
                        average_latency_ms=cycle.average_latency_ms,
                        jank_percentage=cycle.jank_percentage,
                        jank_frame_count=cycle.jank_frame_count,
                        frame_counter=cycle.frame_count,
                        latency_history=cycle.history,
                    ),
                )

            sleep_ms = max(0, period_ms - latency_ms)
            if sleep_ms and cancel.wait(sleep_ms / 1000.0):
                break
