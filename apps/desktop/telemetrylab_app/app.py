"""Desktop app runtime, view-model, and QML integration."""

from __future__ import annotations

import os
import sys
from pathlib import Path

from PySide6.QtCore import QObject, Property, Qt, Signal, Slot
from PySide6.QtGui import QAction, QIcon
from PySide6.QtQml import QQmlApplicationEngine
from PySide6.QtWidgets import QApplication, QMenu, QSystemTrayIcon

from telemetrylab_core import (
    AppConfig,
    DiagnosticsExporter,
    build_doctor_payload,
    build_pacer,
    load_config,
    save_config,
)
from telemetrylab_core.logging_setup import configure_logging, get_logger, install_crash_hooks
from telemetrylab_engine import FramePacer, PerformanceSnapshot
from telemetrylab_platform import NullKeeper
from telemetrylab_renderer import LatencyChartRenderer, list_themes


class TrayKeeper(QObject):
    """Shows an ongoing-work notification in the system tray while a run is active.

    engage/release may be called off the GUI thread; the tray is only touched
    through queued signals.
    """

    _engaged = Signal(int)
    _released = Signal()

    def __init__(self, tray: QSystemTrayIcon, notify: bool = True) -> None:
        super().__init__()
        self._tray = tray
        self._notify = notify
        self._engaged.connect(self._on_engaged)
        self._released.connect(self._on_released)

    def engage(self, intensity_hint: int) -> None:
        self._engaged.emit(int(intensity_hint))

    def release(self) -> None:
        self._released.emit()

    @Slot(int)
    def _on_engaged(self, intensity_hint: int) -> None:
        self._tray.setToolTip(f"Telemetry Lab - computing (load {intensity_hint})")
        if self._notify:
            self._tray.showMessage(
                "Telemetry Lab",
                "Computing telemetry data...",
                QSystemTrayIcon.MessageIcon.Information,
                3000,
            )

    @Slot()
    def _on_released(self) -> None:
        self._tray.setToolTip("Telemetry Lab")


class TelemetryLabViewModel(QObject):
    snapshotChanged = Signal()
    chartUrlChanged = Signal()
    diagnosticsPathChanged = Signal()
    _snapshotArrived = Signal(object)

    def __init__(
        self,
        config: AppConfig | None = None,
        pacer: FramePacer | None = None,
        keeper=None,
    ) -> None:
        super().__init__()
        self.config = config or load_config()
        self.logger = get_logger()
        self.pacer = pacer or build_pacer(self.config, keeper=keeper or NullKeeper())
        self.chart = (
            LatencyChartRenderer(jank_threshold_ms=self.config.metrics.jank_threshold_ms)
            if LatencyChartRenderer is not None
            else None
        )

        self.diagnostics = DiagnosticsExporter()
        self.diagnostics_dir: Path | None = None

        self._snapshot: PerformanceSnapshot = self.pacer.channel.value
        self._chart_url = ""
        self._diagnostics_path = ""

        # The channel calls back on the pacer thread; the queued signal moves
        # the snapshot onto the GUI thread before any property changes.
        self._snapshotArrived.connect(self._apply_snapshot)
        self._subscription = self.pacer.channel.subscribe(self._snapshotArrived.emit, replay=False)
        self._apply_snapshot(self._snapshot, force=True)

    @Property(bool, notify=snapshotChanged)
    def running(self) -> bool:
        return self._snapshot.is_running

    @Property(int, notify=snapshotChanged)
    def computeLoad(self) -> int:
        return self._snapshot.compute_load

    @Property(str, notify=snapshotChanged)
    def currentLatencyText(self) -> str:
        return f"{self._snapshot.current_latency_ms} ms"

    @Property(str, notify=snapshotChanged)
    def averageLatencyText(self) -> str:
        return f"{self._snapshot.average_latency_ms:.2f} ms"

    @Property(str, notify=snapshotChanged)
    def jankPercentText(self) -> str:
        return f"{self._snapshot.jank_percentage:.1f}%"

    @Property(float, notify=snapshotChanged)
    def jankLevel(self) -> float:
        return max(0.0, min(1.0, self._snapshot.jank_percentage / 100.0))

    @Property(int, notify=snapshotChanged)
    def jankFrames(self) -> int:
        return self._snapshot.jank_frame_count

    @Property(int, notify=snapshotChanged)
    def frameCounter(self) -> int:
        return self._snapshot.frame_counter

    @Property(bool, notify=snapshotChanged)
    def powerSave(self) -> bool:
        return self._snapshot.is_power_save_mode

    @Property(str, notify=snapshotChanged)
    def statusText(self) -> str:
        return "Status: RUNNING" if self._snapshot.is_running else "Status: STOPPED"

    @Property(str, notify=chartUrlChanged)
    def chartUrl(self) -> str:
        return self._chart_url

    @Property(str, notify=diagnosticsPathChanged)
    def diagnosticsPath(self) -> str:
        return self._diagnostics_path

    @property
    def snapshot(self) -> PerformanceSnapshot:
        return self._snapshot

    @Slot(object)
    def _apply_snapshot(self, snapshot: PerformanceSnapshot, force: bool = False) -> None:
        previous = self._snapshot
        if snapshot is previous and not force:
            return
        self._snapshot = snapshot
        self.snapshotChanged.emit()

        if self.chart is not None and (force or snapshot.latency_history != previous.latency_history):
            theme = self.config.ui.chart_theme if self.config.ui.chart_theme in list_themes() else None
            self._chart_url = self.chart.preview_data_url(snapshot.latency_history, theme)
            self.chartUrlChanged.emit()

    @Slot()
    def startComputation(self) -> None:
        self.pacer.start()

    @Slot()
    def stopComputation(self) -> None:
        self.pacer.stop()

    @Slot(int)
    def setComputeLoad(self, load: int) -> None:
        self.config.loop.compute_load = self.pacer.set_compute_load(load)

    @Slot()
    def exportDiagnostics(self) -> None:
        # Timing the workload would skew a live run.
        doctor = build_doctor_payload(self.config, measure_workload=not self.pacer.is_running)
        zip_path = self.diagnostics.bundle(
            cfg=self.config,
            doctor_payload=doctor,
            pacer_events=self.pacer.recent_events(),
            snapshot=self.pacer.channel.value,
            output_dir=self.diagnostics_dir,
        )
        self._diagnostics_path = str(zip_path)
        self.logger.info(f"diagnostics exported to {zip_path}", extra={"event": "diagnostics_exported"})
        self.diagnosticsPathChanged.emit()

    def shutdown(self) -> None:
        self._subscription.cancel()
        if not self.pacer.shutdown(timeout=1.0):
            self.logger.warning("pacer thread still busy at shutdown", extra={"event": "pacer_join_timeout"})
        self.config.loop.compute_load = self.pacer.channel.value.compute_load
        save_config(self.config)


def run_gui() -> int:
    cfg = load_config()
    configure_logging(keep_files=cfg.diagnostics.keep_log_files)
    install_crash_hooks()
    logger = get_logger()

    os.environ.setdefault("QT_ENABLE_HIGHDPI_SCALING", "1")
    QApplication.setHighDpiScaleFactorRoundingPolicy(Qt.HighDpiScaleFactorRoundingPolicy.PassThrough)

    app = QApplication(sys.argv)
    app.setApplicationName("Telemetry Lab")
    app.setQuitOnLastWindowClosed(True)

    tray = None
    keeper = NullKeeper()
    if QSystemTrayIcon.isSystemTrayAvailable():
        tray = QSystemTrayIcon(QIcon.fromTheme("utilities-system-monitor"), app)
        tray.setToolTip("Telemetry Lab")
        keeper = TrayKeeper(tray, notify=cfg.ui.tray_notifications)

    vm = TelemetryLabViewModel(config=cfg, keeper=keeper)

    engine = QQmlApplicationEngine()
    engine.rootContext().setContextProperty("vm", vm)
    engine.load(str(Path(__file__).with_name("qml") / "Main.qml"))

    if not engine.rootObjects():
        logger.error("failed to load QML")
        vm.shutdown()
        return 1

    if tray is not None:
        menu = QMenu()

        start_action = QAction("Start", menu)
        start_action.triggered.connect(vm.startComputation)
        menu.addAction(start_action)

        stop_action = QAction("Stop", menu)
        stop_action.triggered.connect(vm.stopComputation)
        menu.addAction(stop_action)

        diagnostics_action = QAction("Export Diagnostics", menu)
        diagnostics_action.triggered.connect(vm.exportDiagnostics)
        menu.addAction(diagnostics_action)

        menu.addSeparator()
        quit_action = QAction("Quit", menu)
        quit_action.triggered.connect(app.quit)
        menu.addAction(quit_action)

        tray.setContextMenu(menu)
        tray.show()

    exit_code = app.exec()
    vm.shutdown()
    logger.info("app shutdown", extra={"event": "shutdown", "exit_code": int(exit_code)})
    return int(exit_code)
