import json
import logging
import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "core"))

from telemetrylab_core.logging_setup import LEVEL_ENV, JsonFormatter, _resolve_level, log_files


class JsonFormatterTests(unittest.TestCase):
    def _record(self, **extra) -> logging.LogRecord:
        logger = logging.getLogger("telemetrylab.engine")
        return logger.makeRecord("telemetrylab.engine", logging.INFO, __file__, 1, "pacer started", None, None, extra=extra)

    def test_line_carries_extra_fields(self):
        line = JsonFormatter().format(self._record(event="pacer_start", compute_load=3))
        payload = json.loads(line)
        self.assertEqual(payload["msg"], "pacer started")
        self.assertEqual(payload["logger"], "telemetrylab.engine")
        self.assertEqual(payload["event"], "pacer_start")
        self.assertEqual(payload["compute_load"], 3)
        self.assertNotIn("args", payload)

    def test_exception_is_included(self):
        try:
            raise RuntimeError("workload exploded")
        except RuntimeError:
            record = logging.getLogger("telemetrylab").makeRecord(
                "telemetrylab", logging.ERROR, __file__, 1, "pacer loop crashed", None, sys.exc_info()
            )
        payload = json.loads(JsonFormatter().format(record))
        self.assertIn("workload exploded", payload["exc"])


class LevelTests(unittest.TestCase):
    def test_explicit_level_wins(self):
        self.assertEqual(_resolve_level("debug"), logging.DEBUG)
        self.assertEqual(_resolve_level(logging.WARNING), logging.WARNING)

    def test_environment_override_and_fallback(self):
        with patch.dict(os.environ, {LEVEL_ENV: "warning"}):
            self.assertEqual(_resolve_level(None), logging.WARNING)
        with patch.dict(os.environ, {LEVEL_ENV: "chatty"}):
            self.assertEqual(_resolve_level(None), logging.INFO)


class LogFilesTests(unittest.TestCase):
    def test_lists_current_and_rotated_files(self):
        with tempfile.TemporaryDirectory() as tmp:
            base = Path(tmp)
            for name in ("telemetrylab.log", "telemetrylab.log.2026-10-16", "fault.log", "notes.txt"):
                (base / name).write_text("x", encoding="utf-8")
            names = [p.name for p in log_files(base)]
        self.assertEqual(names, ["fault.log", "telemetrylab.log", "telemetrylab.log.2026-10-16"])


if __name__ == "__main__":
    unittest.main()
