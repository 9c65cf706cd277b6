"""Background-execution keepers bracketing a measurement run."""

from __future__ import annotations

import logging

logger = logging.getLogger("telemetrylab.platform")


class NullKeeper:
    """Does nothing; a headless process needs no help staying alive."""

    def engage(self, intensity_hint: int) -> None:
        return None

    def release(self) -> None:
        return None


class LoggingKeeper(NullKeeper):
    def __init__(self) -> None:
        self.engaged = False

    def engage(self, intensity_hint: int) -> None:
        self.engaged = True
        logger.info(f"background keeper engaged intensity_hint={intensity_hint}", extra={"event": "keeper_engage"})

    def release(self) -> None:
        if self.engaged:
            self.engaged = False
            logger.info("background keeper released", extra={"event": "keeper_release"})
