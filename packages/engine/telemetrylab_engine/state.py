"""Latest-value state channel with push subscriptions and conflated pull observers."""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Callable

from .models import PerformanceSnapshot

logger = logging.getLogger("telemetrylab.engine")

SnapshotCallback = Callable[[PerformanceSnapshot], None]


@dataclass
class Subscription:
    """Handle returned by StateChannel.subscribe."""

    callback_id: int
    channel: StateChannel | None = None

    @property
    def active(self) -> bool:
        return self.channel is not None

    def cancel(self) -> None:
        if self.channel is not None:
            self.channel._remove_subscriber(self.callback_id)
            self.channel = None


class SnapshotObserver:
    """Pull-style reader that only ever sees the most recent value."""

    def __init__(self, channel: StateChannel) -> None:
        self._channel = channel
        self._seen_version = -1

    def latest(self) -> PerformanceSnapshot:
        value, version = self._channel._read()
        self._seen_version = version
        return value

    def wait_next(self, timeout: float | None = None) -> PerformanceSnapshot | None:
        result = self._channel._wait_newer(self._seen_version, timeout)
        if result is None:
            return None
        value, version = result
        self._seen_version = version
        return value


class StateChannel:
    """Holds the latest snapshot and fans every write out to subscribers in write order.

    Callbacks never run under a channel lock. Writes queue their delivery, and
    whichever thread finds the queue idle drains it, so a callback may call back
    into the channel or into code that writes to it without blocking other writers.
    """

    def __init__(self, initial: PerformanceSnapshot | None = None) -> None:
        self._value = initial or PerformanceSnapshot()
        self._version = 0
        self._lock = threading.Lock()
        self._changed = threading.Condition(self._lock)
        self._subscribers: dict[int, SnapshotCallback] = {}
        self._next_id = 0
        self._pending: deque[tuple[PerformanceSnapshot, tuple[int, ...]]] = deque()
        self._draining = False

    @property
    def value(self) -> PerformanceSnapshot:
        with self._lock:
            return self._value

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    def set(self, snapshot: PerformanceSnapshot) -> PerformanceSnapshot:
        return self.update(lambda _current: snapshot)

    def update(self, fn: Callable[[PerformanceSnapshot], PerformanceSnapshot]) -> PerformanceSnapshot:
        """Apply ``fn`` atomically; returning the current value unchanged publishes nothing."""
        with self._lock:
            current = self._value
            new = fn(current)
            if new is current:
                return current
            self._value = new
            self._version += 1
            self._changed.notify_all()
            self._pending.append((new, tuple(self._subscribers)))
            drain = self._claim_drain()
        if drain:
            self._drain()
        return new

    def subscribe(self, callback: SnapshotCallback, replay: bool = True) -> Subscription:
        with self._lock:
            callback_id = self._next_id
            self._next_id += 1
            self._subscribers[callback_id] = callback
            drain = False
            if replay:
                self._pending.append((self._value, (callback_id,)))
                drain = self._claim_drain()
        if drain:
            self._drain()
        return Subscription(callback_id=callback_id, channel=self)

    def observe(self) -> SnapshotObserver:
        return SnapshotObserver(self)

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def _remove_subscriber(self, callback_id: int) -> None:
        with self._lock:
            self._subscribers.pop(callback_id, None)

    def _read(self) -> tuple[PerformanceSnapshot, int]:
        with self._lock:
            return self._value, self._version

    def _wait_newer(self, seen_version: int, timeout: float | None) -> tuple[PerformanceSnapshot, int] | None:
        with self._changed:
            if not self._changed.wait_for(lambda: self._version > seen_version, timeout=timeout):
                return None
            return self._value, self._version

    def _claim_drain(self) -> bool:
        # Caller holds _lock.
        if self._draining:
            return False
        self._draining = True
        return True

    def _drain(self) -> None:
        try:
            while True:
                with self._lock:
                    if not self._pending:
                        self._draining = False
                        return
                    snapshot, ids = self._pending.popleft()
                    callbacks = [self._subscribers[i] for i in ids if i in self._subscribers]
                for callback in callbacks:
                    self._deliver(callback, snapshot)
        except BaseException:
            with self._lock:
                self._draining = False
            raise

    @staticmethod
    def _deliver(callback: SnapshotCallback, snapshot: PerformanceSnapshot) -> None:
        try:
            callback(snapshot)
        except Exception:
            logger.exception("snapshot subscriber failed", extra={"event": "subscriber_error"})
