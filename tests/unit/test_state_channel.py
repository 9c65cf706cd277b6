import sys
import threading
import unittest
from dataclasses import replace
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "engine"))

from telemetrylab_engine.models import PerformanceSnapshot
from telemetrylab_engine.state import StateChannel


class SubscriptionTests(unittest.TestCase):
    def test_subscribe_replays_current_value(self):
        channel = StateChannel(PerformanceSnapshot(compute_load=4))
        seen = []
        channel.subscribe(seen.append)
        self.assertEqual([s.compute_load for s in seen], [4])

    def test_subscribe_without_replay(self):
        channel = StateChannel()
        seen = []
        channel.subscribe(seen.append, replay=False)
        self.assertEqual(seen, [])
        channel.set(PerformanceSnapshot(frame_counter=1))
        self.assertEqual([s.frame_counter for s in seen], [1])

    def test_updates_arrive_in_order_until_cancelled(self):
        channel = StateChannel()
        seen = []
        sub = channel.subscribe(lambda s: seen.append(s.frame_counter), replay=False)
        for n in (1, 2, 3):
            channel.update(lambda s, n=n: replace(s, frame_counter=n))
        sub.cancel()
        self.assertFalse(sub.active)
        channel.update(lambda s: replace(s, frame_counter=4))
        self.assertEqual(seen, [1, 2, 3])
        self.assertEqual(channel.subscriber_count(), 0)

    def test_identity_update_publishes_nothing(self):
        channel = StateChannel()
        seen = []
        channel.subscribe(seen.append, replay=False)
        version = channel.version
        channel.update(lambda s: s)
        self.assertEqual(seen, [])
        self.assertEqual(channel.version, version)

    def test_failing_subscriber_does_not_block_others(self):
        channel = StateChannel()
        seen = []

        def _boom(_snapshot):
            raise RuntimeError("display went away")

        channel.subscribe(_boom, replay=False)
        channel.subscribe(seen.append, replay=False)
        with self.assertLogs("telemetrylab.engine", level="ERROR"):
            channel.set(PerformanceSnapshot(frame_counter=9))
        self.assertEqual(seen[-1].frame_counter, 9)
        self.assertEqual(channel.value.frame_counter, 9)

    def test_concurrent_writers_are_atomic_and_ordered(self):
        channel = StateChannel()
        seen = []
        channel.subscribe(lambda s: seen.append(s.frame_counter), replay=False)

        def _writer():
            for _ in range(250):
                channel.update(lambda s: replace(s, frame_counter=s.frame_counter + 1))

        threads = [threading.Thread(target=_writer) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(channel.value.frame_counter, 1000)
        self.assertEqual(seen, list(range(1, 1001)))

    def test_subscriber_may_write_back_into_the_channel(self):
        channel = StateChannel()
        seen = []

        def _follow_up(snapshot):
            seen.append(snapshot.frame_counter)
            if snapshot.frame_counter == 1:
                channel.update(lambda s: replace(s, frame_counter=2))

        channel.subscribe(_follow_up, replay=False)
        channel.set(PerformanceSnapshot(frame_counter=1))
        self.assertEqual(seen, [1, 2])
        self.assertEqual(channel.value.frame_counter, 2)

    def test_busy_subscriber_does_not_block_other_writers(self):
        channel = StateChannel()
        entered = threading.Event()
        release = threading.Event()
        self.addCleanup(release.set)
        seen = []

        def _slow(snapshot):
            seen.append(snapshot.frame_counter)
            if snapshot.frame_counter == 1:
                entered.set()
                release.wait(5.0)

        channel.subscribe(_slow, replay=False)
        writer = threading.Thread(target=channel.set, args=(PerformanceSnapshot(frame_counter=1),))
        writer.start()
        self.assertTrue(entered.wait(2.0))

        done = threading.Event()

        def _second_write():
            channel.set(PerformanceSnapshot(frame_counter=2))
            done.set()

        other = threading.Thread(target=_second_write)
        other.start()
        self.assertTrue(done.wait(1.0))
        self.assertEqual(channel.value.frame_counter, 2)

        release.set()
        writer.join(2.0)
        other.join(2.0)
        self.assertEqual(seen, [1, 2])


class ObserverTests(unittest.TestCase):
    def test_first_wait_returns_current_value(self):
        channel = StateChannel(PerformanceSnapshot(compute_load=3))
        observer = channel.observe()
        snap = observer.wait_next(timeout=0.1)
        self.assertIsNotNone(snap)
        self.assertEqual(snap.compute_load, 3)

    def test_wait_times_out_without_new_value(self):
        channel = StateChannel()
        observer = channel.observe()
        observer.latest()
        self.assertIsNone(observer.wait_next(timeout=0.02))

    def test_wait_wakes_on_publish_from_other_thread(self):
        channel = StateChannel()
        observer = channel.observe()
        observer.latest()
        timer = threading.Timer(0.02, lambda: channel.set(PerformanceSnapshot(frame_counter=5)))
        timer.start()
        try:
            snap = observer.wait_next(timeout=2.0)
        finally:
            timer.join()
        self.assertEqual(snap.frame_counter, 5)

    def test_observer_sees_only_latest_of_a_burst(self):
        channel = StateChannel()
        observer = channel.observe()
        observer.latest()
        for n in (1, 2, 3):
            channel.set(PerformanceSnapshot(frame_counter=n))
        self.assertEqual(observer.wait_next(timeout=0.1).frame_counter, 3)
        self.assertIsNone(observer.wait_next(timeout=0.01))

    def test_independent_observers(self):
        channel = StateChannel()
        a = channel.observe()
        b = channel.observe()
        a.latest()
        channel.set(PerformanceSnapshot(frame_counter=1))
        self.assertEqual(a.wait_next(timeout=0.1).frame_counter, 1)
        self.assertEqual(b.wait_next(timeout=0.1).frame_counter, 1)


class SnapshotModelTests(unittest.TestCase):
    def test_to_dict_is_json_ready(self):
        snap = PerformanceSnapshot(latency_history=(1, 2))
        data = snap.to_dict()
        self.assertEqual(data["latency_history"], [1, 2])
        self.assertEqual(data["compute_load"], 2)
        self.assertFalse(data["is_running"])


if __name__ == "__main__":
    unittest.main()
