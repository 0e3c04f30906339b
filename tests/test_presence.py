"""Tests for presence tracking."""

from __future__ import annotations

import unittest

from campusconnect.presence.tracker import PresenceTracker, apply_presence_event
from tests.conftest import FakeClock, FakeRealtime


class ApplyPresenceEventTestCase(unittest.TestCase):
    def test_root_put_replaces_everything(self) -> None:
        statuses = apply_presence_event(
            {"old": "online"},
            "put",
            "/",
            {"alice": {"state": "online"}, "bob": {"state": "offline"}},
        )
        self.assertEqual(statuses, {"alice": "online", "bob": "offline"})

    def test_root_patch_merges(self) -> None:
        statuses = apply_presence_event(
            {"alice": "online"}, "patch", "/", {"bob": {"state": "online"}, "alice": None}
        )
        self.assertEqual(statuses, {"bob": "online"})

    def test_child_paths(self) -> None:
        statuses = apply_presence_event({}, "put", "/alice", {"state": "online"})
        statuses = apply_presence_event(statuses, "put", "/alice/state", "offline")
        self.assertEqual(statuses, {"alice": "offline"})
        self.assertEqual(apply_presence_event(statuses, "put", "/alice", None), {})


class PresenceTrackerTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.realtime = FakeRealtime()
        self.clock = FakeClock()
        self.tracker = PresenceTracker(reference_factory=self.realtime, clock=self.clock)
        self.tracker.timeout = 60

    def _connect(self, user_id: str, connection_id: str) -> None:
        self.tracker.set_online(user_id, connection_id)
        self.tracker.set_offline_on_disconnect(user_id, connection_id)

    def test_set_online_writes_status(self) -> None:
        self._connect("alice", "c1")
        self.assertEqual(self.realtime.writes, [("/status/alice", "online")])
        self.assertEqual(self.tracker.current(), {"alice": "online"})

    def test_lost_connection_marks_offline(self) -> None:
        self._connect("alice", "c1")
        self.assertTrue(self.tracker.connection_lost("c1"))
        self.assertEqual(self.tracker.current(), {"alice": "offline"})

    def test_unarmed_connection_does_not_fire(self) -> None:
        self.tracker.set_online("alice", "c1")
        self.assertFalse(self.tracker.connection_lost("c1"))
        self.assertEqual(self.tracker.current(), {"alice": "online"})

    def test_other_live_connection_keeps_user_online(self) -> None:
        self._connect("alice", "laptop")
        self._connect("alice", "phone")
        self.assertFalse(self.tracker.connection_lost("laptop"))
        self.assertTrue(self.tracker.connection_lost("phone"))
        self.assertEqual(self.realtime.writes[-1], ("/status/alice", "offline"))

    def test_sweep_expires_silent_connections(self) -> None:
        self._connect("alice", "c1")
        self._connect("bob", "c2")
        self.clock.now = 45
        self.assertTrue(self.tracker.heartbeat("c2"))
        self.clock.now = 90

        self.assertEqual(self.tracker.sweep(), ["alice"])
        self.assertFalse(self.tracker.heartbeat("c1"))
        self.assertEqual(self.tracker.current(), {"alice": "offline", "bob": "online"})

    def test_sign_out_disarms_hook(self) -> None:
        self._connect("alice", "c1")
        self.tracker.sign_out("alice", "c1")
        self.assertFalse(self.tracker.connection_lost("c1"))
        self.assertEqual(self.realtime.writes[-1], ("/status/alice", "offline"))

    def test_write_failure_keeps_last_known_state(self) -> None:
        self._connect("alice", "c1")
        self.realtime.down = True
        with self.assertLogs("campusconnect.presence.tracker", level="WARNING"):
            self.assertFalse(self.tracker.connection_lost("c1"))
            self.assertEqual(self.tracker.current(), {"alice": "online"})

    def test_stop_fires_armed_hooks(self) -> None:
        self._connect("alice", "c1")
        self.tracker.set_online("bob", "c2")
        self.tracker.stop()
        self.assertEqual(self.tracker.current(), {"alice": "offline", "bob": "online"})

    def test_subscription_receives_changes_until_closed(self) -> None:
        self._connect("alice", "c1")
        seen: list[dict[str, str]] = []
        subscription = self.tracker.subscribe_all(seen.append)
        self._connect("bob", "c2")
        subscription.close()
        self.tracker.connection_lost("c1")

        self.assertEqual(seen, [{"alice": "online"}, {"alice": "online", "bob": "online"}])
        self.assertEqual(self.realtime.listeners, [])

    def test_sign_out_keeps_other_tab_online(self) -> None:
        self._connect("alice", "laptop")
        self._connect("alice", "phone")
        self.assertFalse(self.tracker.sign_out("alice", "laptop"))
        self.assertEqual(self.tracker.current(), {"alice": "online"})

        self.assertTrue(self.tracker.sign_out("alice", "phone"))
        self.assertEqual(self.tracker.current(), {"alice": "offline"})
