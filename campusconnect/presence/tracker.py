"""Ephemeral online/offline tracking on the Realtime Database."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

from firebase_admin import db as rtdb
from firebase_admin.exceptions import FirebaseError
from flask import current_app

from campusconnect.core.constants import PRESENCE_OFFLINE, PRESENCE_ONLINE, STATUS_PATH

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60
DEFAULT_SWEEP_SECONDS = 15


@dataclass
class _Connection:
    user_id: str
    last_seen: float
    armed: bool = False


def apply_presence_event(
    statuses: dict[str, str], event_type: str, path: str, data: Any
) -> dict[str, str]:
    """Fold one Realtime Database event on ``/status`` into a state map."""
    statuses = dict(statuses)
    parts = [part for part in (path or "/").split("/") if part]

    if not parts:
        if event_type == "put":
            statuses = {}
        for user_id, value in (data or {}).items():
            if value is None:
                statuses.pop(user_id, None)
            elif isinstance(value, dict):
                statuses[user_id] = value.get("state", PRESENCE_OFFLINE)
        return statuses

    user_id = parts[0]
    if len(parts) == 1:
        if data is None:
            statuses.pop(user_id, None)
        elif isinstance(data, dict) and "state" in data:
            statuses[user_id] = data["state"]
    elif parts[1] == "state" and data is not None:
        statuses[user_id] = data
    return statuses


class PresenceSubscription:
    """Live ``{user_id: state}`` map delivered to a callback until closed."""

    def __init__(self, reference: Any, callback: Callable[[dict[str, str]], None]) -> None:
        self._lock = threading.Lock()
        self._callback = callback
        self._statuses: dict[str, str] = {}
        self._closed = False
        self._registration = reference.listen(self._on_event)

    def _on_event(self, event: Any) -> None:
        with self._lock:
            if self._closed:
                return
            self._statuses = apply_presence_event(
                self._statuses, event.event_type, event.path, event.data
            )
            try:
                self._callback(dict(self._statuses))
            except Exception:
                logger.exception("Presence callback failed")

    @property
    def statuses(self) -> dict[str, str]:
        with self._lock:
            return dict(self._statuses)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._registration.close()


class PresenceTracker:
    """Tracks which users are connected and mirrors it to ``/status``.

    Each session registers a connection. Arming a connection with
    ``set_offline_on_disconnect`` makes the tracker write ``offline`` when
    the connection is lost or stops sending heartbeats, unless another
    connection of the same user is still alive. Presence is advisory:
    failed writes are logged and the last known value stands.
    """

    def __init__(
        self,
        app: Any = None,
        reference_factory: Callable[[str], Any] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._reference_factory = reference_factory
        self._clock = clock
        self._lock = threading.Lock()
        self._connections: dict[str, _Connection] = {}
        self._last_known: dict[str, str] = {}
        self.timeout = DEFAULT_TIMEOUT_SECONDS
        self.sweep_interval = DEFAULT_SWEEP_SECONDS
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Any) -> None:
        self.timeout = app.config.get("PRESENCE_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)
        self.sweep_interval = app.config.get(
            "PRESENCE_SWEEP_SECONDS", DEFAULT_SWEEP_SECONDS
        )
        app.extensions["presence"] = self

    def _reference(self, path: str) -> Any:
        factory = self._reference_factory or rtdb.reference
        return factory(path)

    def _write(self, user_id: str, state: str) -> bool:
        try:
            self._reference(f"{STATUS_PATH}/{user_id}").set(
                {"state": state, "last_changed": int(time.time() * 1000)}
            )
        except (FirebaseError, ValueError) as e:
            logger.warning(f"Could not mark {user_id} {state}: {e}")
            return False
        with self._lock:
            self._last_known[user_id] = state
        return True

    def _has_live_connection(self, user_id: str) -> bool:
        return any(conn.user_id == user_id for conn in self._connections.values())

    def set_online(self, user_id: str, connection_id: str) -> bool:
        """Register the connection and mark its user online."""
        with self._lock:
            conn = self._connections.get(connection_id)
            if conn is None:
                self._connections[connection_id] = _Connection(user_id, self._clock())
            else:
                conn.last_seen = self._clock()
        return self._write(user_id, PRESENCE_ONLINE)

    def set_offline_on_disconnect(self, user_id: str, connection_id: str) -> None:
        """Arm the offline write for when this connection drops."""
        with self._lock:
            conn = self._connections.setdefault(
                connection_id, _Connection(user_id, self._clock())
            )
            conn.armed = True

    def heartbeat(self, connection_id: str) -> bool:
        """Refresh a connection. Returns False if it is unknown or expired."""
        with self._lock:
            conn = self._connections.get(connection_id)
            if conn is None:
                return False
            conn.last_seen = self._clock()
            return True

    def connection_lost(self, connection_id: str) -> bool:
        """Fire the disconnect hook of a dropped connection."""
        with self._lock:
            conn = self._connections.pop(connection_id, None)
            fire = (
                conn is not None
                and conn.armed
                and not self._has_live_connection(conn.user_id)
            )
        if fire and conn is not None:
            return self._write(conn.user_id, PRESENCE_OFFLINE)
        return False

    def sign_out(self, user_id: str, connection_id: str) -> bool:
        """Drop the connection on an explicit sign-out and disarm its hook.

        The user is marked offline unless another of their connections is
        still alive.
        """
        with self._lock:
            self._connections.pop(connection_id, None)
            if self._has_live_connection(user_id):
                return False
        return self._write(user_id, PRESENCE_OFFLINE)

    def sweep(self, now: float | None = None) -> list[str]:
        """Treat connections without a recent heartbeat as dropped.

        Returns the users that were marked offline.
        """
        now = self._clock() if now is None else now
        with self._lock:
            expired = [
                cid
                for cid, conn in self._connections.items()
                if now - conn.last_seen > self.timeout
            ]
        offline = []
        for connection_id in expired:
            with self._lock:
                conn = self._connections.get(connection_id)
            if conn is not None and self.connection_lost(connection_id):
                offline.append(conn.user_id)
        return offline

    def current(self) -> dict[str, str]:
        """Read every user's state, falling back to the last known values."""
        try:
            data = self._reference(STATUS_PATH).get() or {}
        except (FirebaseError, ValueError) as e:
            logger.warning(f"Could not read presence: {e}")
            with self._lock:
                return dict(self._last_known)
        statuses = apply_presence_event({}, "put", "/", data)
        with self._lock:
            self._last_known = dict(statuses)
        return statuses

    def subscribe_all(
        self, callback: Callable[[dict[str, str]], None]
    ) -> PresenceSubscription:
        """Deliver the full presence map to ``callback`` after every change."""
        return PresenceSubscription(self._reference(STATUS_PATH), callback)

    def _run(self) -> None:
        while not self._stop_event.wait(self.sweep_interval):
            try:
                self.sweep()
            except Exception:
                logger.exception("Presence sweep failed")

    def start(self) -> None:
        """Start the background reaper for expired connections."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="presence-reaper", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop the reaper and fire the hooks of every armed connection."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=self.sweep_interval)
            self._thread = None
        with self._lock:
            connection_ids = list(self._connections)
        for connection_id in connection_ids:
            self.connection_lost(connection_id)


def get_presence() -> PresenceTracker:
    """Return the tracker registered on the current app."""
    return current_app.extensions["presence"]
