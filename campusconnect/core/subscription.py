"""Restartable live views over Firestore queries."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

logger = logging.getLogger(__name__)


class Subscription:
    """Wrap a Firestore ``on_snapshot`` watch with a clean teardown.

    Snapshot callbacks arrive on SDK threads. Delivery happens under a
    reentrant lock and is dropped once ``stop`` has been called, so no
    callback runs after ``stop`` returns. A stopped subscription may be
    started again; snapshots from an earlier run are ignored.
    """

    def __init__(self, query_factory: Callable[[], Any]) -> None:
        self._query_factory = query_factory
        self._lock = threading.RLock()
        self._watch: Any = None
        self._callback: Callable[[Any], None] | None = None
        self._closed = True
        self._generation = 0

    @property
    def active(self) -> bool:
        """Return True while the subscription delivers snapshots."""
        return not self._closed

    def start(self, callback: Callable[[Any], None]) -> None:
        """Begin listening and hand each processed snapshot to ``callback``."""
        with self._lock:
            if not self._closed:
                raise RuntimeError("Subscription is already running.")
            self._closed = False
            self._callback = callback
            self._generation += 1
            generation = self._generation

        def on_snapshot(docs: list[Any], changes: Any, read_time: Any) -> None:
            self._deliver(generation, docs)

        watch = self._query_factory().on_snapshot(on_snapshot)
        with self._lock:
            if self._closed or generation != self._generation:
                # stop() won the race with the SDK handing back the watch
                watch.unsubscribe()
                return
            self._watch = watch

    def stop(self) -> None:
        """Tear down the watch. Safe to call more than once."""
        with self._lock:
            self._closed = True
            self._generation += 1
            self._callback = None
            watch, self._watch = self._watch, None
        if watch is not None:
            watch.unsubscribe()

    close = stop

    def _deliver(self, generation: int, docs: list[Any]) -> None:
        with self._lock:
            if self._closed or generation != self._generation:
                return
            try:
                value = self.apply_snapshot(docs)
                if self._callback is not None:
                    self._callback(value)
            except Exception:
                # Raising here would kill the SDK's watch thread
                logger.exception("Failed to deliver snapshot")

    def publish(self, value: Any) -> None:
        """Push a locally produced value to the running callback."""
        with self._lock:
            if self._closed or self._callback is None:
                return
            try:
                self._callback(value)
            except Exception:
                logger.exception("Failed to deliver local update")

    def apply_snapshot(self, docs: list[Any]) -> Any:
        """Turn a list of document snapshots into the delivered value."""
        return [{"id": doc.id, **(doc.to_dict() or {})} for doc in docs]
