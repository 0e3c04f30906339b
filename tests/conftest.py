"""Common utilities for tests."""

from __future__ import annotations

import datetime
import itertools
import unittest.mock
from types import SimpleNamespace
from typing import Any, Iterator, Optional

from firebase_admin.exceptions import UnavailableError
from mockfirestore import CollectionReference, MockFirestore, Query
from mockfirestore.document import DocumentReference

T0 = datetime.datetime(2024, 9, 2, 9, 0, tzinfo=datetime.timezone.utc)


class MockArrayUnion:
    def __init__(self, values: list[Any]) -> None:
        self.values = values

    def __iter__(self) -> Iterator[Any]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)


class MockArrayRemove:
    def __init__(self, values: list[Any]) -> None:
        self.values = values

    def __iter__(self) -> Iterator[Any]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)


class MockFieldFilter:
    def __init__(self, field_path: str, op_string: str, value: Any) -> None:
        self.field_path = field_path
        self.op_string = op_string
        self.value = value


def patch_mockfirestore() -> None:
    """Apply monkeypatches to mockfirestore to support FieldFilter and array ops."""

    def collection_where(
        self: Any,
        field_path: Optional[str] = None,
        op_string: Optional[str] = None,
        value: Any = None,
        filter: Any = None,
    ) -> Any:  # noqa: E501
        if filter:
            return self._where(filter.field_path, filter.op_string, filter.value)
        return self._where(field_path, op_string, value)

    if not hasattr(CollectionReference, "_where"):
        CollectionReference._where = CollectionReference.where
        CollectionReference.where = collection_where

    def query_where(
        self: Any,
        field_path: Optional[str] = None,
        op_string: Optional[str] = None,
        value: Any = None,
        filter: Any = None,
    ) -> Any:
        if filter:
            return self._where(filter.field_path, filter.op_string, filter.value)
        return self._where(field_path, op_string, value)

    if not hasattr(Query, "_where"):
        Query._where = Query.where
        Query.where = query_where

    if not hasattr(DocumentReference, "_orig_update"):
        DocumentReference._orig_update = DocumentReference.update

        def patched_update(self: Any, data: dict[str, Any]) -> Any:
            current_data = self.get().to_dict() or {}
            new_data = {}
            for k, v in data.items():
                if isinstance(v, MockArrayUnion):
                    existing = current_data.get(k, [])
                    if not isinstance(existing, list):
                        existing = []
                    merged = list(existing)
                    for item in v.values:
                        if item not in merged:
                            merged.append(item)
                    new_data[k] = merged
                elif isinstance(v, MockArrayRemove):
                    existing = current_data.get(k, [])
                    if not isinstance(existing, list):
                        existing = []
                    new_data[k] = [i for i in existing if i not in v.values]
                else:
                    new_data[k] = v
            return self._orig_update(new_data)

        DocumentReference.update = patched_update


class MockBatch:
    def __init__(self, db: Any) -> None:
        self.db = db
        self.updates: list[tuple[Any, Any, bool]] = []
        self.commit = unittest.mock.MagicMock(side_effect=self._real_commit)

    def update(self, ref: Any, data: Any) -> None:
        self.updates.append((ref, data, True))

    def set(self, ref: Any, data: Any, merge: bool = False) -> None:
        self.updates.append((ref, data, merge))

    def delete(self, ref: Any) -> None:
        self.updates.append((ref, "DELETE", False))

    def _real_commit(self) -> None:
        for ref, data, merge in self.updates:
            if data == "DELETE":
                ref.delete()
            else:
                ref.set(data, merge=merge)
        self.updates = []


def make_db() -> MockFirestore:
    """Return a patched MockFirestore whose batches apply on commit."""
    patch_mockfirestore()
    db = MockFirestore()
    db.batch = unittest.mock.MagicMock(side_effect=lambda: MockBatch(db))
    return db


def make_firestore_module(db: Any = None) -> unittest.mock.MagicMock:
    """Build a stand-in for ``firebase_admin.firestore``.

    Each read of ``SERVER_TIMESTAMP`` yields a later time, like writes
    acknowledged one after another.
    """
    module = unittest.mock.MagicMock()
    module.client.return_value = db
    module.ArrayUnion = MockArrayUnion
    module.ArrayRemove = MockArrayRemove
    module.FieldFilter = MockFieldFilter
    module.Query.DESCENDING = "DESCENDING"
    module.Query.ASCENDING = "ASCENDING"
    ticks = itertools.count(1)
    type(module).SERVER_TIMESTAMP = unittest.mock.PropertyMock(
        side_effect=lambda: T0 + datetime.timedelta(seconds=next(ticks))
    )
    return module


SERVICE_MODULES = (
    "campusconnect.auth.services",
    "campusconnect.connections.services",
    "campusconnect.conversations.services",
    "campusconnect.feed.services",
    "campusconnect.messaging.services",
    "campusconnect.notices.services",
    "campusconnect.notifications.services",
)


def patch_service_firestore(
    test: unittest.TestCase, db: Any, modules: tuple[str, ...] = SERVICE_MODULES
) -> unittest.mock.MagicMock:
    """Patch ``firestore`` in the service modules for the test's duration."""
    module = make_firestore_module(db)
    for name in modules:
        patcher = unittest.mock.patch(f"{name}.firestore", new=module)
        patcher.start()
        test.addCleanup(patcher.stop)
    return module


def add_user(db: Any, uid: str, **fields: Any) -> dict[str, Any]:
    """Store a user profile and return it in the shape views pass around."""
    data = {"uid": uid, "displayName": uid.title(), "photoURL": "", **fields}
    db.collection("users").document(uid).set(data)
    return data


def inbox(db: Any, uid: str) -> list[dict[str, Any]]:
    return [
        {"id": doc.id, **doc.to_dict()}
        for doc in db.collection("users").document(uid).collection("notifications").stream()
    ]


class FakeReference:
    def __init__(self, realtime: "FakeRealtime", path: str) -> None:
        self.realtime = realtime
        self.path = path

    def set(self, value: Any) -> None:
        if self.realtime.down:
            raise UnavailableError("offline", cause=None)
        self.realtime.writes.append((self.path, value["state"]))
        user_id = self.path.rsplit("/", 1)[-1]
        self.realtime.data[user_id] = value
        for listener in self.realtime.listeners:
            listener(SimpleNamespace(event_type="put", path=f"/{user_id}", data=value))

    def get(self) -> Any:
        if self.realtime.down:
            raise UnavailableError("offline", cause=None)
        return dict(self.realtime.data)

    def listen(self, callback: Any) -> Any:
        self.realtime.listeners.append(callback)
        callback(SimpleNamespace(event_type="put", path="/", data=dict(self.realtime.data)))
        return SimpleNamespace(close=lambda: self.realtime.listeners.remove(callback))


class FakeRealtime:
    """In-memory stand-in for ``firebase_admin.db.reference``."""

    def __init__(self) -> None:
        self.data: dict[str, Any] = {}
        self.writes: list[tuple[str, str]] = []
        self.listeners: list[Any] = []
        self.down = False

    def __call__(self, path: str) -> FakeReference:
        return FakeReference(self, path)


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now
