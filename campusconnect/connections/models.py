"""Data models for the connections blueprint."""

from __future__ import annotations

from enum import Enum
from typing import Any, TypedDict

from campusconnect.core.constants import (
    STATUS_CONNECTED,
    STATUS_REQUEST_RECEIVED,
    STATUS_REQUEST_SENT,
)


class ConnectionState(str, Enum):
    """Where a pair of users stands, seen from the first user."""

    NONE = "none"
    REQUEST_SENT = "request_sent"
    REQUEST_RECEIVED = "request_received"
    CONNECTED = "connected"


# (my record, their record) -> state, for the consistent combinations
CONSISTENT_PAIRS = {
    (None, None): ConnectionState.NONE,
    (STATUS_REQUEST_SENT, STATUS_REQUEST_RECEIVED): ConnectionState.REQUEST_SENT,
    (STATUS_REQUEST_RECEIVED, STATUS_REQUEST_SENT): ConnectionState.REQUEST_RECEIVED,
    (STATUS_CONNECTED, STATUS_CONNECTED): ConnectionState.CONNECTED,
}


class ConnectionRecord(TypedDict, total=False):
    """One side of a connection, stored under the owner's user document."""

    uid: str
    displayName: str
    photoURL: str
    status: str
    updatedAt: Any
    connectedAt: Any
