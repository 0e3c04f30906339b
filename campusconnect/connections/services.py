"""Connection requests and the symmetric social graph."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore

from campusconnect.core.constants import (
    CONNECTIONS_COLLECTION,
    STATUS_CONNECTED,
    STATUS_REQUEST_RECEIVED,
    STATUS_REQUEST_SENT,
    USERS_COLLECTION,
)
from campusconnect.errors import DuplicateResourceError, NotFoundError, ValidationError
from campusconnect.notifications import services as notifications
from campusconnect.notifications.models import NotificationType

from .models import CONSISTENT_PAIRS, ConnectionRecord, ConnectionState

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client

logger = logging.getLogger(__name__)


def connection_ref(db: Client, owner_id: str, other_id: str) -> Any:
    return (
        db.collection(USERS_COLLECTION)
        .document(owner_id)
        .collection(CONNECTIONS_COLLECTION)
        .document(other_id)
    )


def _read_status(db: Client, owner_id: str, other_id: str) -> str | None:
    doc = cast("DocumentSnapshot", connection_ref(db, owner_id, other_id).get())
    if not doc.exists:
        return None
    data = doc.to_dict() or {}
    return data.get("status")


def _get_profile(db: Client, user_id: str) -> dict[str, Any]:
    doc = cast("DocumentSnapshot", db.collection(USERS_COLLECTION).document(user_id).get())
    if not doc.exists:
        raise NotFoundError("User not found.")
    data = doc.to_dict() or {}
    return {"uid": user_id, **data}


def _record(profile: dict[str, Any], status: str) -> ConnectionRecord:
    record = ConnectionRecord(
        uid=profile["uid"],
        displayName=profile.get("displayName") or "",
        photoURL=profile.get("photoURL") or "",
        status=status,
        updatedAt=firestore.SERVER_TIMESTAMP,
    )
    if status == STATUS_CONNECTED:
        record["connectedAt"] = firestore.SERVER_TIMESTAMP
    return record


def _heal_pair(db: Client, user_id: str, other_id: str, mine: Any, theirs: Any) -> ConnectionState:
    """Repair a pair left half-written by an interrupted transition."""
    logger.warning(
        f"Inconsistent connection between {user_id} and {other_id}: "
        f"{mine!r}/{theirs!r}, repairing"
    )
    batch = db.batch()
    profiles = None
    if STATUS_CONNECTED in (mine, theirs):
        try:
            profiles = _get_profile(db, user_id), _get_profile(db, other_id)
        except NotFoundError:
            profiles = None
    if profiles is not None:
        # An accept got as far as one side; finish it
        batch.set(
            connection_ref(db, user_id, other_id),
            _record(profiles[1], STATUS_CONNECTED),
        )
        batch.set(
            connection_ref(db, other_id, user_id),
            _record(profiles[0], STATUS_CONNECTED),
        )
        state = ConnectionState.CONNECTED
    else:
        batch.delete(connection_ref(db, user_id, other_id))
        batch.delete(connection_ref(db, other_id, user_id))
        state = ConnectionState.NONE
    batch.commit()
    return state


def get_connection_state(db: Client, user_id: str, other_id: str) -> ConnectionState:
    """Return where two users stand, repairing a half-applied pair."""
    mine = _read_status(db, user_id, other_id)
    theirs = _read_status(db, other_id, user_id)
    state = CONSISTENT_PAIRS.get((mine, theirs))
    if state is None:
        state = _heal_pair(db, user_id, other_id, mine, theirs)
    return state


def is_connected(db: Client, user_id: str, other_id: str) -> bool:
    return get_connection_state(db, user_id, other_id) is ConnectionState.CONNECTED


def send_request(db: Client, sender: dict[str, Any], target_id: str) -> None:
    """Send a connection request and notify the target."""
    sender_id = sender["uid"]
    if sender_id == target_id:
        raise ValidationError("You cannot connect with yourself.")

    # Checked before any read under the target
    target = _get_profile(db, target_id)
    state = get_connection_state(db, sender_id, target_id)
    if state is ConnectionState.CONNECTED:
        raise DuplicateResourceError("You are already connected.")
    if state is ConnectionState.REQUEST_SENT:
        raise DuplicateResourceError("Connection request already sent.")
    if state is ConnectionState.REQUEST_RECEIVED:
        raise DuplicateResourceError("This user has already sent you a request.")

    batch = db.batch()
    batch.set(connection_ref(db, sender_id, target_id), _record(target, STATUS_REQUEST_SENT))
    batch.set(
        connection_ref(db, target_id, sender_id),
        _record(_get_profile(db, sender_id), STATUS_REQUEST_RECEIVED),
    )
    batch.commit()
    logger.info(f"Connection request {sender_id} -> {target_id}")

    notifications.notify(
        db, target_id, sender, NotificationType.CONNECTION_REQUEST, related_entity_id=sender_id
    )


def accept_request(db: Client, accepter: dict[str, Any], requester_id: str) -> None:
    """Accept a pending request, connecting both users, and notify the requester."""
    accepter_id = accepter["uid"]
    state = get_connection_state(db, accepter_id, requester_id)
    if state is not ConnectionState.REQUEST_RECEIVED:
        raise NotFoundError("No pending connection request from this user.")

    batch = db.batch()
    batch.set(
        connection_ref(db, accepter_id, requester_id),
        _record(_get_profile(db, requester_id), STATUS_CONNECTED),
    )
    batch.set(
        connection_ref(db, requester_id, accepter_id),
        _record(_get_profile(db, accepter_id), STATUS_CONNECTED),
    )
    batch.commit()
    logger.info(f"Connection accepted {requester_id} <-> {accepter_id}")

    notifications.notify(
        db,
        requester_id,
        accepter,
        NotificationType.CONNECTION_ACCEPT,
        related_entity_id=accepter_id,
    )


def _delete_pair(db: Client, user_id: str, other_id: str) -> None:
    batch = db.batch()
    batch.delete(connection_ref(db, user_id, other_id))
    batch.delete(connection_ref(db, other_id, user_id))
    batch.commit()


def cancel_request(db: Client, user_id: str, other_id: str) -> None:
    """Withdraw a sent request or decline a received one. Nobody is notified."""
    state = get_connection_state(db, user_id, other_id)
    if state not in (ConnectionState.REQUEST_SENT, ConnectionState.REQUEST_RECEIVED):
        raise NotFoundError("No pending connection request.")
    _delete_pair(db, user_id, other_id)


def decline_request(db: Client, user_id: str, requester_id: str) -> None:
    """Decline a request the user received."""
    state = get_connection_state(db, user_id, requester_id)
    if state is not ConnectionState.REQUEST_RECEIVED:
        raise NotFoundError("No pending connection request from this user.")
    _delete_pair(db, user_id, requester_id)


def disconnect(db: Client, user_id: str, other_id: str) -> None:
    """Remove a connection from both sides."""
    state = get_connection_state(db, user_id, other_id)
    if state is not ConnectionState.CONNECTED:
        raise NotFoundError("You are not connected with this user.")
    _delete_pair(db, user_id, other_id)
    logger.info(f"Connection removed {user_id} <-> {other_id}")


def _records_with_status(db: Client, user_id: str, status: str) -> list[ConnectionRecord]:
    query = (
        db.collection(USERS_COLLECTION)
        .document(user_id)
        .collection(CONNECTIONS_COLLECTION)
        .where(filter=firestore.FieldFilter("status", "==", status))
    )
    return [
        cast(ConnectionRecord, {"uid": doc.id, **(doc.to_dict() or {})})
        for doc in query.stream()
    ]


def list_connections(db: Client, user_id: str) -> list[ConnectionRecord]:
    """Fetch the users someone is connected with."""
    return _records_with_status(db, user_id, STATUS_CONNECTED)


def list_requests(db: Client, user_id: str) -> dict[str, list[ConnectionRecord]]:
    """Fetch pending requests, split into received and sent."""
    return {
        "received": _records_with_status(db, user_id, STATUS_REQUEST_RECEIVED),
        "sent": _records_with_status(db, user_id, STATUS_REQUEST_SENT),
    }
