"""Per-user notification inboxes."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore

from campusconnect.core.constants import NOTIFICATIONS_COLLECTION, USERS_COLLECTION
from campusconnect.core.subscription import Subscription
from campusconnect.errors import NotFoundError

from .models import Notification, NotificationType, default_message

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

logger = logging.getLogger(__name__)


def inbox_ref(db: Client, recipient_id: str) -> Any:
    """Return the notifications collection of a user."""
    return (
        db.collection(USERS_COLLECTION)
        .document(recipient_id)
        .collection(NOTIFICATIONS_COLLECTION)
    )


def notify(
    db: Client,
    recipient_id: str,
    actor: dict[str, Any],
    notification_type: NotificationType,
    related_entity_id: str | None = None,
    message: str | None = None,
    notification_id: str | None = None,
) -> str | None:
    """Write a notification to the recipient's inbox.

    Users are never notified about their own actions; that case returns
    None without writing. A fixed ``notification_id`` makes the write an
    idempotent overwrite.
    """
    actor_id = actor.get("uid")
    if not recipient_id or recipient_id == actor_id:
        return None

    notification_type = NotificationType(notification_type)
    data: dict[str, Any] = {
        "recipientId": recipient_id,
        "type": notification_type.value,
        "senderId": actor_id,
        "senderName": actor.get("displayName") or "",
        "senderPhotoURL": actor.get("photoURL") or "",
        "message": message or default_message(notification_type, actor),
        "createdAt": firestore.SERVER_TIMESTAMP,
        "read": False,
    }
    if related_entity_id:
        data["relatedEntityId"] = related_entity_id

    notification_ref = inbox_ref(db, recipient_id).document(notification_id)
    notification_ref.set(data)
    return str(notification_ref.id)


def _get_notification_ref(db: Client, recipient_id: str, notification_id: str) -> Any:
    notification_ref = inbox_ref(db, recipient_id).document(notification_id)
    if not notification_ref.get().exists:
        raise NotFoundError("Notification not found.")
    return notification_ref


def mark_read(db: Client, recipient_id: str, notification_id: str) -> None:
    """Mark a notification as read. Marking it again changes nothing."""
    _get_notification_ref(db, recipient_id, notification_id).update({"read": True})


def mark_all_read(db: Client, recipient_id: str) -> int:
    """Mark every unread notification as read and return how many changed."""
    unread = (
        inbox_ref(db, recipient_id)
        .where(filter=firestore.FieldFilter("read", "==", False))
        .stream()
    )
    count = 0
    for doc in unread:
        doc.reference.update({"read": True})
        count += 1
    return count


def delete_notification(db: Client, recipient_id: str, notification_id: str) -> None:
    """Remove a notification from the recipient's inbox."""
    _get_notification_ref(db, recipient_id, notification_id).delete()


def _newest_first(notifications: list[Notification]) -> list[Notification]:
    def created(notification: Notification) -> float:
        value = notification.get("createdAt")
        # Unconfirmed server timestamps are the newest entries
        return value.timestamp() if isinstance(value, datetime) else float("inf")

    return sorted(notifications, key=created, reverse=True)


def list_inbox(db: Client, recipient_id: str, limit: int | None = None) -> list[Notification]:
    """Read a user's notifications, newest first."""
    query = inbox_ref(db, recipient_id).order_by(
        "createdAt", direction=firestore.Query.DESCENDING
    )
    if limit:
        query = query.limit(limit)
    return _newest_first(
        [cast(Notification, {"id": doc.id, **(doc.to_dict() or {})}) for doc in query.stream()]
    )


def unread_count(notifications: list[Notification]) -> int:
    return sum(1 for n in notifications if not n.get("read"))


class InboxSubscription(Subscription):
    """Live, newest-first view of one user's notifications."""

    def __init__(self, db: Client, recipient_id: str) -> None:
        super().__init__(
            lambda: inbox_ref(db, recipient_id).order_by(
                "createdAt", direction=firestore.Query.DESCENDING
            )
        )
        self.recipient_id = recipient_id

    def apply_snapshot(self, docs: list[Any]) -> list[Notification]:
        return _newest_first(
            [cast(Notification, {"id": doc.id, **(doc.to_dict() or {})}) for doc in docs]
        )
