"""Data models for the notifications blueprint."""

from __future__ import annotations

from enum import Enum
from typing import Any

from campusconnect.core.types import FirestoreDocument


class NotificationType(str, Enum):
    """Social actions that produce a notification."""

    LIKE = "like"
    COMMENT = "comment"
    CONNECTION_REQUEST = "connection_request"
    CONNECTION_ACCEPT = "connection_accept"
    POST_SHARE = "post_share"
    DIRECT_MESSAGE = "direct_message"
    NEW_NOTICE = "new_notice"
    NEW_EVENT = "new_event"


DEFAULT_MESSAGES = {
    NotificationType.LIKE: "{name} liked your post",
    NotificationType.COMMENT: "{name} commented on your post",
    NotificationType.CONNECTION_REQUEST: "{name} sent you a connection request",
    NotificationType.CONNECTION_ACCEPT: "{name} accepted your connection request",
    NotificationType.POST_SHARE: "{name} shared a post with you",
    NotificationType.DIRECT_MESSAGE: "{name} sent you a message",
    NotificationType.NEW_NOTICE: "{name} posted a new notice",
    NotificationType.NEW_EVENT: "{name} posted a new event",
}


def default_message(notification_type: NotificationType, actor: dict[str, Any]) -> str:
    """Return the inbox text for a notification type."""
    name = actor.get("displayName") or "Someone"
    return DEFAULT_MESSAGES[notification_type].format(name=name)


class Notification(FirestoreDocument, total=False):
    """A notification document in a user's inbox."""

    recipientId: str
    type: str
    senderId: str
    senderName: str
    senderPhotoURL: str
    message: str
    relatedEntityId: str
    read: bool
