"""Data models for the conversations blueprint."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from campusconnect.core.constants import (
    CHANNEL_IMAGE_PATH,
    CHANNELS_COLLECTION,
    DM_ID_SEPARATOR,
    DM_IMAGE_PATH,
    DMS_COLLECTION,
    GROUP_IMAGE_PATH,
    GROUPS_COLLECTION,
    MESSAGES_COLLECTION,
)
from campusconnect.core.types import FirestoreDocument

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client


def dm_id(user_a: str, user_b: str) -> str:
    """Return the conversation id shared by two DM participants.

    Both clients compute the same id without a lookup.
    """
    return DM_ID_SEPARATOR.join(sorted([user_a, user_b]))


class ConversationKind(str, Enum):
    """The three kinds of message containers."""

    CHANNEL = "channel"
    GROUP = "group"
    DM = "dm"


_COLLECTIONS = {
    ConversationKind.CHANNEL: CHANNELS_COLLECTION,
    ConversationKind.GROUP: GROUPS_COLLECTION,
    ConversationKind.DM: DMS_COLLECTION,
}

_IMAGE_PATHS = {
    ConversationKind.CHANNEL: CHANNEL_IMAGE_PATH,
    ConversationKind.GROUP: GROUP_IMAGE_PATH,
    ConversationKind.DM: DM_IMAGE_PATH,
}


@dataclass(frozen=True)
class Conversation:
    """An addressable message container."""

    kind: ConversationKind
    id: str

    @classmethod
    def channel(cls, channel_id: str) -> Conversation:
        return cls(ConversationKind.CHANNEL, channel_id)

    @classmethod
    def group(cls, group_id: str) -> Conversation:
        return cls(ConversationKind.GROUP, group_id)

    @classmethod
    def direct(cls, user_a: str, user_b: str) -> Conversation:
        return cls(ConversationKind.DM, dm_id(user_a, user_b))

    @classmethod
    def parse(cls, kind: str, conversation_id: str) -> Conversation:
        """Build a conversation from its URL form, e.g. ``group``/``abc``."""
        return cls(ConversationKind(kind), conversation_id)

    @property
    def collection(self) -> str:
        return _COLLECTIONS[self.kind]

    @property
    def image_path(self) -> str:
        """Storage path template for attachments in this conversation."""
        return _IMAGE_PATHS[self.kind]

    def other_participant(self, user_id: str) -> str | None:
        """Return the DM partner of ``user_id``, or None if they are not in it.

        User ids may contain the separator, so the id is matched from the
        user's end and the remainder checked against ``dm_id``.
        """
        if self.kind is not ConversationKind.DM:
            return None
        candidates = []
        if self.id.startswith(user_id + DM_ID_SEPARATOR):
            candidates.append(self.id[len(user_id) + len(DM_ID_SEPARATOR) :])
        if self.id.endswith(DM_ID_SEPARATOR + user_id):
            candidates.append(self.id[: -len(user_id) - len(DM_ID_SEPARATOR)])
        for other in candidates:
            if other and dm_id(user_id, other) == self.id:
                return other
        return None

    def document(self, db: Client) -> Any:
        return db.collection(self.collection).document(self.id)

    def messages_ref(self, db: Client) -> Any:
        return self.document(db).collection(MESSAGES_COLLECTION)


class Channel(FirestoreDocument, total=False):
    """A public channel document in Firestore."""

    name: str
    createdBy: str


class Group(FirestoreDocument, total=False):
    """A private group document in Firestore."""

    name: str
    members: list[str]
    createdBy: str
