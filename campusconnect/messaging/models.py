"""Data models for the messaging blueprint."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Union

from campusconnect.errors import EmptyMessageError


class MessageKind(str, Enum):
    """Payload variants a message can carry."""

    TEXT = "text"
    IMAGE = "image"
    SHARED_POST = "shared_post"


@dataclass(frozen=True)
class TextPayload:
    """A plain text message."""

    text: str
    kind: ClassVar[MessageKind] = MessageKind.TEXT

    def __post_init__(self) -> None:
        if not self.text or not self.text.strip():
            raise EmptyMessageError()

    def to_fields(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "text": self.text}


@dataclass(frozen=True)
class ImagePayload:
    """An image attachment with an optional caption."""

    image_ref: str
    image_url: str = ""
    text: str = ""
    kind: ClassVar[MessageKind] = MessageKind.IMAGE

    def __post_init__(self) -> None:
        if not self.image_ref:
            raise EmptyMessageError()

    def to_fields(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "text": self.text,
            "imagePath": self.image_ref,
            "imageUrl": self.image_url,
        }


@dataclass(frozen=True)
class SharedPostPayload:
    """A reference to a feed post shared into a conversation."""

    post_id: str
    author_id: str = ""
    author_name: str = ""
    content: str = ""
    image_url: str = ""
    kind: ClassVar[MessageKind] = MessageKind.SHARED_POST

    def __post_init__(self) -> None:
        if not self.post_id:
            raise EmptyMessageError()

    def to_fields(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "sharedPost": {
                "id": self.post_id,
                "authorId": self.author_id,
                "authorName": self.author_name,
                "content": self.content,
                "imageUrl": self.image_url,
            },
        }


Payload = Union[TextPayload, ImagePayload, SharedPostPayload]


def build_payload(
    text: str | None = None,
    image_ref: str | None = None,
    image_url: str | None = None,
    shared_post: dict[str, Any] | None = None,
) -> Payload:
    """Pick the payload variant for a send request.

    Raises EmptyMessageError when there is nothing to send.
    """
    if shared_post:
        return SharedPostPayload(
            post_id=shared_post.get("id", ""),
            author_id=shared_post.get("authorId", ""),
            author_name=shared_post.get("authorName", ""),
            content=shared_post.get("content", ""),
            image_url=shared_post.get("imageUrl", ""),
        )
    if image_ref:
        return ImagePayload(image_ref, image_url or "", text or "")
    return TextPayload(text or "")


def payload_from_fields(data: dict[str, Any]) -> Payload | None:
    """Rebuild the payload stored on a message document.

    Older documents carry no ``kind``; they hold ``text`` and an
    ``imageUrl`` that may be empty.
    """
    shared = data.get("sharedPost")
    kind = data.get("kind")
    try:
        if kind == MessageKind.SHARED_POST.value or (kind is None and shared):
            return build_payload(shared_post=shared or {})
        image_ref = data.get("imagePath") or data.get("imageUrl")
        if kind == MessageKind.IMAGE.value or (kind is None and image_ref):
            return ImagePayload(
                image_ref or "", data.get("imageUrl") or "", data.get("text") or ""
            )
        return TextPayload(data.get("text") or "")
    except EmptyMessageError:
        return None


@dataclass
class Message:
    """A message in a conversation."""

    id: str
    conversation_id: str
    sender_id: str
    payload: Payload
    sender_display_name: str = ""
    sender_photo_url: str = ""
    client_seq: int = 0
    created_at: datetime | None = None
    pending: bool = field(default=False, compare=False)

    @property
    def text(self) -> str:
        return getattr(self.payload, "text", "")

    @property
    def image_ref(self) -> str | None:
        if isinstance(self.payload, ImagePayload):
            return self.payload.image_ref
        return None

    @classmethod
    def from_snapshot(cls, conversation_id: str, doc: Any) -> Message | None:
        """Build a message from a Firestore document snapshot."""
        data = doc.to_dict() or {}
        payload = payload_from_fields(data)
        if payload is None:
            return None
        created_at = data.get("createdAt")
        return cls(
            id=doc.id,
            conversation_id=conversation_id,
            sender_id=data.get("senderId") or data.get("uid", ""),
            sender_display_name=data.get("senderDisplayName")
            or data.get("displayName", ""),
            sender_photo_url=data.get("senderPhotoURL") or data.get("photoURL", ""),
            payload=payload,
            client_seq=int(data.get("clientSeq") or 0),
            created_at=created_at if isinstance(created_at, datetime) else None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON responses."""
        data: dict[str, Any] = {
            "id": self.id,
            "conversationId": self.conversation_id,
            "senderId": self.sender_id,
            "senderDisplayName": self.sender_display_name,
            "senderPhotoURL": self.sender_photo_url,
            "clientSeq": self.client_seq,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "pending": self.pending,
        }
        data.update(self.payload.to_fields())
        return data
