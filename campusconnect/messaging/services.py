"""Service layer for appending, reading and deleting messages."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from firebase_admin import firestore
from google.api_core.exceptions import GoogleAPICallError

from campusconnect.conversations.models import Conversation, ConversationKind
from campusconnect.conversations.services import (
    can_access_group,
    get_group,
    is_group_admin,
)
from campusconnect.errors import NotFoundError, PermissionDenied, TransientUnavailable
from campusconnect.notifications import services as notifications
from campusconnect.notifications.models import NotificationType
from campusconnect.storage import attachment_path

from .models import ImagePayload, Message, Payload
from .stream import MessageStream, client_clock, order_messages

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

    from campusconnect.storage import BlobStore

logger = logging.getLogger(__name__)


class MessageService:
    """Service class for message stream operations."""

    @staticmethod
    def authorize_post(db: Client, conversation: Conversation, sender_id: str) -> None:
        """Raise PermissionDenied if the sender may not post here."""
        if conversation.kind is ConversationKind.GROUP:
            group = get_group(db, conversation.id)
            if not can_access_group(sender_id, group):
                raise PermissionDenied("You are not a member of this group.")
        elif conversation.kind is ConversationKind.DM:
            if conversation.other_participant(sender_id) is None:
                raise PermissionDenied("You are not part of this conversation.")

    @staticmethod
    def append(
        db: Client,
        conversation: Conversation,
        sender: dict[str, Any],
        payload: Payload,
        client_seq: int | None = None,
        message_ref: Any = None,
        notify_recipient: bool = True,
    ) -> Message:
        """Write a message to a conversation and return it.

        ``createdAt`` is assigned by the server, so the returned message
        has no timestamp until a snapshot confirms it. DM recipients get a
        notification unless ``notify_recipient`` is False.
        """
        sender_id = sender["uid"]
        MessageService.authorize_post(db, conversation, sender_id)

        if client_seq is None:
            client_seq = client_clock.next()
        if message_ref is None:
            message_ref = conversation.messages_ref(db).document()

        message = Message(
            id=message_ref.id,
            conversation_id=conversation.id,
            sender_id=sender_id,
            sender_display_name=sender.get("displayName") or "",
            sender_photo_url=sender.get("photoURL") or "",
            payload=payload,
            client_seq=client_seq,
        )
        message_ref.set(
            {
                "senderId": message.sender_id,
                "senderDisplayName": message.sender_display_name,
                "senderPhotoURL": message.sender_photo_url,
                "clientSeq": client_seq,
                "createdAt": firestore.SERVER_TIMESTAMP,
                **payload.to_fields(),
            }
        )

        if notify_recipient and conversation.kind is ConversationKind.DM:
            # The message is already written; a lost notification does not undo it
            try:
                notifications.notify(
                    db,
                    conversation.other_participant(sender_id) or "",
                    sender,
                    NotificationType.DIRECT_MESSAGE,
                    related_entity_id=conversation.id,
                )
            except GoogleAPICallError as e:
                logger.warning(f"Could not notify about message {message.id}: {e}")
        return message

    @staticmethod
    def _draft(
        conversation: Conversation,
        message_ref: Any,
        sender: dict[str, Any],
        payload: Payload,
    ) -> Message:
        return Message(
            id=message_ref.id,
            conversation_id=conversation.id,
            sender_id=sender["uid"],
            sender_display_name=sender.get("displayName") or "",
            sender_photo_url=sender.get("photoURL") or "",
            payload=payload,
            client_seq=client_clock.next(),
        )

    @staticmethod
    def send(
        db: Client,
        conversation: Conversation,
        sender: dict[str, Any],
        payload: Payload,
        blobs: BlobStore | None = None,
    ) -> Message:
        """Append a message, handing the draft back if the write fails.

        An uploaded attachment whose message was not written is discarded.
        """
        message_ref = conversation.messages_ref(db).document()
        draft = MessageService._draft(conversation, message_ref, sender, payload)
        try:
            return MessageService.append(
                db, conversation, sender, payload, draft.client_seq, message_ref
            )
        except GoogleAPICallError as e:
            logger.error(f"Error sending message to {conversation.id}: {e}")
            if blobs is not None:
                blobs.discard(draft.image_ref)
            raise TransientUnavailable(
                "Your message could not be sent. Please try again.", draft=draft
            ) from e

    @staticmethod
    def send_message(
        db: Client,
        stream: MessageStream,
        sender: dict[str, Any],
        payload: Payload,
    ) -> Message:
        """Append a message optimistically through a live stream.

        The message shows up in the stream at once. If the write fails it
        is withdrawn and the draft travels back on the raised
        TransientUnavailable so the caller can restore its input.
        """
        conversation = stream.conversation
        message_ref = conversation.messages_ref(db).document()
        draft = MessageService._draft(conversation, message_ref, sender, payload)
        stream.add_pending(draft)
        try:
            return MessageService.append(
                db, conversation, sender, payload, draft.client_seq, message_ref
            )
        except GoogleAPICallError as e:
            stream.rollback(draft.id)
            logger.error(f"Error sending message to {conversation.id}: {e}")
            raise TransientUnavailable(
                "Your message could not be sent. Please try again.", draft=draft
            ) from e
        except Exception:
            stream.rollback(draft.id)
            raise

    @staticmethod
    def upload_image(
        blobs: BlobStore,
        conversation: Conversation,
        filename: str | None,
        data: bytes,
        content_type: str | None = None,
        caption: str = "",
    ) -> ImagePayload:
        """Store an attachment and return the payload that references it."""
        path = attachment_path(
            conversation.image_path, filename, conversation_id=conversation.id
        )
        ref = blobs.upload(path, data, content_type)
        return ImagePayload(ref, blobs.get_url(ref), caption)

    @staticmethod
    def get_message(db: Client, conversation: Conversation, message_id: str) -> Message:
        """Fetch one message or raise NotFoundError."""
        doc = conversation.messages_ref(db).document(message_id).get()
        message = Message.from_snapshot(conversation.id, doc) if doc.exists else None
        if message is None:
            raise NotFoundError("Message not found.")
        return message

    @staticmethod
    def list_messages(db: Client, conversation: Conversation) -> list[Message]:
        """Read the current messages of a conversation in display order."""
        docs = conversation.messages_ref(db).order_by("createdAt").stream()
        messages = []
        for doc in docs:
            message = Message.from_snapshot(conversation.id, doc)
            if message is not None:
                messages.append(message)
        return order_messages(messages)

    @staticmethod
    def delete_message(
        db: Client,
        conversation: Conversation,
        message_id: str,
        requester_id: str,
        blobs: BlobStore | None = None,
    ) -> None:
        """Delete a message and, best-effort, its attachment.

        The sender may always delete. In groups the admin may delete any
        message. Channels and DMs are sender-only.
        """
        message = MessageService.get_message(db, conversation, message_id)

        allowed = message.sender_id == requester_id
        if not allowed and conversation.kind is ConversationKind.GROUP:
            allowed = is_group_admin(requester_id, get_group(db, conversation.id))
        if not allowed:
            logger.warning(
                f"User {requester_id} may not delete message {message_id} "
                f"in {conversation.id}"
            )
            raise PermissionDenied("You cannot delete this message.")

        conversation.messages_ref(db).document(message_id).delete()
        if message.image_ref and blobs is not None:
            blobs.discard(message.image_ref)
