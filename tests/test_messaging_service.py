"""Tests for appending and deleting messages against an in-memory store."""

from __future__ import annotations

import unittest
from unittest.mock import MagicMock, patch

from google.api_core.exceptions import ServiceUnavailable

from campusconnect.conversations.models import Conversation
from campusconnect.conversations.services import create_group
from campusconnect.errors import NotFoundError, PermissionDenied
from campusconnect.messaging.models import ImagePayload, TextPayload
from campusconnect.messaging.services import MessageService
from tests.conftest import add_user, inbox, make_db, patch_service_firestore


class MessageServiceTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_db()
        patch_service_firestore(self, self.db)
        self.alice = add_user(self.db, "alice")
        self.bob = add_user(self.db, "bob")
        self.carol = add_user(self.db, "carol")
        self.blobs = MagicMock()

    def test_direct_message_notifies_the_other_participant(self) -> None:
        conversation = Conversation.direct("bob", "alice")
        sent = MessageService.append(self.db, conversation, self.alice, TextPayload("hey"))

        self.assertEqual(sent.conversation_id, "alice_bob")
        stored = conversation.messages_ref(self.db).document(sent.id).get().to_dict()
        self.assertEqual(stored["senderId"], "alice")
        self.assertEqual(stored["kind"], "text")
        self.assertEqual(len(inbox(self.db, "bob")), 1)
        self.assertEqual(inbox(self.db, "bob")[0]["type"], "direct_message")
        self.assertEqual(inbox(self.db, "alice"), [])

    def test_direct_message_between_ids_with_separator(self) -> None:
        user_a = add_user(self.db, "user_a")
        add_user(self.db, "user_b")
        conversation = Conversation.direct("user_a", "user_b")

        MessageService.append(self.db, conversation, user_a, TextPayload("hello"))
        self.assertEqual([n["type"] for n in inbox(self.db, "user_b")], ["direct_message"])
        with self.assertRaises(PermissionDenied):
            MessageService.append(self.db, conversation, self.alice, TextPayload("hi"))

    def test_outsider_cannot_post_to_group(self) -> None:
        group = create_group(self.db, "alice", "Lab", ["bob"])
        with self.assertRaises(PermissionDenied):
            MessageService.append(
                self.db, Conversation.group(group["id"]), self.carol, TextPayload("hi")
            )

    def test_list_messages_in_send_order(self) -> None:
        conversation = Conversation.channel("general")
        first = MessageService.append(self.db, conversation, self.alice, TextPayload("one"))
        second = MessageService.append(self.db, conversation, self.bob, TextPayload("two"))
        listed = MessageService.list_messages(self.db, conversation)
        self.assertEqual([m.id for m in listed], [first.id, second.id])
        self.assertIsNotNone(listed[0].created_at)

    def test_group_admin_may_delete_member_message(self) -> None:
        group = create_group(self.db, "alice", "Lab", ["bob", "carol"])
        conversation = Conversation.group(group["id"])
        sent = MessageService.append(self.db, conversation, self.bob, TextPayload("hi"))

        with self.assertRaises(PermissionDenied):
            MessageService.delete_message(self.db, conversation, sent.id, "carol")

        MessageService.delete_message(self.db, conversation, sent.id, "alice")
        with self.assertRaises(NotFoundError):
            MessageService.get_message(self.db, conversation, sent.id)

    def test_channel_deletion_is_sender_only(self) -> None:
        conversation = Conversation.channel("general")
        sent = MessageService.append(self.db, conversation, self.bob, TextPayload("hi"))
        with self.assertRaises(PermissionDenied):
            MessageService.delete_message(self.db, conversation, sent.id, "alice")
        MessageService.delete_message(self.db, conversation, sent.id, "bob")

    def test_deleting_an_image_discards_the_blob(self) -> None:
        conversation = Conversation.direct("alice", "bob")
        payload = ImagePayload("dms/alice_bob/images/1_cat.png", "https://cdn/cat.png")
        sent = MessageService.append(self.db, conversation, self.alice, payload)

        MessageService.delete_message(self.db, conversation, sent.id, "alice", self.blobs)
        self.blobs.discard.assert_called_once_with("dms/alice_bob/images/1_cat.png")

    def test_upload_image_uses_conversation_path(self) -> None:
        self.blobs.upload.side_effect = lambda path, data, content_type: path
        self.blobs.get_url.return_value = "https://cdn/file.png"
        payload = MessageService.upload_image(
            self.blobs, Conversation.group("g1"), "my photo.png", b"png", "image/png", "caption"
        )
        self.assertTrue(payload.image_ref.startswith("groups/g1/images/"))
        self.assertTrue(payload.image_ref.endswith("my_photo.png"))
        self.assertEqual(payload.text, "caption")

    def test_lost_notification_keeps_the_message(self) -> None:
        conversation = Conversation.direct("alice", "bob")
        with patch(
            "campusconnect.messaging.services.notifications.notify",
            side_effect=ServiceUnavailable("down"),
        ):
            with self.assertLogs("campusconnect.messaging.services", level="WARNING"):
                sent = MessageService.append(
                    self.db, conversation, self.alice, TextPayload("hey")
                )
        self.assertEqual(MessageService.get_message(self.db, conversation, sent.id).text, "hey")
