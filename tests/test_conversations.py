"""Tests for conversation ids and group membership rules."""

from __future__ import annotations

import unittest
from unittest.mock import MagicMock

from campusconnect.conversations.models import Conversation, ConversationKind, dm_id
from campusconnect.conversations.services import (
    add_members,
    create_channel,
    create_group,
    delete_group,
    get_group,
    leave_group,
    list_channels,
    list_user_groups,
    remove_member,
)
from campusconnect.errors import NotFoundError, PermissionDenied, ValidationError
from tests.conftest import make_db, patch_service_firestore


class TestDirectMessageIds(unittest.TestCase):
    def test_dm_id_is_symmetric(self) -> None:
        self.assertEqual(dm_id("alice", "bob"), dm_id("bob", "alice"))

    def test_dm_id_scenario(self) -> None:
        self.assertEqual(dm_id("u1", "u2"), "u1_u2")
        self.assertEqual(dm_id("u2", "u1"), "u1_u2")

    def test_dm_id_with_self(self) -> None:
        self.assertEqual(dm_id("u1", "u1"), "u1_u1")

    def test_direct_conversation_participants(self) -> None:
        conversation = Conversation.direct("zed", "amy")
        self.assertIs(conversation.kind, ConversationKind.DM)
        self.assertEqual(conversation.id, "amy_zed")
        self.assertEqual(conversation.other_participant("amy"), "zed")
        self.assertEqual(conversation.other_participant("zed"), "amy")
        self.assertIsNone(conversation.other_participant("bob"))
        self.assertEqual(conversation.collection, "dms")

    def test_parse_rejects_unknown_kind(self) -> None:
        self.assertEqual(Conversation.parse("group", "g1"), Conversation.group("g1"))
        with self.assertRaises(ValueError):
            Conversation.parse("forum", "f1")

    def test_group_has_no_participants(self) -> None:
        self.assertIsNone(Conversation.group("g1").other_participant("g1"))

    def test_participants_with_separator_in_ids(self) -> None:
        conversation = Conversation.direct("user_b", "user_a")
        self.assertEqual(conversation.id, "user_a_user_b")
        self.assertEqual(conversation.other_participant("user_a"), "user_b")
        self.assertEqual(conversation.other_participant("user_b"), "user_a")
        self.assertIsNone(conversation.other_participant("user"))
        self.assertIsNone(conversation.other_participant("a_user_b"))

    def test_self_dm_partner_is_self(self) -> None:
        self.assertEqual(Conversation.direct("u1", "u1").other_participant("u1"), "u1")


class TestGroupService(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_db()
        patch_service_firestore(self, self.db)
        self.group = create_group(self.db, "admin", "  Study Group ", ["m1", "m2", "m1"])

    def test_create_group_makes_creator_admin_and_member(self) -> None:
        group = get_group(self.db, self.group["id"])
        self.assertEqual(group["name"], "Study Group")
        self.assertEqual(group["createdBy"], "admin")
        self.assertEqual(group["members"], ["admin", "m1", "m2"])

    def test_create_group_requires_name(self) -> None:
        with self.assertRaises(ValidationError):
            create_group(self.db, "admin", "   ")

    def test_only_admin_adds_members(self) -> None:
        with self.assertRaises(PermissionDenied):
            add_members(self.db, self.group["id"], "m1", ["m3"])

        added = add_members(self.db, self.group["id"], "admin", ["m2", "m3"])
        self.assertEqual(added, ["m3"])
        self.assertIn("m3", get_group(self.db, self.group["id"])["members"])

    def test_member_may_leave(self) -> None:
        leave_group(self.db, self.group["id"], "m1")
        self.assertNotIn("m1", get_group(self.db, self.group["id"])["members"])

    def test_admin_cannot_leave(self) -> None:
        with self.assertRaises(PermissionDenied):
            leave_group(self.db, self.group["id"], "admin")

    def test_member_cannot_remove_others(self) -> None:
        with self.assertRaises(PermissionDenied):
            remove_member(self.db, self.group["id"], "m1", "m2")
        with self.assertRaises(PermissionDenied):
            remove_member(self.db, self.group["id"], "m1", "admin")

    def test_admin_removes_member(self) -> None:
        remove_member(self.db, self.group["id"], "admin", "m2")
        self.assertEqual(get_group(self.db, self.group["id"])["members"], ["admin", "m1"])

    def test_remove_non_member(self) -> None:
        with self.assertRaises(NotFoundError):
            remove_member(self.db, self.group["id"], "admin", "stranger")

    def test_list_user_groups(self) -> None:
        create_group(self.db, "m1", "Other")
        self.assertEqual(len(list_user_groups(self.db, "m1")), 2)
        self.assertEqual(len(list_user_groups(self.db, "m2")), 1)

    def test_delete_group_admin_only(self) -> None:
        messages = Conversation.group(self.group["id"]).messages_ref(self.db)
        messages.document("msg1").set({"text": "hi", "imagePath": "groups/x/a.png"})
        messages.document("msg2").set({"text": "there"})
        blobs = MagicMock()

        with self.assertRaises(PermissionDenied):
            delete_group(self.db, self.group["id"], "m1", blobs)

        deleted = delete_group(self.db, self.group["id"], "admin", blobs)
        self.assertEqual(deleted, 2)
        blobs.discard.assert_any_call("groups/x/a.png")
        with self.assertRaises(NotFoundError):
            get_group(self.db, self.group["id"])


class TestChannelService(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_db()
        patch_service_firestore(self, self.db)

    def test_channels_sorted_by_name(self) -> None:
        create_channel(self.db, "u1", "random")
        create_channel(self.db, "u1", "General")
        names = [channel["name"] for channel in list_channels(self.db)]
        self.assertEqual(names, ["General", "random"])

    def test_channel_requires_name(self) -> None:
        with self.assertRaises(ValidationError):
            create_channel(self.db, "u1", "")
