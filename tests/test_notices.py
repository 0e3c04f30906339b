"""Tests for notices, events and RSVPs."""

from __future__ import annotations

import datetime
import unittest

from campusconnect.errors import PermissionDenied, ValidationError
from campusconnect.notices.services import (
    attendee_counts,
    create_event,
    create_notice,
    delete_event,
    delete_notice,
    get_event,
    list_notices,
    rsvp_event,
)
from tests.conftest import add_user, inbox, make_db, patch_service_firestore

START = datetime.datetime(2024, 10, 1, 10, 0)


class NoticesTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_db()
        patch_service_firestore(self, self.db)
        self.admin = add_user(self.db, "admin", displayName="Registrar", department="CSE")
        add_user(self.db, "cse1", department="CSE")
        add_user(self.db, "ece1", department="ECE")
        add_user(self.db, "nodept")

    def test_notice_for_all_reaches_every_user_once(self) -> None:
        notice, report = create_notice(self.db, self.admin, "Holiday", "Campus closed")
        self.assertEqual(notice["departmentFrom"], "CSE")
        self.assertEqual(sorted(report.delivered), ["cse1", "ece1", "nodept"])
        for uid in ("cse1", "ece1", "nodept"):
            entries = inbox(self.db, uid)
            self.assertEqual(len(entries), 1)
            self.assertEqual(entries[0]["type"], "new_notice")
            self.assertEqual(entries[0]["relatedEntityId"], notice["id"])
        self.assertEqual(inbox(self.db, "admin"), [])

    def test_department_notice(self) -> None:
        _, report = create_notice(self.db, self.admin, "Lab hours", department="ECE")
        self.assertEqual(sorted(report.delivered), ["ece1", "nodept"])
        self.assertEqual(inbox(self.db, "cse1"), [])

    def test_notice_requires_title(self) -> None:
        with self.assertRaises(ValidationError):
            create_notice(self.db, self.admin, "  ")

    def test_pinned_notices_first(self) -> None:
        pinned, _ = create_notice(self.db, self.admin, "Pinned", pinned=True)
        latest, _ = create_notice(self.db, self.admin, "Latest")
        self.assertEqual([n["id"] for n in list_notices(self.db)], [pinned["id"], latest["id"]])

    def test_delete_notice_creator_only(self) -> None:
        notice, _ = create_notice(self.db, self.admin, "Holiday")
        with self.assertRaises(PermissionDenied):
            delete_notice(self.db, notice["id"], "cse1")
        delete_notice(self.db, notice["id"], "admin")
        self.assertEqual(list_notices(self.db), [])

    def test_event_broadcast_and_rsvp(self) -> None:
        event, report = create_event(self.db, self.admin, "Hackathon", START, department="CSE")
        self.assertEqual(sorted(report.delivered), ["cse1", "nodept"])
        self.assertEqual(inbox(self.db, "cse1")[0]["type"], "new_event")

        user = {"uid": "cse1", "displayName": "Cse1"}
        rsvp_event(self.db, event["id"], user, "interested")
        attendees = rsvp_event(self.db, event["id"], user, "going")
        self.assertEqual(len(attendees), 1)
        self.assertEqual(attendees[0]["status"], "going")
        self.assertEqual(
            attendee_counts(get_event(self.db, event["id"])),
            {"going": 1, "interested": 0, "not-going": 0},
        )

        with self.assertRaises(ValidationError):
            rsvp_event(self.db, event["id"], user, "maybe")

    def test_event_cannot_end_before_start(self) -> None:
        with self.assertRaises(ValidationError):
            create_event(
                self.db, self.admin, "Backwards", START, START - datetime.timedelta(hours=1)
            )

    def test_delete_event_creator_only(self) -> None:
        event, _ = create_event(self.db, self.admin, "Fest", START)
        with self.assertRaises(PermissionDenied):
            delete_event(self.db, event["id"], "ece1")
        delete_event(self.db, event["id"], "admin")
