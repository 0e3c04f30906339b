"""Data models for the notices blueprint."""

from __future__ import annotations

from typing import Any

from campusconnect.core.types import FirestoreDocument

NOTICE_CATEGORIES = [
    ("academic", "Academic"),
    ("exam", "Exam"),
    ("event", "Event"),
    ("admin", "Administrative"),
    ("placement", "Placement"),
    ("library", "Library"),
    ("hostel", "Hostel"),
]

NOTICE_PRIORITIES = [("low", "Low"), ("medium", "Medium"), ("high", "High")]

EVENT_CATEGORIES = [
    ("club", "Club Activity"),
    ("fest", "College Fest"),
    ("seminar", "Seminar"),
    ("workshop", "Workshop"),
    ("sports", "Sports"),
]

RSVP_STATUSES = ("going", "interested", "not-going")


class Notice(FirestoreDocument, total=False):
    """A notice board entry."""

    title: str
    content: str
    category: str
    priority: str
    departmentFrom: str
    department: str
    pinned: bool
    expiresAt: Any
    createdBy: str
    createdByName: str


class Event(FirestoreDocument, total=False):
    """A campus event."""

    title: str
    description: str
    category: str
    startDate: Any
    endDate: Any
    location: str
    department: str
    createdBy: str
    createdByName: str
    attendees: list[dict[str, Any]]
