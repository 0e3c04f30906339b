"""Notice board and campus events with department broadcasts."""

from __future__ import annotations

import datetime
import logging
from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore

from campusconnect.core.constants import (
    ALL_DEPARTMENTS,
    EVENTS_COLLECTION,
    NOTICES_COLLECTION,
)
from campusconnect.errors import NotFoundError, PermissionDenied, ValidationError
from campusconnect.notifications.dispatcher import BroadcastDispatcher, DispatchReport
from campusconnect.notifications.models import NotificationType

from .models import RSVP_STATUSES, Event, Notice

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client

logger = logging.getLogger(__name__)


def _require_title(title: str | None) -> str:
    cleaned = (title or "").strip()
    if not cleaned:
        raise ValidationError("Title is required.")
    return cleaned


def _get_doc(db: Client, collection: str, doc_id: str, what: str) -> dict[str, Any]:
    doc = cast("DocumentSnapshot", db.collection(collection).document(doc_id).get())
    if not doc.exists:
        raise NotFoundError(f"{what} not found.")
    return {"id": doc.id, **(doc.to_dict() or {})}


def _delete_owned(
    db: Client, collection: str, doc_id: str, requester_id: str, what: str
) -> None:
    data = _get_doc(db, collection, doc_id, what)
    if data.get("createdBy") != requester_id:
        logger.warning(f"User {requester_id} tried to delete {what.lower()} {doc_id}")
        raise PermissionDenied(f"Only the creator can delete this {what.lower()}.")
    db.collection(collection).document(doc_id).delete()


def create_notice(
    db: Client,
    author: dict[str, Any],
    title: str,
    content: str = "",
    category: str = "academic",
    priority: str = "medium",
    department: str | None = ALL_DEPARTMENTS,
    pinned: bool = False,
    expires_at: datetime.datetime | None = None,
    max_attempts: int | None = None,
) -> tuple[Notice, DispatchReport]:
    """Post a notice and notify the users of the target department."""
    notice_ref = db.collection(NOTICES_COLLECTION).document()
    notice_data: dict[str, Any] = {
        "title": _require_title(title),
        "content": (content or "").strip(),
        "category": category,
        "priority": priority,
        "departmentFrom": author.get("department") or "",
        "department": department or ALL_DEPARTMENTS,
        "pinned": bool(pinned),
        "createdBy": author["uid"],
        "createdByName": author.get("displayName") or "",
        "createdAt": firestore.SERVER_TIMESTAMP,
    }
    if expires_at is not None:
        notice_data["expiresAt"] = expires_at
    notice_ref.set(notice_data)
    logger.info(f"Notice {notice_ref.id} posted by {author['uid']}")

    dispatcher = _dispatcher(db, max_attempts)
    report = dispatcher.broadcast(
        author,
        NotificationType.NEW_NOTICE,
        notice_ref.id,
        department=notice_data["department"],
        message=f"New notice: {notice_data['title']}",
    )
    return cast(Notice, {"id": notice_ref.id, **notice_data}), report


def create_event(
    db: Client,
    author: dict[str, Any],
    title: str,
    start_date: datetime.datetime | None = None,
    end_date: datetime.datetime | None = None,
    description: str = "",
    category: str = "club",
    location: str = "",
    department: str | None = ALL_DEPARTMENTS,
    max_attempts: int | None = None,
) -> tuple[Event, DispatchReport]:
    """Create an event and notify the users of the target department."""
    if start_date and end_date and end_date < start_date:
        raise ValidationError("An event cannot end before it starts.")

    event_ref = db.collection(EVENTS_COLLECTION).document()
    event_data: dict[str, Any] = {
        "title": _require_title(title),
        "description": (description or "").strip(),
        "category": category,
        "startDate": start_date,
        "endDate": end_date,
        "location": (location or "").strip(),
        "department": department or ALL_DEPARTMENTS,
        "createdBy": author["uid"],
        "createdByName": author.get("displayName") or "",
        "createdAt": firestore.SERVER_TIMESTAMP,
        "attendees": [],
    }
    event_ref.set(event_data)
    logger.info(f"Event {event_ref.id} created by {author['uid']}")

    dispatcher = _dispatcher(db, max_attempts)
    report = dispatcher.broadcast(
        author,
        NotificationType.NEW_EVENT,
        event_ref.id,
        department=event_data["department"],
        message=f"New event: {event_data['title']}",
    )
    return cast(Event, {"id": event_ref.id, **event_data}), report


def _dispatcher(db: Client, max_attempts: int | None) -> BroadcastDispatcher:
    if max_attempts is None:
        return BroadcastDispatcher(db)
    return BroadcastDispatcher(db, max_attempts=max_attempts)


def list_notices(db: Client) -> list[Notice]:
    """Fetch notices with pinned ones first, then newest first."""
    docs = (
        db.collection(NOTICES_COLLECTION)
        .order_by("createdAt", direction=firestore.Query.DESCENDING)
        .stream()
    )
    notices = [cast(Notice, {"id": doc.id, **(doc.to_dict() or {})}) for doc in docs]
    # Stable sort keeps the newest-first order inside each group
    notices.sort(key=lambda notice: not notice.get("pinned", False))
    return notices


def list_events(db: Client) -> list[Event]:
    """Fetch events by start date."""
    docs = db.collection(EVENTS_COLLECTION).order_by("startDate").stream()
    return [cast(Event, {"id": doc.id, **(doc.to_dict() or {})}) for doc in docs]


def get_event(db: Client, event_id: str) -> Event:
    return cast(Event, _get_doc(db, EVENTS_COLLECTION, event_id, "Event"))


def delete_notice(db: Client, notice_id: str, requester_id: str) -> None:
    _delete_owned(db, NOTICES_COLLECTION, notice_id, requester_id, "Notice")


def delete_event(db: Client, event_id: str, requester_id: str) -> None:
    _delete_owned(db, EVENTS_COLLECTION, event_id, requester_id, "Event")


def rsvp_event(
    db: Client, event_id: str, user: dict[str, Any], status: str
) -> list[dict[str, Any]]:
    """Record the user's RSVP, replacing any earlier one.

    Returns the updated attendee list.
    """
    if status not in RSVP_STATUSES:
        raise ValidationError(f"Invalid RSVP status: {status}")

    event = get_event(db, event_id)
    entry = {
        "uid": user["uid"],
        "displayName": user.get("displayName") or "",
        "photoURL": user.get("photoURL") or "",
        "status": status,
        "rsvpDate": datetime.datetime.now(datetime.timezone.utc),
    }
    attendees = list(event.get("attendees") or [])
    for i, attendee in enumerate(attendees):
        if attendee.get("uid") == user["uid"]:
            attendees[i] = entry
            break
    else:
        attendees.append(entry)

    db.collection(EVENTS_COLLECTION).document(event_id).update(
        {"attendees": attendees}
    )
    return attendees


def attendee_counts(event: dict[str, Any]) -> dict[str, int]:
    """Count RSVPs per status."""
    counts = dict.fromkeys(RSVP_STATUSES, 0)
    for attendee in event.get("attendees") or []:
        status = attendee.get("status")
        if status in counts:
            counts[status] += 1
    return counts
