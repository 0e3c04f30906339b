"""Routes for the notices blueprint."""

from __future__ import annotations

from typing import Any

from firebase_admin import firestore
from flask import current_app, g, jsonify

from campusconnect.auth.decorators import login_required
from campusconnect.utils import form_error_response

from . import bp
from .forms import EventForm, NoticeForm, RSVPForm
from .services import (
    attendee_counts,
    create_event,
    create_notice,
    delete_event,
    delete_notice,
    list_events,
    list_notices,
    rsvp_event,
)


@bp.route("/", methods=["GET"])
@login_required
def view_notices() -> Any:
    db = firestore.client()
    return jsonify(list_notices(db))


@bp.route("/", methods=["POST"])
@login_required
def new_notice() -> Any:
    """Post a notice and broadcast it to the target department."""
    form = NoticeForm()
    if not form.validate_on_submit():
        return form_error_response(form)

    db = firestore.client()
    notice, report = create_notice(
        db,
        g.user,
        form.title.data,
        content=form.content.data,
        category=form.category.data,
        priority=form.priority.data,
        department=form.department.data,
        pinned=form.pinned.data,
        expires_at=form.expires_at.data,
        max_attempts=current_app.config.get("NOTIFICATION_MAX_ATTEMPTS"),
    )
    if not report.ok:
        current_app.logger.warning(
            f"Notice {notice['id']} was not delivered to {len(report.failed)} users"
        )
    return jsonify({"notice": notice, "broadcast": report.to_dict()}), 201


@bp.route("/<string:notice_id>", methods=["DELETE"])
@login_required
def remove_notice(notice_id: str) -> Any:
    db = firestore.client()
    delete_notice(db, notice_id, g.user["uid"])
    return jsonify({"status": "success"})


@bp.route("/events", methods=["GET"])
@login_required
def view_events() -> Any:
    """List events by start date with RSVP counts."""
    db = firestore.client()
    events = list_events(db)
    return jsonify([{**event, "counts": attendee_counts(event)} for event in events])


@bp.route("/events", methods=["POST"])
@login_required
def new_event() -> Any:
    """Create an event and broadcast it to the target department."""
    form = EventForm()
    if not form.validate_on_submit():
        return form_error_response(form)

    db = firestore.client()
    event, report = create_event(
        db,
        g.user,
        form.title.data,
        start_date=form.start_date.data,
        end_date=form.end_date.data,
        description=form.description.data,
        category=form.category.data,
        location=form.location.data,
        department=form.department.data,
        max_attempts=current_app.config.get("NOTIFICATION_MAX_ATTEMPTS"),
    )
    if not report.ok:
        current_app.logger.warning(
            f"Event {event['id']} was not delivered to {len(report.failed)} users"
        )
    return jsonify({"event": event, "broadcast": report.to_dict()}), 201


@bp.route("/events/<string:event_id>", methods=["DELETE"])
@login_required
def remove_event(event_id: str) -> Any:
    db = firestore.client()
    delete_event(db, event_id, g.user["uid"])
    return jsonify({"status": "success"})


@bp.route("/events/<string:event_id>/rsvp", methods=["POST"])
@login_required
def rsvp(event_id: str) -> Any:
    form = RSVPForm()
    if not form.validate_on_submit():
        return form_error_response(form)
    db = firestore.client()
    attendees = rsvp_event(db, event_id, g.user, form.status.data)
    return jsonify({"attendees": attendees})
