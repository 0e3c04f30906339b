"""Routes for the notifications blueprint."""

from __future__ import annotations

from typing import Any

from firebase_admin import firestore
from flask import g, jsonify, request

from campusconnect.auth.decorators import login_required
from campusconnect.core.streaming import sse_response

from . import bp
from .services import (
    InboxSubscription,
    delete_notification,
    list_inbox,
    mark_all_read,
    mark_read,
    unread_count,
)


@bp.route("/", methods=["GET"])
@login_required
def inbox() -> Any:
    """Return the user's notifications, newest first, with the unread count."""
    db = firestore.client()
    limit = request.args.get("limit", type=int)
    notifications = list_inbox(db, g.user["uid"], limit)
    return jsonify(
        {"notifications": notifications, "unread": unread_count(notifications)}
    )


@bp.route("/<string:notification_id>/read", methods=["POST"])
@login_required
def read(notification_id: str) -> Any:
    db = firestore.client()
    mark_read(db, g.user["uid"], notification_id)
    return jsonify({"status": "success"})


@bp.route("/read_all", methods=["POST"])
@login_required
def read_all() -> Any:
    db = firestore.client()
    return jsonify({"status": "success", "updated": mark_all_read(db, g.user["uid"])})


@bp.route("/<string:notification_id>", methods=["DELETE"])
@login_required
def delete(notification_id: str) -> Any:
    db = firestore.client()
    delete_notification(db, g.user["uid"], notification_id)
    return jsonify({"status": "success"})


@bp.route("/stream", methods=["GET"])
@login_required
def stream() -> Any:
    """Push the inbox and unread count after every change."""
    db = firestore.client()
    user_id = g.user["uid"]

    def subscribe(callback):
        subscription = InboxSubscription(db, user_id)
        subscription.start(callback)
        return subscription

    return sse_response(
        subscribe,
        lambda notifications: {
            "notifications": notifications,
            "unread": unread_count(notifications),
        },
    )
