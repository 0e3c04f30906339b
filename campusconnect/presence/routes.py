"""Routes for the presence blueprint."""

from __future__ import annotations

from typing import Any

from flask import g, jsonify, session

from campusconnect.auth.decorators import login_required
from campusconnect.core.streaming import sse_response

from . import bp
from .tracker import get_presence


@bp.route("/heartbeat", methods=["POST"])
@login_required
def heartbeat() -> Any:
    """Keep this session's connection alive.

    A connection the reaper already expired is registered again.
    """
    connection_id = session.get("connection_id")
    if not connection_id:
        return jsonify({"error": "No presence connection for this session."}), 400
    tracker = get_presence()
    if not tracker.heartbeat(connection_id):
        tracker.set_online(g.user["uid"], connection_id)
        tracker.set_offline_on_disconnect(g.user["uid"], connection_id)
    return jsonify({"status": "online"})


@bp.route("/", methods=["GET"])
@login_required
def statuses() -> Any:
    """Return the presence state of every user."""
    return jsonify(get_presence().current())


@bp.route("/stream", methods=["GET"])
@login_required
def stream() -> Any:
    """Push the full presence map after every change."""
    return sse_response(get_presence().subscribe_all)
