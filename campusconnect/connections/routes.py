"""Routes for the connections blueprint."""

from __future__ import annotations

from typing import Any

from firebase_admin import firestore
from flask import current_app, g, jsonify

from campusconnect.auth.decorators import login_required

from . import bp
from .services import (
    accept_request,
    cancel_request,
    decline_request,
    disconnect,
    get_connection_state,
    list_connections,
    list_requests,
    send_request,
)


@bp.route("/", methods=["GET"])
@login_required
def view_connections() -> Any:
    db = firestore.client()
    return jsonify(list_connections(db, g.user["uid"]))


@bp.route("/requests", methods=["GET"])
@login_required
def view_requests() -> Any:
    """Return pending requests, both received and sent."""
    db = firestore.client()
    return jsonify(list_requests(db, g.user["uid"]))


@bp.route("/<string:other_id>", methods=["GET"])
@login_required
def state(other_id: str) -> Any:
    db = firestore.client()
    return jsonify({"state": get_connection_state(db, g.user["uid"], other_id).value})


@bp.route("/<string:other_id>/request", methods=["POST"])
@login_required
def request_connection(other_id: str) -> Any:
    db = firestore.client()
    send_request(db, g.user, other_id)
    current_app.logger.info(f"Connection request from {g.user['uid']} to {other_id}")
    return jsonify({"status": "success"}), 201


@bp.route("/<string:other_id>/accept", methods=["POST"])
@login_required
def accept(other_id: str) -> Any:
    db = firestore.client()
    accept_request(db, g.user, other_id)
    current_app.logger.info(f"{g.user['uid']} accepted {other_id}")
    return jsonify({"status": "success"})


@bp.route("/<string:other_id>/decline", methods=["POST"])
@login_required
def decline(other_id: str) -> Any:
    db = firestore.client()
    decline_request(db, g.user["uid"], other_id)
    return jsonify({"status": "success"})


@bp.route("/<string:other_id>/cancel", methods=["POST"])
@login_required
def cancel(other_id: str) -> Any:
    db = firestore.client()
    cancel_request(db, g.user["uid"], other_id)
    return jsonify({"status": "success"})


@bp.route("/<string:other_id>", methods=["DELETE"])
@login_required
def remove(other_id: str) -> Any:
    db = firestore.client()
    disconnect(db, g.user["uid"], other_id)
    return jsonify({"status": "success"})
