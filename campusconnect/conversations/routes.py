"""Routes for the conversations blueprint."""

from __future__ import annotations

from typing import Any

from firebase_admin import firestore
from flask import current_app, g, jsonify

from campusconnect.auth.decorators import login_required
from campusconnect.errors import PermissionDenied
from campusconnect.storage import BlobStore
from campusconnect.utils import form_error_response, json_list

from . import bp
from .forms import ChannelForm, GroupForm
from .models import Conversation
from .services import (
    add_members,
    can_access_group,
    create_channel,
    create_group,
    delete_group,
    get_group,
    leave_group,
    list_channels,
    list_user_groups,
    remove_member,
)


@bp.route("/channels", methods=["GET"])
@login_required
def view_channels() -> Any:
    db = firestore.client()
    return jsonify(list_channels(db))


@bp.route("/channels", methods=["POST"])
@login_required
def new_channel() -> Any:
    form = ChannelForm()
    if not form.validate_on_submit():
        return form_error_response(form)
    db = firestore.client()
    channel = create_channel(db, g.user["uid"], form.name.data)
    current_app.logger.info(f"Channel {channel['id']} created by {g.user['uid']}")
    return jsonify(channel), 201


@bp.route("/groups", methods=["GET"])
@login_required
def view_groups() -> Any:
    """List the groups the user belongs to."""
    db = firestore.client()
    return jsonify(list_user_groups(db, g.user["uid"]))


@bp.route("/groups", methods=["POST"])
@login_required
def new_group() -> Any:
    form = GroupForm()
    if not form.validate_on_submit():
        return form_error_response(form)
    db = firestore.client()
    group = create_group(db, g.user["uid"], form.name.data, json_list("members"))
    return jsonify(group), 201


@bp.route("/groups/<string:group_id>", methods=["GET"])
@login_required
def view_group(group_id: str) -> Any:
    db = firestore.client()
    group = get_group(db, group_id)
    if not can_access_group(g.user["uid"], group):
        raise PermissionDenied("You are not a member of this group.")
    return jsonify(group)


@bp.route("/groups/<string:group_id>", methods=["DELETE"])
@login_required
def remove_group(group_id: str) -> Any:
    db = firestore.client()
    deleted = delete_group(db, group_id, g.user["uid"], BlobStore())
    return jsonify({"status": "success", "deletedMessages": deleted})


@bp.route("/groups/<string:group_id>/members", methods=["POST"])
@login_required
def invite_members(group_id: str) -> Any:
    db = firestore.client()
    added = add_members(db, group_id, g.user["uid"], json_list("members"))
    return jsonify({"status": "success", "added": added})


@bp.route("/groups/<string:group_id>/members/<string:member_id>", methods=["DELETE"])
@login_required
def kick_member(group_id: str, member_id: str) -> Any:
    db = firestore.client()
    remove_member(db, group_id, g.user["uid"], member_id)
    return jsonify({"status": "success"})


@bp.route("/groups/<string:group_id>/leave", methods=["POST"])
@login_required
def leave(group_id: str) -> Any:
    db = firestore.client()
    leave_group(db, group_id, g.user["uid"])
    return jsonify({"status": "success"})


@bp.route("/dm/<string:other_id>", methods=["GET"])
@login_required
def direct(other_id: str) -> Any:
    """Resolve the DM conversation with another user."""
    conversation = Conversation.direct(g.user["uid"], other_id)
    return jsonify({"kind": conversation.kind.value, "id": conversation.id})
