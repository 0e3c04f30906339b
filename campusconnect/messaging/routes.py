"""Routes for the messaging blueprint."""

from __future__ import annotations

from typing import Any

from firebase_admin import firestore
from flask import g, jsonify

from campusconnect.auth.decorators import login_required
from campusconnect.conversations.models import Conversation
from campusconnect.core.streaming import sse_response
from campusconnect.errors import NotFoundError
from campusconnect.storage import BlobStore
from campusconnect.utils import form_error_response

from . import bp
from .forms import MessageForm
from .models import build_payload
from .services import MessageService
from .stream import MessageStream


def _conversation(kind: str, conversation_id: str) -> Conversation:
    try:
        return Conversation.parse(kind, conversation_id)
    except ValueError:
        raise NotFoundError(f"Unknown conversation kind: {kind}") from None


@bp.route("/<string:kind>/<string:conversation_id>", methods=["GET"])
@login_required
def view_messages(kind: str, conversation_id: str) -> Any:
    """Return a conversation's messages in display order."""
    db = firestore.client()
    conversation = _conversation(kind, conversation_id)
    MessageService.authorize_post(db, conversation, g.user["uid"])
    messages = MessageService.list_messages(db, conversation)
    return jsonify([message.to_dict() for message in messages])


@bp.route("/<string:kind>/<string:conversation_id>", methods=["POST"])
@login_required
def send(kind: str, conversation_id: str) -> Any:
    """Send a text message or an image with an optional caption."""
    form = MessageForm()
    if not form.validate_on_submit():
        return form_error_response(form)

    db = firestore.client()
    conversation = _conversation(kind, conversation_id)
    MessageService.authorize_post(db, conversation, g.user["uid"])

    blobs = BlobStore()
    image = form.image.data
    if image:
        payload = MessageService.upload_image(
            blobs,
            conversation,
            image.filename,
            image.read(),
            image.mimetype,
            caption=(form.text.data or "").strip(),
        )
    else:
        payload = build_payload(text=(form.text.data or "").strip())

    message = MessageService.send(db, conversation, g.user, payload, blobs)
    return jsonify(message.to_dict()), 201


@bp.route(
    "/<string:kind>/<string:conversation_id>/<string:message_id>", methods=["DELETE"]
)
@login_required
def delete(kind: str, conversation_id: str, message_id: str) -> Any:
    db = firestore.client()
    conversation = _conversation(kind, conversation_id)
    MessageService.delete_message(
        db, conversation, message_id, g.user["uid"], BlobStore()
    )
    return jsonify({"status": "success"})


@bp.route("/<string:kind>/<string:conversation_id>/stream", methods=["GET"])
@login_required
def stream(kind: str, conversation_id: str) -> Any:
    """Push the ordered message list after every change."""
    db = firestore.client()
    conversation = _conversation(kind, conversation_id)
    MessageService.authorize_post(db, conversation, g.user["uid"])

    def subscribe(callback):
        message_stream = MessageStream(db, conversation)
        message_stream.start(callback)
        return message_stream

    return sse_response(
        subscribe, lambda messages: [message.to_dict() for message in messages]
    )
