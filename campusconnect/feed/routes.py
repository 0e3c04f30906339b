"""Routes for the feed blueprint."""

from __future__ import annotations

from typing import Any

from firebase_admin import firestore
from flask import g, jsonify, request

from campusconnect.auth.decorators import login_required
from campusconnect.storage import BlobStore
from campusconnect.utils import form_error_response

from . import bp
from .forms import CommentForm, PostForm, ShareForm
from .services import (
    FEED_LIMIT,
    add_comment,
    create_post,
    delete_post,
    get_post,
    list_comments,
    list_posts,
    share_post,
    toggle_like,
    upload_post_image,
)


@bp.route("/", methods=["GET"])
@login_required
def view_feed() -> Any:
    db = firestore.client()
    limit = request.args.get("limit", FEED_LIMIT, type=int)
    return jsonify(list_posts(db, limit))


@bp.route("/", methods=["POST"])
@login_required
def new_post() -> Any:
    form = PostForm()
    if not form.validate_on_submit():
        return form_error_response(form)

    db = firestore.client()
    image = None
    if form.image.data:
        upload = form.image.data
        image = upload_post_image(
            BlobStore(), g.user["uid"], upload.filename, upload.read(), upload.mimetype
        )
    post = create_post(db, g.user, form.content.data, image)
    return jsonify(post), 201


@bp.route("/<string:post_id>", methods=["GET"])
@login_required
def view_post(post_id: str) -> Any:
    db = firestore.client()
    return jsonify(get_post(db, post_id))


@bp.route("/<string:post_id>", methods=["DELETE"])
@login_required
def remove_post(post_id: str) -> Any:
    db = firestore.client()
    delete_post(db, post_id, g.user["uid"], BlobStore())
    return jsonify({"status": "success"})


@bp.route("/<string:post_id>/like", methods=["POST"])
@login_required
def like(post_id: str) -> Any:
    """Toggle the user's like on a post."""
    db = firestore.client()
    return jsonify({"liked": toggle_like(db, post_id, g.user)})


@bp.route("/<string:post_id>/comments", methods=["GET"])
@login_required
def view_comments(post_id: str) -> Any:
    db = firestore.client()
    return jsonify(list_comments(db, post_id))


@bp.route("/<string:post_id>/comments", methods=["POST"])
@login_required
def comment(post_id: str) -> Any:
    form = CommentForm()
    if not form.validate_on_submit():
        return form_error_response(form)
    db = firestore.client()
    return jsonify(add_comment(db, post_id, g.user, form.text.data)), 201


@bp.route("/<string:post_id>/share", methods=["POST"])
@login_required
def share(post_id: str) -> Any:
    """Send the post to a connection as a direct message."""
    form = ShareForm()
    if not form.validate_on_submit():
        return form_error_response(form)
    db = firestore.client()
    message = share_post(db, post_id, g.user, form.recipient.data.strip())
    return jsonify(message.to_dict()), 201
