"""Business logic for posts, likes, comments and sharing."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore

from campusconnect.conversations.models import Conversation
from campusconnect.core.batching import delete_in_batches
from campusconnect.core.constants import (
    COMMENTS_COLLECTION,
    POST_IMAGE_PATH,
    POSTS_COLLECTION,
)
from campusconnect.core.types import FirestoreDocument
from campusconnect.errors import NotFoundError, PermissionDenied, ValidationError
from campusconnect.messaging.models import Message, SharedPostPayload
from campusconnect.messaging.services import MessageService
from campusconnect.notifications import services as notifications
from campusconnect.notifications.models import NotificationType
from campusconnect.storage import attachment_path

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client

    from campusconnect.storage import BlobStore

logger = logging.getLogger(__name__)

FEED_LIMIT = 50


class Post(FirestoreDocument, total=False):
    """A feed post document in Firestore."""

    authorId: str
    authorName: str
    authorPhotoURL: str
    content: str
    imageUrl: str
    imagePath: str
    likes: list[str]


def _post_ref(db: Client, post_id: str) -> Any:
    return db.collection(POSTS_COLLECTION).document(post_id)


def get_post(db: Client, post_id: str) -> Post:
    doc = cast("DocumentSnapshot", _post_ref(db, post_id).get())
    if not doc.exists:
        raise NotFoundError("Post not found.")
    return cast(Post, {"id": doc.id, **(doc.to_dict() or {})})


def list_posts(db: Client, limit: int = FEED_LIMIT) -> list[Post]:
    """Fetch the newest posts."""
    query = (
        db.collection(POSTS_COLLECTION)
        .order_by("createdAt", direction=firestore.Query.DESCENDING)
        .limit(limit)
    )
    return [cast(Post, {"id": doc.id, **(doc.to_dict() or {})}) for doc in query.stream()]


def upload_post_image(
    blobs: BlobStore,
    user_id: str,
    filename: str | None,
    data: bytes,
    content_type: str | None = None,
) -> tuple[str, str]:
    """Store a post image and return its reference and public URL."""
    path = attachment_path(POST_IMAGE_PATH, filename, user_id=user_id)
    ref = blobs.upload(path, data, content_type)
    return ref, blobs.get_url(ref)


def create_post(
    db: Client,
    author: dict[str, Any],
    content: str | None,
    image: tuple[str, str] | None = None,
) -> Post:
    """Publish a post. It needs text, an image or both."""
    content = (content or "").strip()
    if not content and not image:
        raise ValidationError("A post needs text or an image.")

    post_ref = db.collection(POSTS_COLLECTION).document()
    post_data: dict[str, Any] = {
        "authorId": author["uid"],
        "authorName": author.get("displayName") or "",
        "authorPhotoURL": author.get("photoURL") or "",
        "content": content,
        "likes": [],
        "createdAt": firestore.SERVER_TIMESTAMP,
    }
    if image:
        post_data["imagePath"], post_data["imageUrl"] = image
    post_ref.set(post_data)
    return cast(Post, {"id": post_ref.id, **post_data})


def toggle_like(db: Client, post_id: str, user: dict[str, Any]) -> bool:
    """Like a post, or unlike it if already liked.

    Only a like notifies the author. Returns True if the post is now liked.
    """
    post = get_post(db, post_id)
    user_id = user["uid"]

    if user_id in (post.get("likes") or []):
        _post_ref(db, post_id).update({"likes": firestore.ArrayRemove([user_id])})
        return False

    _post_ref(db, post_id).update({"likes": firestore.ArrayUnion([user_id])})
    notifications.notify(
        db, post.get("authorId", ""), user, NotificationType.LIKE, related_entity_id=post_id
    )
    return True


def add_comment(
    db: Client, post_id: str, author: dict[str, Any], text: str | None
) -> dict[str, Any]:
    """Comment on a post and notify its author."""
    text = (text or "").strip()
    if not text:
        raise ValidationError("Comment cannot be empty.")
    post = get_post(db, post_id)

    comment_ref = _post_ref(db, post_id).collection(COMMENTS_COLLECTION).document()
    comment = {
        "text": text,
        "authorId": author["uid"],
        "authorName": author.get("displayName") or "",
        "authorPhotoURL": author.get("photoURL") or "",
        "createdAt": firestore.SERVER_TIMESTAMP,
    }
    comment_ref.set(comment)
    notifications.notify(
        db,
        post.get("authorId", ""),
        author,
        NotificationType.COMMENT,
        related_entity_id=post_id,
    )
    return {"id": comment_ref.id, **comment}


def list_comments(db: Client, post_id: str) -> list[dict[str, Any]]:
    """Fetch a post's comments, oldest first."""
    query = (
        _post_ref(db, post_id).collection(COMMENTS_COLLECTION).order_by("createdAt")
    )
    return [{"id": doc.id, **(doc.to_dict() or {})} for doc in query.stream()]


def share_post(
    db: Client, post_id: str, sharer: dict[str, Any], recipient_id: str
) -> Message:
    """Send a post into the DM between the sharer and the recipient."""
    post = get_post(db, post_id)
    payload = SharedPostPayload(
        post_id=post["id"],
        author_id=post.get("authorId", ""),
        author_name=post.get("authorName", ""),
        content=post.get("content", ""),
        image_url=post.get("imageUrl", ""),
    )
    conversation = Conversation.direct(sharer["uid"], recipient_id)
    message = MessageService.append(
        db, conversation, sharer, payload, notify_recipient=False
    )
    notifications.notify(
        db, recipient_id, sharer, NotificationType.POST_SHARE, related_entity_id=post_id
    )
    return message


def delete_post(
    db: Client, post_id: str, requester_id: str, blobs: BlobStore | None = None
) -> None:
    """Delete a post with its comments. Author only."""
    post = get_post(db, post_id)
    if post.get("authorId") != requester_id:
        logger.warning(f"User {requester_id} tried to delete post {post_id}")
        raise PermissionDenied("You can only delete your own posts.")

    delete_in_batches(db, _post_ref(db, post_id).collection(COMMENTS_COLLECTION))
    _post_ref(db, post_id).delete()
    if blobs is not None:
        blobs.discard(post.get("imagePath"))
