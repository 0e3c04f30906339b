"""Session lifecycle and the institutional identity gate."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from firebase_admin import auth, firestore
from firebase_admin.exceptions import FirebaseError

from campusconnect.connections.services import connection_ref
from campusconnect.conversations.services import (
    delete_group,
    is_group_admin,
    list_user_groups,
)
from campusconnect.core.batching import delete_in_batches
from campusconnect.core.constants import (
    CONNECTIONS_COLLECTION,
    FIRESTORE_BATCH_LIMIT,
    GROUPS_COLLECTION,
    USERS_COLLECTION,
)
from campusconnect.notifications.services import inbox_ref

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

    from campusconnect.presence.tracker import PresenceTracker
    from campusconnect.storage import BlobStore

logger = logging.getLogger(__name__)


def is_allowed_identity(claims: dict[str, Any], allowed_domain: str | None) -> bool:
    """Return True for a verified email inside the institutional domain.

    With no domain configured nobody is allowed in.
    """
    email = (claims.get("email") or "").strip().lower()
    if not email or not claims.get("email_verified"):
        return False
    if not allowed_domain or not allowed_domain.strip().lstrip("@"):
        return False
    return email.endswith("@" + allowed_domain.strip().lower().lstrip("@"))


def reject_identity(uid: str) -> None:
    """Delete an account that failed the identity gate."""
    try:
        auth.delete_user(uid)
    except FirebaseError as e:
        logger.error(f"Error deleting rejected account {uid}: {e}")


def upsert_user(db: Client, claims: dict[str, Any]) -> dict[str, Any]:
    """Create or refresh the user document for an authenticated identity."""
    uid = claims["uid"]
    user_data = {
        "uid": uid,
        "displayName": claims.get("name") or claims.get("displayName") or "",
        "photoURL": claims.get("picture") or claims.get("photoURL") or "",
        "email": claims.get("email") or "",
        "lastLogin": firestore.SERVER_TIMESTAMP,
    }
    db.collection(USERS_COLLECTION).document(uid).set(user_data, merge=True)
    return user_data


def start_session(
    db: Client,
    presence: PresenceTracker,
    claims: dict[str, Any],
    connection_id: str,
) -> dict[str, Any]:
    """Record the login and mark the user online for this connection."""
    user = upsert_user(db, claims)
    presence.set_online(user["uid"], connection_id)
    presence.set_offline_on_disconnect(user["uid"], connection_id)
    logger.info(f"Session started for {user['uid']}")
    return user


def end_session(presence: PresenceTracker, user_id: str, connection_id: str) -> None:
    """Mark the user offline on an explicit sign-out."""
    presence.sign_out(user_id, connection_id)
    logger.info(f"Session ended for {user_id}")


def purge_user(db: Client, user_id: str, blobs: BlobStore | None = None) -> dict[str, int]:
    """Remove a deleted user from the social graph, groups and inboxes.

    Both sides of every connection record go, groups the user administers
    are deleted with their messages, and the user leaves every other group.
    """
    user_ref = db.collection(USERS_COLLECTION).document(user_id)

    connection_docs = list(user_ref.collection(CONNECTIONS_COLLECTION).stream())
    # Two deletes per connection
    step = FIRESTORE_BATCH_LIMIT // 2
    for start in range(0, len(connection_docs), step):
        batch = db.batch()
        for doc in connection_docs[start : start + step]:
            batch.delete(connection_ref(db, doc.id, user_id))
            batch.delete(doc.reference)
        batch.commit()

    deleted_groups = left_groups = 0
    for group in list_user_groups(db, user_id):
        if is_group_admin(user_id, group):
            delete_group(db, group["id"], user_id, blobs)
            deleted_groups += 1
        else:
            db.collection(GROUPS_COLLECTION).document(group["id"]).update(
                {"members": firestore.ArrayRemove([user_id])}
            )
            left_groups += 1

    notifications = delete_in_batches(db, inbox_ref(db, user_id))
    user_ref.delete()

    summary = {
        "connections": len(connection_docs),
        "deletedGroups": deleted_groups,
        "leftGroups": left_groups,
        "notifications": notifications,
    }
    logger.info(f"Purged user {user_id}: {summary}")
    return summary
