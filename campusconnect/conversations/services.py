"""Membership rules for groups and public channels."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, cast

from firebase_admin import firestore

from campusconnect.core.batching import delete_in_batches
from campusconnect.core.constants import CHANNELS_COLLECTION, GROUPS_COLLECTION
from campusconnect.errors import NotFoundError, PermissionDenied, ValidationError

from .models import Channel, Conversation, Group, dm_id

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client

    from campusconnect.storage import BlobStore

logger = logging.getLogger(__name__)

__all__ = [
    "add_members",
    "can_access_group",
    "create_channel",
    "create_group",
    "delete_group",
    "dm_id",
    "get_group",
    "is_group_admin",
    "leave_group",
    "list_channels",
    "list_user_groups",
    "remove_member",
]


def _clean_name(name: str | None, what: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError(f"{what} name cannot be empty.")
    return cleaned


def can_access_group(user_id: str, group: dict[str, Any]) -> bool:
    """Return True if the user is a member of the group."""
    return user_id in (group.get("members") or [])


def is_group_admin(user_id: str, group: dict[str, Any]) -> bool:
    """Return True if the user created, and therefore administers, the group."""
    return bool(user_id) and group.get("createdBy") == user_id


def get_group(db: Client, group_id: str) -> Group:
    """Fetch a group or raise NotFoundError."""
    group_doc = cast(
        "DocumentSnapshot", db.collection(GROUPS_COLLECTION).document(group_id).get()
    )
    if not group_doc.exists:
        raise NotFoundError("Group not found.")
    data = group_doc.to_dict() or {}
    data["id"] = group_doc.id
    return cast(Group, data)


def create_group(
    db: Client, creator_id: str, name: str, initial_member_ids: Iterable[str] = ()
) -> Group:
    """Create a private group. The creator is always a member and the admin."""
    group_name = _clean_name(name, "Group")

    members = [creator_id]
    for member_id in initial_member_ids:
        if member_id and member_id not in members:
            members.append(member_id)

    group_ref = db.collection(GROUPS_COLLECTION).document()
    group_data = {
        "name": group_name,
        "members": members,
        "createdBy": creator_id,
        "createdAt": firestore.SERVER_TIMESTAMP,
    }
    group_ref.set(group_data)
    logger.info(f"Group {group_ref.id} created by {creator_id}")
    return cast(Group, {"id": group_ref.id, **group_data})


def add_members(
    db: Client, group_id: str, requester_id: str, new_member_ids: Iterable[str]
) -> list[str]:
    """Add members to a group. Only the admin may do this.

    Returns the ids that were not already members.
    """
    group = get_group(db, group_id)
    if not is_group_admin(requester_id, group):
        logger.warning(f"User {requester_id} tried to add members to {group_id}")
        raise PermissionDenied("Only the group admin can add members.")

    current = set(group.get("members") or [])
    added = []
    for member_id in new_member_ids:
        if member_id and member_id not in current and member_id not in added:
            added.append(member_id)
    if added:
        db.collection(GROUPS_COLLECTION).document(group_id).update(
            {"members": firestore.ArrayUnion(added)}
        )
    return added


def remove_member(
    db: Client, group_id: str, requester_id: str, target_id: str
) -> None:
    """Remove a member from a group.

    The admin may remove any other member and any member may remove
    themselves. Nobody else may remove the admin.
    """
    group = get_group(db, group_id)
    if not can_access_group(target_id, group):
        raise NotFoundError("That user is not a member of this group.")

    if requester_id == target_id:
        if is_group_admin(target_id, group):
            raise PermissionDenied(
                "The group admin cannot leave the group. Delete it instead."
            )
    elif not is_group_admin(requester_id, group):
        raise PermissionDenied("Only the group admin can remove members.")
    elif is_group_admin(target_id, group):
        raise PermissionDenied("The group admin cannot be removed.")

    db.collection(GROUPS_COLLECTION).document(group_id).update(
        {"members": firestore.ArrayRemove([target_id])}
    )
    logger.info(f"User {target_id} removed from group {group_id} by {requester_id}")


def leave_group(db: Client, group_id: str, user_id: str) -> None:
    """Remove the user from a group they belong to."""
    remove_member(db, group_id, user_id, user_id)


def delete_group(
    db: Client, group_id: str, requester_id: str, blobs: BlobStore | None = None
) -> int:
    """Delete a group and its message stream. Admin only."""
    group = get_group(db, group_id)
    if not is_group_admin(requester_id, group):
        logger.warning(f"User {requester_id} tried to delete group {group_id}")
        raise PermissionDenied("Only the group admin can delete the group.")

    conversation = Conversation.group(group_id)
    deleted = delete_in_batches(db, conversation.messages_ref(db), blobs)
    conversation.document(db).delete()
    logger.info(f"Group {group_id} deleted with {deleted} messages")
    return deleted


def list_user_groups(db: Client, user_id: str) -> list[Group]:
    """Fetch the groups a user belongs to."""
    query = db.collection(GROUPS_COLLECTION).where(
        filter=firestore.FieldFilter("members", "array_contains", user_id)
    )
    return [cast(Group, {"id": doc.id, **(doc.to_dict() or {})}) for doc in query.stream()]


def create_channel(db: Client, creator_id: str, name: str) -> Channel:
    """Create a public channel."""
    channel_name = _clean_name(name, "Channel")
    channel_ref = db.collection(CHANNELS_COLLECTION).document()
    channel_data = {
        "name": channel_name,
        "createdBy": creator_id,
        "createdAt": firestore.SERVER_TIMESTAMP,
    }
    channel_ref.set(channel_data)
    return cast(Channel, {"id": channel_ref.id, **channel_data})


def list_channels(db: Client) -> list[Channel]:
    """Fetch every public channel, sorted by name."""
    channels = [
        cast(Channel, {"id": doc.id, **(doc.to_dict() or {})})
        for doc in db.collection(CHANNELS_COLLECTION).stream()
    ]
    channels.sort(key=lambda channel: str(channel.get("name", "")).lower())
    return channels
