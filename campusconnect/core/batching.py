"""Batched Firestore deletes."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .constants import FIRESTORE_BATCH_LIMIT

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

    from campusconnect.storage import BlobStore


def delete_in_batches(
    db: Client,
    collection_ref: Any,
    blobs: BlobStore | None = None,
    blob_field: str = "imagePath",
) -> int:
    """Delete every document under ``collection_ref``.

    Blobs referenced by ``blob_field`` are discarded best-effort. Returns
    the number of documents deleted.
    """
    deleted = 0
    while True:
        docs = list(collection_ref.limit(FIRESTORE_BATCH_LIMIT).stream())
        if not docs:
            break
        batch = db.batch()
        for doc in docs:
            if blobs is not None:
                blobs.discard((doc.to_dict() or {}).get(blob_field))
            batch.delete(doc.reference)
        batch.commit()
        deleted += len(docs)
        if len(docs) < FIRESTORE_BATCH_LIMIT:
            break
    return deleted
