"""Blob storage for message and post attachments."""

from __future__ import annotations

import logging
import time
from typing import Any

from firebase_admin import storage
from google.api_core.exceptions import GoogleAPICallError
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)


class BlobStore:
    """Thin wrapper around the default Cloud Storage bucket.

    A blob's reference is its object path inside the bucket.
    """

    def __init__(self, bucket: Any = None) -> None:
        self._bucket = bucket

    @property
    def bucket(self) -> Any:
        """Return the configured bucket, resolving the default lazily."""
        if self._bucket is None:
            self._bucket = storage.bucket()
        return self._bucket

    def upload(
        self, path: str, data: bytes, content_type: str | None = None
    ) -> str:
        """Upload ``data`` to ``path`` and return the blob reference."""
        blob = self.bucket.blob(path)
        blob.upload_from_string(data, content_type=content_type)
        blob.make_public()
        return path

    def get_url(self, ref: str) -> str:
        """Return the public URL of a blob."""
        return str(self.bucket.blob(ref).public_url)

    def delete(self, ref: str) -> None:
        """Delete a blob, raising if the store refuses."""
        self.bucket.blob(ref).delete()

    def discard(self, ref: str | None) -> bool:
        """Delete a blob on a best-effort basis.

        Failures are logged and reported through the return value only.
        """
        if not ref:
            return False
        try:
            self.delete(ref)
        except GoogleAPICallError as e:
            logger.error(f"Error deleting blob {ref}: {e}")
            return False
        return True


def attachment_path(template: str, filename: str | None, **params: str) -> str:
    """Build a storage path for an uploaded file."""
    safe_name = secure_filename(filename or "upload.jpg") or "upload.jpg"
    return template.format(filename=f"{int(time.time() * 1000)}_{safe_name}", **params)
