"""JSON encoding for Firestore values returned by the views."""

from __future__ import annotations

import datetime
from enum import Enum
from typing import Any

from flask.json.provider import DefaultJSONProvider
from google.cloud.firestore_v1.transforms import Sentinel


class FirestoreJSONProvider(DefaultJSONProvider):
    """Encode timestamps as ISO 8601 and pending server values as null.

    Documents echoed back right after a write still hold the
    ``SERVER_TIMESTAMP`` sentinel until they are read again.
    """

    @staticmethod
    def default(o: Any) -> Any:
        if isinstance(o, Sentinel):
            return None
        if isinstance(o, datetime.datetime):
            return o.isoformat()
        if isinstance(o, Enum):
            return o.value
        return DefaultJSONProvider.default(o)
