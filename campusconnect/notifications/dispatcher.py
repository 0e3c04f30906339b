"""Queue-backed fan-out of broadcast notifications."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable

from google.api_core.exceptions import GoogleAPICallError, RetryError

from campusconnect.core.constants import ALL_DEPARTMENTS, USERS_COLLECTION

from .models import NotificationType
from .services import notify

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3


@dataclass
class DispatchReport:
    """Outcome of one broadcast."""

    entity_id: str
    delivered: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def partial(self) -> bool:
        """True when some recipients were notified and others were not."""
        return bool(self.failed) and bool(self.delivered)

    def to_dict(self) -> dict[str, Any]:
        return {
            "entityId": self.entity_id,
            "delivered": len(self.delivered),
            "failed": sorted(self.failed),
        }


def _normalize(department: str | None) -> str:
    return (department or "").strip().casefold()


def select_recipients(
    users: Iterable[dict[str, Any]],
    department: str | None,
    exclude: Iterable[str] = (),
) -> list[str]:
    """Pick the users a department-targeted broadcast reaches.

    ``ALL`` (or no department) reaches everyone. Otherwise a user matches
    when their department equals the target or they have none set.
    """
    target = _normalize(department)
    everyone = not target or target == _normalize(ALL_DEPARTMENTS)
    excluded = set(exclude)

    recipients = []
    for user in users:
        user_id = user.get("id") or user.get("uid")
        if not user_id or user_id in excluded or user_id in recipients:
            continue
        user_department = _normalize(user.get("department"))
        if everyone or not user_department or user_department == target:
            recipients.append(user_id)
    return recipients


class BroadcastDispatcher:
    """Deliver one logical event as one inbox write per recipient.

    Recipients are processed from a queue. A failed write goes to the back
    of the queue until it has been attempted ``max_attempts`` times. Each
    write uses a notification id derived from the event, so a retried
    write overwrites instead of duplicating.
    """

    def __init__(self, db: Client, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> None:
        self.db = db
        self.max_attempts = max(1, max_attempts)

    def dispatch(
        self,
        actor: dict[str, Any],
        notification_type: NotificationType,
        entity_id: str,
        recipients: Iterable[str],
        message: str | None = None,
    ) -> DispatchReport:
        """Notify each recipient once and report who was reached."""
        report = DispatchReport(entity_id)
        notification_id = f"{NotificationType(notification_type).value}_{entity_id}"
        queue = deque((recipient_id, 1) for recipient_id in dict.fromkeys(recipients))

        while queue:
            recipient_id, attempt = queue.popleft()
            try:
                written = notify(
                    self.db,
                    recipient_id,
                    actor,
                    notification_type,
                    related_entity_id=entity_id,
                    message=message,
                    notification_id=notification_id,
                )
            except (GoogleAPICallError, RetryError) as e:
                if attempt < self.max_attempts:
                    queue.append((recipient_id, attempt + 1))
                    continue
                logger.error(
                    f"Giving up on notifying {recipient_id} about {entity_id} "
                    f"after {attempt} attempts: {e}"
                )
                report.failed[recipient_id] = str(e)
                continue
            if written is not None:
                report.delivered.append(recipient_id)

        if report.failed:
            logger.warning(
                f"Broadcast {entity_id} reached {len(report.delivered)} users, "
                f"{len(report.failed)} failed"
            )
        else:
            logger.info(f"Broadcast {entity_id} reached {len(report.delivered)} users")
        return report

    def broadcast(
        self,
        actor: dict[str, Any],
        notification_type: NotificationType,
        entity_id: str,
        department: str | None = ALL_DEPARTMENTS,
        message: str | None = None,
    ) -> DispatchReport:
        """Notify every user the department filter selects, except the actor."""
        users = [
            {"id": doc.id, **(doc.to_dict() or {})}
            for doc in self.db.collection(USERS_COLLECTION).stream()
        ]
        recipients = select_recipients(users, department, exclude=[actor.get("uid", "")])
        return self.dispatch(actor, notification_type, entity_id, recipients, message)
