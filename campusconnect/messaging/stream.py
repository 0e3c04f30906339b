"""Ordered, live-updating message streams with optimistic local writes."""

from __future__ import annotations

import itertools
import math
import threading
import time
from collections import OrderedDict, defaultdict
from datetime import datetime
from typing import TYPE_CHECKING, Any, Iterable, Iterator

from campusconnect.core.subscription import Subscription

from .models import Message

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

    from campusconnect.conversations.models import Conversation


class SequenceClock:
    """Hand out strictly increasing client sequence numbers.

    Numbers are microsecond wall-clock readings bumped past the previous
    value, so they also increase across restarts of the same client.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last = 0

    def next(self) -> int:
        with self._lock:
            self._last = max(time.time_ns() // 1000, self._last + 1)
            return self._last


client_clock = SequenceClock()


def _as_seconds(value: datetime | float | int | None) -> float | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.timestamp()
    return float(value)


def order_messages(
    messages: Iterable[Message], insertion_order: dict[str, int] | None = None
) -> list[Message]:
    """Sort messages for display.

    Acknowledged messages come first, ascending by server time. A message
    never sorts before an earlier message (lower ``client_seq``) from the
    same sender, so server timestamp jitter cannot reorder one client's
    sends; once a sender has an unacknowledged message, that sender's later
    messages wait behind it. Ties break by ``client_seq`` and then by local
    insertion order, never by message id.
    """
    insertion_order = insertion_order or {}
    items = list(messages)

    by_sender: dict[str, list[Message]] = defaultdict(list)
    for message in items:
        by_sender[message.sender_id].append(message)

    effective: dict[int, float] = {}
    for sender_messages in by_sender.values():
        sender_messages.sort(key=lambda m: m.client_seq)
        floor = -math.inf
        for message in sender_messages:
            seconds = _as_seconds(message.created_at)
            if seconds is None:
                floor = math.inf
            else:
                floor = max(floor, seconds)
            effective[id(message)] = floor

    def sort_key(message: Message) -> tuple[float, int, int]:
        return (
            effective[id(message)],
            message.client_seq,
            insertion_order.get(message.id, len(insertion_order)),
        )

    return sorted(items, key=sort_key)


class PendingLog:
    """Messages written locally but not yet seen in a confirmed snapshot."""

    def __init__(self) -> None:
        self._entries: OrderedDict[str, Message] = OrderedDict()

    def add(self, message: Message) -> None:
        message.pending = True
        self._entries[message.id] = message

    def reconcile(self, confirmed_ids: Iterable[str]) -> list[str]:
        """Drop entries the store has confirmed; return their ids."""
        replaced = [mid for mid in confirmed_ids if mid in self._entries]
        for mid in replaced:
            del self._entries[mid]
        return replaced

    def rollback(self, message_id: str) -> Message | None:
        """Remove a failed entry and hand it back as the draft to restore."""
        return self._entries.pop(message_id, None)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._entries

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)


class MessageStream(Subscription):
    """Live, ordered view of one conversation's messages.

    Confirmed snapshots replace pending entries with the same id. Each
    delivery hands the callback the full ordered list.
    """

    def __init__(self, db: Client, conversation: Conversation) -> None:
        super().__init__(
            lambda: conversation.messages_ref(db).order_by("createdAt")
        )
        self.conversation = conversation
        self.pending = PendingLog()
        self._confirmed: dict[str, Message] = {}
        self._insertion: dict[str, int] = {}
        self._counter = itertools.count()

    def _observe(self, message_id: str) -> None:
        if message_id not in self._insertion:
            self._insertion[message_id] = next(self._counter)

    def apply_snapshot(self, docs: list[Any]) -> list[Message]:
        confirmed = {}
        for doc in docs:
            message = Message.from_snapshot(self.conversation.id, doc)
            if message is None:
                continue
            self._observe(message.id)
            confirmed[message.id] = message
        self._confirmed = confirmed
        self.pending.reconcile(confirmed)
        return self.messages()

    def add_pending(self, message: Message) -> None:
        """Show a locally written message before the store confirms it."""
        with self._lock:
            self._observe(message.id)
            self.pending.add(message)
            self.publish(self.messages())

    def rollback(self, message_id: str) -> Message | None:
        """Withdraw a pending message whose write failed."""
        with self._lock:
            draft = self.pending.rollback(message_id)
            if draft is not None:
                self.publish(self.messages())
            return draft

    def messages(self) -> list[Message]:
        with self._lock:
            merged = {message.id: message for message in self.pending}
            merged.update(self._confirmed)
            return order_messages(merged.values(), self._insertion)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.messages())
