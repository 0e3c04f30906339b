"""Server-sent event responses fed by live subscriptions."""

from __future__ import annotations

import json
import queue
from typing import Any, Callable, Iterator

from flask import Response, stream_with_context

KEEPALIVE_SECONDS = 15.0


def sse_format(value: Any) -> str:
    """Encode one value as an SSE ``data`` frame."""
    return f"data: {json.dumps(value, default=str)}\n\n"


def event_stream(
    subscribe: Callable[[Callable[[Any], None]], Any],
    serialize: Callable[[Any], Any] = lambda value: value,
    keepalive: float = KEEPALIVE_SECONDS,
) -> Iterator[str]:
    """Yield SSE frames for every value a subscription delivers.

    ``subscribe`` receives the delivery callback and returns a handle with
    ``close()``. The handle is closed when the client goes away.
    """
    values: queue.Queue[Any] = queue.Queue()
    handle = subscribe(values.put)
    try:
        while True:
            try:
                value = values.get(timeout=keepalive)
            except queue.Empty:
                yield ": keepalive\n\n"
                continue
            yield sse_format(serialize(value))
    finally:
        handle.close()


def sse_response(
    subscribe: Callable[[Callable[[Any], None]], Any],
    serialize: Callable[[Any], Any] = lambda value: value,
) -> Response:
    return Response(
        stream_with_context(event_stream(subscribe, serialize)),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
