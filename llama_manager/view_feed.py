"""Fan-out of view updates to server-sent-event subscribers."""

from __future__ import annotations

import asyncio
import json


class ViewFeed:
    """Keeps the latest view and pushes each new one to bounded subscriber queues.

    A full queue drops its oldest event; subscribers only ever need the newest
    view, so nothing is lost that the next event does not supersede.
    """

    def __init__(self, *, subscriber_queue_size: int = 50):
        self._subscribers: set[asyncio.Queue[dict]] = set()
        self._subscriber_queue_size = max(1, subscriber_queue_size)
        self._latest: dict | None = None
        self._dropped_events = 0

    @property
    def latest(self) -> dict | None:
        return self._latest

    def subscribe(self) -> asyncio.Queue[dict]:
        queue: asyncio.Queue[dict] = asyncio.Queue(maxsize=self._subscriber_queue_size)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[dict]) -> None:
        self._subscribers.discard(queue)

    def publish(self, view: dict) -> None:
        self._latest = view
        for queue in self._subscribers:
            if queue.full():
                try:
                    queue.get_nowait()
                    self._dropped_events += 1
                except asyncio.QueueEmpty:
                    pass
            queue.put_nowait(view)

    def close(self) -> None:
        self._subscribers.clear()

    def stats(self) -> dict:
        return {
            "subscriber_count": len(self._subscribers),
            "dropped_events": self._dropped_events,
        }


def as_sse(event_name: str, payload: dict) -> str:
    return f"event: {event_name}\ndata: {json.dumps(payload, separators=(',', ':'))}\n\n"
