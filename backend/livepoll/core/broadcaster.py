"""In-process fan-out of poll updates to server-sent event subscribers.

Every connected client owns a bounded queue. Publishing never waits on a
client: a full queue simply misses that frame, and a queue whose reader has
gone away is evicted the next time a publish or a reclamation pass touches it.
"""
from __future__ import annotations

import asyncio
import json
import threading
from enum import Enum
from typing import Any, List, Optional

from livepoll.core.logging_config import get_logger
from livepoll.core.stream import SubscriberStream

logger = get_logger(__name__)


class EventKind(str, Enum):
    CONNECTED = "connected"
    PING = "ping"
    POLL_UPDATED = "poll_updated"
    POLL_RESULTS = "poll_results"
    GENERIC = "generic"


def format_frame(kind: EventKind, body: str) -> bytes:
    """Encode one SSE frame: ``event: <kind>`` then one ``data:`` line per body line."""
    lines = body.splitlines() or [""]
    data = "".join(f"data: {line}\n" for line in lines)
    return f"event: {kind.value}\n{data}\n".encode("utf-8")


def encode_payload(payload: Any) -> str:
    if hasattr(payload, "model_dump_json"):
        return payload.model_dump_json(by_alias=True)
    return json.dumps(payload, default=str)


class Subscriber:
    """Sending half of one client's frame queue.

    The queue belongs to the event loop that created the subscriber. A send
    reserves one slot of capacity up front, so a full subscriber is detected
    at the moment of the send from any thread. Sends from other threads are
    handed to the loop with ``call_soon_threadsafe``; while any such handoff
    is outstanding, sends made on the loop queue up behind it, so frames
    always arrive in the order they were sent.
    """

    def __init__(self, maxsize: int, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop or asyncio.get_running_loop()
        # capacity is enforced by _reserved; the queue itself never refuses a put
        self._queue: asyncio.Queue = asyncio.Queue()
        self._maxsize = maxsize
        self._lock = threading.Lock()
        self._reserved = 0
        self._in_flight = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def pending(self) -> int:
        """Frames accepted and not yet received, including those still in flight."""
        with self._lock:
            return self._reserved

    def _on_loop(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    def _deliver(self, frame: Optional[bytes]) -> None:
        with self._lock:
            self._in_flight -= 1
        self._queue.put_nowait(frame)

    def _enqueue(self, frame: Optional[bytes]) -> None:
        # caller holds self._lock
        if self._on_loop() and not self._in_flight:
            self._queue.put_nowait(frame)
            return
        self._loop.call_soon_threadsafe(self._deliver, frame)
        self._in_flight += 1

    def try_send(self, frame: bytes) -> bool:
        """Queue a frame without blocking. False means full or closed."""
        with self._lock:
            if self._closed or self._reserved >= self._maxsize:
                return False
            try:
                self._enqueue(frame)
            except RuntimeError:
                # owning loop is gone, nobody will ever read this queue
                self._closed = True
                return False
            self._reserved += 1
        return True

    def close(self) -> None:
        """Refuse further sends and wake the reader so it can finish."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            try:
                self._enqueue(None)
            except RuntimeError:
                pass

    async def receive(self) -> Optional[bytes]:
        """Next queued frame, or None once the subscriber is closed and drained."""
        with self._lock:
            finished = self._closed and not self._in_flight and self._queue.empty()
        if finished:
            return None
        frame = await self._queue.get()
        if frame is not None:
            with self._lock:
                self._reserved -= 1
        return frame


class Broadcaster:
    """Registry of live subscribers guarded by a single lock.

    The lock is only ever held across list mutation or a fan-out of
    non-blocking sends, so it is safe to publish from request handlers on
    the event loop and from worker threads alike. Publishes are serialized
    by the lock and every subscriber keeps the order of its sends, so each
    client sees frames in publish order.
    """

    def __init__(self, queue_size: int = 100):
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()
        self._queue_size = queue_size
        self._dropped = 0

    def subscribe(self) -> SubscriberStream:
        """Register a new client and return its frame stream.

        Must be called from the event loop that will consume the stream.
        """
        subscriber = Subscriber(self._queue_size)
        subscriber.try_send(format_frame(EventKind.CONNECTED, "connected"))
        with self._lock:
            self._subscribers.append(subscriber)
            total = len(self._subscribers)
        logger.debug("SSE subscriber added (total: %d)", total)
        return SubscriberStream(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        with self._lock:
            try:
                self._subscribers.remove(subscriber)
            except ValueError:
                pass  # already evicted
        subscriber.close()

    def publish(self, frame: bytes) -> int:
        """Offer a frame to every subscriber. Returns how many accepted it."""
        delivered = 0
        evicted = 0
        with self._lock:
            alive: List[Subscriber] = []
            for subscriber in self._subscribers:
                if subscriber.try_send(frame):
                    delivered += 1
                    alive.append(subscriber)
                elif subscriber.closed:
                    evicted += 1
                else:
                    self._dropped += 1
                    alive.append(subscriber)
            self._subscribers = alive
        if evicted:
            logger.debug("Evicted %d closed SSE subscriber(s)", evicted)
        return delivered

    def publish_message(self, message: str) -> int:
        return self.publish(format_frame(EventKind.GENERIC, message))

    def publish_poll_updated(self, poll: Any) -> int:
        return self.publish(format_frame(EventKind.POLL_UPDATED, encode_payload(poll)))

    def publish_poll_results(self, results: Any) -> int:
        return self.publish(format_frame(EventKind.POLL_RESULTS, encode_payload(results)))

    def reclaim_stale(self) -> int:
        """Ping every subscriber and evict those that cannot take the ping."""
        ping = format_frame(EventKind.PING, "ping")
        with self._lock:
            alive: List[Subscriber] = []
            stale: List[Subscriber] = []
            for subscriber in self._subscribers:
                if subscriber.try_send(ping):
                    alive.append(subscriber)
                else:
                    stale.append(subscriber)
            self._subscribers = alive
        for subscriber in stale:
            subscriber.close()
        if stale:
            logger.debug("Reclaimed %d stale SSE subscriber(s), %d remain", len(stale), len(alive))
        return len(stale)

    async def run_reclaimer(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.reclaim_stale()

    def close(self) -> None:
        """Drop every subscriber; their streams end once drained."""
        with self._lock:
            subscribers = self._subscribers
            self._subscribers = []
        for subscriber in subscribers:
            subscriber.close()
        logger.info("Broadcaster closed, released %d subscriber(s)", len(subscribers))

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    @property
    def dropped(self) -> int:
        return self._dropped
