from __future__ import annotations

from typing import TYPE_CHECKING, AsyncIterator

if TYPE_CHECKING:
    from livepoll.core.broadcaster import Subscriber


class SubscriberStream:
    """Receiving side of a subscriber, iterated by the HTTP layer.

    Ends when the subscriber is closed, either by the hub or by ``close()``.
    """

    def __init__(self, subscriber: "Subscriber"):
        self.subscriber = subscriber

    def __aiter__(self) -> "SubscriberStream":
        return self

    async def __anext__(self) -> bytes:
        frame = await self.subscriber.receive()
        if frame is None:
            raise StopAsyncIteration
        return frame

    def close(self) -> None:
        self.subscriber.close()


async def event_stream(stream: SubscriberStream) -> AsyncIterator[bytes]:
    """Yield frames until the stream ends or the client goes away.

    A disconnect cancels the consumer mid-await; the subscriber is closed on
    the way out and the hub drops it on its next publish or reclamation.
    """
    try:
        async for frame in stream:
            yield frame
    finally:
        stream.close()
