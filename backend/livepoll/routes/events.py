from fastapi import APIRouter, Body, Depends
from fastapi.responses import StreamingResponse

from livepoll.core.broadcaster import Broadcaster
from livepoll.core.deps import get_broadcaster
from livepoll.core.logging_config import get_logger
from livepoll.core.stream import event_stream
from livepoll.routes.auth import get_current_user
from livepoll.schemas.poll import MessageOut

logger = get_logger(__name__)

router = APIRouter(prefix="/api/events", tags=["Events"])

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.get("")
async def subscribe(hub: Broadcaster = Depends(get_broadcaster)):
    """Live poll updates as server-sent events."""
    stream = hub.subscribe()
    logger.debug("SSE client connected (subscribers: %d)", hub.subscriber_count)
    return StreamingResponse(event_stream(stream), media_type="text/event-stream", headers=STREAM_HEADERS)


@router.post("/send", response_model=MessageOut)
async def send_message(
    message: str = Body(..., embed=True),
    user=Depends(get_current_user),
    hub: Broadcaster = Depends(get_broadcaster),
):
    delivered = hub.publish_message(message)
    logger.info("Generic message from %s delivered to %d subscriber(s)", user["sub"], delivered)
    return {"message": "Message sent"}
