from contextlib import contextmanager
from typing import Iterator

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from livepoll.core.config import settings
from livepoll.core.errors import PollAppError
from livepoll.core.logging_config import get_logger

logger = get_logger(__name__)

client: AsyncIOMotorClient | None = None

def get_client() -> AsyncIOMotorClient:
    global client
    if client is None:
        client = AsyncIOMotorClient(settings.MONGO_URI, tz_aware=True)
    return client

def get_db() -> AsyncIOMotorDatabase:
    return get_client()[settings.MONGO_DB]

def close_client() -> None:
    global client
    if client is not None:
        client.close()
        client = None


@contextmanager
def upstream_errors(action: str) -> Iterator[None]:
    """Report driver failures as upstream errors; nothing is retried."""
    try:
        yield
    except PyMongoError as e:
        logger.error("Database error while trying to %s: %s", action, e)
        raise PollAppError.upstream(f"Failed to {action}: {e}") from e
