import asyncio
import contextlib
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from livepoll.core.broadcaster import Broadcaster
from livepoll.core.config import settings
from livepoll.core.errors import PollAppError, poll_app_error_handler
from livepoll.core.logging_config import configure_logging, get_logger
from livepoll.db import close_client, get_db
from livepoll.db.indexes import create_indexes
from livepoll.db.poll_repository import PollRepository
from livepoll.db.user_repository import UserRepository
from livepoll.routes import auth, events, polls

logger = get_logger(__name__)


def create_app(
    poll_repository: Optional[PollRepository] = None,
    user_repository: Optional[UserRepository] = None,
) -> FastAPI:
    configure_logging(settings.LOG_LEVEL)
    broadcaster = Broadcaster(queue_size=settings.SUBSCRIBER_QUEUE_SIZE)

    # repositories are Motor-backed unless the caller supplies its own
    owns_database = poll_repository is None or user_repository is None
    if owns_database:
        db = get_db()
        poll_repository = poll_repository or PollRepository(db.poll)
        user_repository = user_repository or UserRepository(db.user, db.regstate, db.loginstate)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting live poll server", extra={"env": settings.ENV})
        if owns_database:
            await create_indexes(get_db())
        reclaimer = asyncio.create_task(broadcaster.run_reclaimer(settings.PING_INTERVAL_SECONDS))
        yield
        logger.info("Shutting down live poll server")
        reclaimer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await reclaimer
        broadcaster.close()
        if owns_database:
            close_client()

    app = FastAPI(title="Live Poll API", version="1.0", lifespan=lifespan)
    app.state.broadcaster = broadcaster
    app.state.poll_repository = poll_repository
    app.state.user_repository = user_repository

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(PollAppError, poll_app_error_handler)

    # Routers
    app.include_router(auth.router)
    app.include_router(polls.router)
    app.include_router(events.router)

    @app.get("/", response_class=PlainTextResponse, tags=["Health"])
    async def home():
        return "Hello! Welcome to the backend api of polling application."

    @app.get("/healthz", tags=["Health"])
    async def healthz(request: Request):
        hub: Broadcaster = request.app.state.broadcaster
        return {"ok": True, "subscribers": hub.subscriber_count, "dropped_frames": hub.dropped}

    return app


def run() -> None:
    uvicorn.run(create_app(), host=settings.APP_HOST, port=settings.APP_PORT)


if __name__ == "__main__":
    run()
