from fastapi import Request

from livepoll.core.broadcaster import Broadcaster
from livepoll.db.poll_repository import PollRepository
from livepoll.db.user_repository import UserRepository


def get_broadcaster(request: Request) -> Broadcaster:
    return request.app.state.broadcaster


def get_poll_repository(request: Request) -> PollRepository:
    return request.app.state.poll_repository


def get_user_repository(request: Request) -> UserRepository:
    return request.app.state.user_repository
