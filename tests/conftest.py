"""Shared fixtures: in-memory repositories and an app wired to them."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

import pytest
from fastapi.testclient import TestClient

from livepoll.core.errors import PollAppError
from livepoll.core.jwt import create_access_token
from livepoll.main import create_app
from livepoll.models.poll import Poll, PollOption, VoteRecord
from livepoll.models.user import User, UserLoginState, UserRegistrationState


class InMemoryPollRepository:
    """Mirrors the conditional-update semantics of PollRepository."""

    def __init__(self):
        self.polls: Dict[str, Poll] = {}
        self.writes = 0

    def _copy(self, poll: Optional[Poll]) -> Optional[Poll]:
        return poll.model_copy(deep=True) if poll else None

    async def get_by_id(self, poll_id: str) -> Optional[Poll]:
        return self._copy(self.polls.get(poll_id))

    async def create_poll(self, poll: Poll) -> None:
        self.writes += 1
        self.polls[poll.poll_id] = poll.model_copy(deep=True)

    async def list_all(self) -> List[Poll]:
        ordered = sorted(self.polls.values(), key=lambda p: p.created_at, reverse=True)
        return [self._copy(p) for p in ordered]

    async def cast_vote(self, poll_id: str, option_id: str, username: str) -> bool:
        self.writes += 1
        poll = self.polls.get(poll_id)
        if (
            poll is None
            or not poll.is_active
            or poll.option(option_id) is None
            or poll.vote_of(username) is not None
        ):
            return False
        poll.option(option_id).votes += 1
        poll.voters.append(VoteRecord(username=username, option_id=option_id))
        return True

    async def change_vote(
        self, poll_id: str, new_option_id: str, username: str, previous_option_id: str
    ) -> bool:
        if previous_option_id == new_option_id:
            raise PollAppError.conflict("Already voted to the option in the poll.")
        self.writes += 1
        poll = self.polls.get(poll_id)
        if (
            poll is None
            or not poll.is_active
            or poll.option(new_option_id) is None
            or poll.vote_of(username) != previous_option_id
        ):
            return False
        poll.option(previous_option_id).votes -= 1
        poll.option(new_option_id).votes += 1
        for record in poll.voters:
            if record.username == username:
                record.option_id = new_option_id
        return True

    async def close(self, poll_id: str, username: str) -> bool:
        self.writes += 1
        poll = self.polls.get(poll_id)
        if poll is None or poll.username != username:
            return False
        poll.is_active = False
        return True

    async def reset(self, poll_id: str, username: str) -> bool:
        self.writes += 1
        poll = self.polls.get(poll_id)
        if poll is None or poll.username != username:
            return False
        for option in poll.options:
            option.votes = 0
        poll.voters = []
        return True

    async def delete(self, poll_id: str, username: str) -> bool:
        self.writes += 1
        poll = self.polls.get(poll_id)
        if poll is None or poll.username != username:
            return False
        del self.polls[poll_id]
        return True


class InMemoryUserRepository:
    def __init__(self):
        self.users: Dict[str, User] = {}
        self.reg_states: Dict[str, UserRegistrationState] = {}
        self.login_states: Dict[str, UserLoginState] = {}

    async def insert_user(self, user: User) -> None:
        if user.username in self.users:
            raise PollAppError.conflict(f"User '{user.username}' already exists")
        self.users[user.username] = user

    async def find_user(self, username: str) -> Optional[User]:
        return self.users.get(username)

    async def get_user_credentials(self, username: str) -> User:
        user = self.users.get(username)
        if user is None:
            raise PollAppError.not_found(f"User '{username}' not found")
        return user

    async def update_sign_count(self, username: str, sign_count: int) -> None:
        self.users[username].sign_count = sign_count

    async def store_reg_state(self, reg_state: UserRegistrationState) -> None:
        self.reg_states[reg_state.username] = reg_state

    async def get_reg_state(self, username: str) -> Optional[UserRegistrationState]:
        return self.reg_states.get(username)

    async def delete_reg_state(self, username: str) -> None:
        self.reg_states.pop(username, None)

    async def store_login_state(self, login_state: UserLoginState) -> None:
        self.login_states[login_state.username] = login_state

    async def get_login_state(self, username: str) -> Optional[UserLoginState]:
        return self.login_states.get(username)

    async def delete_login_state(self, username: str) -> None:
        self.login_states.pop(username, None)


@pytest.fixture
def poll_repo():
    return InMemoryPollRepository()


@pytest.fixture
def user_repo():
    return InMemoryUserRepository()


@pytest.fixture
def make_poll(poll_repo):
    """Store a poll with options ``a``, ``b``, ... holding the given vote counts."""

    def _make(
        poll_id: str = "p1",
        username: str = "alice",
        votes: Sequence[int] = (0, 0),
        is_active: bool = True,
        created_at: Optional[datetime] = None,
    ) -> Poll:
        now = created_at or datetime.now(timezone.utc)
        poll = Poll(
            poll_id=poll_id,
            username=username,
            title=f"Poll {poll_id}",
            options=[
                PollOption(option_id=chr(ord("a") + i), text=f"Option {i}", votes=count)
                for i, count in enumerate(votes)
            ],
            is_active=is_active,
            voters=[],
            created_at=now,
            updated_at=now,
        )
        poll_repo.polls[poll_id] = poll
        return poll

    return _make


@pytest.fixture
def test_app(poll_repo, user_repo):
    """Create test FastAPI app."""
    return create_app(poll_repository=poll_repo, user_repository=user_repo)


@pytest.fixture
def client(test_app):
    """Create test client."""
    with TestClient(test_app) as c:
        yield c


@pytest.fixture
def auth_headers():
    def _headers(username: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(username)}"}

    return _headers
