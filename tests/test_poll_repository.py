"""Tests for the Mongo query documents built by PollRepository."""
from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from livepoll.core.errors import ErrorKind, PollAppError
from livepoll.db.poll_repository import PollRepository


class RecordingCollection:
    """Stands in for a Motor collection and remembers the last update."""

    def __init__(self, matched_count=1, error=None):
        self.matched_count = matched_count
        self.error = error
        self.calls = []

    async def update_one(self, query, update, **kwargs):
        if self.error:
            raise self.error
        self.calls.append((query, update, kwargs))
        return SimpleNamespace(matched_count=self.matched_count)

    async def find_one(self, query):
        if self.error:
            raise self.error
        return None


def test_cast_vote_is_conditioned_on_voter_absence():
    collection = RecordingCollection()
    assert asyncio.run(PollRepository(collection).cast_vote("p1", "a", "bob")) is True

    query, update, kwargs = collection.calls[0]
    assert query == {
        "pollId": "p1",
        "isActive": True,
        "options.optionId": "a",
        "voters.username": {"$ne": "bob"},
    }
    assert update["$inc"] == {"options.$[option].votes": 1}
    assert update["$push"] == {"voters": {"username": "bob", "optionId": "a"}}
    assert kwargs["array_filters"] == [{"option.optionId": "a"}]


def test_change_vote_moves_count_in_one_update():
    collection = RecordingCollection()
    repo = PollRepository(collection)
    assert asyncio.run(repo.change_vote("p1", "b", "bob", previous_option_id="a")) is True

    assert len(collection.calls) == 1
    query, update, kwargs = collection.calls[0]
    assert query["voters"] == {"$elemMatch": {"username": "bob", "optionId": "a"}}
    assert query["isActive"] is True
    assert update["$inc"] == {"options.$[prev].votes": -1, "options.$[next].votes": 1}
    assert update["$set"]["voters.$[voter].optionId"] == "b"
    assert kwargs["array_filters"] == [
        {"prev.optionId": "a"},
        {"next.optionId": "b"},
        {"voter.username": "bob"},
    ]


def test_change_to_same_option_writes_nothing():
    collection = RecordingCollection()
    with pytest.raises(PollAppError) as info:
        asyncio.run(PollRepository(collection).change_vote("p1", "a", "bob", previous_option_id="a"))
    assert info.value.kind is ErrorKind.CONFLICT
    assert collection.calls == []


def test_unmatched_update_reports_false():
    collection = RecordingCollection(matched_count=0)
    assert asyncio.run(PollRepository(collection).cast_vote("p1", "a", "bob")) is False


def test_reset_clears_all_counts_for_creator():
    collection = RecordingCollection()
    assert asyncio.run(PollRepository(collection).reset("p1", "alice")) is True
    query, update, _ = collection.calls[0]
    assert query == {"pollId": "p1", "username": "alice"}
    assert update["$set"]["options.$[].votes"] == 0
    assert update["$set"]["voters"] == []


def test_driver_failures_surface_as_upstream():
    collection = RecordingCollection(error=ServerSelectionTimeoutError("no servers"))
    repo = PollRepository(collection)
    with pytest.raises(PollAppError) as info:
        asyncio.run(repo.get_by_id("p1"))
    assert info.value.kind is ErrorKind.UPSTREAM
    assert info.value.status_code == 503
