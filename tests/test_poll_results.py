"""Tests for the poll results projection."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from livepoll.utils.poll_results import calculate_poll_results, format_duration


def test_percentages_follow_vote_share(make_poll):
    results = calculate_poll_results(make_poll(votes=(70, 30)))
    assert results.total_votes == 100
    assert [o.percentage for o in results.options] == [70.0, 30.0]
    assert [o.votes for o in results.options] == [70, 30]


def test_no_votes_gives_zero_percentages(make_poll):
    results = calculate_poll_results(make_poll(votes=(0, 0)))
    assert results.total_votes == 0
    assert [o.percentage for o in results.options] == [0.0, 0.0]


def test_uneven_split_sums_to_hundred(make_poll):
    results = calculate_poll_results(make_poll(votes=(1, 2)))
    assert sum(o.percentage for o in results.options) == pytest.approx(100.0)
    assert results.options[0].percentage == pytest.approx(100 / 3)


def test_results_carry_poll_identity_and_wire_names(make_poll):
    poll = make_poll(poll_id="lunch", votes=(1, 0))
    data = calculate_poll_results(poll).model_dump(by_alias=True)
    assert data["pollId"] == "lunch"
    assert data["title"] == poll.title
    assert data["totalVotes"] == 1
    assert data["options"][0]["optionId"] == "a"
    assert "timeElapsed" in data


def test_elapsed_time_is_measured_from_creation(make_poll):
    created = datetime(2024, 1, 1, tzinfo=timezone.utc)
    poll = make_poll(created_at=created)
    results = calculate_poll_results(poll, now=created + timedelta(seconds=90061))
    assert results.time_elapsed == "1d 1h 1m 1s"


def test_naive_creation_time_is_treated_as_utc(make_poll):
    poll = make_poll(created_at=datetime(2024, 1, 1))
    now = datetime(2024, 1, 1, 0, 2, 3, tzinfo=timezone.utc)
    assert calculate_poll_results(poll, now=now).time_elapsed == "0d 0h 2m 3s"


@pytest.mark.parametrize(
    "seconds, expected",
    [
        (90061, "1d 1h 1m 1s"),
        (0, "0d 0h 0m 0s"),
        (59.9, "0d 0h 0m 59s"),
        (86399, "0d 23h 59m 59s"),
        (86400 * 12 + 5, "12d 0h 0m 5s"),
    ],
)
def test_format_duration(seconds, expected):
    assert format_duration(timedelta(seconds=seconds)) == expected


def test_negative_duration_is_clamped_to_zero():
    assert format_duration(timedelta(seconds=-3661)) == "0d 0h 0m 0s"
