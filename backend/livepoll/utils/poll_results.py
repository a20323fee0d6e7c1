from datetime import datetime, timedelta, timezone
from typing import Optional

from livepoll.models.poll import Poll
from livepoll.schemas.poll import OptionResult, PollResults


def calculate_poll_results(poll: Poll, now: Optional[datetime] = None) -> PollResults:
    """Project a poll into its results read-model.

    Percentages are 0 for every option while the poll has no votes.
    """
    total_votes = sum(opt.votes for opt in poll.options)

    options = []
    for opt in poll.options:
        percentage = (opt.votes / total_votes) * 100.0 if total_votes > 0 else 0.0
        options.append(
            OptionResult(option_id=opt.option_id, text=opt.text, votes=opt.votes, percentage=percentage)
        )

    now = now or datetime.now(timezone.utc)
    created_at = poll.created_at
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)

    return PollResults(
        poll_id=poll.poll_id,
        title=poll.title,
        total_votes=total_votes,
        options=options,
        time_elapsed=format_duration(now - created_at),
    )


def format_duration(duration: timedelta) -> str:
    """Render as ``"{d}d {h}h {m}m {s}s"``, truncating at every unit.

    A negative duration (clock skew between writer and reader) is clamped to zero.
    """
    secs = max(int(duration.total_seconds()), 0)
    days = secs // 86400
    hours = (secs % 86400) // 3600
    minutes = (secs % 3600) // 60
    seconds = secs % 60

    return f"{days}d {hours}h {minutes}m {seconds}s"
