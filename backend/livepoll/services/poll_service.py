from datetime import datetime, timezone
from typing import List, Optional
import uuid

from livepoll.core.broadcaster import Broadcaster
from livepoll.core.errors import PollAppError
from livepoll.core.logging_config import get_logger
from livepoll.db.poll_repository import PollRepository
from livepoll.models.poll import Poll, PollOption
from livepoll.schemas.poll import PollCreate, PollResults
from livepoll.utils.poll_results import calculate_poll_results

logger = get_logger(__name__)


# helper: create poll/option id
def new_id() -> str:
    return str(uuid.uuid4())


def broadcast_poll(hub: Broadcaster, poll: Poll) -> PollResults:
    """Push the raw poll and its fresh results to every live subscriber."""
    hub.publish_poll_updated(poll)
    results = calculate_poll_results(poll)
    hub.publish_poll_results(results)
    return results


async def _require_poll(repo: PollRepository, poll_id: str) -> Poll:
    poll = await repo.get_by_id(poll_id)
    if poll is None:
        raise PollAppError.not_found(f"Poll with ID '{poll_id}' not found")
    return poll


async def _publish_latest(repo: PollRepository, hub: Broadcaster, poll_id: str) -> None:
    poll = await repo.get_by_id(poll_id)
    if poll is not None:
        broadcast_poll(hub, poll)


async def create_poll_service(
    repo: PollRepository, hub: Broadcaster, username: str, payload: PollCreate
) -> Poll:
    now = datetime.now(timezone.utc)
    poll = Poll(
        poll_id=new_id(),
        username=username,
        title=payload.title,
        options=[PollOption(option_id=new_id(), text=text, votes=0) for text in payload.options],
        is_active=True,
        voters=[],
        created_at=now,
        updated_at=now,
    )
    await repo.create_poll(poll)
    logger.info("Poll %s created by %s", poll.poll_id, username)
    broadcast_poll(hub, poll)
    return poll


async def list_polls_service(repo: PollRepository) -> List[Poll]:
    return await repo.list_all()


async def get_poll_by_id_service(repo: PollRepository, poll_id: str) -> Poll:
    return await _require_poll(repo, poll_id)


async def get_poll_results_service(
    repo: PollRepository,
    hub: Broadcaster,
    poll_id: str,
    live: Optional[bool] = None,
    closed: Optional[bool] = None,
    creator: Optional[str] = None,
) -> PollResults:
    """Compute results, optionally asserting the poll's state and owner.

    The results are also broadcast so that connected viewers catch up.
    """
    poll = await _require_poll(repo, poll_id)

    if closed is not None and closed == poll.is_active:
        raise PollAppError.invalid("Query parameters mismatch, poll status is not specified correctly.")
    if live is not None and live != poll.is_active:
        raise PollAppError.invalid("Query parameters mismatch, poll status is not specified correctly.")
    if creator is not None and creator != poll.username:
        raise PollAppError.unauthorized("Query parameters mismatch, provided creator is not owner of this poll.")

    results = calculate_poll_results(poll)
    hub.publish_poll_results(results)
    return results


async def vote_service(
    repo: PollRepository, hub: Broadcaster, poll_id: str, option_id: str, voter: str
) -> str:
    """
    Cast or change a vote. Behavior:
     - Closed poll: conflict, nothing written.
     - Voter has not voted: record the vote, increment the option.
     - Voter already holds this option: conflict, nothing written.
     - Voter holds another option: move the vote in one conditional update.
    """
    poll = await _require_poll(repo, poll_id)
    if not poll.is_active:
        raise PollAppError.conflict("Cannot vote to a closed poll")
    if poll.option(option_id) is None:
        raise PollAppError.not_found("Option not found in poll")

    previous = poll.vote_of(voter)
    if previous == option_id:
        raise PollAppError.conflict("Already voted to the option in the poll.")

    if previous is None:
        applied = await repo.cast_vote(poll_id, option_id, voter)
        message = "Successfully voted for the option."
    else:
        applied = await repo.change_vote(poll_id, option_id, voter, previous_option_id=previous)
        message = "Successfully changed your option."

    if not applied:
        # the conditional update saw a different poll than we did
        current = await repo.get_by_id(poll_id)
        if current is None:
            raise PollAppError.not_found(f"Poll with ID '{poll_id}' not found")
        if not current.is_active:
            raise PollAppError.conflict("Cannot vote to a closed poll")
        raise PollAppError.conflict("Your vote changed while this request was in flight, please retry.")

    await _publish_latest(repo, hub, poll_id)
    return message


async def close_poll_service(
    repo: PollRepository, hub: Broadcaster, poll_id: str, requester: str
) -> None:
    poll = await _require_poll(repo, poll_id)
    if poll.username != requester:
        raise PollAppError.unauthorized("Poll can be closed only by the creator.")
    if not await repo.close(poll_id, requester):
        raise PollAppError.not_found(f"Poll with ID '{poll_id}' not found")
    logger.info("Poll %s closed", poll_id)
    await _publish_latest(repo, hub, poll_id)


async def reset_poll_service(
    repo: PollRepository, hub: Broadcaster, poll_id: str, requester: str
) -> None:
    poll = await _require_poll(repo, poll_id)
    if poll.username != requester:
        raise PollAppError.unauthorized("Only the creator can reset the votes.")
    if not await repo.reset(poll_id, requester):
        raise PollAppError.not_found(f"Poll with ID '{poll_id}' not found")
    logger.info("Poll %s reset", poll_id)
    await _publish_latest(repo, hub, poll_id)


async def delete_poll_service(
    repo: PollRepository, hub: Broadcaster, poll_id: str, requester: str
) -> None:
    poll = await _require_poll(repo, poll_id)
    if poll.username != requester:
        raise PollAppError.unauthorized("Poll can be deleted only by the creator.")
    if not await repo.delete(poll_id, requester):
        raise PollAppError.not_found(f"Poll with ID '{poll_id}' not found")
    logger.info("Poll %s deleted", poll_id)
    hub.publish_message(f"poll_deleted {poll_id}")


async def my_vote_service(repo: PollRepository, poll_id: str, voter: str) -> Optional[str]:
    poll = await _require_poll(repo, poll_id)
    return poll.vote_of(voter)
