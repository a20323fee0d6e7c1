from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional

from livepoll.core.broadcaster import Broadcaster
from livepoll.core.deps import get_broadcaster, get_poll_repository
from livepoll.db.poll_repository import PollRepository
from livepoll.models.poll import Poll
from livepoll.routes.auth import get_current_user
from livepoll.schemas.poll import MessageOut, MyVoteOut, PollCreate, PollResults, VoteIn
from livepoll.services import poll_service

router = APIRouter(prefix="/api", tags=["Polls"])


@router.get("/", response_model=List[Poll])
async def list_polls(repo: PollRepository = Depends(get_poll_repository)):
    return await poll_service.list_polls_service(repo)


@router.get("/polls/{poll_id}", response_model=Poll)
async def get_poll(poll_id: str, repo: PollRepository = Depends(get_poll_repository)):
    return await poll_service.get_poll_by_id_service(repo, poll_id)


@router.get("/polls/{poll_id}/results", response_model=PollResults)
async def get_poll_results(
    poll_id: str,
    live: Optional[bool] = Query(None),
    closed: Optional[bool] = Query(None),
    creator: Optional[str] = Query(None),
    repo: PollRepository = Depends(get_poll_repository),
    hub: Broadcaster = Depends(get_broadcaster),
):
    return await poll_service.get_poll_results_service(
        repo, hub, poll_id, live=live, closed=closed, creator=creator
    )


@router.post("/polls/", response_model=Poll, status_code=status.HTTP_201_CREATED)
async def create_poll(
    payload: PollCreate,
    user=Depends(get_current_user),
    repo: PollRepository = Depends(get_poll_repository),
    hub: Broadcaster = Depends(get_broadcaster),
):
    return await poll_service.create_poll_service(repo, hub, user["sub"], payload)


# --- Voting and lifecycle endpoints ---

@router.post("/polls/{poll_id}/vote", response_model=MessageOut)
async def cast_vote(
    poll_id: str,
    payload: VoteIn,
    user=Depends(get_current_user),
    repo: PollRepository = Depends(get_poll_repository),
    hub: Broadcaster = Depends(get_broadcaster),
):
    message = await poll_service.vote_service(repo, hub, poll_id, payload.option_id, user["sub"])
    return {"message": message}


@router.post("/polls/{poll_id}/close", response_model=MessageOut)
async def close_poll(
    poll_id: str,
    user=Depends(get_current_user),
    repo: PollRepository = Depends(get_poll_repository),
    hub: Broadcaster = Depends(get_broadcaster),
):
    await poll_service.close_poll_service(repo, hub, poll_id, user["sub"])
    return {"message": "Closed poll successfully."}


@router.post("/polls/{poll_id}/reset", response_model=MessageOut)
async def reset_poll(
    poll_id: str,
    user=Depends(get_current_user),
    repo: PollRepository = Depends(get_poll_repository),
    hub: Broadcaster = Depends(get_broadcaster),
):
    await poll_service.reset_poll_service(repo, hub, poll_id, user["sub"])
    return {"message": "Poll reset successfully."}


@router.delete("/polls/{poll_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_poll(
    poll_id: str,
    user=Depends(get_current_user),
    repo: PollRepository = Depends(get_poll_repository),
    hub: Broadcaster = Depends(get_broadcaster),
):
    await poll_service.delete_poll_service(repo, hub, poll_id, user["sub"])


@router.get("/polls/{poll_id}/my-vote", response_model=MyVoteOut)
async def my_vote(
    poll_id: str,
    user=Depends(get_current_user),
    repo: PollRepository = Depends(get_poll_repository),
):
    option_id = await poll_service.my_vote_service(repo, poll_id, user["sub"])
    return MyVoteOut(voted=option_id is not None, option_id=option_id)
