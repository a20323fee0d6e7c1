"""Poll persistence.

Vote writes are single conditional updates: the filter states what the
document must currently look like (poll open, voter's current choice) and
MongoDB applies the whole change or nothing.
"""
from datetime import datetime, timezone
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorCollection

from livepoll.core.errors import PollAppError
from livepoll.db.client import upstream_errors
from livepoll.models.poll import Poll
from livepoll.utils.serializers import poll_from_document, poll_to_document


class PollRepository:
    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    async def get_by_id(self, poll_id: str) -> Optional[Poll]:
        with upstream_errors("find poll"):
            doc = await self.collection.find_one({"pollId": poll_id})
        return poll_from_document(doc) if doc else None

    async def create_poll(self, poll: Poll) -> None:
        with upstream_errors("create poll"):
            await self.collection.insert_one(poll_to_document(poll))

    async def list_all(self) -> List[Poll]:
        with upstream_errors("list polls"):
            docs = await self.collection.find({}).sort("createdAt", -1).to_list(length=None)
        return [poll_from_document(doc) for doc in docs]

    async def cast_vote(self, poll_id: str, option_id: str, username: str) -> bool:
        """Record a first vote. False if the poll is closed, lacks the option or the voter already voted."""
        query = {
            "pollId": poll_id,
            "isActive": True,
            "options.optionId": option_id,
            "voters.username": {"$ne": username},
        }
        update = {
            "$inc": {"options.$[option].votes": 1},
            "$push": {"voters": {"username": username, "optionId": option_id}},
            "$set": {"updatedAt": datetime.now(timezone.utc)},
        }
        with upstream_errors("cast vote"):
            result = await self.collection.update_one(
                query, update, array_filters=[{"option.optionId": option_id}]
            )
        return result.matched_count == 1

    async def change_vote(
        self, poll_id: str, new_option_id: str, username: str, previous_option_id: str
    ) -> bool:
        """Move a vote from ``previous_option_id`` to ``new_option_id`` in one update.

        False if the voter's recorded choice is no longer ``previous_option_id``.
        """
        if previous_option_id == new_option_id:
            raise PollAppError.conflict("Already voted to the option in the poll.")
        query = {
            "pollId": poll_id,
            "isActive": True,
            "options.optionId": new_option_id,
            "voters": {"$elemMatch": {"username": username, "optionId": previous_option_id}},
        }
        update = {
            "$inc": {
                "options.$[prev].votes": -1,
                "options.$[next].votes": 1,
            },
            "$set": {
                "voters.$[voter].optionId": new_option_id,
                "updatedAt": datetime.now(timezone.utc),
            },
        }
        array_filters = [
            {"prev.optionId": previous_option_id},
            {"next.optionId": new_option_id},
            {"voter.username": username},
        ]
        with upstream_errors("change vote"):
            result = await self.collection.update_one(query, update, array_filters=array_filters)
        return result.matched_count == 1

    async def close(self, poll_id: str, username: str) -> bool:
        with upstream_errors("close poll"):
            result = await self.collection.update_one(
                {"pollId": poll_id, "username": username},
                {"$set": {"isActive": False, "updatedAt": datetime.now(timezone.utc)}},
            )
        return result.matched_count == 1

    async def reset(self, poll_id: str, username: str) -> bool:
        """Zero every option and forget all voters."""
        with upstream_errors("reset votes"):
            result = await self.collection.update_one(
                {"pollId": poll_id, "username": username},
                {"$set": {
                    "options.$[].votes": 0,
                    "voters": [],
                    "updatedAt": datetime.now(timezone.utc),
                }},
            )
        return result.matched_count == 1

    async def delete(self, poll_id: str, username: str) -> bool:
        with upstream_errors("delete poll"):
            result = await self.collection.delete_one({"pollId": poll_id, "username": username})
        return result.deleted_count == 1
