from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime


class PollOption(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    option_id: str = Field(..., alias="optionId")
    text: str
    votes: int = Field(0, ge=0)


class VoteRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: str
    option_id: str = Field(..., alias="optionId")


class Poll(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    poll_id: str = Field(..., alias="pollId")
    username: str
    title: str
    options: List[PollOption]
    is_active: bool = Field(True, alias="isActive")
    voters: List[VoteRecord] = Field(default_factory=list)
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    def option(self, option_id: str) -> Optional[PollOption]:
        return next((o for o in self.options if o.option_id == option_id), None)

    def vote_of(self, username: str) -> Optional[str]:
        """Option currently held by ``username``, if any."""
        record = next((v for v in self.voters if v.username == username), None)
        return record.option_id if record else None
