from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class PollCreate(BaseModel):
    title: str = Field(..., min_length=1)
    options: List[str] = Field(..., min_length=2)


class VoteIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    option_id: str = Field(..., alias="optionId")


class OptionResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    option_id: str = Field(..., alias="optionId")
    text: str
    votes: int
    percentage: float


class PollResults(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    poll_id: str = Field(..., alias="pollId")
    title: str
    total_votes: int = Field(..., alias="totalVotes")
    options: List[OptionResult]
    time_elapsed: str = Field(..., alias="timeElapsed")


class MyVoteOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    voted: bool
    option_id: Optional[str] = Field(None, alias="optionId")


class MessageOut(BaseModel):
    message: str
