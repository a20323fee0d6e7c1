from pydantic import BaseModel


class UserPublic(BaseModel):
    id: str
    username: str
