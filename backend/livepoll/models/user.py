from typing import Any, Dict
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime


class User(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    username: str
    # base64url encoded, as produced by the authenticator
    credential_id: str = Field(..., alias="credentialId")
    public_key: str = Field(..., alias="publicKey")
    sign_count: int = Field(0, alias="signCount")
    created_at: datetime = Field(..., alias="createdAt")


class UserRegistrationState(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    username: str
    state: Dict[str, Any]


class UserLoginState(BaseModel):
    username: str
    state: Dict[str, Any]
