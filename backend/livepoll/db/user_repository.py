from typing import Optional

from motor.motor_asyncio import AsyncIOMotorCollection
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError

from livepoll.core.errors import PollAppError
from livepoll.db.client import upstream_errors
from livepoll.models.user import User, UserLoginState, UserRegistrationState


class UserRepository:
    def __init__(
        self,
        user_collection: AsyncIOMotorCollection,
        reg_state_collection: AsyncIOMotorCollection,
        login_state_collection: AsyncIOMotorCollection,
    ):
        self.user_collection = user_collection
        self.reg_state_collection = reg_state_collection
        self.login_state_collection = login_state_collection

    async def insert_user(self, user: User) -> None:
        with upstream_errors("insert user"):
            try:
                await self.user_collection.insert_one(user.model_dump(by_alias=True))
            except DuplicateKeyError:
                raise PollAppError.conflict(f"User '{user.username}' already exists")

    async def find_user(self, username: str) -> Optional[User]:
        with upstream_errors("find user"):
            doc = await self.user_collection.find_one({"username": username})
        if not doc:
            return None
        try:
            return User.model_validate(doc)
        except ValidationError:
            raise PollAppError.serialization(f"Stored credentials for '{username}' are malformed")

    async def get_user_credentials(self, username: str) -> User:
        user = await self.find_user(username)
        if user is None:
            raise PollAppError.not_found(f"User '{username}' not found")
        return user

    async def update_sign_count(self, username: str, sign_count: int) -> None:
        with upstream_errors("update sign count"):
            await self.user_collection.update_one(
                {"username": username}, {"$set": {"signCount": sign_count}}
            )

    async def store_reg_state(self, reg_state: UserRegistrationState) -> None:
        with upstream_errors("store registration state"):
            await self.reg_state_collection.update_one(
                {"username": reg_state.username},
                {"$set": reg_state.model_dump(by_alias=True)},
                upsert=True,
            )

    async def get_reg_state(self, username: str) -> Optional[UserRegistrationState]:
        with upstream_errors("read registration state"):
            doc = await self.reg_state_collection.find_one({"username": username})
        if not doc:
            return None
        try:
            return UserRegistrationState.model_validate(doc)
        except ValidationError:
            raise PollAppError.serialization("Failed to deserialize the registration state.")

    async def delete_reg_state(self, username: str) -> None:
        with upstream_errors("delete registration state"):
            await self.reg_state_collection.delete_one({"username": username})

    async def store_login_state(self, login_state: UserLoginState) -> None:
        with upstream_errors("store login state"):
            await self.login_state_collection.update_one(
                {"username": login_state.username},
                {"$set": login_state.model_dump()},
                upsert=True,
            )

    async def get_login_state(self, username: str) -> Optional[UserLoginState]:
        with upstream_errors("read login state"):
            doc = await self.login_state_collection.find_one({"username": username})
        if not doc:
            return None
        try:
            return UserLoginState.model_validate(doc)
        except ValidationError:
            raise PollAppError.serialization("Failed to deserialize the login state.")

    async def delete_login_state(self, username: str) -> None:
        with upstream_errors("delete login state"):
            await self.login_state_collection.delete_one({"username": username})
