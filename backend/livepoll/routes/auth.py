from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request, Response

from livepoll.core.config import settings
from livepoll.core.deps import get_user_repository
from livepoll.core.errors import PollAppError
from livepoll.core.jwt import decode_token
from livepoll.db.user_repository import UserRepository
from livepoll.schemas.poll import MessageOut
from livepoll.schemas.user import UserPublic
from livepoll.services import auth_service


router = APIRouter(prefix="/api/auth", tags=["auth"])

TOKEN_COOKIE = "token"


def get_current_user(request: Request) -> Dict[str, Any]:
    """Claims of the caller's token, taken from the cookie or a bearer header."""
    token: Optional[str] = request.cookies.get(TOKEN_COOKIE)
    if not token:
        scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
        if scheme.lower() == "bearer" and credentials:
            token = credentials
    if not token:
        raise PollAppError.unauthenticated("No token found in cookies")
    return decode_token(token)


@router.post("/register/start/{username}")
async def register_start(username: str, users: UserRepository = Depends(get_user_repository)):
    return await auth_service.start_registration(users, username)


@router.post("/register/finish/{username}", response_model=UserPublic)
async def register_finish(
    username: str,
    credential: Dict[str, Any] = Body(...),
    users: UserRepository = Depends(get_user_repository),
):
    user = await auth_service.finish_registration(users, username, credential)
    return UserPublic(id=user.id, username=user.username)


@router.post("/login/start/{username}")
async def login_start(username: str, users: UserRepository = Depends(get_user_repository)):
    return await auth_service.start_authentication(users, username)


@router.post("/login/finish/{username}", response_model=MessageOut)
async def login_finish(
    username: str,
    response: Response,
    credential: Dict[str, Any] = Body(...),
    users: UserRepository = Depends(get_user_repository),
):
    token = await auth_service.finish_authentication(users, username, credential)
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        path="/",
        httponly=True,
        max_age=settings.JWT_EXP_SECONDS,
        samesite="none",
        secure=True,
    )
    return {"message": "Logged in successfully."}


@router.post("/logout", response_model=MessageOut)
async def logout(response: Response):
    response.delete_cookie(TOKEN_COOKIE, path="/", httponly=True, samesite="none", secure=True)
    return {"message": "Logged out successfully"}
