from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional

from jose import jwt, JWTError
from livepoll.core.config import settings
from livepoll.core.errors import PollAppError


def create_access_token(subject: str, extra: Optional[Dict[str, Any]] = None) -> str:
    to_encode = {"sub": subject}
    if extra:
        to_encode.update(extra)
    expire = datetime.now(timezone.utc) + timedelta(seconds=settings.JWT_EXP_SECONDS)
    to_encode.update({"exp": expire})
    token = jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return token


def decode_token(token: str) -> Dict[str, Any]:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise PollAppError.unauthenticated("Invalid or expired token")
    if not payload.get("sub"):
        raise PollAppError.unauthenticated("Token has no subject")
    return payload
