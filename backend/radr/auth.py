"""Bearer-token verification.

Session mechanics live elsewhere; this module only turns a bearer credential
into an authenticated ``Principal`` and mints tokens for dev tooling and tests.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from radr.config import settings

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    user_id: str
    username: str
    is_admin: bool = False


def create_token(user_id: str, username: str, is_admin: bool = False, ttl_hours: int = 24) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "username": username,
        "is_admin": is_admin,
        "iat": now,
        "exp": now + timedelta(hours=ttl_hours),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str) -> Principal:
    """Decode ``token``; raises ``jwt.InvalidTokenError`` on any defect."""
    data = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    return Principal(
        user_id=data["sub"],
        username=data.get("username", ""),
        is_admin=bool(data.get("is_admin", False)),
    )


def get_current_user(creds: HTTPAuthorizationCredentials | None = Depends(security)) -> Principal:
    if creds is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")
    try:
        return verify_token(creds.credentials)
    except (jwt.InvalidTokenError, KeyError):
        logger.info("Rejected invalid bearer token")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")


def require_admin(principal: Principal = Depends(get_current_user)) -> Principal:
    if not principal.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admins only")
    return principal
