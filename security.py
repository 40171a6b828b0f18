"""Password hashing and bearer token helpers.

Passwords are hashed with bcrypt through passlib; session tokens are HS256
JWTs signed with ``settings.jwt_secret``. Callers only see ``hash_password``,
``verify_password``, ``create_access_token`` and ``decode_access_token``.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

import structlog
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, ValidationError

from settings import get_settings

logger = structlog.get_logger(__name__)


class TokenError(Exception):
    """Token could not be decoded or validated."""


class TokenExpiredError(TokenError):
    pass


class TokenPayload(BaseModel):
    sub: str
    role: str
    exp: int
    iat: Optional[int] = None

    @property
    def user_id(self) -> int:
        return int(self.sub)


@lru_cache
def _pwd_context() -> CryptContext:
    return CryptContext(
        schemes=["bcrypt"],
        deprecated="auto",
        bcrypt__rounds=get_settings().bcrypt_rounds,
    )


def hash_password(password: str) -> str:
    return _pwd_context().hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return _pwd_context().verify(plain_password, hashed_password)
    except (ValueError, TypeError) as exc:
        # Unrecognised or corrupt hash in the store
        logger.error("Password verification error", exc=str(exc))
        return False


def create_access_token(
    user_id: int, role: str, expires_delta: Optional[timedelta] = None
) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    to_encode = {
        "sub": str(user_id),
        "role": role,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_delta).timestamp()),
    }
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> TokenPayload:
    """Verify signature and expiry and return the claims.

    Raises TokenExpiredError for an expired token and TokenError for anything
    else that is wrong with it.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError as exc:
        raise TokenExpiredError("Token has expired") from exc
    except JWTError as exc:
        raise TokenError(f"Invalid token: {exc}") from exc

    try:
        claims = TokenPayload.model_validate(payload)
    except ValidationError as exc:
        raise TokenError("Malformed token claims") from exc
    if not claims.sub.isdigit():
        raise TokenError("Malformed token subject")
    return claims
