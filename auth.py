"""Authentication and role checks.

``get_current_user`` is the FastAPI dependency guarding every protected
route:
1. Extracts the ``Authorization: Bearer <token>`` header.
2. Verifies signature and expiry of the HS256 token (see ``security``).
3. Loads the referenced ``models.User`` and returns it as an ``Identity``.

Any failure raises ``Unauthorized``. ``ensure_role`` is the role predicate
the lifecycle operations call before their ownership checks.
"""
from __future__ import annotations

from typing import Annotated, Optional

import structlog
from fastapi import Depends, Request
from sqlalchemy.orm import Session

import crud
import security
from database import get_db
from errors import Forbidden, Unauthorized
from models import Role
from schemas import Identity

logger = structlog.get_logger(__name__)


# Helper to extract Authorization header (works with FastAPI DI)
def _get_authorization_header(request: Request) -> Optional[str]:
    return request.headers.get("Authorization")


def resolve_identity(db: Session, authorization: Optional[str]) -> Identity:
    """Turn a raw Authorization header value into the caller's identity."""
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthorized("Not authorized, token missing")

    token = authorization.split(" ", 1)[1].strip()
    try:
        payload = security.decode_access_token(token)
    except security.TokenError as exc:
        logger.warning("Token verification failed", exc=str(exc))
        raise Unauthorized("Not authorized, token invalid")

    user = crud.get_user_by_id(db, payload.user_id)
    if not user:
        logger.warning("Token references missing user", user_id=payload.user_id)
        raise Unauthorized("Not authorized, user not found")

    return Identity.model_validate(user)


# --- FastAPI dependency ---
def get_current_user(
    authorization: Annotated[Optional[str], Depends(_get_authorization_header)],
    db: Session = Depends(get_db),
) -> Identity:
    return resolve_identity(db, authorization)


def ensure_role(
    identity: Identity,
    *roles: Role,
    detail: str = "Forbidden: You do not have access to this resource",
) -> None:
    """Raise Forbidden unless the caller holds one of ``roles``."""
    if identity.role not in roles:
        logger.warning(
            "Role check failed",
            user_id=identity.id,
            role=identity.role.value,
            required=[role.value for role in roles],
        )
        raise Forbidden(detail)
