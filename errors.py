"""Error taxonomy shared by every lifecycle operation.

Operations raise these directly; ``main.py`` turns them into
``{"error": "<message>"}`` JSON responses with the class's status code.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import structlog
from fastapi import status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = structlog.get_logger(__name__)


class JobBoardError(Exception):
    """Base error carrying a user-facing message and an HTTP status."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class BadRequest(JobBoardError):
    """Missing or malformed input, or an invalid enum value."""

    status_code = status.HTTP_400_BAD_REQUEST


class Unauthorized(JobBoardError):
    """Missing, invalid or expired credential."""

    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(JobBoardError):
    """Wrong role, or not the owner of the resource."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFound(JobBoardError):
    """Entity absent, hidden because inactive, or a broken reference."""

    status_code = status.HTTP_404_NOT_FOUND


class Conflict(JobBoardError):
    """Duplicate company, application or email."""

    status_code = status.HTTP_409_CONFLICT


class InvalidState(JobBoardError):
    """Illegal lifecycle transition (e.g. reactivating an active entity)."""

    status_code = status.HTTP_400_BAD_REQUEST


class InternalError(JobBoardError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


@contextmanager
def store_errors(db: Session, action: str) -> Iterator[None]:
    """Roll back and re-raise store failures as a generic ``InternalError``.

    ``action`` completes the sentence "Something went wrong while ...".
    Domain errors raised inside the block pass through untouched.
    """
    try:
        yield
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Store failure", action=action)
        raise InternalError(f"Something went wrong while {action}")
