"""Registration and login."""
from __future__ import annotations

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import crud
import models
import schemas
import security
from errors import BadRequest, Conflict, NotFound, Unauthorized, store_errors

logger = structlog.get_logger(__name__)


def register(db: Session, fields: schemas.UserCreate) -> models.User:
    if not (fields.name and fields.email and fields.password and fields.role):
        raise BadRequest("All fields are required")

    role = models.Role.parse(fields.role)

    with store_errors(db, "registering user"):
        existing = crud.get_user_by_email(db, fields.email)
        if existing:
            raise Conflict(f'User with this email: "{existing.email}" already exists')

        try:
            user = crud.create_user(
                db,
                name=fields.name,
                email=fields.email,
                password_hash=security.hash_password(fields.password),
                role=role,
                bio=fields.bio,
                resume_url=fields.resume_url,
            )
            db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email
            db.rollback()
            raise Conflict(f'User with this email: "{fields.email}" already exists')
        db.refresh(user)

    logger.info("User registered", user_id=user.id, role=role.value)
    return user


def login(db: Session, fields: schemas.UserLogin) -> tuple[str, models.User]:
    """Check credentials and return ``(token, user)``."""
    if not fields.email or not fields.password:
        raise BadRequest("Email and password are required")

    with store_errors(db, "logging in"):
        user = crud.get_user_by_email(db, fields.email)

    if not user:
        logger.warning("Login for unknown email")
        raise NotFound("Invalid credentials")

    if not security.verify_password(fields.password, user.password_hash):
        logger.warning("Login with wrong password", user_id=user.id)
        raise Unauthorized("Invalid credentials")

    token = security.create_access_token(user.id, user.role.value)
    logger.info("User logged in", user_id=user.id)
    return token, user
