"""Company profile lifecycle: create, read, update, deactivate, reactivate.

Every operation is employer-only and acts on the company referenced by the
caller's ``company_id``; a company is never addressed by id from outside.
"""
from __future__ import annotations

import structlog
from sqlalchemy.orm import Session

import crud
import models
import schemas
from auth import ensure_role
from errors import Conflict, InvalidState, NotFound, store_errors

logger = structlog.get_logger(__name__)

NO_COMPANY = "No company profile found for this user"


def _require_company_ref(identity: schemas.Identity) -> int:
    if not identity.company_id:
        raise NotFound(NO_COMPANY)
    return identity.company_id


def create(db: Session, identity: schemas.Identity, fields: schemas.CompanyCreate) -> models.Company:
    """Create the caller's company and link it to them in one transaction."""
    ensure_role(identity, models.Role.EMPLOYER, detail="Only employers can create a company profile")

    with store_errors(db, "creating company profile"):
        # Re-read the row: the identity snapshot may predate another request
        user = crud.get_user_by_id(db, identity.id)
        if user.company_id is not None:
            raise Conflict("You already have a company profile")

        company = crud.create_company(db, **fields.model_dump())
        user.company_id = company.id
        db.commit()
        db.refresh(company)

    logger.info("Company created", company_id=company.id, user_id=identity.id)
    return company


def get_mine(db: Session, identity: schemas.Identity) -> models.Company:
    ensure_role(
        identity,
        models.Role.EMPLOYER,
        detail="Access denied: Only employers can view company profiles",
    )
    company_id = _require_company_ref(identity)

    with store_errors(db, "fetching company profile"):
        company = crud.get_company(db, company_id)
    if not company:
        # Broken reference
        raise NotFound("Company profile not found or no longer active")
    return company


def update(db: Session, identity: schemas.Identity, fields: schemas.CompanyUpdate) -> models.Company:
    """Partial update: only fields that were supplied with a value change."""
    ensure_role(
        identity,
        models.Role.EMPLOYER,
        detail="Access denied: Only employers can update company profiles",
    )
    company_id = _require_company_ref(identity)

    with store_errors(db, "updating company profile"):
        company = crud.get_company(db, company_id)
        if not company:
            raise NotFound("Company profile not found or no longer active")

        changes = {
            key: value
            for key, value in fields.model_dump(exclude_unset=True).items()
            if value is not None
        }
        for key, value in changes.items():
            setattr(company, key, value)
        db.commit()
        db.refresh(company)

    logger.info("Company updated", company_id=company.id, fields=sorted(changes))
    return company


def deactivate(db: Session, identity: schemas.Identity) -> models.Company:
    """Soft-delete. Deactivating an inactive company is a no-op success."""
    ensure_role(
        identity,
        models.Role.EMPLOYER,
        detail="Access denied: Only employers can deactivate company profiles",
    )
    company_id = _require_company_ref(identity)

    with store_errors(db, "deactivating company profile"):
        company = crud.get_company(db, company_id)
        if not company:
            raise NotFound("Company profile not found")
        company.is_active = False
        db.commit()
        db.refresh(company)

    logger.info("Company deactivated", company_id=company.id)
    return company


def reactivate(db: Session, identity: schemas.Identity) -> models.Company:
    ensure_role(
        identity,
        models.Role.EMPLOYER,
        detail="Access denied: Only employers can reactivate company profiles",
    )
    company_id = _require_company_ref(identity)

    with store_errors(db, "reactivating company profile"):
        company = crud.get_company(db, company_id)
        if not company:
            raise NotFound("Company profile not found")
        if company.is_active:
            raise InvalidState("Company profile is already active")

        company.is_active = True
        db.commit()
        db.refresh(company)

    logger.info("Company reactivated", company_id=company.id)
    return company
