"""Job lifecycle and the public job search.

Employers create and manage the jobs they posted; everyone else only ever
sees active jobs. Ownership is always ``job.posted_by_id == identity.id``.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import structlog
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

import crud
import models
import schemas
from auth import ensure_role
from errors import BadRequest, Forbidden, InvalidState, NotFound, store_errors

logger = structlog.get_logger(__name__)

REQUIRED_FIELDS = ("title", "description", "location", "job_type", "employment_type", "category")
NUMBER_FIELDS = ("min_salary", "max_salary", "application_quota")
# Bounds of the INTEGER columns the number fields are stored in
INTEGER_MIN, INTEGER_MAX = -(2**31), 2**31 - 1


@dataclass
class SearchFilters:
    category: Optional[str] = None
    job_type: Optional[str] = None
    employment_type: Optional[str] = None
    tags: Optional[str] = None
    job_location: Optional[str] = None
    company_location: Optional[str] = None


@dataclass
class SearchPage:
    jobs: List[models.Job]
    page: int
    limit: int
    total_pages: int
    total_jobs: int


def _parse_number(field: str, value: Any) -> Optional[int]:
    """Absent or falsy numbers are stored as null, never zero.

    Parsed through ``Decimal`` so large integer strings keep every digit.
    """
    if not value:
        return None
    name = to_camel(field)
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise BadRequest(f"{name} must be a number")
    if not number.is_finite() or number != number.to_integral_value():
        raise BadRequest(f"{name} must be a whole number")
    if not INTEGER_MIN <= number <= INTEGER_MAX:
        raise BadRequest(f"{name} is out of range")
    return int(number)


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise BadRequest("expiresAt must be an ISO 8601 date")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_fields(supplied: Dict[str, Any]) -> Dict[str, Any]:
    """Coerce numeric and date fields; text fields pass through."""
    parsed = {}
    for key, value in supplied.items():
        if key in NUMBER_FIELDS:
            parsed[key] = _parse_number(key, value)
        elif key == "expires_at":
            parsed[key] = _parse_date(value)
        else:
            parsed[key] = value
    return parsed


def create(db: Session, identity: schemas.Identity, fields: schemas.JobCreate) -> models.Job:
    ensure_role(identity, models.Role.EMPLOYER, detail="Only employers can post jobs")

    if not identity.company_id:
        raise BadRequest("Please create your company profile before posting a job")

    data = fields.model_dump()
    if not all(data[key] for key in REQUIRED_FIELDS):
        raise BadRequest("Please fill all required fields")
    data = _parse_fields(data)

    with store_errors(db, "creating the job"):
        job = crud.create_job(
            db,
            company_id=identity.company_id,
            posted_by_id=identity.id,
            **data,
        )
        db.commit()
        db.refresh(job)

    logger.info("Job created", job_id=job.id, company_id=job.company_id, user_id=identity.id)
    return job


def list_active(db: Session) -> List[models.Job]:
    """Every active job, newest first, with its company loaded."""
    with store_errors(db, "fetching jobs"):
        return crud.get_active_jobs(db)


def get_public(db: Session, job_id: int) -> models.Job:
    """An inactive job looks exactly like a missing one to public readers."""
    with store_errors(db, "fetching the job"):
        job = crud.get_job_with_details(db, job_id)
    if not job or not job.is_active:
        raise NotFound("Job not found or no longer active")
    return job


def update(db: Session, identity: schemas.Identity, job_id: int, fields: schemas.JobUpdate) -> models.Job:
    """Partial update of a job the caller posted.

    A supplied ``null`` is treated like an omitted field. Other supplied
    numbers and dates are parsed as on create, so ``0`` or ``""`` clears
    them. Company and poster never change.
    """
    ensure_role(identity, models.Role.EMPLOYER, detail="Only employers can update jobs")

    supplied = fields.model_dump(exclude_unset=True, exclude_none=True)
    # Required columns can't be blanked
    supplied = {
        key: value
        for key, value in supplied.items()
        if not (key in REQUIRED_FIELDS and not value)
    }
    changes = _parse_fields(supplied)

    with store_errors(db, "updating the job"):
        job = crud.get_job(db, job_id)
        if not job or job.posted_by_id != identity.id:
            raise Forbidden("You can only update jobs you posted")

        for key, value in changes.items():
            setattr(job, key, value)
        db.commit()
        db.refresh(job)

    logger.info("Job updated", job_id=job.id, fields=sorted(changes))
    return job


def deactivate(db: Session, identity: schemas.Identity, job_id: int) -> models.Job:
    ensure_role(identity, models.Role.EMPLOYER, detail="Only employers can deactivate jobs")

    with store_errors(db, "deactivating the job"):
        job = crud.get_job(db, job_id)
        if not job:
            raise NotFound("Job not found")
        if job.posted_by_id != identity.id:
            raise Forbidden("You can only deactivate jobs you posted")

        job.is_active = False
        db.commit()
        db.refresh(job)

    logger.info("Job deactivated", job_id=job.id)
    return job


def reactivate(db: Session, identity: schemas.Identity, job_id: int) -> models.Job:
    """Checks run in a fixed order: existence, company active, ownership,
    already active. An inactive company blocks even the rightful owner."""
    ensure_role(identity, models.Role.EMPLOYER, detail="Only employers can reactivate jobs")

    with store_errors(db, "reactivating the job"):
        job = crud.get_job(db, job_id)
        if not job:
            raise NotFound("Job not found")

        company = crud.get_company(db, job.company_id)
        if not company or not company.is_active:
            raise InvalidState("Cannot reactivate job linked to an inactive company")

        if job.posted_by_id != identity.id:
            raise Forbidden("You can only reactivate jobs you posted")

        if job.is_active:
            raise InvalidState("Job is already active")

        job.is_active = True
        db.commit()
        db.refresh(job)

    logger.info("Job reactivated", job_id=job.id)
    return job


def search_public(
    db: Session,
    filters: SearchFilters,
    page: int = 1,
    limit: int = 10,
    max_limit: Optional[int] = None,
) -> SearchPage:
    if page < 1:
        raise BadRequest("page must be 1 or greater")
    if limit < 1:
        raise BadRequest("limit must be 1 or greater")
    if max_limit is not None and limit > max_limit:
        raise BadRequest(f"limit must not exceed {max_limit}")

    skip = (page - 1) * limit
    with store_errors(db, "fetching public jobs"):
        jobs, total = crud.search_active_jobs(
            db,
            category=filters.category,
            job_type=filters.job_type,
            employment_type=filters.employment_type,
            tags=filters.tags,
            job_location=filters.job_location,
            company_location=filters.company_location,
            skip=skip,
            limit=limit,
        )

    return SearchPage(
        jobs=jobs,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit),
        total_jobs=total,
    )
