"""Application lifecycle: apply, list, and status triage."""
from __future__ import annotations

from typing import List

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import crud
import models
import schemas
from auth import ensure_role
from errors import Conflict, Forbidden, NotFound, store_errors

logger = structlog.get_logger(__name__)


def apply(
    db: Session,
    identity: schemas.Identity,
    job_id: int,
    fields: schemas.ApplicationCreate,
) -> models.Application:
    """One application per (job, applicant). ``application_quota`` is not enforced."""
    ensure_role(identity, models.Role.APPLICANT, detail="Only applicants can apply to jobs")

    with store_errors(db, "applying to the job"):
        job = crud.get_job(db, job_id)
        if not job or not job.is_active:
            raise NotFound("Job not found or not accepting applications")

        if crud.find_application(db, job_id, identity.id):
            raise Conflict("You have already applied to this job")

        try:
            application = crud.create_application(
                db,
                job_id=job_id,
                user_id=identity.id,
                resume_url=fields.resume_url,
                cover_letter=fields.cover_letter,
            )
            db.commit()
        except IntegrityError:
            # A concurrent duplicate got past the check above
            db.rollback()
            raise Conflict("You have already applied to this job")
        db.refresh(application)

    logger.info("Application submitted", application_id=application.id, job_id=job_id, user_id=identity.id)
    return application


def list_mine(db: Session, identity: schemas.Identity) -> List[models.Application]:
    ensure_role(
        identity,
        models.Role.APPLICANT,
        detail="Only applicants can view their applications",
    )
    with store_errors(db, "fetching applications"):
        return crud.get_applications_for_user(db, identity.id)


def list_for_job(db: Session, identity: schemas.Identity, job_id: int) -> List[models.Application]:
    ensure_role(
        identity,
        models.Role.EMPLOYER,
        detail="Only employers can view applicants for jobs",
    )
    with store_errors(db, "fetching applicants"):
        job = crud.get_job(db, job_id)
        if not job:
            raise NotFound("Job not found")
        if job.posted_by_id != identity.id:
            raise Forbidden("You can only view applicants for jobs you posted")

        return crud.get_applications_for_job(db, job_id)


def update_status(
    db: Session,
    identity: schemas.Identity,
    application_id: int,
    status: str,
) -> models.Application:
    """Set any status from any status; only the job's poster may do it."""
    ensure_role(
        identity,
        models.Role.EMPLOYER,
        detail="Only employers can update application status",
    )
    new_status = models.ApplicationStatus.parse(status)

    with store_errors(db, "updating application status"):
        application = crud.get_application(db, application_id)
        if not application:
            raise NotFound("Application not found")
        if application.job.posted_by_id != identity.id:
            raise Forbidden("You can only update applications for jobs you posted")

        previous = application.status
        application.status = new_status
        db.commit()
        db.refresh(application)

    logger.info(
        "Application status updated",
        application_id=application.id,
        previous=previous.value,
        status=new_status.value,
    )
    return application
