from typing import List, Optional, Tuple

from sqlalchemy.orm import Session, contains_eager, joinedload

import models


# --- User CRUD ---
def get_user_by_id(db: Session, user_id: int) -> Optional[models.User]:
    """Get a user by their primary key ID."""
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.email == email).first()


def create_user(
    db: Session,
    *,
    name: str,
    email: str,
    password_hash: str,
    role: models.Role,
    bio: Optional[str] = None,
    resume_url: Optional[str] = None,
) -> models.User:
    db_user = models.User(
        name=name,
        email=email,
        password_hash=password_hash,
        role=role,
        bio=bio,
        resume_url=resume_url,
    )
    db.add(db_user)
    db.flush()  # Assign ID without committing
    return db_user


# --- Company CRUD ---
def get_company(db: Session, company_id: int) -> Optional[models.Company]:
    return db.query(models.Company).filter(models.Company.id == company_id).first()


def create_company(db: Session, **fields) -> models.Company:
    db_company = models.Company(is_active=True, **fields)
    db.add(db_company)
    db.flush()
    return db_company


# --- Job CRUD ---
def get_job(db: Session, job_id: int) -> Optional[models.Job]:
    return db.query(models.Job).filter(models.Job.id == job_id).first()


def get_job_with_details(db: Session, job_id: int) -> Optional[models.Job]:
    """Job with its company and poster loaded for the public detail view."""
    return (
        db.query(models.Job)
        .options(joinedload(models.Job.company), joinedload(models.Job.posted_by))
        .filter(models.Job.id == job_id)
        .first()
    )


def create_job(db: Session, **fields) -> models.Job:
    db_job = models.Job(is_active=True, **fields)
    db.add(db_job)
    db.flush()
    return db_job


def get_active_jobs(db: Session) -> List[models.Job]:
    return (
        db.query(models.Job)
        .options(joinedload(models.Job.company))
        .filter(models.Job.is_active.is_(True))
        .order_by(models.Job.created_at.desc(), models.Job.id.desc())
        .all()
    )


def search_active_jobs(
    db: Session,
    *,
    category: Optional[str] = None,
    job_type: Optional[str] = None,
    employment_type: Optional[str] = None,
    tags: Optional[str] = None,
    job_location: Optional[str] = None,
    company_location: Optional[str] = None,
    skip: int = 0,
    limit: int = 10,
) -> Tuple[List[models.Job], int]:
    """Page of active jobs under active companies, plus the total match count.

    The count and the page share one filtered query so they always agree.
    """
    query = (
        db.query(models.Job)
        .join(models.Job.company)
        .filter(models.Job.is_active.is_(True), models.Company.is_active.is_(True))
    )
    if category:
        query = query.filter(models.Job.category == category)
    if job_type:
        query = query.filter(models.Job.job_type == job_type)
    if employment_type:
        query = query.filter(models.Job.employment_type == employment_type)
    if job_location:
        query = query.filter(models.Job.location == job_location)
    if tags:
        query = query.filter(models.Job.tags.icontains(tags, autoescape=True))
    if company_location:
        query = query.filter(models.Company.location == company_location)

    total = query.count()
    jobs = (
        query.options(contains_eager(models.Job.company))
        .order_by(models.Job.created_at.desc(), models.Job.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    return jobs, total


# --- Application CRUD ---
def get_application(db: Session, application_id: int) -> Optional[models.Application]:
    return (
        db.query(models.Application)
        .options(joinedload(models.Application.job))
        .filter(models.Application.id == application_id)
        .first()
    )


def find_application(db: Session, job_id: int, user_id: int) -> Optional[models.Application]:
    return (
        db.query(models.Application)
        .filter(models.Application.job_id == job_id, models.Application.user_id == user_id)
        .first()
    )


def create_application(db: Session, **fields) -> models.Application:
    db_application = models.Application(status=models.ApplicationStatus.PENDING, **fields)
    db.add(db_application)
    db.flush()
    return db_application


def get_applications_for_user(db: Session, user_id: int) -> List[models.Application]:
    return (
        db.query(models.Application)
        .options(joinedload(models.Application.job).joinedload(models.Job.company))
        .filter(models.Application.user_id == user_id)
        .order_by(models.Application.applied_at.desc(), models.Application.id.desc())
        .all()
    )


def get_applications_for_job(db: Session, job_id: int) -> List[models.Application]:
    return (
        db.query(models.Application)
        .options(joinedload(models.Application.user))
        .filter(models.Application.job_id == job_id)
        .order_by(models.Application.applied_at.desc(), models.Application.id.desc())
        .all()
    )
