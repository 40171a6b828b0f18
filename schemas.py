"""Request and response models.

Python attributes are snake_case; on the wire every model speaks camelCase
(``isActive``, ``resumeUrl``) and request bodies accept either form.
Request fields that the lifecycle operations validate themselves are
Optional here so a missing field reaches them and yields their message.
"""
from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr
from pydantic.alias_generators import to_camel

from models import ApplicationStatus, Role


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# --- Users / auth ---
class Identity(CamelModel):
    """The authenticated caller, resolved from the bearer token."""

    id: int
    email: str
    name: str
    role: Role
    company_id: Optional[int] = None


class UserCreate(CamelModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    role: Optional[str] = None
    bio: Optional[str] = None
    resume_url: Optional[str] = None


class UserLogin(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class User(CamelModel):
    id: int
    name: str
    email: str
    role: Role


class RegisterResponse(CamelModel):
    message: str
    user: User


class LoginResponse(CamelModel):
    message: str
    token: str
    user: User


class ProtectedResponse(CamelModel):
    message: str
    user: Identity


# --- Companies ---
class CompanyCreate(CamelModel):
    name: str
    description: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None


class CompanyUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None
    mission: Optional[str] = None
    social_links: Optional[str] = None


class Company(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None
    mission: Optional[str] = None
    social_links: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CompanyState(CamelModel):
    id: int
    name: str
    is_active: bool


class CompanyResponse(CamelModel):
    company: Company


class CompanyMessageResponse(CamelModel):
    message: str
    company: Company


class CompanyStateResponse(CamelModel):
    message: str
    company: CompanyState


# --- Jobs ---
# Numbers may arrive as JSON numbers or numeric strings; jobs.py parses them.
NumberInput = Optional[Union[int, float, str]]


class JobCreate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    job_type: Optional[str] = None
    employment_type: Optional[str] = None
    min_salary: NumberInput = None
    max_salary: NumberInput = None
    category: Optional[str] = None
    tags: Optional[str] = None
    application_quota: NumberInput = None
    expires_at: Optional[str] = None


class JobUpdate(JobCreate):
    pass


class Job(CamelModel):
    id: int
    title: str
    description: str
    location: str
    job_type: str
    employment_type: str
    min_salary: Optional[int] = None
    max_salary: Optional[int] = None
    category: str
    tags: Optional[str] = None
    application_quota: Optional[int] = None
    expires_at: Optional[datetime] = None
    is_active: bool
    company_id: int
    posted_by_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class JobListCompany(CamelModel):
    name: str
    logo_url: Optional[str] = None
    location: Optional[str] = None


class JobDetailCompany(JobListCompany):
    website: Optional[str] = None
    description: Optional[str] = None


class JobSearchCompany(CamelModel):
    name: str
    location: Optional[str] = None


class Poster(CamelModel):
    name: str
    email: str


class JobListItem(Job):
    company: JobListCompany


class JobDetail(Job):
    company: JobDetailCompany
    posted_by: Poster


class JobSearchItem(Job):
    company: JobSearchCompany


class SearchMeta(CamelModel):
    page: int
    limit: int
    total_pages: int
    total_jobs: int


class JobSearchResponse(CamelModel):
    jobs: List[JobSearchItem]
    meta: SearchMeta


class JobResponse(CamelModel):
    job: JobDetail


class JobMessageResponse(CamelModel):
    message: str
    job: Job


# --- Applications ---
class ApplicationCreate(CamelModel):
    resume_url: Optional[str] = None
    cover_letter: Optional[str] = None


class ApplicationStatusUpdate(CamelModel):
    status: Optional[str] = None


class Application(CamelModel):
    id: int
    resume_url: Optional[str] = None
    cover_letter: Optional[str] = None
    job_id: int
    user_id: int
    status: ApplicationStatus
    applied_at: Optional[datetime] = None


class CompanyName(CamelModel):
    name: str


class AppliedJob(CamelModel):
    title: str
    location: str
    company: CompanyName


class MyApplication(Application):
    job: AppliedJob


class Applicant(CamelModel):
    id: int
    name: str
    email: str
    resume_url: Optional[str] = None
    bio: Optional[str] = None


class JobApplicant(Application):
    user: Applicant


class ApplicationMessageResponse(CamelModel):
    message: str
    application: Application


class MyApplicationsResponse(CamelModel):
    applications: List[MyApplication]


class ApplicantsResponse(CamelModel):
    applicants: List[JobApplicant]
