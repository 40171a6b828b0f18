from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

import applications
import companies
import jobs
import schemas
import users
from auth import get_current_user
from database import create_db_and_tables, get_db
from errors import JobBoardError
from observability import init_observability
from request_id_middleware import RequestIdMiddleware
from settings import get_settings

# Initialise observability before creating app
init_observability()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create DB tables on startup (migrations are the source of truth in prod)
    create_db_and_tables()
    logger.info("Job board API started")
    yield


app = FastAPI(
    title="Job Board API",
    description="API for job board platform with roles, companies, jobs, and applications.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestIdMiddleware)


# --- Error rendering --- #
@app.exception_handler(JobBoardError)
async def job_board_error_handler(request: Request, exc: JobBoardError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    message = first.get("msg", "Invalid request")
    logger.warning("Request validation failed", errors=len(errors), field=field)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": f"{field}: {message}" if field else message},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


router = APIRouter()


# --- User Endpoints --- #
@router.post(
    "/users/register",
    response_model=schemas.RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Users"],
)
def register_endpoint(fields: schemas.UserCreate, db: Session = Depends(get_db)):
    user = users.register(db, fields)
    return schemas.RegisterResponse(
        message="User registered successfully",
        user=schemas.User.model_validate(user),
    )


@router.post("/users/login", response_model=schemas.LoginResponse, tags=["Users"])
def login_endpoint(fields: schemas.UserLogin, db: Session = Depends(get_db)):
    token, user = users.login(db, fields)
    return schemas.LoginResponse(
        message="Login successful",
        token=token,
        user=schemas.User.model_validate(user),
    )


@router.get("/protected", response_model=schemas.ProtectedResponse, tags=["Auth"])
def protected_endpoint(current_user: schemas.Identity = Depends(get_current_user)):
    return schemas.ProtectedResponse(
        message=f"Hello {current_user.name}, you have access to this protected route!",
        user=current_user,
    )


# --- Company Endpoints --- #
@router.post(
    "/companies/create",
    response_model=schemas.CompanyMessageResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Companies"],
)
def create_company_endpoint(
    fields: schemas.CompanyCreate,
    current_user: schemas.Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    company = companies.create(db, current_user, fields)
    return schemas.CompanyMessageResponse(
        message="Company profile created successfully",
        company=schemas.Company.model_validate(company),
    )


@router.get("/companies/me", response_model=schemas.CompanyResponse, tags=["Companies"])
def get_my_company_endpoint(
    current_user: schemas.Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    company = companies.get_mine(db, current_user)
    return schemas.CompanyResponse(company=schemas.Company.model_validate(company))


@router.put("/companies/me", response_model=schemas.CompanyMessageResponse, tags=["Companies"])
def update_my_company_endpoint(
    fields: schemas.CompanyUpdate,
    current_user: schemas.Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    company = companies.update(db, current_user, fields)
    return schemas.CompanyMessageResponse(
        message="Company profile updated successfully",
        company=schemas.Company.model_validate(company),
    )


@router.delete(
    "/companies/deactivate", response_model=schemas.CompanyStateResponse, tags=["Companies"]
)
def deactivate_company_endpoint(
    current_user: schemas.Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    company = companies.deactivate(db, current_user)
    return schemas.CompanyStateResponse(
        message="Company profile deactivated successfully",
        company=schemas.CompanyState.model_validate(company),
    )


@router.patch(
    "/companies/me/reactivate", response_model=schemas.CompanyMessageResponse, tags=["Companies"]
)
def reactivate_company_endpoint(
    current_user: schemas.Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    company = companies.reactivate(db, current_user)
    return schemas.CompanyMessageResponse(
        message="Company profile reactivated successfully",
        company=schemas.Company.model_validate(company),
    )


# --- Job Endpoints --- #
@router.get("/jobs", response_model=schemas.JobSearchResponse, tags=["Jobs"])
def search_jobs_endpoint(
    category: Optional[str] = None,
    job_type: Optional[str] = Query(None, alias="jobType"),
    employment_type: Optional[str] = Query(None, alias="employmentType"),
    tags: Optional[str] = None,
    job_location: Optional[str] = Query(None, alias="jobLocation"),
    company_location: Optional[str] = Query(None, alias="companyLocation"),
    page: int = 1,
    limit: int = 10,
    db: Session = Depends(get_db),
):
    """Public, paginated listing of active jobs at active companies."""
    result = jobs.search_public(
        db,
        jobs.SearchFilters(
            category=category,
            job_type=job_type,
            employment_type=employment_type,
            tags=tags,
            job_location=job_location,
            company_location=company_location,
        ),
        page=page,
        limit=limit,
        max_limit=get_settings().max_page_size,
    )
    return schemas.JobSearchResponse(
        jobs=[schemas.JobSearchItem.model_validate(job) for job in result.jobs],
        meta=schemas.SearchMeta(
            page=result.page,
            limit=result.limit,
            total_pages=result.total_pages,
            total_jobs=result.total_jobs,
        ),
    )


@router.post(
    "/jobs/create-job",
    response_model=schemas.JobMessageResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Jobs"],
)
def create_job_endpoint(
    fields: schemas.JobCreate,
    current_user: schemas.Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    job = jobs.create(db, current_user, fields)
    return schemas.JobMessageResponse(
        message="Job posted successfully", job=schemas.Job.model_validate(job)
    )


@router.get("/jobs/{job_id}", response_model=schemas.JobResponse, tags=["Jobs"])
def get_job_endpoint(job_id: int, db: Session = Depends(get_db)):
    job = jobs.get_public(db, job_id)
    return schemas.JobResponse(job=schemas.JobDetail.model_validate(job))


@router.put("/jobs/{job_id}", response_model=schemas.JobMessageResponse, tags=["Jobs"])
def update_job_endpoint(
    job_id: int,
    fields: schemas.JobUpdate,
    current_user: schemas.Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    job = jobs.update(db, current_user, job_id, fields)
    return schemas.JobMessageResponse(
        message="Job updated successfully", job=schemas.Job.model_validate(job)
    )


@router.delete("/jobs/{job_id}", response_model=schemas.JobMessageResponse, tags=["Jobs"])
def deactivate_job_endpoint(
    job_id: int,
    current_user: schemas.Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    job = jobs.deactivate(db, current_user, job_id)
    return schemas.JobMessageResponse(
        message="Job deactivated successfully", job=schemas.Job.model_validate(job)
    )


@router.patch(
    "/jobs/reactivate/{job_id}", response_model=schemas.JobMessageResponse, tags=["Jobs"]
)
def reactivate_job_endpoint(
    job_id: int,
    current_user: schemas.Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    job = jobs.reactivate(db, current_user, job_id)
    return schemas.JobMessageResponse(
        message="Job reactivated successfully", job=schemas.Job.model_validate(job)
    )


# --- Application Endpoints --- #
@router.post(
    "/applications/jobs/{job_id}/apply",
    response_model=schemas.ApplicationMessageResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Applications"],
)
def apply_endpoint(
    job_id: int,
    fields: schemas.ApplicationCreate,
    current_user: schemas.Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    application = applications.apply(db, current_user, job_id, fields)
    return schemas.ApplicationMessageResponse(
        message="Application submitted successfully",
        application=schemas.Application.model_validate(application),
    )


@router.get(
    "/applications/my-applications",
    response_model=schemas.MyApplicationsResponse,
    tags=["Applications"],
)
def my_applications_endpoint(
    current_user: schemas.Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    rows = applications.list_mine(db, current_user)
    return schemas.MyApplicationsResponse(
        applications=[schemas.MyApplication.model_validate(row) for row in rows]
    )


@router.get(
    "/applications/job/{job_id}/applicants",
    response_model=schemas.ApplicantsResponse,
    tags=["Applications"],
)
def job_applicants_endpoint(
    job_id: int,
    current_user: schemas.Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    rows = applications.list_for_job(db, current_user, job_id)
    return schemas.ApplicantsResponse(
        applicants=[schemas.JobApplicant.model_validate(row) for row in rows]
    )


@router.patch(
    "/applications/{application_id}/status",
    response_model=schemas.ApplicationMessageResponse,
    tags=["Applications"],
)
def update_application_status_endpoint(
    application_id: int,
    fields: schemas.ApplicationStatusUpdate,
    current_user: schemas.Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    application = applications.update_status(db, current_user, application_id, fields.status)
    return schemas.ApplicationMessageResponse(
        message="Application status updated successfully",
        application=schemas.Application.model_validate(application),
    )


app.include_router(router, prefix=get_settings().api_prefix)


@app.get("/health", tags=["Health"])
def health():
    return {"status": "ok"}


# --- Main execution --- (for running with uvicorn)
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
