"""
Job Routes

GET /jobs - Public job board with filters
GET /jobs/employer/my-jobs - Employer's own jobs
GET /jobs/stats/overview - Counts by status (admin)
GET /jobs/{job_id} - Job details
POST /jobs - Create job posting (verified employer only)
PUT /jobs/{job_id} - Update job (owner only)
PATCH /jobs/{job_id}/status - Pause, close or reopen (owner or admin)
DELETE /jobs/{job_id} - Delete job (owner or admin)
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from studentjobs.api.responses import ok
from studentjobs.core.security import (
    get_current_user, get_optional_user, require_admin, require_employer
)
from studentjobs.schemas.schemas import (
    ApiResponse, JobCreate, JobListData, JobResponse, JobStats, JobStatus,
    JobStatusUpdate, JobUpdate, Pagination, WorkType
)
from studentjobs.services.job_service import get_job_service

router = APIRouter(prefix="/jobs", tags=["Jobs"])


@router.get("", response_model=ApiResponse[JobListData])
async def list_jobs(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    search: Optional[str] = Query(None, description="Search in title, description and company"),
    location: Optional[str] = Query(None),
    work_type: Optional[WorkType] = Query(None, alias="workType"),
    skill: Optional[str] = Query(None, description="Filter by required skill"),
):
    """List active, approved jobs with filters and pagination."""
    jobs, page_info = get_job_service().list_public(
        search=search,
        location=location,
        work_type=work_type.value if work_type else None,
        skill=skill,
        page=page,
        limit=limit,
    )
    return ok(JobListData(jobs=[JobResponse.from_doc(job) for job in jobs], pagination=Pagination(**page_info)))


@router.get("/employer/my-jobs", response_model=ApiResponse[List[JobResponse]])
async def my_jobs(status: Optional[JobStatus] = Query(None), employer: dict = Depends(require_employer)):
    jobs = get_job_service().list_for_employer(employer["_id"], status)
    return ok([JobResponse.from_doc(job) for job in jobs])


@router.get("/stats/overview", response_model=ApiResponse[JobStats])
async def job_stats(admin: dict = Depends(require_admin)):
    return ok(JobStats.model_validate(get_job_service().stats()))


@router.get("/{job_id}", response_model=ApiResponse[JobResponse])
async def get_job(job_id: str, viewer: Optional[dict] = Depends(get_optional_user)):
    """Pending or closed jobs are visible to their owner and admins only."""
    return ok(JobResponse.from_doc(get_job_service().get_visible(job_id, viewer)))


@router.post("", response_model=ApiResponse[JobResponse], status_code=201)
async def create_job(job: JobCreate, employer: dict = Depends(require_employer)):
    """Create a new job posting. It waits for admin approval unless auto approval is on."""
    created = get_job_service().create(employer, job)
    return ok(JobResponse.from_doc(created), message="Job posted successfully", status_code=201)


@router.put("/{job_id}", response_model=ApiResponse[JobResponse])
async def update_job(job_id: str, update: JobUpdate, employer: dict = Depends(require_employer)):
    job = get_job_service().update(job_id, employer, update)
    return ok(JobResponse.from_doc(job), message="Job updated successfully")


@router.patch("/{job_id}/status", response_model=ApiResponse[JobResponse])
async def update_job_status(job_id: str, data: JobStatusUpdate, user: dict = Depends(get_current_user)):
    job = get_job_service().set_status(job_id, user, data.status)
    return ok(JobResponse.from_doc(job), message=f"Job {job['status']}")


@router.delete("/{job_id}", response_model=ApiResponse[dict])
async def delete_job(job_id: str, user: dict = Depends(get_current_user)):
    get_job_service().delete(job_id, user)
    return ok({}, message="Job deleted successfully")
