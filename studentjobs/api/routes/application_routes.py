"""
Application Routes

POST /applications - Apply to a job (student with approved KYC)
GET /applications/my-applications - Student's applications
GET /applications/employer/all - Applications to the employer's jobs
GET /applications/job/{job_id} - Applications for one job (owner or admin)
GET /applications/stats - Counts by status for the caller
GET /applications/{application_id} - One application (student, employer or admin)
PUT /applications/{application_id}/status - Move through the hiring pipeline (employer)
POST /applications/{application_id}/withdraw - Withdraw (student)
POST /applications/{application_id}/rate - Rate the other party
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query

from studentjobs.api.responses import ok
from studentjobs.core.security import get_current_user, require_employer, require_student
from studentjobs.schemas.schemas import (
    ApiResponse, ApplicationCreate, ApplicationListData, ApplicationResponse,
    ApplicationStatus, ApplicationStatusUpdate, RatingRequest
)
from studentjobs.services.application_service import get_application_service

router = APIRouter(prefix="/applications", tags=["Applications"])


def _list(applications: list) -> ApplicationListData:
    return ApplicationListData(
        applications=[ApplicationResponse.from_doc(a) for a in applications],
        total=len(applications),
    )


@router.post("", response_model=ApiResponse[ApplicationResponse], status_code=201)
async def apply_to_job(data: ApplicationCreate, student: dict = Depends(require_student)):
    application = get_application_service().apply(student, data)
    return ok(ApplicationResponse.from_doc(application), message="Application submitted successfully",
              status_code=201)


@router.get("/my-applications", response_model=ApiResponse[ApplicationListData])
async def my_applications(status: Optional[ApplicationStatus] = Query(None),
                          student: dict = Depends(require_student)):
    return ok(_list(get_application_service().list_for_student(student["_id"], status)))


@router.get("/employer/all", response_model=ApiResponse[ApplicationListData])
async def employer_applications(status: Optional[ApplicationStatus] = Query(None),
                                employer: dict = Depends(require_employer)):
    return ok(_list(get_application_service().list_for_employer(employer["_id"], status)))


@router.get("/job/{job_id}", response_model=ApiResponse[ApplicationListData])
async def job_applications(job_id: str, user: dict = Depends(get_current_user)):
    return ok(_list(get_application_service().list_for_job(job_id, user)))


@router.get("/stats", response_model=ApiResponse[dict])
async def application_stats(user: dict = Depends(get_current_user)):
    return ok(get_application_service().stats(user))


@router.get("/{application_id}", response_model=ApiResponse[ApplicationResponse])
async def get_application(application_id: str, user: dict = Depends(get_current_user)):
    return ok(ApplicationResponse.from_doc(get_application_service().get(application_id, user)))


@router.put("/{application_id}/status", response_model=ApiResponse[ApplicationResponse])
async def update_application_status(application_id: str, data: ApplicationStatusUpdate,
                                    employer: dict = Depends(require_employer)):
    application = get_application_service().update_status(application_id, employer, data.status, data.notes)
    return ok(ApplicationResponse.from_doc(application), message=f"Application {application['status']}")


@router.post("/{application_id}/withdraw", response_model=ApiResponse[ApplicationResponse])
async def withdraw_application(application_id: str, reason: Optional[str] = Body(None, embed=True),
                               student: dict = Depends(require_student)):
    application = get_application_service().withdraw(application_id, student, reason)
    return ok(ApplicationResponse.from_doc(application), message="Application withdrawn")


@router.post("/{application_id}/rate", response_model=ApiResponse[ApplicationResponse])
async def rate_application(application_id: str, data: RatingRequest, user: dict = Depends(get_current_user)):
    application = get_application_service().rate(application_id, user, data.rating, data.feedback)
    return ok(ApplicationResponse.from_doc(application), message="Rating saved")
