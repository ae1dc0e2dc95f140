"""
Admin Routes (admin only)

GET /admin/dashboard-data - KYC rows, login history and platform statistics
GET /admin/users - List users with filters
PUT /admin/users/{user_id}/status - Activate / deactivate
PUT /admin/users/{user_id}/approval - Set approval status
DELETE /admin/users/{user_id} - Delete a user without open work
GET /admin/jobs - All jobs, any status
PUT /admin/jobs/{job_id}/review - Approve or reject a job
GET /admin/login-history - Admin login audit trail
GET /admin/login-stats - Login success statistics
POST /admin/repair-applications - Fix application reference fields
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from studentjobs.api.responses import ok
from studentjobs.core.security import require_admin
from studentjobs.db.documents import serialize_doc
from studentjobs.schemas.schemas import (
    AdminLoginListData, AdminLoginResponse, AdminLoginStats, ApiResponse, DashboardData,
    JobApprovalStatus, JobListData, JobResponse, JobReviewRequest, JobStatus, LoginStatus,
    Pagination, RepairReport, UserApprovalUpdate, UserListData, UserResponse,
    UserStatusUpdate, UserType
)
from studentjobs.services.admin_login_service import get_admin_login_service
from studentjobs.services.application_service import get_application_service
from studentjobs.services.dashboard_service import dashboard_data
from studentjobs.services.job_service import get_job_service
from studentjobs.services.user_service import get_user_service

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


@router.get("/dashboard-data", response_model=ApiResponse[DashboardData])
async def get_dashboard_data():
    return ok(DashboardData.model_validate(serialize_doc(dashboard_data())))


# ============================================================
# USERS
# ============================================================

@router.get("/users", response_model=ApiResponse[UserListData])
async def list_users(
    user_type: Optional[UserType] = Query(None, alias="userType"),
    status: Optional[str] = Query(None, description="active, inactive or an approval status"),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    users, page_info = get_user_service().list(user_type, status, search, page, limit)
    return ok(UserListData(users=[UserResponse.from_doc(u) for u in users], pagination=Pagination(**page_info)))


@router.put("/users/{user_id}/status", response_model=ApiResponse[UserResponse])
async def set_user_status(user_id: str, data: UserStatusUpdate):
    user = get_user_service().set_active(user_id, data.is_active)
    return ok(UserResponse.from_doc(user), message="User activated" if data.is_active else "User deactivated")


@router.put("/users/{user_id}/approval", response_model=ApiResponse[UserResponse])
async def set_user_approval(user_id: str, data: UserApprovalUpdate):
    user = get_user_service().set_approval_status(user_id, data.approval_status)
    return ok(UserResponse.from_doc(user), message=f"User {user['approvalStatus']}")


@router.delete("/users/{user_id}", response_model=ApiResponse[dict])
async def delete_user(user_id: str, admin: dict = Depends(require_admin)):
    get_user_service().delete(user_id, actor=admin)
    return ok({}, message="User deleted successfully")


# ============================================================
# JOBS
# ============================================================

@router.get("/jobs", response_model=ApiResponse[JobListData])
async def list_all_jobs(
    status: Optional[JobStatus] = Query(None),
    approval_status: Optional[JobApprovalStatus] = Query(None, alias="approvalStatus"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    jobs, page_info = get_job_service().list_all(status, approval_status, page, limit)
    return ok(JobListData(jobs=[JobResponse.from_doc(j) for j in jobs], pagination=Pagination(**page_info)))


@router.put("/jobs/{job_id}/review", response_model=ApiResponse[JobResponse])
async def review_job(job_id: str, data: JobReviewRequest, admin: dict = Depends(require_admin)):
    job = get_job_service().review(job_id, admin, data.action, data.reason)
    return ok(JobResponse.from_doc(job), message=f"Job {job['approvalStatus']}")


# ============================================================
# LOGIN AUDIT / MAINTENANCE
# ============================================================

@router.get("/login-history", response_model=ApiResponse[AdminLoginListData])
async def login_history(
    admin_id: Optional[str] = Query(None, alias="adminId"),
    status: Optional[LoginStatus] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
):
    rows, page_info = get_admin_login_service().history(admin_id, status, page, limit)
    return ok(AdminLoginListData(
        login_history=[AdminLoginResponse.from_doc(row) for row in rows],
        pagination=Pagination(**page_info),
    ))


@router.get("/login-stats", response_model=ApiResponse[AdminLoginStats])
async def login_stats():
    return ok(AdminLoginStats.model_validate(get_admin_login_service().stats()))


@router.post("/repair-applications", response_model=ApiResponse[RepairReport])
async def repair_applications(dry_run: bool = Query(False, alias="dryRun")):
    report = get_application_service().repair_references(dry_run=dry_run)
    return ok(report, message=f"Repaired {report.repaired} of {report.checked} applications")
