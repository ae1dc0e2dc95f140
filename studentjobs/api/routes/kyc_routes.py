"""
Student KYC Routes

POST /kyc - Submit or resubmit KYC (student only)
GET /kyc/profile - Own KYC record with canonical status
GET /kyc/status - Canonical status and message only
DELETE /kyc/profile - Withdraw a non-approved KYC
GET /kyc/history - Own audit trail

Admin:
GET /kyc/admin/all - List submissions
PUT /kyc/admin/{kyc_id}/review - Move a KYC through review
GET /kyc/debug/{email} - Compare a user's fields with their record
POST /kyc/sync-user/{email} - Reconcile one user
POST /kyc/sync-all - Reconcile every user of a type
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from studentjobs.api.responses import client_info, ok
from studentjobs.core.security import get_current_user, require_admin, require_student
from studentjobs.schemas.schemas import (
    ApiResponse, KYCAuditResponse, KYCListData, KYCResponse, KYCReviewRequest,
    KYCStatusData, KYCSubmitRequest, Pagination, SyncReport, SyncResult, UserType
)
from studentjobs.services.kyc_service import get_kyc_service
from studentjobs.services.kyc_status import KYCStatusReconciler

router = APIRouter(prefix="/kyc", tags=["KYC"])


@router.post("", response_model=ApiResponse[KYCResponse], status_code=201)
async def submit_kyc(data: KYCSubmitRequest, request: Request, user: dict = Depends(require_student)):
    """Submit KYC. Allowed when nothing is on file or the last submission was rejected."""
    ip_address, user_agent = client_info(request)
    kyc = get_kyc_service().submit(user, data, ip_address=ip_address, user_agent=user_agent)
    return ok(KYCResponse.from_doc(kyc), message="KYC submitted successfully", status_code=201)


@router.get("/profile", response_model=ApiResponse[KYCStatusData])
async def get_kyc_profile(user: dict = Depends(get_current_user)):
    kyc, canonical, message = get_kyc_service().get_profile(user)
    return ok(KYCStatusData(status=canonical, message=message, kyc=KYCResponse.from_doc(kyc)))


@router.get("/status", response_model=ApiResponse[KYCStatusData])
async def get_kyc_status(user: dict = Depends(get_current_user)):
    _, canonical, message = get_kyc_service().get_status(user)
    return ok(KYCStatusData(status=canonical, message=message))


@router.delete("/profile", response_model=ApiResponse[dict])
async def withdraw_kyc(user: dict = Depends(require_student)):
    get_kyc_service().withdraw(user)
    return ok({}, message="KYC withdrawn")


@router.get("/history", response_model=ApiResponse[List[KYCAuditResponse]])
async def get_kyc_history(user: dict = Depends(get_current_user)):
    rows = get_kyc_service().history(user["_id"])
    return ok([KYCAuditResponse.from_doc(row) for row in rows])


# ============================================================
# ADMIN
# ============================================================

@router.get("/admin/all", response_model=ApiResponse[KYCListData])
async def list_kyc(
    status: Optional[str] = Query(None, description="pending, in_review, approved, rejected, suspended"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: dict = Depends(require_admin),
):
    kycs, page_info = get_kyc_service().list(status=status, page=page, limit=limit)
    return ok(KYCListData(
        kycs=[KYCResponse.from_doc(kyc) for kyc in kycs],
        pagination=Pagination(**page_info),
    ))


@router.put("/admin/{kyc_id}/review", response_model=ApiResponse[KYCResponse])
async def review_kyc(kyc_id: str, data: KYCReviewRequest, admin: dict = Depends(require_admin)):
    kyc = get_kyc_service().review(kyc_id, admin, data)
    return ok(KYCResponse.from_doc(kyc), message=f"KYC {kyc['verificationStatus']}")


@router.get("/debug/{email}", response_model=ApiResponse[dict])
async def debug_kyc(email: str, admin: dict = Depends(require_admin)):
    return ok(get_kyc_service().debug(email))


@router.post("/sync-user/{email}", response_model=ApiResponse[SyncResult])
async def sync_user(email: str, dry_run: bool = Query(False, alias="dryRun"),
                    admin: dict = Depends(require_admin)):
    result = KYCStatusReconciler().reconcile_email(email, dry_run=dry_run)
    message = "User KYC status already consistent" if result.consistent else "User KYC status synchronized"
    return ok(result, message=message)


@router.post("/sync-all", response_model=ApiResponse[SyncReport])
async def sync_all(
    user_type: UserType = Query(UserType.student, alias="userType"),
    dry_run: bool = Query(False, alias="dryRun"),
    admin: dict = Depends(require_admin),
):
    report = KYCStatusReconciler().reconcile_all(user_type, dry_run=dry_run)
    return ok(report, message=f"Checked {report.checked} users, fixed {report.fixed}")
