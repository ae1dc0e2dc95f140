"""
Employer KYC Routes

POST /employer-kyc - Submit company verification (employer only)
GET /employer-kyc/{employer_id}/status - Status for the employer or an admin
GET /employer-kyc/admin/all - List submissions (admin)
PATCH /employer-kyc/admin/{kyc_id}/approve - Approve (admin)
PATCH /employer-kyc/admin/{kyc_id}/reject - Reject with reason (admin)
"""

from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query

from studentjobs.api.responses import ok
from studentjobs.core.security import get_current_user, require_admin, require_employer
from studentjobs.schemas.schemas import (
    ApiResponse, EmployerKYCRejectRequest, EmployerKYCResponse, EmployerKYCStatus,
    EmployerKYCStatusData, EmployerKYCSubmitRequest
)
from studentjobs.services.employer_kyc_service import get_employer_kyc_service

router = APIRouter(prefix="/employer-kyc", tags=["Employer KYC"])


@router.post("", response_model=ApiResponse[EmployerKYCResponse], status_code=201)
async def submit_employer_kyc(data: EmployerKYCSubmitRequest, employer: dict = Depends(require_employer)):
    kyc = get_employer_kyc_service().submit(employer, data)
    return ok(EmployerKYCResponse.from_doc(kyc), message="Employer KYC submitted successfully", status_code=201)


@router.get("/admin/all", response_model=ApiResponse[List[EmployerKYCResponse]])
async def list_employer_kyc(
    status: Optional[EmployerKYCStatus] = Query(None),
    admin: dict = Depends(require_admin),
):
    records = get_employer_kyc_service().list(status)
    return ok([EmployerKYCResponse.from_doc(kyc) for kyc in records])


@router.get("/{employer_id}/status", response_model=ApiResponse[EmployerKYCStatusData])
async def get_employer_kyc_status(employer_id: str, user: dict = Depends(get_current_user)):
    kyc, canonical, message = get_employer_kyc_service().status(employer_id, user)
    return ok(EmployerKYCStatusData(
        status=canonical,
        message=message,
        kyc=EmployerKYCResponse.from_doc(kyc) if kyc else None,
    ))


@router.patch("/admin/{kyc_id}/approve", response_model=ApiResponse[EmployerKYCResponse])
async def approve_employer_kyc(kyc_id: str, admin: dict = Depends(require_admin)):
    kyc = get_employer_kyc_service().approve(kyc_id, admin)
    return ok(EmployerKYCResponse.from_doc(kyc), message="Employer KYC approved")


@router.patch("/admin/{kyc_id}/reject", response_model=ApiResponse[EmployerKYCResponse])
async def reject_employer_kyc(
    kyc_id: str,
    data: Optional[EmployerKYCRejectRequest] = Body(None),
    admin: dict = Depends(require_admin),
):
    kyc = get_employer_kyc_service().reject(kyc_id, admin, data.reason if data else None)
    return ok(EmployerKYCResponse.from_doc(kyc), message="Employer KYC rejected")
