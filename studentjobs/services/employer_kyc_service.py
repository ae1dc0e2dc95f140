"""
Employer KYC Service - company verification records in `employerkycs`.

An employer is verified (`User.isVerified`) exactly when their record is
approved; approve/reject reconcile the employer right after writing.
"""

import logging
from typing import Optional, Tuple

from pymongo import DESCENDING, ReturnDocument
from pymongo.collection import Collection

from studentjobs.core.exceptions import (
    AuthorizationException, ConflictException, NotFoundException, parse_object_id
)
from studentjobs.db.documents import utcnow
from studentjobs.db.mongodb import COLLECTIONS, get_collection
from studentjobs.schemas.schemas import (
    CanonicalKYCStatus, EmployerKYCStatus, EmployerKYCSubmitRequest, UserType
)
from studentjobs.services.kyc_status import (
    EMPLOYER_KYC, KYCStatusReconciler, compute_kyc_status, kyc_status_message
)

logger = logging.getLogger(__name__)


class EmployerKYCService:
    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["employer_kycs"])
        self.reconciler = KYCStatusReconciler()

    def submit(self, employer: dict, data: EmployerKYCSubmitRequest) -> dict:
        if employer.get("userType") != UserType.employer.value:
            raise AuthorizationException("Only employers can submit employer KYC")

        existing = self.collection.find_one({"employerId": employer["_id"]})
        if existing and existing.get("status") == EmployerKYCStatus.pending.value:
            raise ConflictException("Employer KYC already submitted and under review", code="KYC_PENDING")
        if existing and existing.get("status") == EmployerKYCStatus.approved.value:
            raise ConflictException("Employer KYC already approved", code="KYC_APPROVED")

        now = utcnow()
        fields = data.model_dump(by_alias=True, mode="json")
        fields.update({
            "employerId": employer["_id"],
            "status": EmployerKYCStatus.pending.value,
            "rejectionReason": None,
            "reviewedBy": None,
            "reviewedAt": None,
            "submittedAt": now,
            "updatedAt": now,
        })
        if existing:
            self.collection.update_one({"_id": existing["_id"]}, {"$set": fields})
        else:
            fields["createdAt"] = now
            self.collection.insert_one(fields)

        self.reconciler.apply(employer["_id"], EMPLOYER_KYC)
        logger.info("Employer KYC %s by %s", "resubmitted" if existing else "submitted", employer.get("email"))
        return self.collection.find_one({"employerId": employer["_id"]})

    def status(self, employer_id, viewer: dict) -> Tuple[Optional[dict], CanonicalKYCStatus, str]:
        employer_id = parse_object_id(employer_id, "employer")
        if viewer.get("userType") != UserType.admin.value and viewer["_id"] != employer_id:
            raise AuthorizationException("You can only view your own KYC status")
        kyc = EMPLOYER_KYC.find_record(employer_id)
        canonical = compute_kyc_status(kyc, EMPLOYER_KYC)
        return kyc, canonical, kyc_status_message(canonical)

    def list(self, status: Optional[EmployerKYCStatus] = None) -> list:
        query = {}
        if status:
            query["status"] = EmployerKYCStatus(status).value
        return list(self.collection.find(query).sort("submittedAt", DESCENDING))

    def _review(self, kyc_id, admin: dict, status: EmployerKYCStatus, reason: Optional[str] = None) -> dict:
        kyc = self.collection.find_one_and_update(
            {"_id": parse_object_id(kyc_id, "employer KYC")},
            {"$set": {
                "status": status.value,
                "rejectionReason": reason,
                "reviewedBy": admin["_id"],
                "reviewedAt": utcnow(),
                "updatedAt": utcnow(),
            }},
            return_document=ReturnDocument.AFTER,
        )
        if not kyc:
            raise NotFoundException("Employer KYC not found")
        self.reconciler.apply(kyc["employerId"], EMPLOYER_KYC)
        logger.info("Employer KYC %s %s by %s", kyc["_id"], status.value, admin.get("email"))
        return kyc

    def approve(self, kyc_id, admin: dict) -> dict:
        return self._review(kyc_id, admin, EmployerKYCStatus.approved)

    def reject(self, kyc_id, admin: dict, reason: Optional[str] = None) -> dict:
        return self._review(kyc_id, admin, EmployerKYCStatus.rejected, reason or "Rejected by admin")


def get_employer_kyc_service() -> EmployerKYCService:
    return EmployerKYCService()
