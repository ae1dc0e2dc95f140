"""
Student KYC Service

Lifecycle of a student's KYC record:

    (none) --submit--> pending --review--> in_review --> approved / rejected
                          |                                  |
                          +-------------> approved <--> suspended
    rejected --submit--> pending   (resubmission overwrites the record)

Every write ends with `KYCStatusReconciler.apply` so the owner's User
document mirrors the record straight away, and with a `kycaudits` row.
"""

import logging
from datetime import datetime, time
from typing import Optional, Tuple

from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument
from pymongo.collection import Collection

from studentjobs.core.exceptions import (
    AuthorizationException, ConflictException, NotFoundException,
    ValidationException, parse_object_id
)
from studentjobs.db.documents import paginate, pagination, utcnow
from studentjobs.db.mongodb import COLLECTIONS, get_collection
from studentjobs.schemas.schemas import (
    CanonicalKYCStatus, KYCReviewRequest, KYCStatus, KYCSubmitRequest, UserType
)
from studentjobs.services.kyc_status import (
    LEGACY_STATUS_ALIASES, STUDENT_KYC, KYCStatusReconciler, compute_kyc_status, is_consistent,
    kyc_status_message, normalize_kyc_status, timestamps_match
)

logger = logging.getLogger(__name__)

# Admin review transitions; a rejected record only moves again when the student resubmits
REVIEW_TRANSITIONS = {
    KYCStatus.pending: {KYCStatus.in_review, KYCStatus.approved, KYCStatus.rejected},
    KYCStatus.in_review: {KYCStatus.approved, KYCStatus.rejected},
    KYCStatus.approved: {KYCStatus.suspended},
    KYCStatus.suspended: {KYCStatus.approved},
    KYCStatus.rejected: set(),
    KYCStatus.not_submitted: set(),
}

# Fields cleared when a record goes back to pending
REVIEW_FIELDS = (
    "verificationNotes", "reviewStartedAt",
    "approvedAt", "approvedBy", "rejectedAt", "rejectedBy", "rejectionReason",
    "suspendedAt", "suspendedBy", "suspensionReason", "verifiedAt", "verifiedBy",
)


class KYCService:
    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["kycs"])
        self.audits: Collection = get_collection(COLLECTIONS["kyc_audits"])
        self.users: Collection = get_collection(COLLECTIONS["users"])
        self.reconciler = KYCStatusReconciler()

    def _audit(
        self,
        user_id: ObjectId,
        action: str,
        prev_status: Optional[str],
        new_status: Optional[str],
        actor_id: Optional[ObjectId] = None,
        reason: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        self.audits.insert_one({
            "userId": user_id,
            "actorId": actor_id,
            "action": action,
            "prevStatus": prev_status,
            "newStatus": new_status,
            "reason": reason,
            "ipAddress": ip_address,
            "userAgent": user_agent,
            "timestamp": utcnow(),
        })

    def submit(
        self,
        user: dict,
        data: KYCSubmitRequest,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> dict:
        """
        Create or resubmit the student's KYC.

        Email and phone always come from the account, never from the form.
        """
        if user.get("userType") != UserType.student.value:
            raise AuthorizationException("Only students can submit KYC")

        existing = self.collection.find_one({"userId": user["_id"]})
        prev_status = None
        if existing:
            prev_status = normalize_kyc_status(existing.get("verificationStatus"))
            if existing.get("isActive", True):
                if prev_status in (KYCStatus.pending, KYCStatus.in_review):
                    raise ConflictException("KYC already submitted and under review", code="KYC_PENDING")
                if prev_status == KYCStatus.approved:
                    raise ConflictException("KYC already approved. Contact support to make changes.",
                                            code="KYC_APPROVED")
                if prev_status == KYCStatus.suspended:
                    raise ConflictException("KYC is suspended. Contact support.", code="KYC_SUSPENDED")

        now = utcnow()
        fields = data.model_dump(by_alias=True, mode="json", exclude={"dob"})
        fields.update({
            "userId": user["_id"],
            "dob": datetime.combine(data.dob, time()),
            "email": user.get("email"),
            "phone": user.get("phone"),
            "verificationStatus": KYCStatus.pending.value,
            "submittedAt": now,
            "lastUpdated": now,
            "isActive": True,
        })

        if existing:
            self.collection.update_one(
                {"_id": existing["_id"]},
                {"$set": fields, "$unset": {name: "" for name in REVIEW_FIELDS}},
            )
            action = "resubmitted"
        else:
            self.collection.insert_one(fields)
            action = "submitted"

        self._audit(
            user["_id"], action,
            prev_status.value if prev_status else None, KYCStatus.pending.value,
            actor_id=user["_id"], ip_address=ip_address, user_agent=user_agent,
        )
        self.reconciler.apply(user["_id"], STUDENT_KYC)
        logger.info("KYC %s by %s", action, user.get("email"))
        return self.collection.find_one({"userId": user["_id"]})

    def get_record(self, user_id: ObjectId) -> Optional[dict]:
        return STUDENT_KYC.find_record(user_id)

    def get_profile(self, user: dict) -> Tuple[dict, CanonicalKYCStatus, str]:
        kyc = self.get_record(user["_id"])
        if not kyc:
            raise NotFoundException("KYC not found")
        canonical = compute_kyc_status(kyc, STUDENT_KYC)
        return kyc, canonical, kyc_status_message(canonical)

    def get_status(self, user: dict):
        kyc = self.get_record(user["_id"])
        canonical = compute_kyc_status(kyc, STUDENT_KYC)
        return kyc, canonical, kyc_status_message(canonical)

    def withdraw(self, user: dict) -> None:
        """Soft-delete a KYC that is neither approved nor suspended."""
        kyc = self.get_record(user["_id"])
        if not kyc:
            raise NotFoundException("KYC not found")
        status = normalize_kyc_status(kyc.get("verificationStatus"))
        if status == KYCStatus.approved:
            raise ValidationException("Approved KYC cannot be deleted")
        if status == KYCStatus.suspended:
            raise ValidationException("Suspended KYC cannot be deleted. Contact support.")

        self.collection.update_one(
            {"_id": kyc["_id"]},
            {"$set": {"isActive": False, "lastUpdated": utcnow()}},
        )
        self._audit(user["_id"], "withdrawn", status.value, KYCStatus.not_submitted.value, actor_id=user["_id"])
        self.reconciler.apply(user["_id"], STUDENT_KYC)

    def list(self, status: Optional[str] = None, page: int = 1, limit: int = 20) -> Tuple[list, dict]:
        query = {"isActive": True}
        if status:
            wanted = normalize_kyc_status(status)
            # legacy spellings live alongside the canonical ones
            spellings = [wanted.value] + [k for k, v in LEGACY_STATUS_ALIASES.items() if v == wanted]
            query["verificationStatus"] = {"$in": spellings}
        total = self.collection.count_documents(query)
        cursor = self.collection.find(query).sort("submittedAt", DESCENDING)
        return list(paginate(cursor, page, limit)), pagination(page, limit, total)

    def review(self, kyc_id, admin: dict, data: KYCReviewRequest) -> dict:
        kyc = self.collection.find_one({"_id": parse_object_id(kyc_id, "KYC")})
        if not kyc or not kyc.get("isActive", True):
            raise NotFoundException("KYC not found")

        current = normalize_kyc_status(kyc.get("verificationStatus"))
        target = KYCStatus(data.status)
        if target not in REVIEW_TRANSITIONS.get(current, set()):
            raise ValidationException(
                f"Cannot change KYC status from {current.value} to {target.value}",
                code="INVALID_TRANSITION",
            )

        now = utcnow()
        update = {"verificationStatus": target.value, "lastUpdated": now}
        if data.notes:
            update["verificationNotes"] = data.notes
        reason = data.reason or data.notes

        if target == KYCStatus.in_review:
            update["reviewStartedAt"] = now
        elif target == KYCStatus.approved:
            update.update({
                "approvedAt": now, "approvedBy": admin["_id"],
                "verifiedAt": now, "verifiedBy": admin["_id"],
                "rejectedAt": None, "rejectionReason": None,
                "suspendedAt": None, "suspensionReason": None,
            })
        elif target == KYCStatus.rejected:
            if not reason:
                raise ValidationException("A reason is required to reject a KYC")
            update.update({
                "rejectedAt": now, "rejectedBy": admin["_id"], "rejectionReason": reason,
                "verifiedAt": now, "verifiedBy": admin["_id"],
            })
        elif target == KYCStatus.suspended:
            update.update({
                "suspendedAt": now, "suspendedBy": admin["_id"], "suspensionReason": reason,
            })

        kyc = self.collection.find_one_and_update(
            {"_id": kyc["_id"]},
            {"$set": update},
            return_document=ReturnDocument.AFTER,
        )
        self._audit(kyc["userId"], target.value, current.value, target.value,
                    actor_id=admin["_id"], reason=reason)
        self.reconciler.apply(kyc["userId"], STUDENT_KYC)
        logger.info("KYC %s: %s -> %s by %s", kyc["_id"], current.value, target.value, admin.get("email"))
        return kyc

    def debug(self, email: str) -> dict:
        """Side-by-side view of a user's denormalized fields and their KYC record."""
        user = self.users.find_one({"email": email.strip().lower()})
        if not user:
            raise NotFoundException(f"User not found with email: {email}")
        kyc = self.get_record(user["_id"])
        canonical = compute_kyc_status(kyc, STUDENT_KYC)
        return {
            "user": {
                "id": str(user["_id"]),
                "email": user.get("email"),
                "userType": user.get("userType"),
                "kycStatus": user.get("kycStatus"),
                "isVerified": bool(user.get("isVerified")),
                "kycVerifiedAt": user.get("kycVerifiedAt"),
                "kycRejectedAt": user.get("kycRejectedAt"),
                "kycPendingAt": user.get("kycPendingAt"),
            },
            "kyc": {
                "id": str(kyc["_id"]),
                "verificationStatus": kyc.get("verificationStatus"),
                "submittedAt": kyc.get("submittedAt"),
                "approvedAt": kyc.get("approvedAt"),
                "rejectedAt": kyc.get("rejectedAt"),
            } if kyc else None,
            "canonical": canonical.model_dump(by_alias=True, mode="json"),
            "analysis": {
                "hasKYC": kyc is not None,
                "statusMatch": normalize_kyc_status(user.get("kycStatus")) == canonical.status,
                "consistent": is_consistent(user, kyc, STUDENT_KYC) and timestamps_match(user, kyc, STUDENT_KYC),
            },
        }

    def history(self, user_id: ObjectId, limit: int = 50) -> list:
        cursor = self.audits.find({"userId": user_id}).sort([("timestamp", DESCENDING), ("_id", DESCENDING)])
        cursor = cursor.limit(limit)
        return list(cursor)

    def count_by_status(self) -> dict:
        counts = {s.value: 0 for s in KYCStatus}
        pipeline = [
            {"$match": {"isActive": True}},
            {"$group": {"_id": "$verificationStatus", "count": {"$sum": 1}}},
        ]
        for row in self.collection.aggregate(pipeline):
            counts[normalize_kyc_status(row["_id"]).value] += row["count"]
        return counts

    def recent(self, limit: int = 20) -> list:
        return list(self.collection.find({"isActive": True}).sort("submittedAt", DESCENDING).limit(limit))


def get_kyc_service() -> KYCService:
    return KYCService()
