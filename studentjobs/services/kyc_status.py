"""
KYC Status Reconciliation

The canonical verification state of a user lives in their KYC record
(`kycs` for students, `employerkycs` for employers). The `users` document
carries a denormalized copy that the rest of the platform reads:

    User.kycStatus  == KYC status
    User.isVerified == (KYC status == approved)

plus exactly one of `kycVerifiedAt` / `kycRejectedAt` / `kycPendingAt`
matching that status. This module computes the canonical state and writes
the copy back:

- `compute_kyc_status` / `expected_user_fields`: pure functions
- `KYCStatusReconciler.apply`: called by every KYC write path
- `KYCStatusReconciler.reconcile_all`: the sweep behind scripts/sync_kyc_status.py

Reconciling is idempotent. A user whose copy already matches is never
written, so two overlapping sweeps just converge on the same values.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

from bson import ObjectId
from pymongo.collection import Collection

from studentjobs.core.exceptions import NotFoundException, ValidationException
from studentjobs.db.documents import utcnow
from studentjobs.db.mongodb import COLLECTIONS, get_collection
from studentjobs.schemas.schemas import (
    CanonicalKYCStatus, KYCStatus, SyncReport, SyncResult, UserType
)

logger = logging.getLogger(__name__)

# Spellings written by older tooling
LEGACY_STATUS_ALIASES = {
    "not-submitted": KYCStatus.not_submitted,
    "in-review": KYCStatus.in_review,
    "under_review": KYCStatus.in_review,
}

VERIFIED_AT = "kycVerifiedAt"
REJECTED_AT = "kycRejectedAt"
PENDING_AT = "kycPendingAt"
TIMESTAMP_FIELDS = (VERIFIED_AT, REJECTED_AT, PENDING_AT)

# Which user timestamp a status owns
STATUS_TIMESTAMP_FIELD = {
    KYCStatus.approved: VERIFIED_AT,
    KYCStatus.rejected: REJECTED_AT,
    KYCStatus.pending: PENDING_AT,
    KYCStatus.in_review: PENDING_AT,
}

STATUS_MESSAGES = {
    KYCStatus.not_submitted: "Please complete your KYC details.",
    KYCStatus.pending: "Your KYC is under verification. Please wait.",
    KYCStatus.in_review: "Your KYC is being reviewed by our team.",
    KYCStatus.approved: "Your profile is verified. You can now explore and apply for jobs.",
    KYCStatus.rejected: "Your KYC was rejected. Please re-submit with proper details.",
    KYCStatus.suspended: "Your verification has been suspended. Please contact support.",
}


@dataclass(frozen=True)
class KYCSource:
    """Where a user type keeps its canonical KYC record."""
    user_type: UserType
    collection: str
    owner_field: str
    status_field: str
    active_filter: Dict = field(default_factory=dict)
    # record field holding the time each status was reached, in preference order
    approved_fields: tuple = ("approvedAt", "verifiedAt")
    rejected_fields: tuple = ("rejectedAt", "verifiedAt")
    submitted_fields: tuple = ("submittedAt",)

    def record_collection(self) -> Collection:
        return get_collection(self.collection)

    def find_record(self, user_id) -> Optional[dict]:
        query = {self.owner_field: user_id, **self.active_filter}
        return self.record_collection().find_one(query)


STUDENT_KYC = KYCSource(
    user_type=UserType.student,
    collection=COLLECTIONS["kycs"],
    owner_field="userId",
    status_field="verificationStatus",
    active_filter={"isActive": True},
)

EMPLOYER_KYC = KYCSource(
    user_type=UserType.employer,
    collection=COLLECTIONS["employer_kycs"],
    owner_field="employerId",
    status_field="status",
    approved_fields=("reviewedAt",),
    rejected_fields=("reviewedAt",),
)

KYC_SOURCES = {
    UserType.student: STUDENT_KYC,
    UserType.employer: EMPLOYER_KYC,
}


def source_for(user_type) -> KYCSource:
    try:
        return KYC_SOURCES[UserType(user_type)]
    except (KeyError, ValueError):
        raise ValidationException(f"No KYC process for user type '{user_type}'")


# ============================================================
# PURE FUNCTIONS
# ============================================================

def normalize_kyc_status(value) -> KYCStatus:
    """Map any stored status spelling onto KYCStatus (unknown -> not_submitted)."""
    if isinstance(value, KYCStatus):
        return value
    if not value:
        return KYCStatus.not_submitted
    value = str(value).strip().lower()
    if value in LEGACY_STATUS_ALIASES:
        return LEGACY_STATUS_ALIASES[value]
    try:
        return KYCStatus(value)
    except ValueError:
        logger.warning("Unknown KYC status %r treated as not_submitted", value)
        return KYCStatus.not_submitted


def _first_set(record: dict, fields: tuple) -> Optional[datetime]:
    for name in fields:
        if record.get(name):
            return record[name]
    return None


def compute_kyc_status(kyc: Optional[dict], source: KYCSource = STUDENT_KYC) -> CanonicalKYCStatus:
    """
    Canonical KYC status for a record (None means nothing submitted).

    Only an approved record makes the user verified, and only a rejected one
    (or no record at all) lets them submit again.
    """
    if not kyc:
        return CanonicalKYCStatus(
            status=KYCStatus.not_submitted,
            is_verified=False,
            can_resubmit=True,
        )

    status = normalize_kyc_status(kyc.get(source.status_field))
    return CanonicalKYCStatus(
        status=status,
        is_verified=status == KYCStatus.approved,
        submitted_at=_first_set(kyc, source.submitted_fields),
        verified_at=_first_set(kyc, source.approved_fields) if status == KYCStatus.approved else None,
        rejected_at=_first_set(kyc, source.rejected_fields) if status == KYCStatus.rejected else None,
        rejection_reason=kyc.get("rejectionReason"),
        can_resubmit=status in (KYCStatus.not_submitted, KYCStatus.rejected),
    )


def kyc_status_message(canonical: CanonicalKYCStatus) -> str:
    message = STATUS_MESSAGES.get(canonical.status, "KYC status unknown.")
    if canonical.status == KYCStatus.rejected and canonical.rejection_reason:
        message = f"{message} Reason: {canonical.rejection_reason}"
    return message


def expected_user_fields(
    kyc: Optional[dict],
    source: KYCSource = STUDENT_KYC,
    now: Optional[datetime] = None,
) -> dict:
    """
    The User fields that mirror `kyc`.

    Exactly one timestamp field is set for pending/in_review/approved/rejected,
    taken from the record when it has one and `now` otherwise; the other two
    are cleared. not_submitted and suspended clear all three.
    """
    now = now or utcnow()
    canonical = compute_kyc_status(kyc, source)
    update = {
        "kycStatus": canonical.status.value,
        "isVerified": canonical.is_verified,
    }
    for name in TIMESTAMP_FIELDS:
        update[name] = None

    stamp_field = STATUS_TIMESTAMP_FIELD.get(canonical.status)
    if stamp_field == VERIFIED_AT:
        update[VERIFIED_AT] = canonical.verified_at or now
    elif stamp_field == REJECTED_AT:
        update[REJECTED_AT] = canonical.rejected_at or now
    elif stamp_field == PENDING_AT:
        update[PENDING_AT] = canonical.submitted_at or now
    return update


def is_consistent(user: dict, kyc: Optional[dict], source: KYCSource = STUDENT_KYC) -> bool:
    """True when the user's denormalized status and flag match the record."""
    canonical = compute_kyc_status(kyc, source)
    return (
        normalize_kyc_status(user.get("kycStatus")) == canonical.status
        and bool(user.get("isVerified")) == canonical.is_verified
    )


def timestamps_match(user: dict, kyc: Optional[dict], source: KYCSource = STUDENT_KYC) -> bool:
    """
    True when the user has the same KYC timestamp fields set as the record
    implies. Only presence is compared; the values themselves may differ.
    """
    expected = expected_user_fields(kyc, source)
    return all((user.get(name) is None) == (expected[name] is None) for name in TIMESTAMP_FIELDS)


# ============================================================
# RECONCILER
# ============================================================

class KYCStatusReconciler:
    """
    Copies canonical KYC status onto user documents.
    """

    def __init__(self):
        self.users: Collection = get_collection(COLLECTIONS["users"])

    def apply(self, user_id: ObjectId, source: KYCSource = STUDENT_KYC) -> dict:
        """
        Recompute and write the user's KYC fields unconditionally.
        Returns the fields written.
        """
        kyc = source.find_record(user_id)
        update = expected_user_fields(kyc, source)
        update["updatedAt"] = utcnow()
        self.users.update_one({"_id": user_id}, {"$set": update})
        logger.info("KYC status for user %s set to %s", user_id, update["kycStatus"])
        return update

    def reconcile_user(self, user: dict, dry_run: bool = False) -> SyncResult:
        """Check one user against their record and fix the copy if it drifted."""
        source = source_for(user.get("userType"))
        kyc = source.find_record(user["_id"])
        canonical = compute_kyc_status(kyc, source)
        consistent = is_consistent(user, kyc, source) and timestamps_match(user, kyc, source)

        changed = False
        if not consistent:
            logger.info(
                "KYC mismatch for %s: kycStatus=%s isVerified=%s timestamps=%s, record says %s",
                user.get("email"), user.get("kycStatus"), user.get("isVerified"),
                [name for name in TIMESTAMP_FIELDS if user.get(name) is not None], canonical.status.value,
            )
            if not dry_run:
                update = expected_user_fields(kyc, source)
                update["updatedAt"] = utcnow()
                self.users.update_one({"_id": user["_id"]}, {"$set": update})
                changed = True

        return SyncResult(
            user_id=str(user["_id"]),
            email=user.get("email"),
            previous_status=normalize_kyc_status(user.get("kycStatus")),
            previous_is_verified=bool(user.get("isVerified")),
            status=canonical.status,
            is_verified=canonical.is_verified,
            consistent=consistent,
            changed=changed,
        )

    def reconcile_email(self, email: str, dry_run: bool = False) -> SyncResult:
        user = self.users.find_one({"email": email.strip().lower()})
        if not user:
            raise NotFoundException(f"User not found with email: {email}")
        if user.get("userType") not in (UserType.student.value, UserType.employer.value):
            raise ValidationException("Only student and employer accounts have KYC status")
        return self.reconcile_user(user, dry_run=dry_run)

    def reconcile_all(self, user_type: UserType = UserType.student, dry_run: bool = False) -> SyncReport:
        """Sweep every user of a type; users with no KYC fields are checked too."""
        user_type = UserType(user_type)
        source_for(user_type)
        report = SyncReport(user_type=user_type, dry_run=dry_run)

        for user in self.users.find({"userType": user_type.value}):
            result = self.reconcile_user(user, dry_run=dry_run)
            report.checked += 1
            if not result.consistent:
                report.issues_found += 1
                report.results.append(result)
            if result.changed:
                report.fixed += 1

        logger.info(
            "KYC sync (%s%s): checked=%s issues=%s fixed=%s",
            user_type.value, ", dry run" if dry_run else "",
            report.checked, report.issues_found, report.fixed,
        )
        return report

    def count_inconsistent(self, user_type: UserType = UserType.student) -> int:
        return self.reconcile_all(user_type, dry_run=True).issues_found
