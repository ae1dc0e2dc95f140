"""
Admin Dashboard - the single payload behind /api/admin/dashboard-data.

`statistics.consistency` comes from a dry-run KYC sweep over every student
and employer (one record lookup per user), so each request costs O(users)
queries. Move it to a cached value or a background job once the user base
outgrows that.
"""

import logging

from studentjobs.db.mongodb import COLLECTIONS, get_collection
from studentjobs.schemas.schemas import JobApprovalStatus, JobStatus, UserType
from studentjobs.services.admin_login_service import AdminLoginService
from studentjobs.services.application_service import ApplicationService
from studentjobs.services.kyc_service import KYCService
from studentjobs.services.kyc_status import KYCStatusReconciler, normalize_kyc_status
from studentjobs.services.user_service import UserService

logger = logging.getLogger(__name__)


def _rate(part: int, total: int) -> float:
    return round(part / total * 100, 1) if total else 0.0


def dashboard_data(kyc_limit: int = 20, login_limit: int = 10) -> dict:
    kyc_service = KYCService()
    logins = AdminLoginService()

    kyc_rows = [
        {
            "id": str(kyc["_id"]),
            "studentName": kyc.get("fullName"),
            "studentEmail": kyc.get("email"),
            "college": kyc.get("college"),
            "status": normalize_kyc_status(kyc.get("verificationStatus")).value,
            "submittedAt": kyc.get("submittedAt"),
        }
        for kyc in kyc_service.recent(kyc_limit)
    ]
    login_rows, _ = logins.history(page=1, limit=login_limit)

    kyc_counts = kyc_service.count_by_status()
    kyc_total = sum(kyc_counts.values())
    login_stats = logins.stats()
    user_counts = UserService().count_by_type()

    jobs = get_collection(COLLECTIONS["jobs"])
    applications = ApplicationService()

    reconciler = KYCStatusReconciler()
    inconsistent = sum(
        reconciler.count_inconsistent(user_type) for user_type in (UserType.student, UserType.employer)
    )
    if inconsistent:
        logger.warning("%s users have KYC status out of sync with their records", inconsistent)

    statistics = {
        "kyc": {
            "total": kyc_total,
            "pending": kyc_counts["pending"],
            "inReview": kyc_counts["in_review"],
            "approved": kyc_counts["approved"],
            "rejected": kyc_counts["rejected"],
            "approvalRate": _rate(kyc_counts["approved"], kyc_total),
        },
        "logins": {
            "total": login_stats["totalLogins"],
            "successful": login_stats["successfulLogins"],
            "failed": login_stats["failedLogins"],
            "successRate": login_stats["successRate"],
        },
        "users": {
            "total": sum(user_counts.values()),
            "students": user_counts[UserType.student.value],
            "employers": user_counts[UserType.employer.value],
            "admins": user_counts[UserType.admin.value],
        },
        "jobs": {
            "total": jobs.count_documents({}),
            "active": jobs.count_documents({"status": JobStatus.active.value}),
            "pendingApproval": jobs.count_documents({"approvalStatus": JobApprovalStatus.pending.value}),
        },
        "applications": {
            "total": applications.collection.count_documents({}),
            "recent": applications.count_recent(days=7),
        },
        "consistency": {"inconsistentUsers": inconsistent},
    }

    return {
        "kycData": kyc_rows,
        "loginHistory": login_rows,
        "statistics": statistics,
    }
