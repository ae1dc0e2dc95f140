"""
Application Service - students applying to jobs, employers moving them
through the hiring pipeline.

Every application stores its job and student twice (`jobId`/`job`,
`studentId`/`student`) because older clients read one name and newer
ones the other. Both names are always written with the same value;
`repair_references` fixes documents written before that rule held.
"""

import logging
from datetime import timedelta
from typing import Optional

from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError

from studentjobs.core.config import get_settings
from studentjobs.core.exceptions import (
    AuthorizationException, ConflictException, NotFoundException,
    ValidationException, parse_object_id
)
from studentjobs.db.documents import utcnow
from studentjobs.db.mongodb import COLLECTIONS, get_collection
from studentjobs.schemas.schemas import (
    ApplicationCreate, ApplicationStatus, Availability, JobApprovalStatus,
    JobStatus, KYCStatus, RepairReport, UserType
)
from studentjobs.services.kyc_status import STUDENT_KYC, compute_kyc_status

logger = logging.getLogger(__name__)

S = ApplicationStatus

# Employer-driven moves; anything missing here is refused
STATUS_TRANSITIONS = {
    S.applied: {S.pending, S.shortlisted, S.approved, S.accepted, S.rejected, S.closed},
    S.pending: {S.shortlisted, S.approved, S.accepted, S.rejected, S.closed},
    S.shortlisted: {S.approved, S.accepted, S.hired, S.rejected, S.closed},
    S.approved: {S.hired, S.closed},
    S.accepted: {S.hired, S.closed},
    S.hired: {S.closed},
    S.rejected: set(),
    S.closed: set(),
    S.withdrawn: set(),
}

STATUS_DATE_FIELD = {
    S.shortlisted: "shortlistedDate",
    S.approved: "shortlistedDate",
    S.accepted: "shortlistedDate",
    S.hired: "hiredDate",
    S.rejected: "rejectedDate",
    S.closed: "closedDate",
}

NOT_WITHDRAWABLE = {S.hired, S.rejected, S.closed, S.withdrawn}


def current_status(application: dict) -> ApplicationStatus:
    """Stored status of an application; rows written with an unknown value are refused."""
    value = application.get("status") or S.applied.value
    try:
        return ApplicationStatus(value)
    except ValueError:
        raise ValidationException(
            f"Application has an unrecognized status: {value}", code="UNKNOWN_STATUS"
        )


def sanitize_availability(value: Optional[str], fallback: Optional[str] = None) -> str:
    """Coerce free-form availability onto the allowed values."""
    allowed = {a.value for a in Availability}
    for candidate in (value, fallback):
        if candidate and candidate.strip().lower() in allowed:
            return candidate.strip().lower()
    return Availability.flexible.value


class ApplicationService:
    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["applications"])
        self.jobs: Collection = get_collection(COLLECTIONS["jobs"])
        self.settings = get_settings()

    def _is_kyc_approved(self, student: dict) -> bool:
        kyc = STUDENT_KYC.find_record(student["_id"])
        if kyc is not None:
            return compute_kyc_status(kyc, STUDENT_KYC).status == KYCStatus.approved
        return bool(student.get("isVerified"))

    def apply(self, student: dict, data: ApplicationCreate) -> dict:
        if student.get("userType") != UserType.student.value:
            raise AuthorizationException("Only students can apply to jobs")
        if self.settings.require_kyc_for_applications and not self._is_kyc_approved(student):
            raise AuthorizationException(
                "Complete KYC verification before applying to jobs", code="KYC_REQUIRED"
            )

        job_id = parse_object_id(data.job_id, "job")
        job = self.jobs.find_one({"_id": job_id})
        if not job:
            raise NotFoundException("Job not found")
        if job.get("status") != JobStatus.active.value or \
                job.get("approvalStatus") != JobApprovalStatus.approved.value:
            raise ValidationException("This job is not accepting applications")
        if job.get("applicationDeadline") and job["applicationDeadline"] < utcnow():
            raise ValidationException("The application deadline for this job has passed")

        duplicate = self.collection.find_one({
            "$or": [
                {"jobId": job_id, "studentId": student["_id"]},
                {"job": job_id, "student": student["_id"]},
            ]
        })
        if duplicate:
            raise ConflictException("You have already applied to this job", code="ALREADY_APPLIED")

        now = utcnow()
        doc = {
            "jobId": job_id,
            "job": job_id,
            "studentId": student["_id"],
            "student": student["_id"],
            "employer": job["employerId"],
            "status": S.applied.value,
            "appliedAt": now,
            "coverLetter": data.cover_letter,
            "resume": data.resume,
            "expectedPay": data.expected_pay,
            "availability": sanitize_availability(data.availability, student.get("availability")),
            "createdAt": now,
            "updatedAt": now,
        }
        try:
            doc["_id"] = self.collection.insert_one(doc).inserted_id
        except DuplicateKeyError:
            raise ConflictException("You have already applied to this job", code="ALREADY_APPLIED")
        logger.info("%s applied to job %s", student.get("email"), job_id)
        return doc

    def list_for_student(self, student_id: ObjectId, status: Optional[ApplicationStatus] = None) -> list:
        query = {"studentId": student_id}
        if status:
            query["status"] = ApplicationStatus(status).value
        return list(self.collection.find(query).sort("appliedAt", DESCENDING))

    def list_for_employer(self, employer_id: ObjectId, status: Optional[ApplicationStatus] = None) -> list:
        query = {"employer": employer_id}
        if status:
            query["status"] = ApplicationStatus(status).value
        return list(self.collection.find(query).sort("appliedAt", DESCENDING))

    def list_for_job(self, job_id, employer: dict) -> list:
        job = self.jobs.find_one({"_id": parse_object_id(job_id, "job")})
        if not job:
            raise NotFoundException("Job not found")
        if job["employerId"] != employer["_id"] and employer.get("userType") != UserType.admin.value:
            raise AuthorizationException("You can only view applications for your own jobs")
        return list(self.collection.find({"jobId": job["_id"]}).sort("appliedAt", DESCENDING))

    def get(self, application_id, viewer: dict) -> dict:
        application = self.collection.find_one({"_id": parse_object_id(application_id, "application")})
        if not application:
            raise NotFoundException("Application not found")
        allowed = (
            viewer.get("userType") == UserType.admin.value
            or application.get("studentId") == viewer["_id"]
            or application.get("employer") == viewer["_id"]
        )
        if not allowed:
            raise AuthorizationException("You do not have access to this application")
        return application

    def update_status(self, application_id, employer: dict, status: ApplicationStatus,
                      notes: Optional[str] = None) -> dict:
        application = self.get(application_id, employer)
        if application.get("employer") != employer["_id"]:
            raise AuthorizationException("Only the job owner can change application status")

        current = current_status(application)
        target = ApplicationStatus(status)
        if target not in STATUS_TRANSITIONS[current]:
            raise ValidationException(
                f"Cannot change application status from {current.value} to {target.value}",
                code="INVALID_TRANSITION",
            )

        now = utcnow()
        update = {"status": target.value, "updatedAt": now}
        if target in STATUS_DATE_FIELD:
            update[STATUS_DATE_FIELD[target]] = now
        if notes:
            update["employerNotes"] = notes
        application = self.collection.find_one_and_update(
            {"_id": application["_id"]}, {"$set": update}, return_document=ReturnDocument.AFTER
        )
        logger.info("Application %s: %s -> %s", application["_id"], current.value, target.value)
        return application

    def withdraw(self, application_id, student: dict, reason: Optional[str] = None) -> dict:
        application = self.get(application_id, student)
        if application.get("studentId") != student["_id"]:
            raise AuthorizationException("You can only withdraw your own applications")
        status = current_status(application)
        if status in NOT_WITHDRAWABLE:
            raise ValidationException(f"Cannot withdraw an application that is {status.value}")

        now = utcnow()
        update = {"status": S.withdrawn.value, "withdrawnDate": now, "updatedAt": now}
        if reason:
            update["studentNotes"] = reason
        return self.collection.find_one_and_update(
            {"_id": application["_id"]}, {"$set": update}, return_document=ReturnDocument.AFTER
        )

    def rate(self, application_id, user: dict, rating: int, feedback: Optional[str] = None) -> dict:
        """
        The student rates the employer and vice versa; each side stores its
        rating of the other party.
        """
        application = self.get(application_id, user)
        if application.get("studentId") == user["_id"]:
            update = {"employerRating": rating, "employerFeedback": feedback}
        elif application.get("employer") == user["_id"]:
            update = {"studentRating": rating, "studentFeedback": feedback}
        else:
            raise AuthorizationException("Only the student or employer can rate this application")
        update["updatedAt"] = utcnow()
        return self.collection.find_one_and_update(
            {"_id": application["_id"]}, {"$set": update}, return_document=ReturnDocument.AFTER
        )

    def stats(self, user: dict) -> dict:
        if user.get("userType") == UserType.student.value:
            match = {"studentId": user["_id"]}
        elif user.get("userType") == UserType.employer.value:
            match = {"employer": user["_id"]}
        else:
            match = {}
        counts = {s.value: 0 for s in ApplicationStatus}
        pipeline = [{"$match": match}, {"$group": {"_id": "$status", "count": {"$sum": 1}}}]
        for row in self.collection.aggregate(pipeline):
            if row["_id"] in counts:
                counts[row["_id"]] = row["count"]
        return {"total": sum(counts.values()), "byStatus": counts}

    def count_recent(self, days: int = 7) -> int:
        return self.collection.count_documents({"appliedAt": {"$gte": utcnow() - timedelta(days=days)}})

    def repair_references(self, dry_run: bool = False) -> RepairReport:
        """
        Bring stored applications in line with the reference rules.

        - a missing side of jobId/job or studentId/student is filled from the other
        - when both sides are set and differ, jobId/studentId win
        - appliedAt is backfilled from createdAt (or now), employer from the job
        - applications pointing at a job that no longer exists are reported
        """
        report = RepairReport(dry_run=dry_run)
        orphaned = set()

        for application in self.collection.find({}):
            report.checked += 1
            update = {}

            for primary, alias in (("jobId", "job"), ("studentId", "student")):
                primary_value, alias_value = application.get(primary), application.get(alias)
                if primary_value and not alias_value:
                    update[alias] = primary_value
                elif alias_value and not primary_value:
                    update[primary] = alias_value
                elif primary_value and alias_value and primary_value != alias_value:
                    report.mismatched_refs += 1
                    update[alias] = primary_value
                    logger.warning("Application %s has %s=%s but %s=%s",
                                   application["_id"], primary, primary_value, alias, alias_value)
                    continue
                else:
                    continue
                if primary == "jobId":
                    report.job_refs_filled += 1
                else:
                    report.student_refs_filled += 1

            if not application.get("appliedAt"):
                update["appliedAt"] = application.get("createdAt") or utcnow()
                report.applied_at_backfilled += 1

            job_id = update.get("jobId") or application.get("jobId")
            job = self.jobs.find_one({"_id": job_id}) if job_id else None
            if job_id and not job:
                orphaned.add(str(job_id))
            if job and not application.get("employer"):
                update["employer"] = job["employerId"]
                report.employer_backfilled += 1

            if update:
                report.repaired += 1
                if not dry_run:
                    update["updatedAt"] = utcnow()
                    self.collection.update_one({"_id": application["_id"]}, {"$set": update})

        report.orphaned_jobs = sorted(orphaned)
        logger.info(
            "Application repair%s: checked=%s repaired=%s mismatched=%s orphaned=%s",
            " (dry run)" if dry_run else "", report.checked, report.repaired,
            report.mismatched_refs, len(report.orphaned_jobs),
        )
        return report


def get_application_service() -> ApplicationService:
    return ApplicationService()
