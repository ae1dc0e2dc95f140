"""
Job Service - employer job postings and the admin approval queue.

A job is visible on the public board only when `status=active` and
`approvalStatus=approved`. Active jobs past their deadline are flipped to
`expired` whenever the board is listed.
"""

import logging
import re
from typing import Optional, Tuple

from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument
from pymongo.collection import Collection

from studentjobs.core.config import get_settings
from studentjobs.core.exceptions import (
    AuthorizationException, ConflictException, NotFoundException,
    ValidationException, parse_object_id
)
from studentjobs.db.documents import naive_utc, paginate, pagination, utcnow
from studentjobs.db.mongodb import COLLECTIONS, get_collection
from studentjobs.schemas.schemas import (
    JobApprovalStatus, JobCreate, JobReviewAction, JobStatus, JobUpdate, UserType
)

logger = logging.getLogger(__name__)

OPEN_APPLICATION_STATUSES = ["applied", "pending", "shortlisted", "approved", "accepted"]

# Edits to these fields send an approved job back to the review queue
CONTENT_FIELDS = {
    "jobTitle", "description", "location", "salaryRange",
    "workType", "skillsRequired", "applicationDeadline",
}


def _is_admin(user: dict) -> bool:
    return user.get("userType") == UserType.admin.value


class JobService:
    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["jobs"])
        self.settings = get_settings()

    def create(self, employer: dict, data: JobCreate) -> dict:
        if employer.get("userType") != UserType.employer.value:
            raise AuthorizationException("Only employers can post jobs")
        if self.settings.require_verified_employer_for_jobs and not employer.get("isVerified"):
            raise AuthorizationException(
                "Complete employer KYC verification before posting jobs", code="EMPLOYER_NOT_VERIFIED"
            )
        deadline = naive_utc(data.application_deadline)
        if deadline <= utcnow():
            raise ValidationException("Application deadline must be in the future")

        now = utcnow()
        approval = JobApprovalStatus.approved if self.settings.auto_approve_jobs else JobApprovalStatus.pending
        doc = data.model_dump(by_alias=True, mode="json", exclude={"application_deadline"})
        doc.update({
            "employerId": employer["_id"],
            "applicationDeadline": deadline,
            # denormalized so the board renders without a user lookup
            "companyName": employer.get("companyName") or employer.get("name"),
            "email": employer.get("email"),
            "phone": employer.get("phone"),
            "employerName": employer.get("name"),
            "status": JobStatus.active.value,
            "approvalStatus": approval.value,
            "approvedAt": now if approval == JobApprovalStatus.approved else None,
            "highlighted": False,
            "createdAt": now,
            "updatedAt": now,
        })
        doc["_id"] = self.collection.insert_one(doc).inserted_id
        logger.info("Job '%s' posted by %s (%s)", doc["jobTitle"], employer.get("email"), approval.value)
        return doc

    def expire_overdue(self) -> int:
        result = self.collection.update_many(
            {"status": JobStatus.active.value, "applicationDeadline": {"$lt": utcnow()}},
            {"$set": {"status": JobStatus.expired.value, "updatedAt": utcnow()}},
        )
        if result.modified_count:
            logger.info("Expired %s overdue jobs", result.modified_count)
        return result.modified_count

    def list_public(
        self,
        search: Optional[str] = None,
        location: Optional[str] = None,
        work_type: Optional[str] = None,
        skill: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[list, dict]:
        """List the public job board with filters and pagination."""
        self.expire_overdue()
        query = {
            "status": JobStatus.active.value,
            "approvalStatus": JobApprovalStatus.approved.value,
        }
        if search:
            pattern = re.escape(search.strip())
            query["$or"] = [
                {"jobTitle": {"$regex": pattern, "$options": "i"}},
                {"description": {"$regex": pattern, "$options": "i"}},
                {"companyName": {"$regex": pattern, "$options": "i"}},
            ]
        if location:
            query["location"] = {"$regex": re.escape(location.strip()), "$options": "i"}
        if work_type:
            query["workType"] = work_type
        if skill:
            query["skillsRequired"] = {"$regex": f"^{re.escape(skill.strip())}$", "$options": "i"}

        total = self.collection.count_documents(query)
        cursor = self.collection.find(query).sort("createdAt", DESCENDING)
        return list(paginate(cursor, page, limit)), pagination(page, limit, total)

    def list_all(
        self,
        status: Optional[JobStatus] = None,
        approval_status: Optional[JobApprovalStatus] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[list, dict]:
        query = {}
        if status:
            query["status"] = JobStatus(status).value
        if approval_status:
            query["approvalStatus"] = JobApprovalStatus(approval_status).value
        total = self.collection.count_documents(query)
        cursor = self.collection.find(query).sort("createdAt", DESCENDING)
        return list(paginate(cursor, page, limit)), pagination(page, limit, total)

    def get(self, job_id) -> dict:
        job = self.collection.find_one({"_id": parse_object_id(job_id, "job")})
        if not job:
            raise NotFoundException("Job not found")
        return job

    def get_visible(self, job_id, viewer: Optional[dict] = None) -> dict:
        """Unapproved or inactive jobs are only shown to their owner and admins."""
        job = self.get(job_id)
        public = (job.get("status") == JobStatus.active.value
                  and job.get("approvalStatus") == JobApprovalStatus.approved.value)
        if public or (viewer and (_is_admin(viewer) or viewer["_id"] == job["employerId"])):
            return job
        raise NotFoundException("Job not found")

    def list_for_employer(self, employer_id: ObjectId, status: Optional[JobStatus] = None) -> list:
        query = {"employerId": employer_id}
        if status:
            query["status"] = JobStatus(status).value
        return list(self.collection.find(query).sort("createdAt", DESCENDING))

    def _owned(self, job_id, user: dict, allow_admin: bool = False) -> dict:
        job = self.get(job_id)
        if job["employerId"] != user["_id"] and not (allow_admin and _is_admin(user)):
            raise AuthorizationException("You can only manage your own jobs")
        return job

    def update(self, job_id, employer: dict, data: JobUpdate) -> dict:
        job = self._owned(job_id, employer)
        update = data.model_dump(exclude_unset=True, by_alias=True, mode="json",
                                 exclude={"application_deadline"})
        if data.application_deadline is not None:
            deadline = naive_utc(data.application_deadline)
            if deadline <= utcnow():
                raise ValidationException("Application deadline must be in the future")
            update["applicationDeadline"] = deadline
        if not update:
            return job

        if (CONTENT_FIELDS & update.keys()
                and job.get("approvalStatus") == JobApprovalStatus.approved.value
                and not self.settings.auto_approve_jobs):
            update["approvalStatus"] = JobApprovalStatus.pending.value
            update["approvedAt"] = None
            update["approvedBy"] = None

        update["updatedAt"] = utcnow()
        return self.collection.find_one_and_update(
            {"_id": job["_id"]}, {"$set": update}, return_document=ReturnDocument.AFTER
        )

    def delete(self, job_id, user: dict) -> None:
        job = self._owned(job_id, user, allow_admin=True)
        applications = get_collection(COLLECTIONS["applications"])
        if applications.count_documents({"jobId": job["_id"], "status": {"$in": OPEN_APPLICATION_STATUSES}}):
            raise ConflictException("Job has open applications; close it instead", code="HAS_OPEN_APPLICATIONS")
        self.collection.delete_one({"_id": job["_id"]})
        logger.info("Deleted job %s", job["_id"])

    def set_status(self, job_id, user: dict, status: JobStatus) -> dict:
        job = self._owned(job_id, user, allow_admin=True)
        status = JobStatus(status)
        deadline = job.get("applicationDeadline")
        if status == JobStatus.active and deadline and deadline <= utcnow():
            raise ValidationException("Cannot reactivate a job whose deadline has passed")
        return self.collection.find_one_and_update(
            {"_id": job["_id"]},
            {"$set": {"status": status.value, "updatedAt": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )

    def review(self, job_id, admin: dict, action: JobReviewAction, reason: Optional[str] = None) -> dict:
        job = self.get(job_id)
        now = utcnow()
        if JobReviewAction(action) == JobReviewAction.approve:
            update = {
                "approvalStatus": JobApprovalStatus.approved.value,
                "approvedBy": admin["_id"], "approvedAt": now,
                "rejectionReason": None, "rejectedBy": None, "rejectedAt": None,
            }
        else:
            if not reason:
                raise ValidationException("A reason is required to reject a job")
            update = {
                "approvalStatus": JobApprovalStatus.rejected.value,
                "rejectedBy": admin["_id"], "rejectedAt": now, "rejectionReason": reason,
                "approvedBy": None, "approvedAt": None,
            }
        update["updatedAt"] = now
        job = self.collection.find_one_and_update(
            {"_id": job["_id"]}, {"$set": update}, return_document=ReturnDocument.AFTER
        )
        logger.info("Job %s %s by %s", job["_id"], job["approvalStatus"], admin.get("email"))
        return job

    def stats(self, employer_id: Optional[ObjectId] = None) -> dict:
        match = {"employerId": employer_id} if employer_id else {}
        by_status = {s.value: 0 for s in JobStatus}
        by_approval = {s.value: 0 for s in JobApprovalStatus}
        for field, counts in (("status", by_status), ("approvalStatus", by_approval)):
            pipeline = [{"$match": match}, {"$group": {"_id": f"${field}", "count": {"$sum": 1}}}]
            for row in self.collection.aggregate(pipeline):
                if row["_id"] in counts:
                    counts[row["_id"]] = row["count"]
        return {
            "total": self.collection.count_documents(match),
            "byStatus": by_status,
            "byApprovalStatus": by_approval,
        }


def get_job_service() -> JobService:
    return JobService()
