"""
User Service - accounts for students, employers and admins.

Also owns admin bootstrap (`ensure_admin`), which scripts/create_admin.py
calls. Creating an admin is an upsert so running the script twice never
produces two admin documents for one email.
"""

import logging
import re
from typing import Optional, Tuple

from pymongo import DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError

from studentjobs.core.exceptions import (
    AuthenticationException, AuthorizationException, ConflictException,
    NotFoundException, ValidationException, duplicate_field, parse_object_id
)
from studentjobs.core.security import hash_password, verify_password
from studentjobs.db.documents import paginate, pagination, utcnow
from studentjobs.db.mongodb import COLLECTIONS, get_collection
from studentjobs.schemas.schemas import (
    ApprovalStatus, KYCStatus, ProfileUpdate, RegisterRequest, UserType
)

logger = logging.getLogger(__name__)

# Applications that still tie a student or employer to a job
OPEN_APPLICATION_STATUSES = ["applied", "pending", "shortlisted", "approved", "accepted"]


class UserService:
    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["users"])

    def create(self, data: RegisterRequest) -> dict:
        now = utcnow()
        doc = {
            "name": data.name.strip(),
            "email": data.email.lower(),
            "phone": data.phone.strip(),
            "password": hash_password(data.password),
            "userType": data.user_type.value,
            "college": data.college,
            "skills": [],
            "isActive": True,
            "emailVerified": False,
            "phoneVerified": False,
            # employers wait for an admin; students are approved on signup
            "approvalStatus": (
                ApprovalStatus.pending.value if data.user_type == UserType.employer
                else ApprovalStatus.approved.value
            ),
            "isVerified": False,
            "kycStatus": KYCStatus.not_submitted.value,
            "kycVerifiedAt": None,
            "kycRejectedAt": None,
            "kycPendingAt": None,
            "createdAt": now,
            "updatedAt": now,
        }
        if data.user_type == UserType.employer:
            doc["employerCategory"] = data.employer_category.value if data.employer_category else None
            doc["companyName"] = data.company_name

        try:
            result = self.collection.insert_one(doc)
        except DuplicateKeyError as exc:
            raise ConflictException(f"User with this {duplicate_field(exc)} already exists")
        doc["_id"] = result.inserted_id
        logger.info("Registered %s %s", doc["userType"], doc["email"])
        return doc

    def authenticate(self, email: str, password: str, user_type: Optional[UserType] = None) -> dict:
        user = self.get_by_email(email)
        if not user or not verify_password(password, user.get("password")):
            raise AuthenticationException("Invalid email or password")
        if user_type and user.get("userType") != UserType(user_type).value:
            raise AuthenticationException("Invalid email or password")
        if not user.get("isActive", True):
            raise AuthorizationException("Account deactivated")

        now = utcnow()
        self.collection.update_one({"_id": user["_id"]}, {"$set": {"lastLoginAt": now}})
        user["lastLoginAt"] = now
        return user

    def get(self, user_id) -> dict:
        user = self.collection.find_one({"_id": parse_object_id(user_id, "user")})
        if not user:
            raise NotFoundException("User not found")
        return user

    def get_by_email(self, email: str) -> Optional[dict]:
        return self.collection.find_one({"email": email.strip().lower()})

    def update_profile(self, user: dict, data: ProfileUpdate) -> dict:
        update = data.model_dump(exclude_unset=True, by_alias=True, mode="json")
        if user.get("userType") != UserType.employer.value:
            update.pop("companyName", None)
            update.pop("employerCategory", None)
        if not update:
            return user
        update["updatedAt"] = utcnow()
        try:
            return self.collection.find_one_and_update(
                {"_id": user["_id"]},
                {"$set": update},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as exc:
            raise ConflictException(f"User with this {duplicate_field(exc)} already exists")

    def list(
        self,
        user_type: Optional[UserType] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[list, dict]:
        query = {}
        if user_type:
            query["userType"] = UserType(user_type).value
        if status == "active":
            query["isActive"] = True
        elif status == "inactive":
            query["isActive"] = False
        elif status:
            query["approvalStatus"] = status
        if search:
            pattern = re.escape(search.strip())
            query["$or"] = [
                {"name": {"$regex": pattern, "$options": "i"}},
                {"email": {"$regex": pattern, "$options": "i"}},
                {"companyName": {"$regex": pattern, "$options": "i"}},
            ]

        total = self.collection.count_documents(query)
        cursor = self.collection.find(query, {"password": 0}).sort("createdAt", DESCENDING)
        users = list(paginate(cursor, page, limit))
        return users, pagination(page, limit, total)

    def _set(self, user_id, fields: dict) -> dict:
        fields["updatedAt"] = utcnow()
        user = self.collection.find_one_and_update(
            {"_id": parse_object_id(user_id, "user")},
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
        )
        if not user:
            raise NotFoundException("User not found")
        return user

    def set_active(self, user_id, is_active: bool) -> dict:
        user = self._set(user_id, {"isActive": is_active})
        logger.info("User %s %s", user["email"], "activated" if is_active else "deactivated")
        return user

    def set_approval_status(self, user_id, approval_status: ApprovalStatus) -> dict:
        user = self._set(user_id, {"approvalStatus": ApprovalStatus(approval_status).value})
        logger.info("User %s approval set to %s", user["email"], user["approvalStatus"])
        return user

    def delete(self, user_id, actor: Optional[dict] = None) -> None:
        user = self.get(user_id)
        if actor and actor["_id"] == user["_id"]:
            raise ValidationException("You cannot delete your own account")

        jobs = get_collection(COLLECTIONS["jobs"])
        applications = get_collection(COLLECTIONS["applications"])
        if user.get("userType") == UserType.employer.value:
            if jobs.count_documents({"employerId": user["_id"], "status": "active"}):
                raise ConflictException("Employer still has active jobs", code="HAS_ACTIVE_JOBS")
            if applications.count_documents(
                {"employer": user["_id"], "status": {"$in": OPEN_APPLICATION_STATUSES}}
            ):
                raise ConflictException("Employer still has open applications", code="HAS_OPEN_APPLICATIONS")
        elif user.get("userType") == UserType.student.value:
            if applications.count_documents(
                {"studentId": user["_id"], "status": {"$in": OPEN_APPLICATION_STATUSES}}
            ):
                raise ConflictException("Student still has open applications", code="HAS_OPEN_APPLICATIONS")

        self.collection.delete_one({"_id": user["_id"]})
        get_collection(COLLECTIONS["kycs"]).delete_many({"userId": user["_id"]})
        get_collection(COLLECTIONS["employer_kycs"]).delete_many({"employerId": user["_id"]})
        logger.info("Deleted user %s", user["email"])

    def ensure_admin(
        self,
        email: str,
        password: str,
        name: str = "Admin User",
        phone: str = "9999999999",
        reset_password: bool = True,
    ) -> Tuple[dict, bool]:
        """
        Create the admin account, or bring an existing one up to date.

        Returns (user, created). An existing user with the email is promoted
        to admin; its password is replaced only when `reset_password`.
        """
        email = email.strip().lower()
        now = utcnow()
        admin_fields = {
            "userType": UserType.admin.value,
            "isActive": True,
            "emailVerified": True,
            "phoneVerified": True,
            "approvalStatus": ApprovalStatus.approved.value,
            "isVerified": True,
            "updatedAt": now,
        }
        existing = self.get_by_email(email)
        if existing is None:
            doc = {
                "name": name,
                "email": email,
                "phone": phone,
                "password": hash_password(password),
                "skills": [],
                "kycStatus": KYCStatus.not_submitted.value,
                "createdAt": now,
                **admin_fields,
            }
            try:
                doc["_id"] = self.collection.insert_one(doc).inserted_id
                logger.info("Created admin %s", email)
                return doc, True
            except DuplicateKeyError as exc:
                # phone clash, or another process created the email first
                if "email" not in duplicate_field(exc):
                    raise ConflictException(f"User with this {duplicate_field(exc)} already exists")
                existing = self.get_by_email(email)

        if reset_password:
            admin_fields["password"] = hash_password(password)
        user = self.collection.find_one_and_update(
            {"_id": existing["_id"]},
            {"$set": admin_fields},
            return_document=ReturnDocument.AFTER,
        )
        logger.info("Updated admin %s", email)
        return user, False

    def count_by_type(self) -> dict:
        counts = {t.value: 0 for t in UserType}
        for row in self.collection.aggregate([{"$group": {"_id": "$userType", "count": {"$sum": 1}}}]):
            if row["_id"] in counts:
                counts[row["_id"]] = row["count"]
        return counts


def get_user_service() -> UserService:
    return UserService()
