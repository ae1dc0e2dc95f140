"""
Admin Login Audit - one `adminlogins` row per admin authentication attempt.
"""

import logging
import random
from datetime import timedelta
from typing import Optional, Tuple

from bson import ObjectId
from pymongo import DESCENDING
from pymongo.collection import Collection

from studentjobs.core.exceptions import NotFoundException, parse_object_id
from studentjobs.db.documents import paginate, pagination, utcnow
from studentjobs.db.mongodb import COLLECTIONS, get_collection
from studentjobs.schemas.schemas import LoginStatus

logger = logging.getLogger(__name__)

DEMO_IPS = ["192.168.1.100", "10.0.0.50", "172.16.0.25", "203.0.113.7"]
DEMO_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) Safari/17.0",
    "Mozilla/5.0 (X11; Linux x86_64) Firefox/121.0",
]


class AdminLoginService:
    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["admin_logins"])

    def record(
        self,
        admin: Optional[dict],
        status: LoginStatus,
        email: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        failure_reason: Optional[str] = None,
    ) -> ObjectId:
        """
        Store one login attempt. `admin` is None when the email matched no
        account; the attempted email is kept in that case.
        """
        doc = {
            "adminId": admin["_id"] if admin else None,
            "adminEmail": admin["email"] if admin else (email or "").lower(),
            "adminName": admin.get("name", "Unknown") if admin else "Unknown",
            "loginTime": utcnow(),
            "ipAddress": ip_address,
            "userAgent": user_agent,
            "loginStatus": LoginStatus(status).value,
            "failureReason": failure_reason,
            "logoutTime": None,
            "sessionDuration": None,
        }
        login_id = self.collection.insert_one(doc).inserted_id
        if status == LoginStatus.failed:
            logger.warning("Failed admin login for %s: %s", doc["adminEmail"], failure_reason)
        return login_id

    def record_logout(self, login_id) -> dict:
        """Close a login session; duration is stored in minutes."""
        login = self.collection.find_one({"_id": parse_object_id(login_id, "login")})
        if not login:
            raise NotFoundException("Login record not found")
        now = utcnow()
        duration = round((now - login["loginTime"]).total_seconds() / 60, 2)
        self.collection.update_one(
            {"_id": login["_id"]},
            {"$set": {"logoutTime": now, "sessionDuration": duration}},
        )
        login.update(logoutTime=now, sessionDuration=duration)
        return login

    def latest_open_session(self, admin_id: ObjectId) -> Optional[dict]:
        return self.collection.find_one(
            {"adminId": admin_id, "loginStatus": LoginStatus.success.value, "logoutTime": None},
            sort=[("loginTime", DESCENDING)],
        )

    def history(
        self,
        admin_id=None,
        status: Optional[LoginStatus] = None,
        page: int = 1,
        limit: int = 50,
    ) -> Tuple[list, dict]:
        query = {}
        if admin_id:
            query["adminId"] = parse_object_id(admin_id, "admin")
        if status:
            query["loginStatus"] = LoginStatus(status).value
        total = self.collection.count_documents(query)
        cursor = self.collection.find(query).sort([("loginTime", DESCENDING), ("_id", DESCENDING)])
        return list(paginate(cursor, page, limit)), pagination(page, limit, total)

    def stats(self) -> dict:
        total = self.collection.count_documents({})
        successful = self.collection.count_documents({"loginStatus": LoginStatus.success.value})
        failed = self.collection.count_documents({"loginStatus": LoginStatus.failed.value})
        unique_admins = len([a for a in self.collection.distinct("adminId") if a is not None])
        last = self.collection.find_one(
            {"loginStatus": LoginStatus.success.value}, sort=[("loginTime", DESCENDING)]
        )
        return {
            "totalLogins": total,
            "successfulLogins": successful,
            "failedLogins": failed,
            "successRate": round(successful / total * 100, 1) if total else 0.0,
            "uniqueAdmins": unique_admins,
            "lastLogin": last["loginTime"] if last else None,
        }

    def seed_demo(self, admin: dict, count: int = 10) -> int:
        """Insert synthetic history rows spread over the last week."""
        now = utcnow()
        rows = []
        for i in range(count):
            login_time = now - timedelta(hours=random.randint(1, 24 * 7), minutes=random.randint(0, 59))
            success = i % 5 != 4
            row = {
                "adminId": admin["_id"],
                "adminEmail": admin["email"],
                "adminName": admin.get("name", "Admin User"),
                "loginTime": login_time.replace(microsecond=0),
                "ipAddress": random.choice(DEMO_IPS),
                "userAgent": random.choice(DEMO_AGENTS),
                "loginStatus": LoginStatus.success.value if success else LoginStatus.failed.value,
                "failureReason": None if success else "Invalid password",
                "logoutTime": None,
                "sessionDuration": None,
            }
            if success:
                minutes = random.randint(5, 120)
                row["logoutTime"] = row["loginTime"] + timedelta(minutes=minutes)
                row["sessionDuration"] = float(minutes)
            rows.append(row)
        if rows:
            self.collection.insert_many(rows)
        logger.info("Inserted %s demo login rows for %s", len(rows), admin["email"])
        return len(rows)


def get_admin_login_service() -> AdminLoginService:
    return AdminLoginService()
