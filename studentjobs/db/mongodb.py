"""
MongoDB Connection Utility

MongoDB stores every entity of the platform:
- users: students, employers and admins (with denormalized KYC status)
- kycs / employerkycs: canonical KYC submissions
- kycaudits: who changed a KYC status and when
- jobs / applications: the job board itself
- adminlogins: audit trail of admin authentication attempts

Collection names match the ones the original mongoose models produced, so
the same database can be shared with existing tooling.
"""
import logging

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from studentjobs.core.config import get_settings

logger = logging.getLogger(__name__)

# Global client (connection pooling handled internally by pymongo)
_client: MongoClient = None
_db: Database = None


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        _client = MongoClient(get_settings().mongodb_uri)
    return _client


def set_mongo_client(client: MongoClient) -> None:
    """Swap the process-wide client (tests use an in-memory client)."""
    global _client, _db
    _client = client
    _db = None


def get_mongo_db() -> Database:
    """Get the platform database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[get_settings().mongodb_db]
    return _db


def get_collection(name: str) -> Collection:
    """Get a specific collection (see COLLECTIONS for the names in use)."""
    db = get_mongo_db()
    return db[name]


def close_mongo_client() -> None:
    global _client, _db
    if _client is not None:
        _client.close()
    _client = None
    _db = None


def test_mongo_connection() -> bool:
    """
    Test if MongoDB is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        client = get_mongo_client()
        # ping command checks connection
        client.admin.command('ping')
        return True
    except Exception as e:
        logger.warning("MongoDB connection failed: %s", e)
        return False


# Collection name constants (avoid typos)
COLLECTIONS = {
    "users": "users",
    "kycs": "kycs",
    "employer_kycs": "employerkycs",
    "kyc_audits": "kycaudits",
    "jobs": "jobs",
    "applications": "applications",
    "admin_logins": "adminlogins",
}


def init_mongo_indexes():
    """
    Create indexes for uniqueness and query performance.
    Call this once during app startup.
    """
    db = get_mongo_db()

    users = db[COLLECTIONS["users"]]
    users.create_index("email", unique=True)
    users.create_index("phone", unique=True)
    users.create_index("userType")

    # One canonical KYC record per owner
    kycs = db[COLLECTIONS["kycs"]]
    kycs.create_index("userId", unique=True)
    kycs.create_index("verificationStatus")
    kycs.create_index([("submittedAt", DESCENDING)])

    db[COLLECTIONS["employer_kycs"]].create_index("employerId", unique=True)
    db[COLLECTIONS["kyc_audits"]].create_index([("userId", ASCENDING), ("timestamp", DESCENDING)])

    jobs = db[COLLECTIONS["jobs"]]
    jobs.create_index([("employerId", ASCENDING), ("status", ASCENDING)])
    jobs.create_index("approvalStatus")
    jobs.create_index([("createdAt", DESCENDING)])

    # A student applies to a job at most once
    applications = db[COLLECTIONS["applications"]]
    applications.create_index([("jobId", ASCENDING), ("studentId", ASCENDING)], unique=True)
    applications.create_index([("studentId", ASCENDING), ("status", ASCENDING)])
    applications.create_index([("employer", ASCENDING), ("status", ASCENDING)])

    logins = db[COLLECTIONS["admin_logins"]]
    logins.create_index([("adminId", ASCENDING), ("loginTime", DESCENDING)])
    logins.create_index([("loginStatus", ASCENDING), ("loginTime", DESCENDING)])

    logger.info("MongoDB indexes created successfully")
