import pytest

from studentjobs.core.exceptions import ConflictException
from studentjobs.core.security import verify_password
from studentjobs.db.mongodb import COLLECTIONS
from studentjobs.services.user_service import UserService
from tests import factories


def test_ensure_admin_is_idempotent(mongo):
    service = UserService()
    first, created = service.ensure_admin("Admin@StudentJobs.com", "first-pass", phone="9600000001")
    assert created is True
    assert first["email"] == "admin@studentjobs.com"

    second, created = service.ensure_admin("admin@studentjobs.com", "second-pass", phone="9600000001")
    assert created is False
    assert second["_id"] == first["_id"]
    assert mongo[COLLECTIONS["users"]].count_documents({"userType": "admin"}) == 1
    assert verify_password("second-pass", second["password"])


def test_ensure_admin_can_keep_password():
    service = UserService()
    service.ensure_admin("admin@studentjobs.com", "original", phone="9600000002")
    user, _ = service.ensure_admin("admin@studentjobs.com", "ignored", phone="9600000002", reset_password=False)
    assert verify_password("original", user["password"])
    assert not verify_password("ignored", user["password"])


def test_ensure_admin_promotes_existing_user(student):
    user, created = UserService().ensure_admin(student["email"], "new-pass")
    assert created is False
    assert user["_id"] == student["_id"]
    assert user["userType"] == "admin"
    assert user["isVerified"] is True
    assert user["approvalStatus"] == "approved"


def test_ensure_admin_phone_clash(student):
    with pytest.raises(ConflictException):
        UserService().ensure_admin("boss@studentjobs.com", "secret", phone=student["phone"])


def test_duplicate_phone_on_register(student):
    with pytest.raises(ConflictException):
        factories.create_student(phone=student["phone"])


def test_authenticate_sets_last_login(student):
    user = UserService().authenticate(f"  {student['email'].upper()}", factories.PASSWORD)
    assert user["lastLoginAt"] is not None
    assert factories.reload(student)["lastLoginAt"] is not None


def test_count_by_type(admin, student, employer):
    assert UserService().count_by_type() == {"student": 1, "employer": 1, "admin": 1}
