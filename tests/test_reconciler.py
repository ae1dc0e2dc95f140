from datetime import datetime

import pytest

from studentjobs.core.exceptions import NotFoundException, ValidationException
from studentjobs.db.mongodb import COLLECTIONS
from studentjobs.schemas.schemas import KYCStatus, UserType
from studentjobs.services.kyc_status import (
    EMPLOYER_KYC, STUDENT_KYC, TIMESTAMP_FIELDS, KYCStatusReconciler, is_consistent,
    timestamps_match
)
from tests import factories

SUBMITTED = datetime(2026, 4, 20, 9, 30, 0)
APPROVED = datetime(2026, 4, 22, 15, 0, 0)


def insert_kyc(mongo, user, status, active=True, **fields):
    doc = {
        "userId": user["_id"],
        "fullName": user["name"],
        "verificationStatus": status,
        "submittedAt": SUBMITTED,
        "isActive": active,
    }
    doc.update(fields)
    mongo[COLLECTIONS["kycs"]].insert_one(doc)
    return doc


def set_user(mongo, user, **fields):
    mongo[COLLECTIONS["users"]].update_one({"_id": user["_id"]}, {"$set": fields})


def test_reconcile_all_fixes_drift_and_is_idempotent(mongo):
    approved = factories.create_student()
    pending = factories.create_student()
    untouched = factories.create_student()
    legacy = factories.create_student()
    insert_kyc(mongo, approved, "approved", approvedAt=APPROVED)
    insert_kyc(mongo, pending, "pending")
    insert_kyc(mongo, legacy, "in_review")
    # drift: user says pending while the record was approved, and vice versa
    set_user(mongo, approved, kycStatus="pending", isVerified=False)
    set_user(mongo, pending, kycStatus="approved", isVerified=True, kycVerifiedAt=APPROVED)
    set_user(mongo, legacy, kycStatus="in-review", isVerified=False, kycPendingAt=SUBMITTED)

    reconciler = KYCStatusReconciler()
    report = reconciler.reconcile_all(UserType.student)
    assert report.checked == 4
    assert report.issues_found == 2
    assert report.fixed == 2

    users = mongo[COLLECTIONS["users"]]
    fixed = users.find_one({"_id": approved["_id"]})
    assert fixed["kycStatus"] == "approved"
    assert fixed["isVerified"] is True
    assert fixed["kycVerifiedAt"] == APPROVED
    assert fixed["kycPendingAt"] is None

    fixed = users.find_one({"_id": pending["_id"]})
    assert fixed["kycStatus"] == "pending"
    assert fixed["isVerified"] is False
    assert fixed["kycPendingAt"] == SUBMITTED
    assert fixed["kycVerifiedAt"] is None

    assert users.find_one({"_id": untouched["_id"]})["kycStatus"] == "not_submitted"

    for user in users.find({"userType": "student"}):
        assert is_consistent(user, STUDENT_KYC.find_record(user["_id"]), STUDENT_KYC)

    second = reconciler.reconcile_all(UserType.student)
    assert second.issues_found == 0
    assert second.fixed == 0


def test_dry_run_does_not_write(mongo):
    student = factories.create_student()
    insert_kyc(mongo, student, "approved")

    report = KYCStatusReconciler().reconcile_all(UserType.student, dry_run=True)
    assert report.issues_found == 1
    assert report.fixed == 0
    assert report.results[0].status == KYCStatus.approved
    assert report.results[0].changed is False
    assert mongo[COLLECTIONS["users"]].find_one({"_id": student["_id"]})["kycStatus"] == "not_submitted"


def test_inactive_record_counts_as_not_submitted(mongo):
    student = factories.create_student()
    insert_kyc(mongo, student, "pending", active=False)
    set_user(mongo, student, kycStatus="pending", kycPendingAt=SUBMITTED)

    result = KYCStatusReconciler().reconcile_user(factories.reload(student))
    assert result.changed is True
    user = factories.reload(student)
    assert user["kycStatus"] == "not_submitted"
    assert all(user[f] is None for f in TIMESTAMP_FIELDS)


def test_users_without_kyc_fields_are_checked(mongo):
    student = factories.create_student()
    mongo[COLLECTIONS["users"]].update_one(
        {"_id": student["_id"]}, {"$unset": {"kycStatus": "", "isVerified": ""}}
    )
    insert_kyc(mongo, student, "rejected", rejectedAt=datetime(2026, 4, 25, 8, 0, 0))

    report = KYCStatusReconciler().reconcile_all(UserType.student)
    assert report.fixed == 1
    user = factories.reload(student)
    assert user["kycStatus"] == "rejected"
    assert user["kycRejectedAt"] == datetime(2026, 4, 25, 8, 0, 0)


def test_employer_reconciliation(mongo):
    employer = factories.create_employer()
    mongo[COLLECTIONS["employer_kycs"]].insert_one({
        "employerId": employer["_id"],
        "companyName": "Chai Point",
        "status": "approved",
        "reviewedAt": APPROVED,
        "submittedAt": SUBMITTED,
    })

    report = KYCStatusReconciler().reconcile_all(UserType.employer)
    assert report.fixed == 1
    user = factories.reload(employer)
    assert user["isVerified"] is True
    assert user["kycVerifiedAt"] == APPROVED


def test_apply_writes_unconditionally(mongo):
    employer = factories.create_employer()
    update = KYCStatusReconciler().apply(employer["_id"], EMPLOYER_KYC)
    assert update["kycStatus"] == "not_submitted"
    user = factories.reload(employer)
    assert user["kycStatus"] == "not_submitted"


def test_reconcile_email_errors(admin):
    reconciler = KYCStatusReconciler()
    with pytest.raises(NotFoundException):
        reconciler.reconcile_email("nobody@campus.edu")
    with pytest.raises(ValidationException):
        reconciler.reconcile_email(admin["email"])


def test_reconcile_email_is_case_insensitive(mongo):
    student = factories.create_student(email="mixed@campus.edu")
    insert_kyc(mongo, student, "approved")
    result = KYCStatusReconciler().reconcile_email("  MIXED@campus.edu ")
    assert result.changed is True
    assert result.is_verified is True


def test_sweep_rejects_admin_user_type():
    with pytest.raises(ValidationException):
        KYCStatusReconciler().reconcile_all(UserType.admin)


def test_sweep_repairs_wrong_timestamp_field(mongo):
    student = factories.create_student()
    insert_kyc(mongo, student, "approved", approvedAt=APPROVED)
    # status and flag are right, but the pending stamp was never cleared
    set_user(mongo, student, kycStatus="approved", isVerified=True, kycPendingAt=SUBMITTED, kycVerifiedAt=None)

    user = factories.reload(student)
    kyc = STUDENT_KYC.find_record(student["_id"])
    assert is_consistent(user, kyc, STUDENT_KYC)
    assert not timestamps_match(user, kyc, STUDENT_KYC)

    report = KYCStatusReconciler().reconcile_all(UserType.student)
    assert report.issues_found == 1
    assert report.fixed == 1
    user = factories.reload(student)
    assert user["kycVerifiedAt"] == APPROVED
    assert user["kycPendingAt"] is None
    assert user["kycRejectedAt"] is None

    assert KYCStatusReconciler().reconcile_all(UserType.student).issues_found == 0


def test_timestamp_values_are_not_compared(mongo):
    student = factories.create_student()
    insert_kyc(mongo, student, "approved", approvedAt=APPROVED)
    set_user(mongo, student, kycStatus="approved", isVerified=True, kycVerifiedAt=datetime(2026, 5, 1))

    result = KYCStatusReconciler().reconcile_user(factories.reload(student))
    assert result.consistent is True
    assert result.changed is False
    assert factories.reload(student)["kycVerifiedAt"] == datetime(2026, 5, 1)
