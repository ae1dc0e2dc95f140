from datetime import datetime

import pytest

from studentjobs.schemas.schemas import KYCStatus
from studentjobs.services.kyc_status import (
    EMPLOYER_KYC, STUDENT_KYC, TIMESTAMP_FIELDS, compute_kyc_status, expected_user_fields,
    is_consistent, kyc_status_message, normalize_kyc_status
)

NOW = datetime(2026, 5, 1, 12, 0, 0)
SUBMITTED = datetime(2026, 4, 20, 9, 30, 0)
APPROVED = datetime(2026, 4, 22, 15, 0, 0)
REJECTED = datetime(2026, 4, 23, 10, 0, 0)


@pytest.mark.parametrize("raw,expected", [
    (None, KYCStatus.not_submitted),
    ("", KYCStatus.not_submitted),
    ("not-submitted", KYCStatus.not_submitted),
    ("in-review", KYCStatus.in_review),
    ("IN_REVIEW", KYCStatus.in_review),
    ("approved", KYCStatus.approved),
    ("suspended", KYCStatus.suspended),
    ("something-else", KYCStatus.not_submitted),
])
def test_normalize_kyc_status(raw, expected):
    assert normalize_kyc_status(raw) == expected


def test_missing_record_is_not_submitted():
    canonical = compute_kyc_status(None)
    assert canonical.status == KYCStatus.not_submitted
    assert canonical.is_verified is False
    assert canonical.can_resubmit is True


def test_only_approved_is_verified():
    for status in KYCStatus:
        canonical = compute_kyc_status({"verificationStatus": status.value})
        assert canonical.is_verified == (status == KYCStatus.approved)


def test_approved_record_timestamps():
    kyc = {"verificationStatus": "approved", "submittedAt": SUBMITTED, "approvedAt": APPROVED}
    canonical = compute_kyc_status(kyc)
    assert canonical.verified_at == APPROVED
    assert canonical.submitted_at == SUBMITTED
    assert canonical.rejected_at is None
    assert canonical.can_resubmit is False


def test_rejected_can_resubmit_with_reason_in_message():
    kyc = {"verificationStatus": "rejected", "rejectedAt": REJECTED, "rejectionReason": "Blurry ID"}
    canonical = compute_kyc_status(kyc)
    assert canonical.can_resubmit is True
    assert canonical.rejected_at == REJECTED
    assert "Blurry ID" in kyc_status_message(canonical)


@pytest.mark.parametrize("status,field,value", [
    ("pending", "kycPendingAt", SUBMITTED),
    ("in_review", "kycPendingAt", SUBMITTED),
    ("in-review", "kycPendingAt", SUBMITTED),
    ("approved", "kycVerifiedAt", APPROVED),
    ("rejected", "kycRejectedAt", REJECTED),
])
def test_exactly_one_timestamp_field(status, field, value):
    kyc = {
        "verificationStatus": status,
        "submittedAt": SUBMITTED,
        "approvedAt": APPROVED if status == "approved" else None,
        "rejectedAt": REJECTED if status == "rejected" else None,
    }
    update = expected_user_fields(kyc, now=NOW)
    assert update[field] == value
    assert [f for f in TIMESTAMP_FIELDS if update[f] is not None] == [field]


@pytest.mark.parametrize("kyc", [None, {"verificationStatus": "suspended"}])
def test_no_timestamp_for_unsubmitted_or_suspended(kyc):
    update = expected_user_fields(kyc, now=NOW)
    assert all(update[f] is None for f in TIMESTAMP_FIELDS)
    assert update["isVerified"] is False


def test_timestamp_falls_back_to_now():
    update = expected_user_fields({"verificationStatus": "approved"}, now=NOW)
    assert update["kycVerifiedAt"] == NOW
    assert update["kycStatus"] == "approved"
    assert update["isVerified"] is True


def test_verified_at_used_when_approved_at_missing():
    update = expected_user_fields({"verificationStatus": "approved", "verifiedAt": APPROVED}, now=NOW)
    assert update["kycVerifiedAt"] == APPROVED


def test_employer_source_reads_status_and_reviewed_at():
    kyc = {"status": "approved", "reviewedAt": APPROVED, "submittedAt": SUBMITTED}
    update = expected_user_fields(kyc, EMPLOYER_KYC, now=NOW)
    assert update["kycStatus"] == "approved"
    assert update["kycVerifiedAt"] == APPROVED
    # the student field name means nothing to the employer source
    assert compute_kyc_status({"verificationStatus": "approved"}, EMPLOYER_KYC).status == KYCStatus.not_submitted


def test_is_consistent():
    kyc = {"verificationStatus": "approved"}
    assert is_consistent({"kycStatus": "approved", "isVerified": True}, kyc, STUDENT_KYC)
    assert not is_consistent({"kycStatus": "approved", "isVerified": False}, kyc, STUDENT_KYC)
    assert not is_consistent({"kycStatus": "pending", "isVerified": True}, kyc, STUDENT_KYC)
    # legacy spelling on the user still counts as a match
    assert is_consistent({"kycStatus": "in-review"}, {"verificationStatus": "in_review"}, STUDENT_KYC)
    assert is_consistent({}, None, STUDENT_KYC)
