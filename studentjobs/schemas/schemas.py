"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.

Wire format: attributes are snake_case in Python and camelCase on the wire
(and in MongoDB), so a stored document validates straight into its response
model and the frontend keeps the field names it already uses.
"""

import re
from datetime import date, datetime
from enum import Enum
from typing import Generic, List, Optional, TypeVar

from pydantic import (
    BaseModel, ConfigDict, EmailStr, Field, field_serializer, field_validator, model_validator
)
from pydantic.alias_generators import to_camel

from studentjobs.db.documents import serialize_doc


# ============================================================
# ENUMS
# ============================================================

class UserType(str, Enum):
    student = "student"
    employer = "employer"
    admin = "admin"


class EmployerCategory(str, Enum):
    corporate = "corporate"
    local_business = "local_business"
    individual = "individual"


class ApprovalStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    suspended = "suspended"


class KYCStatus(str, Enum):
    not_submitted = "not_submitted"
    pending = "pending"
    in_review = "in_review"
    approved = "approved"
    rejected = "rejected"
    suspended = "suspended"


class EmployerKYCStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class JobStatus(str, Enum):
    active = "active"
    paused = "paused"
    closed = "closed"
    expired = "expired"


class JobApprovalStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class WorkType(str, Enum):
    part_time = "Part-time"
    full_time = "Full-time"
    remote = "Remote"
    on_site = "On-site"


class ApplicationStatus(str, Enum):
    applied = "applied"
    pending = "pending"
    shortlisted = "shortlisted"
    approved = "approved"
    accepted = "accepted"
    hired = "hired"
    rejected = "rejected"
    closed = "closed"
    withdrawn = "withdrawn"


class Availability(str, Enum):
    weekdays = "weekdays"
    weekends = "weekends"
    both = "both"
    flexible = "flexible"


class LoginStatus(str, Enum):
    success = "success"
    failed = "failed"


class StayType(str, Enum):
    home = "home"
    pg = "pg"


class Gender(str, Enum):
    male = "male"
    female = "female"
    other = "other"
    prefer_not_to_say = "prefer-not-to-say"


class Weekday(str, Enum):
    monday = "monday"
    tuesday = "tuesday"
    wednesday = "wednesday"
    thursday = "thursday"
    friday = "friday"
    saturday = "saturday"
    sunday = "sunday"


class BloodGroup(str, Enum):
    a_pos = "A+"
    a_neg = "A-"
    b_pos = "B+"
    b_neg = "B-"
    ab_pos = "AB+"
    ab_neg = "AB-"
    o_pos = "O+"
    o_neg = "O-"


class PreferredJobType(str, Enum):
    online = "Online work"
    on_site = "On-site/local work"
    corporate = "Corporate/part-time"
    # Legacy values still present in older submissions
    warehouse = "warehouse"
    delivery = "delivery"
    housekeeping = "housekeeping"
    construction = "construction"
    kitchen = "kitchen"
    retail = "retail"
    security = "security"
    data_entry = "data-entry"


class Designation(str, Enum):
    owner = "Owner"
    hr_manager = "HR Manager"
    recruiter = "Recruiter"
    director = "Director"
    manager = "Manager"
    other = "Other"


class JobReviewAction(str, Enum):
    approve = "approve"
    reject = "reject"


IFSC_PATTERN = re.compile(r"^[A-Z]{4}0[A-Z0-9]{6}$")
GST_PATTERN = r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z]{1}[1-9A-Z]{1}Z[0-9A-Z]{1}$"
PAN_PATTERN = r"^[A-Z]{5}[0-9]{4}[A-Z]{1}$"
MIN_KYC_AGE = 16


# ============================================================
# BASE MODELS
# ============================================================

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DocumentModel(CamelModel):
    """Response model backed by a MongoDB document."""
    id: str = Field(..., alias="_id")

    @classmethod
    def from_doc(cls, doc: dict):
        return cls.model_validate(serialize_doc(doc))


class Pagination(BaseModel):
    current: int
    pages: int
    total: int


DataT = TypeVar("DataT")


class ApiResponse(CamelModel, Generic[DataT]):
    """Envelope for every successful response."""
    success: bool = True
    message: str = "Success"
    status_code: int = 200
    data: Optional[DataT] = None
    meta: Optional[dict] = None


# ============================================================
# AUTH / USER SCHEMAS
# ============================================================

class RegisterRequest(CamelModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    phone: str = Field(..., min_length=6, max_length=20)
    password: str = Field(..., min_length=6)
    user_type: UserType
    college: Optional[str] = Field(None, max_length=200)
    employer_category: Optional[EmployerCategory] = None
    company_name: Optional[str] = Field(None, max_length=200)

    @field_validator("user_type")
    @classmethod
    def no_self_service_admins(cls, value: UserType) -> UserType:
        if value == UserType.admin:
            raise ValueError("Admin accounts cannot be self-registered")
        return value


class LoginRequest(CamelModel):
    email: EmailStr
    password: str
    user_type: Optional[UserType] = None


class ProfileUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = Field(None, min_length=6, max_length=20)
    college: Optional[str] = Field(None, max_length=200)
    skills: Optional[List[str]] = None
    availability: Optional[Availability] = None
    company_name: Optional[str] = Field(None, max_length=200)
    employer_category: Optional[EmployerCategory] = None
    address: Optional[str] = Field(None, max_length=500)


class UserResponse(DocumentModel):
    name: str
    email: str
    phone: Optional[str] = None
    user_type: Optional[str] = None
    employer_category: Optional[str] = None
    college: Optional[str] = None
    skills: List[str] = []
    availability: Optional[str] = None
    company_name: Optional[str] = None
    is_active: bool = True
    email_verified: bool = False
    phone_verified: bool = False
    approval_status: Optional[str] = None
    is_verified: bool = False
    kyc_status: Optional[str] = None
    kyc_verified_at: Optional[datetime] = None
    kyc_rejected_at: Optional[datetime] = None
    kyc_pending_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TokenResponse(CamelModel):
    token: str
    token_type: str = "bearer"
    user: UserResponse


class UserListData(CamelModel):
    users: List[UserResponse]
    pagination: Pagination


class UserStatusUpdate(CamelModel):
    is_active: bool


class UserApprovalUpdate(CamelModel):
    approval_status: ApprovalStatus


# ============================================================
# STUDENT KYC SCHEMAS
# ============================================================

class EmergencyContact(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, min_length=6)


class PGDetails(CamelModel):
    name: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = Field(None, max_length=500)
    contact: Optional[str] = Field(None, min_length=6)


class Payroll(CamelModel):
    consent: bool = False
    bank_account: Optional[str] = None
    ifsc: Optional[str] = None
    beneficiary_name: Optional[str] = Field(None, max_length=100)

    @field_validator("ifsc")
    @classmethod
    def upper_ifsc(cls, value: Optional[str]) -> Optional[str]:
        return value.strip().upper() if value else value

    @model_validator(mode="after")
    def check_bank_details(self):
        if self.consent and not (self.bank_account and self.ifsc):
            raise ValueError("Bank account and IFSC are required when payroll consent is given")
        if self.bank_account and not self.bank_account.isdigit():
            raise ValueError("Bank account number should contain only digits")
        if self.ifsc and not IFSC_PATTERN.match(self.ifsc):
            raise ValueError("Invalid IFSC code format")
        return self


class KYCSubmitRequest(CamelModel):
    full_name: str = Field(..., min_length=1, max_length=100)
    dob: date
    gender: Optional[Gender] = None
    address: str = Field(..., min_length=1, max_length=500)
    college: str = Field(..., min_length=1, max_length=200)
    course_year: str = Field(..., min_length=1, max_length=100)
    student_id: Optional[str] = Field(None, max_length=50)
    stay_type: StayType
    pg_details: Optional[PGDetails] = None
    hours_per_week: int = Field(20, ge=5, le=40)
    available_days: List[Weekday] = Field(..., min_length=1)
    aadhar_card: Optional[str] = None
    college_id_card: Optional[str] = None
    emergency_contact: EmergencyContact
    blood_group: Optional[BloodGroup] = None
    preferred_job_types: List[PreferredJobType] = []
    experience_skills: Optional[str] = Field(None, max_length=500)
    payroll: Optional[Payroll] = None

    @field_validator("dob")
    @classmethod
    def old_enough(cls, value: date) -> date:
        today = date.today()
        age = today.year - value.year - ((today.month, today.day) < (value.month, value.day))
        if age < MIN_KYC_AGE:
            raise ValueError(f"You must be at least {MIN_KYC_AGE} years old")
        return value


class KYCReviewRequest(CamelModel):
    status: KYCStatus
    notes: Optional[str] = Field(None, max_length=500)
    reason: Optional[str] = Field(None, max_length=500)


class PayrollResponse(CamelModel):
    consent: bool = False
    bank_account: Optional[str] = None
    ifsc: Optional[str] = None
    beneficiary_name: Optional[str] = None

    @field_serializer("bank_account")
    def mask_account(self, value: Optional[str]) -> Optional[str]:
        if not value:
            return value
        return "*" * max(len(value) - 4, 0) + value[-4:]


class KYCResponse(DocumentModel):
    user_id: str
    full_name: str
    dob: Optional[datetime] = None
    gender: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    college: Optional[str] = None
    course_year: Optional[str] = None
    student_id: Optional[str] = None
    stay_type: Optional[str] = None
    pg_details: Optional[PGDetails] = None
    hours_per_week: Optional[int] = None
    available_days: List[str] = []
    aadhar_card: Optional[str] = None
    college_id_card: Optional[str] = None
    emergency_contact: Optional[EmergencyContact] = None
    blood_group: Optional[str] = None
    preferred_job_types: List[str] = []
    experience_skills: Optional[str] = None
    payroll: Optional[PayrollResponse] = None
    verification_status: str
    verification_notes: Optional[str] = None
    submitted_at: Optional[datetime] = None
    review_started_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    suspended_at: Optional[datetime] = None
    suspension_reason: Optional[str] = None
    verified_at: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    is_active: bool = True


class CanonicalKYCStatus(CamelModel):
    status: KYCStatus
    is_verified: bool
    submitted_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    can_resubmit: bool


class KYCStatusData(CamelModel):
    status: CanonicalKYCStatus
    message: str
    kyc: Optional[KYCResponse] = None


class KYCListData(CamelModel):
    kycs: List[KYCResponse]
    pagination: Pagination


class KYCAuditResponse(DocumentModel):
    user_id: str
    actor_id: Optional[str] = None
    action: str
    prev_status: Optional[str] = None
    new_status: Optional[str] = None
    reason: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    timestamp: datetime


# ============================================================
# EMPLOYER KYC SCHEMAS
# ============================================================

class EmployerDocuments(CamelModel):
    gst_certificate_url: Optional[str] = Field(None, pattern=r"^https?://.+")
    pan_card_url: Optional[str] = Field(None, pattern=r"^https?://.+")
    registration_certificate_url: Optional[str] = Field(None, pattern=r"^https?://.+")
    address_proof_url: Optional[str] = Field(None, pattern=r"^https?://.+")
    company_registration_url: Optional[str] = Field(None, pattern=r"^https?://.+")
    additional_docs: List[str] = []


class EmployerKYCSubmitRequest(CamelModel):
    company_name: str = Field(..., min_length=1, max_length=200)
    company_email: Optional[EmailStr] = None
    company_phone: Optional[str] = Field(None, pattern=r"^[\+]?[0-9\s\-\(\)]{10,}$", max_length=20)
    authorized_name: Optional[str] = Field(None, max_length=100)
    designation: Optional[Designation] = None
    address: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = Field(None, max_length=100)
    gst_number: Optional[str] = Field(None, alias="GSTNumber", pattern=GST_PATTERN)
    pan: Optional[str] = Field(None, alias="PAN", pattern=PAN_PATTERN)
    documents: EmployerDocuments = Field(default_factory=EmployerDocuments)

    @field_validator("gst_number", "pan", mode="before")
    @classmethod
    def upper_identifiers(cls, value):
        return value.strip().upper() if isinstance(value, str) else value


class EmployerKYCRejectRequest(CamelModel):
    reason: Optional[str] = Field(None, max_length=500)


class EmployerKYCResponse(DocumentModel):
    employer_id: str
    company_name: str
    company_email: Optional[str] = None
    company_phone: Optional[str] = None
    authorized_name: Optional[str] = None
    designation: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    gst_number: Optional[str] = Field(None, alias="GSTNumber")
    pan: Optional[str] = Field(None, alias="PAN")
    documents: Optional[EmployerDocuments] = None
    status: str
    rejection_reason: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None


class EmployerKYCStatusData(CamelModel):
    status: CanonicalKYCStatus
    message: str
    kyc: Optional[EmployerKYCResponse] = None


# ============================================================
# RECONCILIATION SCHEMAS
# ============================================================

class SyncResult(CamelModel):
    user_id: str
    email: Optional[str] = None
    previous_status: KYCStatus
    previous_is_verified: bool
    status: KYCStatus
    is_verified: bool
    consistent: bool
    changed: bool


class SyncReport(CamelModel):
    user_type: UserType
    dry_run: bool = False
    checked: int = 0
    issues_found: int = 0
    fixed: int = 0
    results: List[SyncResult] = []


class RepairReport(CamelModel):
    dry_run: bool = False
    checked: int = 0
    job_refs_filled: int = 0
    student_refs_filled: int = 0
    mismatched_refs: int = 0
    applied_at_backfilled: int = 0
    employer_backfilled: int = 0
    orphaned_jobs: List[str] = []
    repaired: int = 0


# ============================================================
# JOB SCHEMAS
# ============================================================

class JobCreate(CamelModel):
    job_title: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=1, max_length=2000)
    location: str = Field(..., min_length=1, max_length=200)
    salary_range: str = Field(..., min_length=1, max_length=100)
    work_type: WorkType = WorkType.full_time
    skills_required: List[str] = []
    application_deadline: datetime


class JobUpdate(CamelModel):
    job_title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    location: Optional[str] = Field(None, max_length=200)
    salary_range: Optional[str] = Field(None, max_length=100)
    work_type: Optional[WorkType] = None
    skills_required: Optional[List[str]] = None
    application_deadline: Optional[datetime] = None
    highlighted: Optional[bool] = None


class JobStatusUpdate(CamelModel):
    status: JobStatus


class JobReviewRequest(CamelModel):
    action: JobReviewAction
    reason: Optional[str] = Field(None, max_length=500)


class JobResponse(DocumentModel):
    employer_id: str
    job_title: str
    description: str
    location: str
    salary_range: str
    work_type: str
    skills_required: List[str] = []
    application_deadline: Optional[datetime] = None
    company_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    employer_name: Optional[str] = None
    status: str
    approval_status: str
    rejection_reason: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    highlighted: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class JobListData(CamelModel):
    jobs: List[JobResponse]
    pagination: Pagination


class JobStats(CamelModel):
    total: int
    by_status: dict
    by_approval_status: dict


# ============================================================
# APPLICATION SCHEMAS
# ============================================================

class ApplicationCreate(CamelModel):
    job_id: str
    cover_letter: Optional[str] = Field(None, max_length=1000)
    resume: Optional[str] = None
    expected_pay: Optional[float] = Field(None, ge=0)
    availability: Optional[str] = None


class ApplicationStatusUpdate(CamelModel):
    status: ApplicationStatus
    notes: Optional[str] = Field(None, max_length=500)


class RatingRequest(CamelModel):
    rating: int = Field(..., ge=1, le=5)
    feedback: Optional[str] = Field(None, max_length=1000)


class ApplicationResponse(DocumentModel):
    job_id: str
    job: Optional[str] = None
    student_id: str
    student: Optional[str] = None
    employer: Optional[str] = None
    status: str
    applied_at: Optional[datetime] = None
    cover_letter: Optional[str] = None
    resume: Optional[str] = None
    expected_pay: Optional[float] = None
    availability: Optional[str] = None
    student_notes: Optional[str] = None
    employer_notes: Optional[str] = None
    shortlisted_date: Optional[datetime] = None
    hired_date: Optional[datetime] = None
    rejected_date: Optional[datetime] = None
    withdrawn_date: Optional[datetime] = None
    closed_date: Optional[datetime] = None
    student_rating: Optional[int] = None
    employer_rating: Optional[int] = None
    student_feedback: Optional[str] = None
    employer_feedback: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ApplicationListData(CamelModel):
    applications: List[ApplicationResponse]
    total: int


# ============================================================
# ADMIN SCHEMAS
# ============================================================

class AdminLoginResponse(DocumentModel):
    admin_id: Optional[str] = None
    admin_email: str
    admin_name: str
    login_time: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    login_status: str
    failure_reason: Optional[str] = None
    logout_time: Optional[datetime] = None
    session_duration: Optional[float] = None


class AdminLoginListData(CamelModel):
    login_history: List[AdminLoginResponse]
    pagination: Pagination


class AdminLoginStats(CamelModel):
    total_logins: int
    successful_logins: int
    failed_logins: int
    success_rate: float
    unique_admins: int
    last_login: Optional[datetime] = None


class DashboardKYCRow(CamelModel):
    id: str
    student_name: Optional[str] = None
    student_email: Optional[str] = None
    college: Optional[str] = None
    status: str
    submitted_at: Optional[datetime] = None


class DashboardData(CamelModel):
    kyc_data: List[DashboardKYCRow]
    login_history: List[AdminLoginResponse]
    statistics: dict


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True
