"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List
from datetime import datetime
from enum import Enum

from placement_portal.services.eligibility import Classification


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    student = "student"
    coordinator = "coordinator"
    admin = "admin"


class StudentApproval(str, Enum):
    created = "created"
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class CompanyStatus(str, Enum):
    registered = "registered"
    approved = "approved"
    rejected = "rejected"


class JobCategory(str, Enum):
    internship = "Internship"
    fte = "FTE"


class JobApproval(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class JobStatus(str, Enum):
    open = "open"
    ongoing = "ongoing"
    results_declared = "results_declared"
    abandoned = "abandoned"


class ApplicationStatus(str, Enum):
    applied = "applied"
    selected = "selected"
    rejected = "rejected"


# ============================================================
# AUTH SCHEMAS
# ============================================================

# Usernames double as roll numbers and resume file names
USERNAME_PATTERN = r"^[A-Za-z0-9_.-]+$"

class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=2, max_length=50, pattern=USERNAME_PATTERN)
    email: EmailStr
    password: str = Field(..., min_length=8)

class LoginRequest(BaseModel):
    username: str
    password: str

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    username: str
    role: str

class UserResponse(BaseModel):
    user_id: int
    username: str
    email: str
    role: str
    is_active: bool
    created_at: datetime

class UserRoleUpdate(BaseModel):
    role: UserRole


# ============================================================
# STUDENT SCHEMAS
# ============================================================

class StudentProfileFields(BaseModel):
    """Every editable profile field. Unset fields are left untouched."""

    name: Optional[str] = Field(None, min_length=2, max_length=200)
    gender: Optional[str] = None
    date_of_birth: Optional[str] = None
    category: Optional[str] = None
    pwd: Optional[bool] = None
    rank: Optional[int] = Field(None, ge=0)
    registered_for: Optional[JobCategory] = None
    program: Optional[str] = None
    department: Optional[str] = None
    course: Optional[str] = None
    address: Optional[str] = None
    x_marks: Optional[float] = Field(None, ge=0, le=100)
    xii_marks: Optional[float] = Field(None, ge=0, le=100)
    ug_college: Optional[str] = None
    ug_cpi: Optional[float] = Field(None, ge=0, le=10)
    cpi: Optional[float] = Field(None, ge=0, le=10)
    spi1: Optional[float] = Field(None, ge=0, le=10)
    spi2: Optional[float] = Field(None, ge=0, le=10)
    spi3: Optional[float] = Field(None, ge=0, le=10)
    spi4: Optional[float] = Field(None, ge=0, le=10)
    spi5: Optional[float] = Field(None, ge=0, le=10)
    spi6: Optional[float] = Field(None, ge=0, le=10)
    spi7: Optional[float] = Field(None, ge=0, le=10)
    spi8: Optional[float] = Field(None, ge=0, le=10)
    current_sem: Optional[int] = Field(None, ge=1, le=12)
    resume_link: Optional[str] = None
    other_achievements: Optional[str] = None
    projects: Optional[str] = None
    profile_picture: Optional[str] = None

class StudentCreate(StudentProfileFields):
    roll: str = Field(..., min_length=1, max_length=50, pattern=USERNAME_PATTERN)

class StudentSubmit(StudentCreate):
    """Profile sent for approval, the eligibility fields become mandatory."""

    name: str = Field(..., min_length=2, max_length=200)
    registered_for: JobCategory
    program: str
    department: str
    x_marks: float = Field(..., ge=0, le=100)
    xii_marks: float = Field(..., ge=0, le=100)

class StudentUpdate(StudentProfileFields):
    pass

class StudentResponse(StudentProfileFields):
    id: int
    roll: str
    pwd: bool = False
    approved: str
    resume_uploaded: bool = False
    created_at: datetime

class StudentApprovalUpdate(BaseModel):
    approved: StudentApproval

    @field_validator("approved")
    @classmethod
    def decision_only(cls, value: StudentApproval) -> StudentApproval:
        if value not in (StudentApproval.approved, StudentApproval.rejected):
            raise ValueError("approved must be 'approved' or 'rejected'")
        return value

class ProfileUpdateResponse(BaseModel):
    message: str
    modified_fields: List[str] = []


# ============================================================
# COMPANY SCHEMAS
# ============================================================

class CompanyCreate(BaseModel):
    company_name: str = Field(..., min_length=2, max_length=200)
    company_address: Optional[str] = None
    website: Optional[str] = None

class CompanyResponse(BaseModel):
    id: int
    company_name: str
    company_address: Optional[str] = None
    website: Optional[str] = None
    status: str
    created_at: datetime

class CompanyStatusUpdate(BaseModel):
    status: CompanyStatus


# ============================================================
# JOB SCHEMAS
# ============================================================

class JobCreate(BaseModel):
    company_id: int
    job_title: str = Field(..., min_length=2, max_length=200)
    description: Optional[str] = None
    min_x_marks: float = Field(0, ge=0, le=100)
    min_xii_marks: float = Field(0, ge=0, le=100)
    min_cpi: float = Field(0, ge=0, le=10)
    eligible_programs: List[str] = []
    eligible_departments: List[str] = []
    category: JobCategory
    classification: Classification
    only_for_ews: bool = False
    only_for_pwd: bool = False
    start_date: Optional[datetime] = None
    last_date: Optional[datetime] = None

    @field_validator("eligible_programs", "eligible_departments")
    @classmethod
    def no_commas(cls, values: List[str]) -> List[str]:
        cleaned = [v.strip() for v in values if v.strip()]
        if any("," in v for v in cleaned):
            raise ValueError("entries must not contain commas")
        return cleaned

class JobResponse(BaseModel):
    id: int
    company_id: int
    company_name: str
    job_title: str
    description: Optional[str] = None
    min_x_marks: float
    min_xii_marks: float
    min_cpi: float
    eligible_programs: str = ""
    eligible_departments: str = ""
    category: str
    classification: str
    only_for_ews: bool
    only_for_pwd: bool
    approval_status: str
    job_status: str
    start_date: Optional[datetime] = None
    last_date: Optional[datetime] = None
    created_at: datetime

class JobApprovalUpdate(BaseModel):
    approval_status: JobApproval

class JobStatusUpdate(BaseModel):
    job_status: JobStatus


# ============================================================
# APPLICATION SCHEMAS
# ============================================================

class ApplicationResponse(BaseModel):
    id: int
    student_id: int
    job_id: int
    status: str
    created_at: datetime

class AppliedJobResponse(BaseModel):
    id: int
    job_id: int
    status: str
    applied_at: datetime
    job_title: str
    company_id: int
    company_name: str
    category: str
    classification: str
    job_status: str
    last_date: Optional[datetime] = None

class JobApplicantResponse(BaseModel):
    id: int
    student_id: int
    roll: str
    name: Optional[str] = None
    status: str
    created_at: datetime

class ApplicationStatusUpdate(BaseModel):
    status: ApplicationStatus


# ============================================================
# ADMIN SCHEMAS
# ============================================================

class PortalSettings(BaseModel):
    registrations_allowed: bool
    cpi_change_allowed: bool

class PortalSettingsUpdate(BaseModel):
    registrations_allowed: Optional[bool] = None
    cpi_change_allowed: Optional[bool] = None


# ============================================================
# UPLOAD SCHEMAS
# ============================================================

class UploadResponse(BaseModel):
    success: bool
    message: str
    filename: Optional[str] = None


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True

class ErrorResponse(BaseModel):
    detail: str
    reason: Optional[str] = None
