"""
Student Routes

POST /students/register - Create own student record ("created")
POST /students/submit-for-approval - Send profile for approval ("pending")
GET /students/me - Get own profile
PUT /students/me - Modify profile fields allowed by the field rules
POST /students/me/resume - Upload resume (PDF)
GET /students/eligible-jobs - Jobs the student can apply to now
GET /students/all-jobs - Every open job of the student's category
POST /students/apply?job_id= - Apply to a job
GET /students/applied-jobs - Own applications
"""

from fastapi import APIRouter, HTTPException, Depends, Query, UploadFile, File
from typing import List

from placement_portal.core.auth import get_current_student
from placement_portal.services.admission_service import ApplicationAdmissionController, get_admission_controller
from placement_portal.services.placement_store import PlacementStore, get_placement_store
from placement_portal.services.profile_service import ProfileService, get_profile_service
from placement_portal.services.resume_service import ResumeService, get_resume_service
from placement_portal.utils.file_upload import read_pdf_upload
from placement_portal.schemas.schemas import (
    StudentCreate, StudentSubmit, StudentUpdate, StudentResponse, ProfileUpdateResponse,
    JobResponse, ApplicationResponse, AppliedJobResponse, UploadResponse, MessageResponse, ErrorResponse
)

router = APIRouter(prefix="/students", tags=["Students"])


@router.post("/register", response_model=MessageResponse, status_code=201)
async def register_student(
    data: StudentCreate,
    student: dict = Depends(get_current_student),
    profiles: ProfileService = Depends(get_profile_service),
):
    """Create the student record. Roll must equal the login username."""
    profiles.register(student["username"], student["user_id"], data.model_dump(exclude_unset=True, mode="json"))
    return MessageResponse(message="Student registered successfully")


@router.post("/submit-for-approval", response_model=MessageResponse)
async def submit_for_approval(
    data: StudentSubmit,
    student: dict = Depends(get_current_student),
    profiles: ProfileService = Depends(get_profile_service),
):
    """Create or overwrite the profile and send it for approval."""
    profiles.submit_for_approval(
        student["username"], student["user_id"], data.model_dump(exclude_unset=True, mode="json")
    )
    return MessageResponse(message="Profile submitted for approval")


@router.get("/me", response_model=StudentResponse)
async def get_profile(
    student: dict = Depends(get_current_student),
    store: PlacementStore = Depends(get_placement_store),
):
    """Get current student's profile."""
    row = store.get_student_by_roll(student["roll"])
    if not row:
        raise HTTPException(status_code=404, detail="Student profile not found. Register first.")
    return StudentResponse(**row, resume_uploaded=bool(row.get("resume_path")))


@router.put("/me", response_model=ProfileUpdateResponse)
async def update_profile(
    data: StudentUpdate,
    student: dict = Depends(get_current_student),
    profiles: ProfileService = Depends(get_profile_service),
):
    """
    Modify profile fields.

    Fields that are locked (after submission, or grades while CPI changes are
    closed) are ignored. The response lists what was actually modified.
    """
    modified = profiles.update_profile(student["roll"], data.model_dump(exclude_unset=True, mode="json"))
    if not modified:
        return ProfileUpdateResponse(message="No field modified")
    return ProfileUpdateResponse(message="Profile updated", modified_fields=modified)


@router.post("/me/resume", response_model=UploadResponse)
async def upload_resume(
    file: UploadFile = File(...),
    student: dict = Depends(get_current_student),
    resumes: ResumeService = Depends(get_resume_service),
):
    """Upload resume as PDF (max size from settings)."""
    content = await read_pdf_upload(file)
    resumes.save_resume(student["roll"], content)
    return UploadResponse(success=True, message="Resume uploaded", filename=file.filename)


@router.get("/eligible-jobs", response_model=List[JobResponse])
async def eligible_jobs(
    student: dict = Depends(get_current_student),
    controller: ApplicationAdmissionController = Depends(get_admission_controller),
):
    """Jobs the current student may apply to right now."""
    return controller.list_eligible_jobs(student["roll"])


@router.get("/all-jobs", response_model=List[JobResponse])
async def all_jobs(
    student: dict = Depends(get_current_student),
    controller: ApplicationAdmissionController = Depends(get_admission_controller),
):
    """All open jobs for the student's category, eligible or not."""
    return controller.list_open_jobs(student["roll"])


@router.post(
    "/apply",
    response_model=ApplicationResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def apply(
    job_id: int = Query(...),
    student: dict = Depends(get_current_student),
    controller: ApplicationAdmissionController = Depends(get_admission_controller),
):
    """Apply to a job. Rejections come back as 400 with a reason code."""
    return controller.apply(student["roll"], job_id)


@router.get("/applied-jobs", response_model=List[AppliedJobResponse])
async def applied_jobs(
    student: dict = Depends(get_current_student),
    controller: ApplicationAdmissionController = Depends(get_admission_controller),
):
    """Get my applications with job and company details."""
    return controller.get_applied_jobs(student["roll"])
