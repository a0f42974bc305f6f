"""
Admin Routes

GET /admin/settings - Portal switches (coordinator)
PUT /admin/settings - Change portal switches (admin)
PUT /admin/students/{roll}/approval - Approve / reject a submitted profile (coordinator)
GET /admin/eligible-jobs?roll= - Eligible jobs of any student (coordinator)
GET /admin/applied-jobs?roll= - Applications of any student (coordinator)
GET /admin/resume-zip?rolls=a,b - Zip of resumes named <roll>.pdf (coordinator)
PUT /admin/users/{username}/role - Change a user's role (admin)
"""

import logging
from fastapi import APIRouter, HTTPException, Depends, Query
from fastapi.responses import Response
from sqlalchemy import text
from typing import List

from placement_portal.db.postgres import get_db_session
from placement_portal.core.auth import get_current_coordinator, get_current_admin
from placement_portal.services.admission_service import ApplicationAdmissionController, get_admission_controller
from placement_portal.services.placement_store import PlacementStore, get_placement_store
from placement_portal.services.profile_service import ProfileService, get_profile_service
from placement_portal.services.resume_service import ResumeService, get_resume_service, parse_rolls
from placement_portal.schemas.schemas import (
    PortalSettings, PortalSettingsUpdate, StudentApprovalUpdate, UserRoleUpdate,
    JobResponse, AppliedJobResponse, MessageResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/settings", response_model=PortalSettings)
async def get_portal_settings(
    user: dict = Depends(get_current_coordinator),
    store: PlacementStore = Depends(get_placement_store),
):
    return store.get_portal_settings()


@router.put("/settings", response_model=PortalSettings)
async def update_portal_settings(
    update: PortalSettingsUpdate,
    user: dict = Depends(get_current_admin),
    store: PlacementStore = Depends(get_placement_store),
):
    """Open/close student registrations and CPI/SPI edits."""
    changes = update.model_dump(exclude_none=True)
    settings = store.update_portal_settings(changes)
    logger.info("Portal settings changed by %s: %s", user["username"], changes)
    return settings


@router.put("/students/{roll}/approval", response_model=MessageResponse)
async def set_student_approval(
    roll: str,
    update: StudentApprovalUpdate,
    user: dict = Depends(get_current_coordinator),
    profiles: ProfileService = Depends(get_profile_service),
):
    profiles.set_approval(roll, update.approved.value)
    return MessageResponse(message=f"Student {roll} {update.approved.value}")


@router.get("/eligible-jobs", response_model=List[JobResponse])
async def eligible_jobs_for_student(
    roll: str = Query(...),
    user: dict = Depends(get_current_coordinator),
    controller: ApplicationAdmissionController = Depends(get_admission_controller),
):
    return controller.list_eligible_jobs(roll)


@router.get("/applied-jobs", response_model=List[AppliedJobResponse])
async def applied_jobs_for_student(
    roll: str = Query(...),
    user: dict = Depends(get_current_coordinator),
    controller: ApplicationAdmissionController = Depends(get_admission_controller),
):
    return controller.get_applied_jobs(roll)


@router.get("/resume-zip")
async def resume_zip(
    rolls: str = Query(..., description="Comma separated roll numbers"),
    user: dict = Depends(get_current_coordinator),
    resumes: ResumeService = Depends(get_resume_service),
):
    """Download the resumes of several students as one zip archive."""
    roll_list = parse_rolls(rolls)
    if not roll_list:
        raise HTTPException(status_code=400, detail="No roll numbers given")
    archive = resumes.build_resume_zip(roll_list)
    return Response(
        content=archive,
        media_type="application/zip",
        headers={"Content-Disposition": 'attachment; filename="resumes.zip"'},
    )


@router.put("/users/{username}/role", response_model=MessageResponse)
async def set_user_role(username: str, update: UserRoleUpdate, user: dict = Depends(get_current_admin)):
    with get_db_session() as db:
        result = db.execute(
            text("UPDATE users SET role = :role WHERE username = :username"),
            {"role": update.role.value, "username": username}
        )
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="User not found")

    logger.info("User %s is now %s (changed by %s)", username, update.role.value, user["username"])
    return MessageResponse(message=f"{username} is now {update.role.value}")
