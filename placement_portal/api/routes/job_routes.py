"""
Job Routes

POST /jobs/register - Post a job for an approved company (coordinator)
GET /jobs/{job_id} - Get job details
PUT /jobs/{job_id}/jaf - Upload the job application form (coordinator)
GET /jobs/{job_id}/jaf - Download the job application form
PUT /jobs/{job_id}/approval - Approve / reject a job (admin)
PUT /jobs/{job_id}/status - Move a job through open/ongoing/results_declared/abandoned
GET /jobs/{job_id}/applications - Applicants of a job (coordinator)
PUT /jobs/applications/{application_id}/status - Mark an application selected / rejected
"""

import logging
import os
from datetime import datetime, timezone
from fastapi import APIRouter, HTTPException, Depends, UploadFile, File
from fastapi.responses import FileResponse
from sqlalchemy import text
from typing import List, Optional

from placement_portal.db.postgres import get_db_session, execute_raw_sql
from placement_portal.db.tables import jobs
from placement_portal.core.auth import get_current_user, get_current_coordinator, get_current_admin
from placement_portal.core.config import get_settings
from placement_portal.core.exceptions import (
    ApplicationNotFound, CompanyNotApproved, CompanyNotFound, JobNotFound
)
from placement_portal.services.placement_store import PlacementStore, get_placement_store
from placement_portal.utils.file_upload import read_pdf_upload, save_file
from placement_portal.schemas.schemas import (
    JobCreate, JobResponse, JobApprovalUpdate, JobStatusUpdate,
    JobApplicantResponse, ApplicationResponse, ApplicationStatusUpdate, UploadResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["Jobs"])


def _get_job_or_404(store: PlacementStore, job_id: int) -> dict:
    job = store.get_job(job_id)
    if job is None:
        raise JobNotFound()
    return job


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops the offset, so dates are stored in UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@router.post("/register", response_model=JobResponse, status_code=201)
async def register_job(
    job: JobCreate,
    user: dict = Depends(get_current_coordinator),
    store: PlacementStore = Depends(get_placement_store),
):
    """Post a job. The company must be approved; the job waits for admin approval."""
    companies = execute_raw_sql("SELECT status FROM companies WHERE id = :id", {"id": job.company_id})
    if not companies:
        raise CompanyNotFound()
    if companies[0]["status"] != "approved":
        raise CompanyNotApproved()

    values = job.model_dump(exclude={"eligible_programs", "eligible_departments"}, mode="json")
    values.update(
        start_date=_as_utc(job.start_date),
        last_date=_as_utc(job.last_date),
        eligible_programs=",".join(job.eligible_programs),
        eligible_departments=",".join(job.eligible_departments),
        approval_status="pending",
        job_status="open",
    )
    with get_db_session() as db:
        job_id = db.execute(jobs.insert().values(**values).returning(jobs.c.id)).scalar_one()

    logger.info("Job %s (%s) registered by %s", job_id, job.classification.value, user["username"])
    return store.get_job(job_id)


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: int,
    user: dict = Depends(get_current_user),
    store: PlacementStore = Depends(get_placement_store),
):
    """Get details of a specific job."""
    return _get_job_or_404(store, job_id)


@router.put("/{job_id}/jaf", response_model=UploadResponse)
async def upload_jaf(
    job_id: int,
    file: UploadFile = File(...),
    user: dict = Depends(get_current_coordinator),
    store: PlacementStore = Depends(get_placement_store),
):
    """Upload the job application form (PDF)."""
    _get_job_or_404(store, job_id)
    content = await read_pdf_upload(file)
    path = save_file(content, get_settings().jaf_storage_dir, f"{job_id}.pdf")
    with get_db_session() as db:
        db.execute(text("UPDATE jobs SET jaf_path = :path WHERE id = :id"), {"path": path, "id": job_id})
    return UploadResponse(success=True, message="JAF uploaded", filename=file.filename)


@router.get("/{job_id}/jaf")
async def download_jaf(
    job_id: int,
    user: dict = Depends(get_current_user),
    store: PlacementStore = Depends(get_placement_store),
):
    """Download the job application form."""
    job = _get_job_or_404(store, job_id)
    path = job.get("jaf_path")
    if not path or not os.path.isfile(path):
        raise HTTPException(status_code=404, detail="No JAF uploaded for this job")
    return FileResponse(path, media_type="application/pdf", filename=f"jaf_{job_id}.pdf")


@router.put("/{job_id}/approval", response_model=JobResponse)
async def update_job_approval(
    job_id: int,
    update: JobApprovalUpdate,
    user: dict = Depends(get_current_admin),
    store: PlacementStore = Depends(get_placement_store),
):
    """Approve or reject a job. Only approved jobs are visible to students."""
    _get_job_or_404(store, job_id)
    with get_db_session() as db:
        db.execute(
            text("UPDATE jobs SET approval_status = :status WHERE id = :id"),
            {"status": update.approval_status.value, "id": job_id}
        )
    logger.info("Job %s approval set to %s", job_id, update.approval_status.value)
    return store.get_job(job_id)


@router.put("/{job_id}/status", response_model=JobResponse)
async def update_job_status(
    job_id: int,
    update: JobStatusUpdate,
    user: dict = Depends(get_current_coordinator),
    store: PlacementStore = Depends(get_placement_store),
):
    """Change the job's process status. Only open jobs accept applications."""
    _get_job_or_404(store, job_id)
    with get_db_session() as db:
        db.execute(
            text("UPDATE jobs SET job_status = :status WHERE id = :id"),
            {"status": update.job_status.value, "id": job_id}
        )
    logger.info("Job %s status set to %s", job_id, update.job_status.value)
    return store.get_job(job_id)


@router.get("/{job_id}/applications", response_model=List[JobApplicantResponse])
async def list_job_applications(
    job_id: int,
    user: dict = Depends(get_current_coordinator),
    store: PlacementStore = Depends(get_placement_store),
):
    """Applicants of a job, oldest application first."""
    _get_job_or_404(store, job_id)
    return execute_raw_sql("""
        SELECT a.id, a.student_id, s.roll, s.name, a.status, a.created_at
        FROM applications a JOIN students s ON a.student_id = s.id
        WHERE a.job_id = :job_id
        ORDER BY a.created_at, a.id
    """, {"job_id": job_id})


@router.put("/applications/{application_id}/status", response_model=ApplicationResponse)
async def update_application_status(
    application_id: int,
    update: ApplicationStatusUpdate,
    user: dict = Depends(get_current_coordinator),
):
    """Record the selection outcome of an application."""
    with get_db_session() as db:
        result = db.execute(
            text("UPDATE applications SET status = :status, updated_at = :now WHERE id = :id"),
            {"status": update.status.value, "now": datetime.now(timezone.utc).isoformat(), "id": application_id}
        )
        if result.rowcount == 0:
            raise ApplicationNotFound()

    logger.info("Application %s marked %s", application_id, update.status.value)
    return execute_raw_sql(
        "SELECT id, student_id, job_id, status, created_at FROM applications WHERE id = :id",
        {"id": application_id}
    )[0]
