"""
Placement Store - the persistence collaborator of the admission service.

Every read the eligibility flow needs lives here, written as plain SQL with
bound parameters. Rows come back as dicts; the admission service turns them
into evaluator records.

The (student_id, job_id) UNIQUE constraint on `applications` is what makes
`create_application` safe under concurrent apply calls: the losing insert
raises IntegrityError, which is surfaced as DuplicateApplication.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, ContextManager, Iterable, List, Optional

from sqlalchemy import insert, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from placement_portal.core.exceptions import DuplicateApplication
from placement_portal.db.postgres import get_db_session
from placement_portal.db.tables import applications, students

logger = logging.getLogger(__name__)

JOB_COLUMNS = """
    j.id, j.company_id, c.company_name, j.job_title, j.description,
    j.min_x_marks, j.min_xii_marks, j.min_cpi, j.eligible_programs, j.eligible_departments,
    j.category, j.classification, j.only_for_ews, j.only_for_pwd,
    j.approval_status, j.job_status, j.start_date, j.last_date, j.jaf_path, j.created_at
"""

DUPLICATE_MARKERS = ("unique_student_job_application", "applications.student_id, applications.job_id")


def _rows(result) -> List[dict]:
    return [dict(row) for row in result.mappings().all()]


def _is_duplicate_application(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return any(marker in message for marker in DUPLICATE_MARKERS)


class PlacementStore:
    """
    SQL-backed access to students, jobs, applications and portal settings.

    Args:
        session_scope: context-manager factory yielding a Session that commits
            on success (defaults to get_db_session)
    """

    def __init__(self, session_scope: Callable[[], ContextManager[Session]] = get_db_session):
        self.session_scope = session_scope

    # ============================================================
    # STUDENTS
    # ============================================================

    def get_student_by_roll(self, roll: str) -> Optional[dict]:
        with self.session_scope() as db:
            result = db.execute(text("SELECT * FROM students WHERE roll = :roll"), {"roll": roll})
            rows = _rows(result)
        return rows[0] if rows else None

    def create_student(self, fields: dict) -> int:
        stmt = insert(students).values(**fields).returning(students.c.id)
        with self.session_scope() as db:
            return db.execute(stmt).scalar_one()

    def update_student(self, student_id: int, fields: dict) -> None:
        if not fields:
            return
        assignments = ", ".join(f"{name} = :{name}" for name in fields)
        params = dict(fields, id=student_id, updated_at=datetime.now(timezone.utc).isoformat())
        with self.session_scope() as db:
            db.execute(
                text(f"UPDATE students SET {assignments}, updated_at = :updated_at WHERE id = :id"),
                params,
            )

    # ============================================================
    # JOBS
    # ============================================================

    def get_job(self, job_id: int) -> Optional[dict]:
        with self.session_scope() as db:
            result = db.execute(
                text(f"""
                    SELECT {JOB_COLUMNS}
                    FROM jobs j JOIN companies c ON j.company_id = c.id
                    WHERE j.id = :job_id
                """),
                {"job_id": job_id},
            )
            rows = _rows(result)
        return rows[0] if rows else None

    def find_candidate_jobs(self, category: str, x_marks: float, xii_marks: float, cpi: float) -> List[dict]:
        """Coarse SQL pre-filter. The evaluator makes the final decision."""
        with self.session_scope() as db:
            result = db.execute(
                text(f"""
                    SELECT {JOB_COLUMNS}
                    FROM jobs j JOIN companies c ON j.company_id = c.id
                    WHERE j.approval_status = 'approved'
                      AND j.category = :category
                      AND j.min_x_marks <= :x_marks
                      AND j.min_xii_marks <= :xii_marks
                      AND j.min_cpi <= :cpi
                    ORDER BY j.id
                """),
                {"category": category, "x_marks": x_marks, "xii_marks": xii_marks, "cpi": cpi},
            )
            return _rows(result)

    def find_open_jobs(self, category: str, statuses: Iterable[str]) -> List[dict]:
        statuses = sorted({s.lower() for s in statuses})
        if not statuses:
            logger.warning("No open job statuses configured, no job is listed as open")
            return []
        placeholders = ", ".join(f":status_{i}" for i in range(len(statuses)))
        params = {f"status_{i}": status for i, status in enumerate(statuses)}
        params["category"] = category
        with self.session_scope() as db:
            result = db.execute(
                text(f"""
                    SELECT {JOB_COLUMNS}
                    FROM jobs j JOIN companies c ON j.company_id = c.id
                    WHERE j.category = :category
                      AND j.approval_status = 'approved'
                      AND LOWER(j.job_status) IN ({placeholders})
                    ORDER BY j.id
                """),
                params,
            )
            return _rows(result)

    # ============================================================
    # APPLICATIONS
    # ============================================================

    def get_student_applications(self, student_id: int, status: Optional[str] = None) -> List[dict]:
        """Applications of a student with the related job's classification and category."""
        sql = """
            SELECT a.id, a.student_id, a.job_id, a.status, a.created_at,
                   j.classification AS job_classification, j.category AS job_category
            FROM applications a JOIN jobs j ON a.job_id = j.id
            WHERE a.student_id = :student_id
        """
        params = {"student_id": student_id}
        if status:
            sql += " AND a.status = :status"
            params["status"] = status
        sql += " ORDER BY a.created_at, a.id"
        with self.session_scope() as db:
            return _rows(db.execute(text(sql), params))

    def create_application(self, student_id: int, job_id: int, status: str = "applied") -> dict:
        """
        Insert one application.

        Raises:
            DuplicateApplication: the (student, job) pair already exists
        """
        now = datetime.now(timezone.utc)
        stmt = (
            insert(applications)
            .values(student_id=student_id, job_id=job_id, status=status, created_at=now, updated_at=now)
            .returning(applications.c.id)
        )
        try:
            with self.session_scope() as db:
                application_id = db.execute(stmt).scalar_one()
        except IntegrityError as exc:
            if _is_duplicate_application(exc):
                raise DuplicateApplication(f"student {student_id} already applied to job {job_id}") from exc
            raise

        return {
            "id": application_id,
            "student_id": student_id,
            "job_id": job_id,
            "status": status,
            "created_at": now,
        }

    def get_applied_jobs(self, student_id: int) -> List[dict]:
        with self.session_scope() as db:
            result = db.execute(
                text("""
                    SELECT a.id, a.job_id, a.status, a.created_at AS applied_at,
                           j.job_title, j.category, j.classification, j.job_status, j.last_date, j.jaf_path,
                           c.id AS company_id, c.company_name
                    FROM applications a
                    JOIN jobs j ON a.job_id = j.id
                    JOIN companies c ON j.company_id = c.id
                    WHERE a.student_id = :student_id
                    ORDER BY a.created_at DESC, a.id DESC
                """),
                {"student_id": student_id},
            )
            return _rows(result)

    # ============================================================
    # PORTAL SETTINGS
    # ============================================================

    def get_portal_settings(self) -> dict:
        with self.session_scope() as db:
            rows = _rows(db.execute(text(
                "SELECT registrations_allowed, cpi_change_allowed FROM portal_settings WHERE id = 1"
            )))
        if not rows:
            # init_db creates the row, a missing row means nothing was unlocked
            logger.warning("Portal settings row not found, using locked defaults")
            return {"registrations_allowed": False, "cpi_change_allowed": False}
        return {key: bool(value) for key, value in rows[0].items()}

    def update_portal_settings(self, changes: dict) -> dict:
        if changes:
            assignments = ", ".join(f"{name} = :{name}" for name in changes)
            with self.session_scope() as db:
                db.execute(text(f"UPDATE portal_settings SET {assignments} WHERE id = 1"), changes)
        return self.get_portal_settings()


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

def get_placement_store() -> PlacementStore:
    """Get store instance bound to the application database."""
    return PlacementStore()
