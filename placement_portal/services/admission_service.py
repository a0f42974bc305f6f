"""
Application Admission Service

PURPOSE:
Glue between the HTTP layer, the store and the eligibility evaluator.

HOW IT WORKS:
1. Resolve the student by roll and check the account is usable
2. Load candidate job(s) and the student's application history once
3. Ask the evaluator for a verdict per job
4. For apply: insert the application, letting the unique constraint
   settle concurrent requests for the same (student, job)
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from placement_portal.core.exceptions import (
    AccountNotApproved,
    AlreadyApplied,
    CpiNotSet,
    DuplicateApplication,
    JobNotFound,
    NotEligible,
    StudentNotFound,
)
from placement_portal.services.eligibility import (
    ApplicationRecord,
    EligibilityEvaluator,
    JobRecord,
    ReasonCode,
    StudentRecord,
    get_eligibility_evaluator,
    validate_student,
)
from placement_portal.services.placement_store import PlacementStore, get_placement_store

logger = logging.getLogger(__name__)


class ApplicationAdmissionController:
    """
    Eligible-job listing and application admission for one student at a time.

    Usage:
        controller = ApplicationAdmissionController(store, evaluator)
        jobs = controller.list_eligible_jobs("210001")
        application = controller.apply("210001", job_id=7)
    """

    def __init__(
        self,
        store: Optional[PlacementStore] = None,
        evaluator: Optional[EligibilityEvaluator] = None,
    ):
        self.store = store or get_placement_store()
        self.evaluator = evaluator or get_eligibility_evaluator()

    # ============================================================
    # LOOKUPS
    # ============================================================

    def _load_student(self, roll: str, require_cpi: bool = True) -> StudentRecord:
        row = self.store.get_student_by_roll(roll)
        if row is None:
            raise StudentNotFound()
        if row.get("approved") != "approved":
            logger.info("Roll %s rejected: account is %s", roll, row.get("approved"))
            raise AccountNotApproved()
        if require_cpi and row.get("cpi") is None:
            raise CpiNotSet()
        return StudentRecord.from_row(row)

    def _load_history(self, student_id) -> tuple:
        """(selected applications, all applications), from a single read."""
        applications = [
            ApplicationRecord.from_row(row)
            for row in self.store.get_student_applications(student_id)
        ]
        selected_status = self.evaluator.policy.selected_status
        selected = [a for a in applications if a.status == selected_status]
        return selected, applications

    # ============================================================
    # OPERATIONS
    # ============================================================

    def list_eligible_jobs(self, roll: str) -> List[dict]:
        """
        Jobs the student may apply to right now, in candidate order.

        Raises:
            StudentNotFound, AccountNotApproved, CpiNotSet, InvalidInput
        """
        student = self._load_student(roll)
        validate_student(student)

        candidates = self.store.find_candidate_jobs(
            category=student.registered_for,
            x_marks=student.x_marks,
            xii_marks=student.xii_marks,
            cpi=student.cpi,
        )
        selected, applications = self._load_history(student.id)
        state = self.evaluator.admission_state(selected, applications)
        now = datetime.now(timezone.utc)

        eligible = []
        for row in candidates:
            verdict = self.evaluator.evaluate(
                student, JobRecord.from_row(row), selected, applications, now=now, state=state
            )
            if verdict.eligible:
                eligible.append(row)

        logger.info("Roll %s: %d of %d candidate jobs eligible", roll, len(eligible), len(candidates))
        return eligible

    def list_open_jobs(self, roll: str) -> List[dict]:
        """All open jobs of the student's category, eligible or not."""
        student = self._load_student(roll, require_cpi=False)
        return self.store.find_open_jobs(student.registered_for, self.evaluator.policy.open_job_statuses)

    def apply(self, roll: str, job_id: int) -> dict:
        """
        Create an "applied" application for (roll, job_id).

        Raises:
            StudentNotFound, AccountNotApproved, CpiNotSet, JobNotFound,
            AlreadyApplied, NotEligible, InvalidInput
        """
        student = self._load_student(roll)
        job_row = self.store.get_job(job_id)
        if job_row is None:
            raise JobNotFound()

        selected, applications = self._load_history(student.id)
        verdict = self.evaluator.evaluate(student, JobRecord.from_row(job_row), selected, applications)
        if not verdict.eligible:
            logger.info("Roll %s cannot apply to job %s: %s", roll, job_id, verdict.reason.value)
            if verdict.reason == ReasonCode.already_applied:
                raise AlreadyApplied()
            raise NotEligible(verdict.reason)

        try:
            application = self.store.create_application(student.id, job_id)
        except DuplicateApplication:
            # lost the race against a concurrent apply for the same job
            logger.info("Roll %s: concurrent application to job %s", roll, job_id)
            raise AlreadyApplied()

        logger.info("Roll %s applied to job %s (application %s)", roll, job_id, application["id"])
        return application

    def get_applied_jobs(self, roll: str) -> List[dict]:
        student = self._load_student(roll, require_cpi=False)
        return self.store.get_applied_jobs(student.id)


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

def get_admission_controller() -> ApplicationAdmissionController:
    """Get a controller wired to the database store and configured policy."""
    return ApplicationAdmissionController()
