"""
Job Eligibility Evaluator

PURPOSE:
Decide, for one student and one job, whether an application may be created.
This module is pure: it never touches the database, the request or the
settings store. Everything it needs is handed in by the admission service.

HOW IT WORKS:
1. Validate that the student/job records carry the mandatory fields
2. Walk the decision sequence below, stopping at the first failure
3. Return a Verdict (eligible + the ReasonCode of the first failed check)

DECISION SEQUENCE:
 1. job approved and open                      -> JobNotOpen
 2. X / XII / CPI thresholds                   -> BelowMinX / BelowMinXII / BelowMinCPI
 3. job.category == student.registered_for     -> CategoryMismatch
 4. only_for_ews                               -> NotEws
 5. only_for_pwd                               -> NotPwd
 6. eligible programs / departments            -> ProgramNotEligible / DepartmentNotEligible
 7. start_date / last_date window              -> NotYetOpen / DeadlinePassed
 8. existing application for this job          -> AlreadyApplied
 9. admission control (selection history)      -> AlreadySelectedInternship, OfferLimitReached,
                                                  AlreadySelectedA1, AlreadySelectedA2,
                                                  A1ApplicationQuotaExceeded

ADMISSION CONTROL:
- "X" jobs skip stage 9 entirely
- "Internship" jobs: at most one selected internship, then the offer cap
- "A1" / "A2" / "FTE" jobs: offer cap, then "selected in A1 = out of process",
  then the A2 rules (no second A2, limited A1 applications after an A2 selection)
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, FrozenSet, Iterable, List, Optional, Sequence

from placement_portal.core.config import Settings, get_settings
from placement_portal.core.exceptions import InvalidInput

logger = logging.getLogger(__name__)


# ============================================================
# ENUMS
# ============================================================

class ReasonCode(str, Enum):
    job_not_open = "JobNotOpen"
    below_min_x = "BelowMinX"
    below_min_xii = "BelowMinXII"
    below_min_cpi = "BelowMinCPI"
    category_mismatch = "CategoryMismatch"
    not_ews = "NotEws"
    not_pwd = "NotPwd"
    program_not_eligible = "ProgramNotEligible"
    department_not_eligible = "DepartmentNotEligible"
    not_yet_open = "NotYetOpen"
    deadline_passed = "DeadlinePassed"
    already_applied = "AlreadyApplied"
    already_selected_internship = "AlreadySelectedInternship"
    already_selected_a1 = "AlreadySelectedA1"
    already_selected_a2 = "AlreadySelectedA2"
    a1_application_quota_exceeded = "A1ApplicationQuotaExceeded"
    offer_limit_reached = "OfferLimitReached"


class Classification(str, Enum):
    x = "X"
    a1 = "A1"
    a2 = "A2"
    internship = "Internship"
    fte = "FTE"


# ============================================================
# RECORDS
# Snapshots of database rows, built by the store
# ============================================================

def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


def _to_datetime(value: Any) -> Optional[datetime]:
    # SQLite hands timestamps back as ISO strings
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            logger.warning("Unparseable application timestamp %r", value)
            return None
    return value


@dataclass
class StudentRecord:
    id: Any
    roll: Optional[str] = None
    x_marks: Optional[float] = None
    xii_marks: Optional[float] = None
    cpi: Optional[float] = None
    program: Optional[str] = None
    department: Optional[str] = None
    registered_for: Optional[str] = None
    category: Optional[str] = None
    pwd: bool = False
    approved: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "StudentRecord":
        return cls(
            id=row.get("id"),
            roll=row.get("roll"),
            x_marks=_to_float(row.get("x_marks")),
            xii_marks=_to_float(row.get("xii_marks")),
            cpi=_to_float(row.get("cpi")),
            program=row.get("program"),
            department=row.get("department"),
            registered_for=row.get("registered_for"),
            category=row.get("category"),
            pwd=bool(row.get("pwd")),
            approved=row.get("approved"),
        )


@dataclass
class JobRecord:
    id: Any
    category: Optional[str] = None
    classification: Optional[str] = None
    min_x_marks: Optional[float] = None
    min_xii_marks: Optional[float] = None
    min_cpi: Optional[float] = None
    eligible_programs: Optional[str] = None
    eligible_departments: Optional[str] = None
    only_for_ews: bool = False
    only_for_pwd: bool = False
    approval_status: Optional[str] = None
    job_status: Optional[str] = None
    start_date: Any = None
    last_date: Any = None
    job_title: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "JobRecord":
        return cls(
            id=row.get("id"),
            category=row.get("category"),
            classification=row.get("classification"),
            min_x_marks=_to_float(row.get("min_x_marks")),
            min_xii_marks=_to_float(row.get("min_xii_marks")),
            min_cpi=_to_float(row.get("min_cpi")),
            # older rows carried a single `eligible_program`
            eligible_programs=row.get("eligible_programs") or row.get("eligible_program"),
            eligible_departments=row.get("eligible_departments"),
            only_for_ews=bool(row.get("only_for_ews")),
            only_for_pwd=bool(row.get("only_for_pwd")),
            approval_status=row.get("approval_status"),
            job_status=row.get("job_status") or row.get("status"),
            start_date=row.get("start_date"),
            last_date=row.get("last_date"),
            job_title=row.get("job_title"),
        )


@dataclass
class ApplicationRecord:
    id: Any
    student_id: Any
    job_id: Any
    status: str
    created_at: Optional[datetime] = None
    job_classification: Optional[str] = None
    job_category: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "ApplicationRecord":
        return cls(
            id=row.get("id"),
            student_id=row.get("student_id"),
            job_id=row.get("job_id"),
            status=row.get("status"),
            created_at=_to_datetime(row.get("created_at")),
            job_classification=row.get("job_classification"),
            job_category=row.get("job_category"),
        )


# ============================================================
# POLICY & VERDICT
# ============================================================

@dataclass(frozen=True)
class EligibilityPolicy:
    """Tunable admission-control constants."""

    max_selected_offers: int = 2
    a1_quota_after_a2: int = 3
    open_job_statuses: FrozenSet[str] = frozenset({"open", "active"})
    selected_status: str = "selected"
    quota_counts_rejected: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "EligibilityPolicy":
        return cls(
            max_selected_offers=settings.max_selected_offers,
            a1_quota_after_a2=settings.a1_quota_after_a2,
            open_job_statuses=frozenset(s.lower() for s in settings.open_job_statuses),
            selected_status=settings.selected_status,
            quota_counts_rejected=settings.quota_counts_rejected,
        )


@dataclass(frozen=True)
class Verdict:
    eligible: bool
    reason: Optional[ReasonCode] = None

    @classmethod
    def admit(cls) -> "Verdict":
        return cls(eligible=True)

    @classmethod
    def reject(cls, reason: ReasonCode) -> "Verdict":
        return cls(eligible=False, reason=reason)


# ============================================================
# ADMISSION STATE
# ============================================================

def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class AdmissionState:
    """
    Per-student state derived from the application history.

    Computed on every evaluation, never stored.
    """

    selected_internship: bool
    selected_a1: bool
    selected_a2: bool
    first_a2_selection_time: Optional[datetime]
    post_a2_a1_application_count: int
    total_selected_count: int

    @classmethod
    def from_history(
        cls,
        selected_applications: Sequence[ApplicationRecord],
        applications: Sequence[ApplicationRecord],
        policy: EligibilityPolicy,
    ) -> "AdmissionState":
        selected_a2 = [a for a in selected_applications if a.job_classification == Classification.a2]
        a2_times = [_as_utc(a.created_at) for a in selected_a2 if a.created_at is not None]
        first_a2 = min(a2_times) if a2_times else None

        a1_applications = [
            a for a in applications
            if a.job_classification == Classification.a1
            and (policy.quota_counts_rejected or a.status != "rejected")
        ]
        if first_a2 is not None:
            # rows without a timestamp are counted, the quota must not be bypassed
            a1_applications = [
                a for a in a1_applications
                if a.created_at is None or _as_utc(a.created_at) > first_a2
            ]

        return cls(
            selected_internship=any(
                a.job_classification == Classification.internship for a in selected_applications
            ),
            selected_a1=any(a.job_classification == Classification.a1 for a in selected_applications),
            selected_a2=bool(selected_a2),
            first_a2_selection_time=first_a2,
            post_a2_a1_application_count=len(a1_applications),
            total_selected_count=len(selected_applications),
        )


def check_admission_control(
    classification: str,
    state: AdmissionState,
    policy: EligibilityPolicy,
) -> Optional[ReasonCode]:
    """Stage 9. Returns the rejection reason, or None when the job passes."""
    if classification == Classification.x:
        return None

    offer_cap_hit = state.total_selected_count >= policy.max_selected_offers

    if classification == Classification.internship:
        if state.selected_internship:
            return ReasonCode.already_selected_internship
        if offer_cap_hit:
            return ReasonCode.offer_limit_reached
        return None

    if offer_cap_hit:
        return ReasonCode.offer_limit_reached

    if state.selected_a1:
        return ReasonCode.already_selected_a1

    if state.selected_a2:
        if classification == Classification.a2:
            return ReasonCode.already_selected_a2
        if (classification == Classification.a1
                and state.post_a2_a1_application_count >= policy.a1_quota_after_a2):
            return ReasonCode.a1_application_quota_exceeded

    return None


# ============================================================
# HELPERS
# ============================================================

STUDENT_REQUIRED_FIELDS = ("id", "x_marks", "xii_marks", "cpi", "registered_for", "department", "program")
JOB_REQUIRED_FIELDS = ("id", "category", "classification")


def _require(record: Any, fields: Iterable[str], label: str) -> None:
    missing = [name for name in fields if getattr(record, name) in (None, "")]
    if missing:
        raise InvalidInput(f"{label} is missing mandatory fields: {', '.join(missing)}")


def validate_student(student: StudentRecord) -> None:
    """Raise InvalidInput when the student cannot be evaluated at all."""
    _require(student, STUDENT_REQUIRED_FIELDS, "Student")


def _require_full_history(
    selected_applications: Sequence[ApplicationRecord],
    applications: Sequence[ApplicationRecord],
) -> None:
    known = {a.id for a in applications}
    missing = [a.id for a in selected_applications if a.id not in known]
    if missing:
        raise InvalidInput(
            f"Application history is incomplete, selected applications {missing} not in it"
        )


def split_csv(value: Optional[str]) -> List[str]:
    """'B.Tech, M.Tech' -> ['b.tech', 'm.tech']. Empty -> []."""
    if not value:
        return []
    return [part.strip().lower() for part in value.split(",") if part.strip()]


def parse_job_datetime(value: Any, field_name: str, job_id: Any) -> Optional[datetime]:
    """
    Parse a job date into an aware UTC datetime.

    Malformed values are logged and treated as "no constraint".
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return _as_utc(datetime.fromisoformat(text))
        except ValueError:
            pass
    logger.warning("Job %s has an invalid %s: %r, ignoring it", job_id, field_name, value)
    return None


# ============================================================
# EVALUATOR
# ============================================================

class EligibilityEvaluator:
    """
    Pure eligibility decision for (student, job, history).

    Usage:
        evaluator = EligibilityEvaluator(EligibilityPolicy())
        verdict = evaluator.evaluate(student, job, selected, applications)
    """

    def __init__(self, policy: Optional[EligibilityPolicy] = None):
        self.policy = policy or EligibilityPolicy()

    def admission_state(
        self,
        selected_applications: Sequence[ApplicationRecord],
        applications: Sequence[ApplicationRecord],
    ) -> AdmissionState:
        _require_full_history(selected_applications, applications)
        return AdmissionState.from_history(selected_applications, applications, self.policy)

    def evaluate(
        self,
        student: StudentRecord,
        job: JobRecord,
        selected_applications: Sequence[ApplicationRecord],
        applications: Sequence[ApplicationRecord],
        now: Optional[datetime] = None,
        state: Optional[AdmissionState] = None,
    ) -> Verdict:
        """
        Evaluate one job for one student.

        Args:
            student: student snapshot, mandatory fields must be set
            job: job snapshot
            selected_applications: ALL applications of the student with status "selected"
            applications: ALL applications of the student, any status. Must include
                every selected application; the A1 quota and the duplicate check read it
            now: evaluation time (defaults to current UTC time)
            state: precomputed AdmissionState, reused when evaluating many jobs

        Raises:
            InvalidInput: when a mandatory student or job field is missing, or when
                a selected application is absent from `applications`
        """
        validate_student(student)
        _require(job, JOB_REQUIRED_FIELDS, "Job")
        _require_full_history(selected_applications, applications)
        now = _as_utc(now) if now else datetime.now(timezone.utc)

        reason = (
            self._check_job_open(job)
            or self._check_thresholds(student, job)
            or self._check_restrictions(student, job)
            or self._check_program_department(student, job)
            or self._check_dates(job, now)
            or self._check_existing_application(job, selected_applications, applications)
        )
        if reason is None:
            if state is None:
                state = self.admission_state(selected_applications, applications)
            reason = check_admission_control(job.classification, state, self.policy)

        if reason is not None:
            logger.debug("Roll %s ineligible for job %s: %s", student.roll, job.id, reason.value)
            return Verdict.reject(reason)
        return Verdict.admit()

    def _check_job_open(self, job: JobRecord) -> Optional[ReasonCode]:
        if job.approval_status != "approved":
            return ReasonCode.job_not_open
        if (job.job_status or "").lower() not in self.policy.open_job_statuses:
            return ReasonCode.job_not_open
        return None

    @staticmethod
    def _check_thresholds(student: StudentRecord, job: JobRecord) -> Optional[ReasonCode]:
        if job.min_x_marks is not None and job.min_x_marks > student.x_marks:
            return ReasonCode.below_min_x
        if job.min_xii_marks is not None and job.min_xii_marks > student.xii_marks:
            return ReasonCode.below_min_xii
        if job.min_cpi is not None and job.min_cpi > student.cpi:
            return ReasonCode.below_min_cpi
        return None

    @staticmethod
    def _check_restrictions(student: StudentRecord, job: JobRecord) -> Optional[ReasonCode]:
        if job.category != student.registered_for:
            return ReasonCode.category_mismatch
        if job.only_for_ews and (student.category or "").lower() != "ews":
            return ReasonCode.not_ews
        if job.only_for_pwd and not student.pwd:
            return ReasonCode.not_pwd
        return None

    @staticmethod
    def _check_program_department(student: StudentRecord, job: JobRecord) -> Optional[ReasonCode]:
        programs = split_csv(job.eligible_programs)
        if programs and student.program.strip().lower() not in programs:
            return ReasonCode.program_not_eligible
        departments = split_csv(job.eligible_departments)
        if departments and student.department.strip().lower() not in departments:
            return ReasonCode.department_not_eligible
        return None

    @staticmethod
    def _check_dates(job: JobRecord, now: datetime) -> Optional[ReasonCode]:
        start = parse_job_datetime(job.start_date, "start_date", job.id)
        if start is not None and start > now:
            return ReasonCode.not_yet_open
        last = parse_job_datetime(job.last_date, "last_date", job.id)
        if last is not None and last < now:
            return ReasonCode.deadline_passed
        return None

    @staticmethod
    def _check_existing_application(
        job: JobRecord,
        selected_applications: Sequence[ApplicationRecord],
        applications: Sequence[ApplicationRecord],
    ) -> Optional[ReasonCode]:
        for application in list(applications) + list(selected_applications):
            if application.job_id == job.id:
                return ReasonCode.already_applied
        return None


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

def get_eligibility_evaluator() -> EligibilityEvaluator:
    """Get an evaluator configured from application settings."""
    return EligibilityEvaluator(EligibilityPolicy.from_settings(get_settings()))
