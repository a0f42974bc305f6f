"""Admission controller tests against an in-memory store."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from placement_portal.core.exceptions import (
    AccountNotApproved,
    AlreadyApplied,
    CpiNotSet,
    DuplicateApplication,
    InvalidInput,
    JobNotFound,
    NotEligible,
    StudentNotFound,
)
from placement_portal.services.admission_service import ApplicationAdmissionController
from placement_portal.services.eligibility import EligibilityEvaluator, EligibilityPolicy, ReasonCode


class FakeStore:
    """Just enough of PlacementStore for the controller."""

    def __init__(self):
        self.students = {}
        self.jobs = {}
        self.applications = []
        self.lock = threading.Lock()
        self.history_reads = 0
        self.history_barrier = None

    def add_student(self, **fields):
        row = dict(
            id=len(self.students) + 1, roll="210001", x_marks=80, xii_marks=85, cpi=8.0,
            registered_for="FTE", department="CS", program="B.Tech", category="general",
            pwd=False, approved="approved",
        )
        row.update(fields)
        self.students[row["roll"]] = row
        return row

    def add_job(self, **fields):
        row = dict(
            id=len(self.jobs) + 1, company_id=1, company_name="Acme", job_title="Engineer",
            min_x_marks=70, min_xii_marks=75, min_cpi=7.5, category="FTE",
            eligible_programs="B.Tech", eligible_departments="CS,EE", classification="X",
            only_for_ews=False, only_for_pwd=False, approval_status="approved", job_status="open",
            start_date=None, last_date=None,
        )
        row.update(fields)
        self.jobs[row["id"]] = row
        return row

    def add_application(self, student_id, job_id, status="applied", created_at=None):
        self.applications.append(dict(
            id=len(self.applications) + 1, student_id=student_id, job_id=job_id, status=status,
            created_at=created_at or datetime.now(timezone.utc) - timedelta(days=1),
        ))

    # store interface

    def get_student_by_roll(self, roll):
        return self.students.get(roll)

    def get_job(self, job_id):
        return self.jobs.get(job_id)

    def find_candidate_jobs(self, category, x_marks, xii_marks, cpi):
        return [
            job for job in self.jobs.values()
            if job["approval_status"] == "approved" and job["category"] == category
            and job["min_x_marks"] <= x_marks and job["min_xii_marks"] <= xii_marks and job["min_cpi"] <= cpi
        ]

    def get_student_applications(self, student_id, status=None):
        self.history_reads += 1
        if self.history_barrier is not None:
            self.history_barrier.wait(timeout=5)
        rows = []
        for app in self.applications:
            if app["student_id"] != student_id or (status and app["status"] != status):
                continue
            job = self.jobs[app["job_id"]]
            rows.append(dict(app, job_classification=job["classification"], job_category=job["category"]))
        return rows

    def create_application(self, student_id, job_id, status="applied"):
        with self.lock:
            if any(a["student_id"] == student_id and a["job_id"] == job_id for a in self.applications):
                raise DuplicateApplication(f"{student_id}/{job_id}")
            self.add_application(student_id, job_id, status, created_at=datetime.now(timezone.utc))
            return dict(self.applications[-1])

    def get_applied_jobs(self, student_id):
        return [dict(a, job_title=self.jobs[a["job_id"]]["job_title"])
                for a in self.applications if a["student_id"] == student_id]


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def controller(store):
    return ApplicationAdmissionController(store, EligibilityEvaluator(EligibilityPolicy()))


# ============================================================
# list_eligible_jobs
# ============================================================

def test_lists_eligible_jobs_in_candidate_order(store, controller):
    store.add_student()
    first = store.add_job()
    store.add_job(eligible_departments="ME")
    third = store.add_job(classification="A1")
    store.add_job(job_status="abandoned")
    store.add_job(min_cpi=9.0)

    jobs = controller.list_eligible_jobs("210001")

    assert [job["id"] for job in jobs] == [first["id"], third["id"]]
    assert jobs[0]["company_name"] == "Acme"


def test_history_loaded_once_per_listing(store, controller):
    store.add_student()
    for _ in range(5):
        store.add_job()
    controller.list_eligible_jobs("210001")
    assert store.history_reads == 1


def test_listing_is_idempotent(store, controller):
    student = store.add_student()
    store.add_job()
    taken = store.add_job(classification="A1")
    store.add_application(student["id"], taken["id"])
    assert controller.list_eligible_jobs("210001") == controller.list_eligible_jobs("210001")


def test_selected_a1_hides_fte_track_jobs(store, controller):
    student = store.add_student()
    a1 = store.add_job(classification="A1")
    x_job = store.add_job(classification="X")
    store.add_job(classification="A2")
    store.add_application(student["id"], a1["id"], status="selected")

    assert [job["id"] for job in controller.list_eligible_jobs("210001")] == [x_job["id"]]


@pytest.mark.parametrize("fields, error", [
    ({"approved": "pending"}, AccountNotApproved),
    ({"approved": "rejected"}, AccountNotApproved),
    ({"cpi": None}, CpiNotSet),
])
def test_unusable_account(store, controller, fields, error):
    store.add_student(**fields)
    with pytest.raises(error):
        controller.list_eligible_jobs("210001")


def test_unknown_student(controller):
    with pytest.raises(StudentNotFound):
        controller.list_eligible_jobs("nobody")


def test_incomplete_student_is_invalid_input(store, controller):
    store.add_student(department=None)
    with pytest.raises(InvalidInput):
        controller.list_eligible_jobs("210001")


# ============================================================
# apply
# ============================================================

def test_apply_creates_application(store, controller):
    store.add_student()
    job = store.add_job()

    application = controller.apply("210001", job["id"])

    assert application["status"] == "applied"
    assert len(store.applications) == 1


def test_apply_twice_is_already_applied(store, controller):
    store.add_student()
    job = store.add_job()
    controller.apply("210001", job["id"])

    with pytest.raises(AlreadyApplied):
        controller.apply("210001", job["id"])
    assert len(store.applications) == 1


def test_apply_ineligible_carries_reason(store, controller):
    store.add_student()
    job = store.add_job(last_date=datetime.now(timezone.utc) - timedelta(days=1))

    with pytest.raises(NotEligible) as excinfo:
        controller.apply("210001", job["id"])
    assert excinfo.value.reason == ReasonCode.deadline_passed
    assert store.applications == []


def test_apply_unknown_job(store, controller):
    store.add_student()
    with pytest.raises(JobNotFound):
        controller.apply("210001", 42)


def test_apply_requires_approved_account(store, controller):
    store.add_student(approved="created")
    job = store.add_job()
    with pytest.raises(AccountNotApproved):
        controller.apply("210001", job["id"])


def test_concurrent_apply_creates_one_application(store, controller):
    store.add_student()
    job = store.add_job()
    # both requests read the (empty) history before either inserts
    store.history_barrier = threading.Barrier(2)
    outcomes = []

    def worker():
        try:
            outcomes.append(controller.apply("210001", job["id"]))
        except AlreadyApplied as exc:
            outcomes.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert len(store.applications) == 1
    assert sum(isinstance(o, dict) for o in outcomes) == 1
    assert sum(isinstance(o, AlreadyApplied) for o in outcomes) == 1


def test_applied_jobs(store, controller):
    student = store.add_student(cpi=None)
    job = store.add_job()
    store.add_application(student["id"], job["id"])

    rows = controller.get_applied_jobs("210001")

    assert [row["job_title"] for row in rows] == ["Engineer"]
