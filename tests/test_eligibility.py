"""Eligibility evaluator tests, no database involved."""

import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from placement_portal.core.config import Settings
from placement_portal.core.exceptions import InvalidInput
from placement_portal.services.eligibility import (
    AdmissionState,
    ApplicationRecord,
    EligibilityEvaluator,
    EligibilityPolicy,
    JobRecord,
    ReasonCode,
    StudentRecord,
    parse_job_datetime,
    split_csv,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def evaluator():
    return EligibilityEvaluator(EligibilityPolicy())


@pytest.fixture
def student():
    return StudentRecord(
        id=1, roll="210001", x_marks=80, xii_marks=85, cpi=8.0,
        registered_for="FTE", department="CS", program="B.Tech", category="general",
    )


def make_job(job_id=100, **overrides):
    fields = dict(
        id=job_id, min_x_marks=70, min_xii_marks=75, min_cpi=7.5, category="FTE",
        eligible_programs="B.Tech", eligible_departments="CS,EE", classification="X",
        approval_status="approved", job_status="open",
    )
    fields.update(overrides)
    return JobRecord(**fields)


_ids = iter(range(1000, 100000))


def make_application(job_id, classification, status="applied", created_at=NOW - timedelta(days=10)):
    return ApplicationRecord(
        id=next(_ids), student_id=1, job_id=job_id, status=status,
        created_at=created_at, job_classification=classification, job_category="FTE",
    )


def selected(job_id, classification, created_at=NOW - timedelta(days=10)):
    return make_application(job_id, classification, status="selected", created_at=created_at)


def evaluate(evaluator, student, job, history=()):
    history = list(history)
    chosen = [a for a in history if a.status == "selected"]
    return evaluator.evaluate(student, job, chosen, history, now=NOW)


# ============================================================
# END-TO-END SCENARIOS
# ============================================================

def test_eligible_student_without_history(evaluator, student):
    verdict = evaluate(evaluator, student, make_job())
    assert verdict.eligible
    assert verdict.reason is None


def test_selected_in_a1_blocks_other_a1(evaluator, student):
    history = [selected(1, "A1")]
    verdict = evaluate(evaluator, student, make_job(classification="A1"), history)
    assert not verdict.eligible
    assert verdict.reason == ReasonCode.already_selected_a1


def test_past_deadline(evaluator, student):
    job = make_job(last_date=NOW - timedelta(hours=1))
    verdict = evaluate(evaluator, student, job)
    assert verdict.reason == ReasonCode.deadline_passed


# ============================================================
# DECISION SEQUENCE
# ============================================================

@pytest.mark.parametrize("overrides", [
    {"approval_status": "pending"},
    {"approval_status": "rejected"},
    {"job_status": "ongoing"},
    {"job_status": "results_declared"},
    {"job_status": "abandoned"},
    # everything else failing too, JobNotOpen still wins
    {"job_status": "abandoned", "min_cpi": 9.9, "category": "Internship", "last_date": NOW - timedelta(days=1)},
])
def test_closed_or_unapproved_job_is_not_open(evaluator, student, overrides):
    verdict = evaluate(evaluator, student, make_job(**overrides))
    assert verdict.reason == ReasonCode.job_not_open


def test_legacy_active_status_counts_as_open(evaluator, student):
    assert evaluate(evaluator, student, make_job(job_status="Active")).eligible


@pytest.mark.parametrize("overrides, reason", [
    ({"min_x_marks": 81}, ReasonCode.below_min_x),
    ({"min_xii_marks": 86}, ReasonCode.below_min_xii),
    ({"min_cpi": 8.01}, ReasonCode.below_min_cpi),
    ({"category": "Internship"}, ReasonCode.category_mismatch),
    ({"only_for_ews": True}, ReasonCode.not_ews),
    ({"only_for_pwd": True}, ReasonCode.not_pwd),
    ({"eligible_programs": "M.Tech, PhD"}, ReasonCode.program_not_eligible),
    ({"eligible_departments": "ME,EE"}, ReasonCode.department_not_eligible),
    ({"start_date": NOW + timedelta(days=1)}, ReasonCode.not_yet_open),
])
def test_single_failing_check(evaluator, student, overrides, reason):
    verdict = evaluate(evaluator, student, make_job(**overrides))
    assert not verdict.eligible
    assert verdict.reason == reason


def test_thresholds_are_inclusive(evaluator, student):
    job = make_job(min_x_marks=80, min_xii_marks=85, min_cpi=8.0)
    assert evaluate(evaluator, student, job).eligible


def test_missing_thresholds_are_no_constraint(evaluator, student):
    job = make_job(min_x_marks=None, min_xii_marks=None, min_cpi=None)
    assert evaluate(evaluator, student, job).eligible


def test_first_failure_wins(evaluator, student):
    job = make_job(min_x_marks=95, min_cpi=9.5, category="Internship")
    assert evaluate(evaluator, student, job).reason == ReasonCode.below_min_x


def test_ews_and_pwd_students_pass_restrictions(evaluator, student):
    student = replace(student, category="EWS", pwd=True)
    job = make_job(only_for_ews=True, only_for_pwd=True)
    assert evaluate(evaluator, student, job).eligible


def test_program_and_department_lists_ignore_case_and_spaces(evaluator, student):
    job = make_job(eligible_programs=" b.tech , M.Tech", eligible_departments="ee,  cs ")
    assert evaluate(evaluator, student, job).eligible


def test_empty_lists_are_unrestricted(evaluator, student):
    job = make_job(eligible_programs="", eligible_departments=None)
    assert evaluate(evaluator, student, job).eligible


def test_open_window(evaluator, student):
    job = make_job(start_date=NOW - timedelta(days=1), last_date=NOW + timedelta(days=1))
    assert evaluate(evaluator, student, job).eligible


def test_existing_application_any_status(evaluator, student):
    for status in ("applied", "rejected", "selected"):
        history = [make_application(100, "X", status=status)]
        verdict = evaluate(evaluator, student, make_job(job_id=100), history)
        assert verdict.reason == ReasonCode.already_applied


# ============================================================
# ADMISSION CONTROL
# ============================================================

def test_offer_limit_blocks_everything_but_x(evaluator, student):
    history = [selected(1, "X"), selected(2, "A2")]
    for classification in ("A1", "A2", "FTE"):
        verdict = evaluate(evaluator, student, make_job(classification=classification), history)
        assert verdict.reason == ReasonCode.offer_limit_reached, classification

    internship_student = replace(student, registered_for="Internship")
    job = make_job(classification="Internship", category="Internship")
    assert evaluate(evaluator, internship_student, job, history).reason == ReasonCode.offer_limit_reached

    assert evaluate(evaluator, student, make_job(classification="X"), history).eligible


def test_internship_exclusivity(evaluator, student):
    student = replace(student, registered_for="Internship")
    history = [selected(1, "Internship")]
    job = make_job(classification="Internship", category="Internship")
    assert evaluate(evaluator, student, job, history).reason == ReasonCode.already_selected_internship


def test_internship_selection_checked_before_offer_cap(evaluator, student):
    student = replace(student, registered_for="Internship")
    history = [selected(1, "Internship"), selected(2, "X")]
    job = make_job(classification="Internship", category="Internship")
    assert evaluate(evaluator, student, job, history).reason == ReasonCode.already_selected_internship


def test_a1_selection_blocks_a2_and_fte(evaluator, student):
    history = [selected(1, "A1")]
    for classification in ("A2", "FTE"):
        verdict = evaluate(evaluator, student, make_job(classification=classification), history)
        assert verdict.reason == ReasonCode.already_selected_a1


def test_second_a2_refused(evaluator, student):
    history = [selected(1, "A2")]
    assert evaluate(evaluator, student, make_job(classification="A2"), history).reason == ReasonCode.already_selected_a2


def _a2_then_a1s(count):
    t = NOW - timedelta(days=30)
    history = [selected(1, "A2", created_at=t)]
    # one A1 before the A2 selection, never counted
    history.append(make_application(2, "A1", created_at=t - timedelta(days=1)))
    for i in range(count):
        history.append(make_application(10 + i, "A1", created_at=t + timedelta(days=i + 1)))
    return history


def test_a1_quota_boundary(evaluator, student):
    job = make_job(job_id=500, classification="A1")

    assert evaluate(evaluator, student, job, _a2_then_a1s(2)).eligible

    verdict = evaluate(evaluator, student, job, _a2_then_a1s(3))
    assert verdict.reason == ReasonCode.a1_application_quota_exceeded


def test_a1_quota_counts_rejected_applications(evaluator, student):
    history = _a2_then_a1s(2)
    history.append(make_application(99, "A1", status="rejected", created_at=NOW - timedelta(days=1)))
    job = make_job(job_id=500, classification="A1")
    assert evaluate(evaluator, student, job, history).reason == ReasonCode.a1_application_quota_exceeded

    lenient = EligibilityEvaluator(EligibilityPolicy(quota_counts_rejected=False))
    assert evaluate(lenient, student, job, history).eligible


def test_x_jobs_skip_admission_control(evaluator, student):
    history = [selected(1, "A1"), selected(2, "A2")]
    assert evaluate(evaluator, student, make_job(classification="X"), history).eligible


def test_admission_state_from_history():
    t = NOW - timedelta(days=5)
    history = [
        selected(1, "A2", created_at=t),
        selected(2, "A2", created_at=t - timedelta(days=2)),
        make_application(3, "A1", created_at=t - timedelta(days=1)),
        make_application(4, "A1", created_at=t + timedelta(hours=1)),
    ]
    chosen = [a for a in history if a.status == "selected"]
    state = AdmissionState.from_history(chosen, history, EligibilityPolicy())

    assert state.selected_a2 and not state.selected_a1 and not state.selected_internship
    assert state.first_a2_selection_time == t - timedelta(days=2)
    assert state.post_a2_a1_application_count == 2
    assert state.total_selected_count == 2


def test_policy_constants_are_configurable(student):
    evaluator = EligibilityEvaluator(EligibilityPolicy(max_selected_offers=3))
    history = [selected(1, "X"), selected(2, "A2")]
    assert evaluate(evaluator, student, make_job(classification="FTE"), history).eligible


# ============================================================
# PROPERTIES
# ============================================================

def test_raising_cpi_never_removes_jobs(evaluator, student):
    jobs = [make_job(job_id=i, min_cpi=cpi) for i, cpi in enumerate((6.0, 7.5, 8.0, 8.5, 9.0, 9.5))]
    previous = set()
    for cpi in (7.0, 8.0, 8.5, 9.0, 10.0):
        current = {
            job.id for job in jobs
            if evaluate(evaluator, replace(student, cpi=cpi), job).eligible
        }
        assert previous <= current
        previous = current


def test_evaluation_is_repeatable(evaluator, student):
    history = _a2_then_a1s(1)
    job = make_job(job_id=500, classification="A1")
    assert evaluate(evaluator, student, job, history) == evaluate(evaluator, student, job, history)


# ============================================================
# INPUT CONTRACT
# ============================================================

@pytest.mark.parametrize("field", ["x_marks", "xii_marks", "cpi", "registered_for", "department", "program"])
def test_missing_student_field_is_invalid_input(evaluator, student, field):
    with pytest.raises(InvalidInput):
        evaluate(evaluator, replace(student, **{field: None}), make_job())


def test_missing_job_classification_is_invalid_input(evaluator, student):
    with pytest.raises(InvalidInput):
        evaluate(evaluator, student, make_job(classification=None))


def test_malformed_dates_are_ignored_with_warning(evaluator, student, caplog):
    job = make_job(start_date="not-a-date", last_date="31/12/2020")
    with caplog.at_level(logging.WARNING, logger="placement_portal.services.eligibility"):
        verdict = evaluate(evaluator, student, job)
    assert verdict.eligible
    assert "invalid start_date" in caplog.text
    assert "invalid last_date" in caplog.text


def test_parse_job_datetime_forms():
    assert parse_job_datetime("2026-03-01T10:00:00Z", "last_date", 1) == datetime(2026, 3, 1, 10, tzinfo=timezone.utc)
    assert parse_job_datetime("2026-03-01 10:00:00", "last_date", 1) == datetime(2026, 3, 1, 10, tzinfo=timezone.utc)
    assert parse_job_datetime(None, "last_date", 1) is None


def test_split_csv():
    assert split_csv(" CS, ,EE ") == ["cs", "ee"]
    assert split_csv(None) == []


def test_records_from_rows():
    job = JobRecord.from_row({"id": 1, "category": "FTE", "classification": "A1", "eligible_program": "B.Tech",
                              "status": "open", "min_cpi": "7.5"})
    assert job.eligible_programs == "B.Tech"
    assert job.job_status == "open"
    assert job.min_cpi == 7.5

    application = ApplicationRecord.from_row({"id": 1, "student_id": 1, "job_id": 2, "status": "applied",
                                              "created_at": "2026-03-01 10:00:00.000000"})
    assert application.created_at == datetime(2026, 3, 1, 10)


def test_history_is_required(evaluator, student):
    history = _a2_then_a1s(3)
    chosen = [a for a in history if a.status == "selected"]
    job = make_job(job_id=500, classification="A1")

    with pytest.raises(TypeError):
        evaluator.evaluate(student, job, chosen)
    assert evaluator.evaluate(student, job, chosen, history, now=NOW).reason == ReasonCode.a1_application_quota_exceeded


def test_selected_rows_missing_from_history_is_invalid_input(evaluator, student):
    chosen = [selected(1, "A2")]
    with pytest.raises(InvalidInput):
        evaluator.evaluate(student, make_job(), chosen, [], now=NOW)
    with pytest.raises(InvalidInput):
        evaluator.admission_state(chosen, [])


def test_pending_application_blocks_reapply_with_full_history(evaluator, student):
    history = [make_application(100, "X")]
    assert evaluator.evaluate(student, make_job(job_id=100), [], history, now=NOW).reason == ReasonCode.already_applied


def test_policy_from_settings_reads_quota_switch():
    settings = Settings(quota_counts_rejected=False, open_job_statuses=["Open"])
    policy = EligibilityPolicy.from_settings(settings)
    assert policy.quota_counts_rejected is False
    assert policy.open_job_statuses == frozenset({"open"})
