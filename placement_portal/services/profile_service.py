"""
Student Profile Service

PURPOSE:
Registration, submission for approval and later edits of student profiles.

FIELD RULES:
Which fields a student may change is a single table, PROFILE_FIELD_RULES:
- ALWAYS              - editable at any time
- BEFORE_APPROVAL     - editable until the profile is submitted for approval
- IF_SETTING_ENABLED  - editable while the named portal setting is on

Fields missing from the table (roll, approved, resume_path, ...) are never
editable through the profile endpoints. Refused fields are dropped, not
reported as errors.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from placement_portal.core.exceptions import (
    ProfileLocked,
    RegistrationsClosed,
    RollMismatch,
    StudentAlreadyExists,
    StudentNotFound,
)
from placement_portal.services.placement_store import PlacementStore, get_placement_store

logger = logging.getLogger(__name__)


class FieldRule(str, Enum):
    always = "always"
    before_approval = "before_approval"
    if_setting_enabled = "if_setting_enabled"


@dataclass(frozen=True)
class EditPolicy:
    rule: FieldRule
    setting: Optional[str] = None


ALWAYS = EditPolicy(FieldRule.always)
BEFORE_APPROVAL = EditPolicy(FieldRule.before_approval)
WHILE_CPI_CHANGE_ALLOWED = EditPolicy(FieldRule.if_setting_enabled, "cpi_change_allowed")

PROFILE_FIELD_RULES: Dict[str, EditPolicy] = {
    # personal / academic record, frozen once submitted
    "name": BEFORE_APPROVAL,
    "gender": BEFORE_APPROVAL,
    "date_of_birth": BEFORE_APPROVAL,
    "category": BEFORE_APPROVAL,
    "pwd": BEFORE_APPROVAL,
    "rank": BEFORE_APPROVAL,
    "registered_for": BEFORE_APPROVAL,
    "program": BEFORE_APPROVAL,
    "department": BEFORE_APPROVAL,
    "course": BEFORE_APPROVAL,
    "address": BEFORE_APPROVAL,
    "x_marks": BEFORE_APPROVAL,
    "xii_marks": BEFORE_APPROVAL,
    "ug_college": BEFORE_APPROVAL,
    "ug_cpi": BEFORE_APPROVAL,
    # grades, opened by the admin once per semester
    "cpi": WHILE_CPI_CHANGE_ALLOWED,
    "spi1": WHILE_CPI_CHANGE_ALLOWED,
    "spi2": WHILE_CPI_CHANGE_ALLOWED,
    "spi3": WHILE_CPI_CHANGE_ALLOWED,
    "spi4": WHILE_CPI_CHANGE_ALLOWED,
    "spi5": WHILE_CPI_CHANGE_ALLOWED,
    "spi6": WHILE_CPI_CHANGE_ALLOWED,
    "spi7": WHILE_CPI_CHANGE_ALLOWED,
    "spi8": WHILE_CPI_CHANGE_ALLOWED,
    # free-form
    "resume_link": ALWAYS,
    "other_achievements": ALWAYS,
    "projects": ALWAYS,
    "profile_picture": ALWAYS,
    "current_sem": ALWAYS,
}

# states in which BEFORE_APPROVAL fields are frozen
SUBMITTED_STATES = frozenset({"pending", "approved"})


def is_editable(field: str, approved: str, portal_settings: dict) -> bool:
    policy = PROFILE_FIELD_RULES.get(field)
    if policy is None:
        return False
    if policy.rule == FieldRule.always:
        return True
    if policy.rule == FieldRule.before_approval:
        return approved not in SUBMITTED_STATES
    return bool(portal_settings.get(policy.setting))


def filter_profile_changes(changes: dict, approved: str, portal_settings: dict) -> Tuple[dict, List[str]]:
    """Split requested changes into (accepted, refused field names)."""
    accepted, refused = {}, []
    for field, value in changes.items():
        if is_editable(field, approved, portal_settings):
            accepted[field] = value
        else:
            refused.append(field)
    return accepted, refused


class ProfileService:
    """
    Student profile lifecycle: created -> pending -> approved | rejected.

    Usage:
        service = ProfileService()
        modified = service.update_profile("210001", {"projects": "..."})
    """

    def __init__(self, store: Optional[PlacementStore] = None):
        self.store = store or get_placement_store()

    def _check_roll(self, username: str, roll: str) -> None:
        if roll != username:
            raise RollMismatch()

    def register(self, username: str, user_id: int, profile: dict) -> int:
        """Create the student row with approved = "created"."""
        roll = profile.get("roll")
        self._check_roll(username, roll)
        if self.store.get_student_by_roll(roll) is not None:
            raise StudentAlreadyExists()

        student_id = self.store.create_student(dict(profile, user_id=user_id, approved="created"))
        logger.info("Registered student %s", roll)
        return student_id

    def submit_for_approval(self, username: str, user_id: int, profile: dict) -> int:
        """Create or overwrite the profile and move it to "pending"."""
        if not self.store.get_portal_settings().get("registrations_allowed"):
            raise RegistrationsClosed()
        roll = profile.get("roll")
        self._check_roll(username, roll)

        existing = self.store.get_student_by_roll(roll)
        if existing is None:
            student_id = self.store.create_student(dict(profile, user_id=user_id, approved="pending"))
        else:
            if existing.get("approved") in SUBMITTED_STATES:
                raise ProfileLocked()
            student_id = existing["id"]
            fields = {k: v for k, v in profile.items() if k != "roll"}
            self.store.update_student(student_id, dict(fields, approved="pending"))

        logger.info("Student %s submitted for approval", roll)
        return student_id

    def update_profile(self, roll: str, changes: dict) -> List[str]:
        """Apply the allowed subset of `changes`. Returns the modified field names."""
        student = self.store.get_student_by_roll(roll)
        if student is None:
            raise StudentNotFound()

        accepted, refused = filter_profile_changes(
            changes, student.get("approved"), self.store.get_portal_settings()
        )
        if refused:
            logger.info("Roll %s: ignoring locked fields %s", roll, ", ".join(refused))
        self.store.update_student(student["id"], accepted)
        return list(accepted)

    def set_approval(self, roll: str, approved: str) -> None:
        student = self.store.get_student_by_roll(roll)
        if student is None:
            raise StudentNotFound()
        self.store.update_student(student["id"], {"approved": approved})
        logger.info("Student %s marked %s", roll, approved)


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

def get_profile_service() -> ProfileService:
    """Get profile service bound to the application database."""
    return ProfileService()
