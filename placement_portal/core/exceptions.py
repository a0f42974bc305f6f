"""
Domain exceptions.

Three families, reported differently by the HTTP layer:
- InvalidInput: a record handed to the evaluator is missing mandatory data
- ResourceNotFound: unknown student / job / company / application
- AdmissionRejected: expected policy outcomes, each carrying a reason code

Persistence failures are NOT wrapped here, SQLAlchemy errors propagate.
"""

from typing import Optional


class PlacementError(Exception):
    """Base class for all domain errors."""

    status_code = 400

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message())
        self.message = message or self.default_message()

    def default_message(self) -> str:
        return self.__class__.__name__


class InvalidInput(PlacementError):
    status_code = 422


# ============================================================
# NOT FOUND
# ============================================================

class ResourceNotFound(PlacementError):
    status_code = 404


class StudentNotFound(ResourceNotFound):
    def default_message(self) -> str:
        return "Student not found"


class JobNotFound(ResourceNotFound):
    def default_message(self) -> str:
        return "No such job Id found"


class CompanyNotFound(ResourceNotFound):
    def default_message(self) -> str:
        return "Company not found"


class ApplicationNotFound(ResourceNotFound):
    def default_message(self) -> str:
        return "Application not found"


# ============================================================
# POLICY REJECTIONS
# ============================================================

class AdmissionRejected(PlacementError):
    """A user-facing rejection. `reason` is a ReasonCode value or None."""

    reason = None


class AccountNotApproved(AdmissionRejected):
    def default_message(self) -> str:
        return "Account not approved yet"


class CpiNotSet(AdmissionRejected):
    def default_message(self) -> str:
        return "CPI not updated yet"


class AlreadyApplied(AdmissionRejected):
    reason = "AlreadyApplied"

    def default_message(self) -> str:
        return "Already applied"


class NotEligible(AdmissionRejected):
    def __init__(self, reason):
        self.reason = reason
        super().__init__(f"Not eligible: {reason.value}")


class RegistrationsClosed(AdmissionRejected):
    def default_message(self) -> str:
        return "Registrations are not allowed. Please contact Administrator"


class CompanyNotApproved(AdmissionRejected):
    def default_message(self) -> str:
        return "Company not approved"


class DuplicateApplication(Exception):
    """Raised by the store when the (student, job) unique constraint fires."""


# ============================================================
# PROFILE REJECTIONS
# ============================================================

class RollMismatch(AdmissionRejected):
    def default_message(self) -> str:
        return "Roll number does not match with username"


class StudentAlreadyExists(AdmissionRejected):
    def default_message(self) -> str:
        return "Student already registered"


class ProfileLocked(AdmissionRejected):
    def default_message(self) -> str:
        return "Profile already submitted for approval"
