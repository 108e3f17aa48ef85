"""Enumerations shared across the Investigation Hub."""

from enum import Enum


class UserRole(str, Enum):
    """Roles a user can be granted."""

    CLIENT = "client"
    INVESTIGATOR = "investigator"


class InvestigationStatus(str, Enum):
    """Status of an investigation request.

    submitted -> pending (accepted) -> completed
    """

    SUBMITTED = "submitted"
    PENDING = "pending"
    COMPLETED = "completed"


class AuditAction(str, Enum):
    """Actions that are logged in the audit trail."""

    # Auth actions
    USER_REGISTERED = "auth.register"
    USER_LOGGED_IN = "auth.login"
    ROLE_TOGGLED = "auth.toggle_role"
    PROFILE_UPDATED = "user.update_profile"

    # Investigation actions
    INVESTIGATION_CREATED = "investigation.create"
    INVESTIGATION_ACCEPTED = "investigation.accept"
    INVESTIGATION_DECLINED = "investigation.decline"
    INVESTIGATION_COMPLETED = "investigation.complete"

    # Report actions
    REPORT_SUBMITTED = "report.submit"
    REPORT_RATED = "report.rate"
