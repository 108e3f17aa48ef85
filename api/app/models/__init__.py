from app.models.user import Role, User, UserRole
from app.models.investigation import DeclinedInvestigation, InvestigationRequest
from app.models.report import InvestigationReport
from app.models.audit_log import AuditLog

__all__ = [
    "Role",
    "User",
    "UserRole",
    "InvestigationRequest",
    "DeclinedInvestigation",
    "InvestigationReport",
    "AuditLog",
]
