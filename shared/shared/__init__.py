"""Shared utilities for Investigation Hub."""

from shared.enums import (
    AuditAction,
    InvestigationStatus,
    UserRole,
)

__all__ = [
    "AuditAction",
    "InvestigationStatus",
    "UserRole",
]
