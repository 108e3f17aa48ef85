"""
Audit trail writers.

Two kinds of rows land in ``audit_logs``:

- domain entries, written by the routers once a change has been committed
  (``create_audit_log`` and the helpers below)
- request entries, written by ``AuditMiddleware`` for every mutating call
  whether it succeeded or not (``record_request``)
"""
import uuid
from typing import Any

from fastapi import Request
from sqlalchemy.orm import Session

from app.db.session import session_scope
from app.models.audit_log import AuditLog
from shared.enums import AuditAction


SENSITIVE_KEYS = frozenset([
    "password",
    "password_hash",
    "current_password",
    "new_password",
    "access_token",
    "token",
    "secret",
])

# Width of audit_logs.request_id
MAX_REQUEST_ID_LENGTH = 36


def scrub(details: dict[str, Any] | None) -> dict[str, Any] | None:
    """Drop secrets from ``details``, including nested dicts."""
    if not details:
        return None
    return {
        key: scrub(value) if isinstance(value, dict) else value
        for key, value in details.items()
        if key.lower() not in SENSITIVE_KEYS
    }


def request_metadata(request: Request | None) -> dict[str, str | None]:
    """Client IP, user agent and request id for an audit row."""
    if request is None:
        return {"ip": None, "user_agent": None, "request_id": None}
    request_id = getattr(request.state, "request_id", None) or request.headers.get("X-Request-ID")
    return {
        "ip": request.client.host if request.client else None,
        "user_agent": request.headers.get("User-Agent"),
        "request_id": request_id[:MAX_REQUEST_ID_LENGTH] if request_id else None,
    }


def _entry(
    action: AuditAction | str,
    resource_type: str,
    resource_id: uuid.UUID | None,
    actor_user_id: uuid.UUID | None,
    metadata: dict[str, str | None],
    details: dict[str, Any] | None,
) -> AuditLog:
    return AuditLog(
        actor_user_id=actor_user_id,
        action=action.value if isinstance(action, AuditAction) else action,
        resource_type=resource_type,
        resource_id=resource_id,
        details_json=scrub(details),
        **metadata,
    )


def create_audit_log(
    db: Session,
    action: AuditAction | str,
    resource_type: str,
    resource_id: uuid.UUID | None = None,
    actor_user_id: uuid.UUID | None = None,
    request: Request | None = None,
    details: dict[str, Any] | None = None,
) -> AuditLog:
    """
    Write a domain audit entry and commit it.

    Actions: see shared.enums.AuditAction
        - auth.register, auth.login, auth.toggle_role, user.update_profile
        - investigation.create, investigation.accept, investigation.decline,
          investigation.complete
        - report.submit, report.rate
    """
    log = _entry(action, resource_type, resource_id, actor_user_id, request_metadata(request), details)
    db.add(log)
    db.commit()
    return log


def record_request(
    action: str,
    resource_type: str,
    resource_id: uuid.UUID | None,
    actor_user_id: uuid.UUID | None,
    metadata: dict[str, str | None],
    details: dict[str, Any],
) -> None:
    """Persist a request-level entry in its own session."""
    with session_scope() as db:
        db.add(_entry(action, resource_type, resource_id, actor_user_id, metadata, details))


def audit_login(db: Session, user_id: uuid.UUID, request: Request, success: bool = True) -> AuditLog:
    # Failed attempts have no authenticated actor
    return create_audit_log(
        db=db,
        action=AuditAction.USER_LOGGED_IN,
        resource_type="user",
        resource_id=user_id,
        actor_user_id=user_id if success else None,
        request=request,
        details={"success": success},
    )


def audit_transition(
    db: Session,
    action: AuditAction,
    investigation_id: uuid.UUID,
    user_id: uuid.UUID,
    request: Request | None,
    status_from: str | None,
    status_to: str | None,
) -> AuditLog:
    """Domain entry for a lifecycle transition, with the status change."""
    return create_audit_log(
        db=db,
        action=action,
        resource_type="investigation",
        resource_id=investigation_id,
        actor_user_id=user_id,
        request=request,
        details={"status_from": status_from, "status_to": status_to},
    )
