"""
Request-level audit middleware.

Every request gets an X-Request-ID (propagated from the client or generated)
bound to the structlog context. Mutating requests additionally produce an
``audit.action`` log line and an ``audit_logs`` row, whatever their outcome.
Domain entries with status changes are written separately by the routers
(see app.core.audit).
"""
import time
import uuid
from typing import Any

from fastapi import Request, Response
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
import structlog

from app.core.audit import record_request, request_metadata
from app.core.audit_policy import extract_resource_id, get_audit_action
from app.core.config import SERVICE_PATHS
from app.core.security import subject_from_authorization


logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
AUDITABLE_METHODS = frozenset(["POST", "PUT", "PATCH", "DELETE"])


def _parse_uuid(value: str | None) -> uuid.UUID | None:
    if not value:
        return None
    try:
        return uuid.UUID(value)
    except (ValueError, TypeError):
        return None


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class AuditMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        if request.url.path in SERVICE_PATHS:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response

        started = time.perf_counter()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
        except Exception:
            # Unhandled errors become a 500 further out; record them before re-raising
            if request.method in AUDITABLE_METHODS:
                await self._audit(request, 500, _elapsed_ms(started))
            raise
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        response.headers[REQUEST_ID_HEADER] = request_id

        if request.method in AUDITABLE_METHODS:
            await self._audit(request, response.status_code, _elapsed_ms(started))

        return response

    async def _audit(self, request: Request, status_code: int, duration_ms: float) -> None:
        path = request.url.path
        action = get_audit_action(request.method, path) or f"{request.method.lower()}:{path}"
        success = 200 <= status_code < 400
        actor = subject_from_authorization(request.headers.get("Authorization"))
        metadata = request_metadata(request)

        details: dict[str, Any] = {
            "audit_type": "request",
            "method": request.method,
            "path": path,
            "status_code": status_code,
            "success": success,
            "duration_ms": duration_ms,
        }

        log = logger.info if success else logger.warning
        log("audit.action", action=action, user_id=actor, **metadata, **details)

        try:
            await run_in_threadpool(
                record_request,
                action=action,
                resource_type=action.split(".", 1)[0] if "." in action else "api",
                resource_id=_parse_uuid(extract_resource_id(path)),
                actor_user_id=_parse_uuid(actor),
                metadata=metadata,
                details=details,
            )
        except Exception as e:
            # Audit write failures never change the response
            logger.error("audit.persist_failed", action=action, error=str(e), **metadata)
