"""Service endpoints - Probes and Prometheus scrape target (no /api prefix)."""
from fastapi import APIRouter, Response, status
from fastapi.responses import JSONResponse

from app.db.session import check_db
from app.core.redis import check_redis
from app.core.metrics import get_metrics, get_metrics_content_type

router = APIRouter(tags=["health"])


@router.get("/healthz")
def healthz():
    """Liveness probe - the process is up."""
    return {"ok": True}


@router.get("/readyz")
def readyz():
    """
    Readiness probe - the database and Redis answer.

    Returns 503 while either dependency is down so the load balancer holds
    traffic back.
    """
    checks = {"db": check_db(), "redis": check_redis()}
    ok = all(checks.values())
    return JSONResponse(
        status_code=status.HTTP_200_OK if ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"ok": ok, **checks},
    )


@router.get("/metrics")
def metrics():
    """
    Prometheus metrics endpoint.

    Exposed metrics:
    - hub_investigations_created_total
    - hub_investigation_transitions_total{transition, outcome}
    - hub_reports_submitted_total
    - hub_reports_rated_total{rating}
    - hub_login_attempts_total{result}
    """
    return Response(content=get_metrics(), media_type=get_metrics_content_type())
