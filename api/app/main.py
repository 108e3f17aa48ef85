"""
Investigation Hub API.

Clients post investigation requests; investigators accept, decline,
complete and report on them; clients rate the reports.

Request path: CORS -> rate limit -> audit -> router. Business routes live
under /api, probes and metrics at the root.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import structlog

from app.routers.health import router as health_router
from app.routers.auth import router as auth_router
from app.routers.users import router as users_router
from app.routers.investigations import router as investigations_router
from app.routers.reports import router as reports_router
from app.routers.dashboard import router as dashboard_router
from app.core.logging import setup_logging
from app.core.errors import register_exception_handlers
from app.core.rate_limit import RateLimitMiddleware
from app.core.audit_middleware import AuditMiddleware
from app.core.config import check_production_safety, settings

setup_logging()
check_production_safety()

logger = structlog.get_logger(__name__)

VERSION = "1.0.0"
API_PREFIX = "/api"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("app.startup", env=settings.ENV, version=VERSION)
    yield
    logger.info("app.shutdown")


app = FastAPI(
    title="Investigation Hub",
    description="Marketplace API connecting clients with investigators",
    version=VERSION,
    lifespan=lifespan,
)

register_exception_handlers(app)

# Last added runs first
app.add_middleware(AuditMiddleware)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-RateLimit-Limit", "X-RateLimit-Remaining", "Retry-After"],
)

app.include_router(health_router)
for router in (auth_router, users_router, investigations_router, reports_router, dashboard_router):
    app.include_router(router, prefix=API_PREFIX)


@app.get("/", tags=["root"])
def root():
    """Service info and entry points."""
    return {
        "name": "investigation-hub",
        "version": VERSION,
        "env": settings.ENV,
        "docs": app.docs_url,
        "health": "/healthz",
        "endpoints": {
            name: f"{API_PREFIX}/{name}"
            for name in ("auth", "users", "investigations", "reports", "dashboard")
        },
    }
