"""Dashboard endpoint - Per-role statistics and to-do lists."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import CurrentPrincipal, DbSession
from app.models.investigation import InvestigationRequest
from app.models.report import InvestigationReport
from app.routers.investigations import InvestigationResponse
from app.routers.reports import ReportResponse
from shared.enums import InvestigationStatus, UserRole

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


# =============================================================================
# Schemas
# =============================================================================

class ClientStatistics(BaseModel):
    total_requests: int = 0
    submitted_requests: int = 0
    pending_requests: int = 0
    completed_requests: int = 0


class InvestigatorStatistics(BaseModel):
    total_assignments: int = 0
    active_assignments: int = 0
    completed_assignments: int = 0
    average_rating: Optional[float] = None


class Statistics(BaseModel):
    client: Optional[ClientStatistics] = None
    investigator: Optional[InvestigatorStatistics] = None


class RecentInvestigations(BaseModel):
    client: list[InvestigationResponse] = []
    investigator: list[InvestigationResponse] = []


class UnratedReport(ReportResponse):
    title: str


class PendingActions(BaseModel):
    client: list[UnratedReport] = []
    investigator: list[InvestigationResponse] = []


class DashboardResponse(BaseModel):
    roles: list[str]
    active_role: Optional[str]
    statistics: Statistics
    recent_investigations: RecentInvestigations
    pending_actions: PendingActions


# =============================================================================
# Queries
# =============================================================================

def _count_status(status: InvestigationStatus):
    return func.count(case((InvestigationRequest.status == status, 1)))


def client_statistics(db: Session, user_id: UUID) -> ClientStatistics:
    row = db.execute(
        select(
            func.count(InvestigationRequest.id),
            _count_status(InvestigationStatus.SUBMITTED),
            _count_status(InvestigationStatus.PENDING),
            _count_status(InvestigationStatus.COMPLETED),
        ).where(InvestigationRequest.client_id == user_id)
    ).one()

    return ClientStatistics(
        total_requests=row[0],
        submitted_requests=row[1],
        pending_requests=row[2],
        completed_requests=row[3],
    )


def investigator_statistics(db: Session, user_id: UUID) -> InvestigatorStatistics:
    row = db.execute(
        select(
            func.count(InvestigationRequest.id),
            _count_status(InvestigationStatus.PENDING),
            _count_status(InvestigationStatus.COMPLETED),
        ).where(InvestigationRequest.investigator_id == user_id)
    ).one()

    average = db.execute(
        select(func.avg(InvestigationReport.rating))
        .join(InvestigationRequest, InvestigationReport.investigation_request_id == InvestigationRequest.id)
        .where(InvestigationRequest.investigator_id == user_id)
    ).scalar()

    return InvestigatorStatistics(
        total_assignments=row[0],
        active_assignments=row[1],
        completed_assignments=row[2],
        average_rating=round(float(average), 2) if average is not None else None,
    )


def recent(db: Session, column, user_id: UUID, limit: int) -> list[InvestigationResponse]:
    investigations = db.execute(
        select(InvestigationRequest)
        .where(column == user_id)
        .order_by(InvestigationRequest.created_at.desc())
        .limit(limit)
    ).scalars().all()
    return [InvestigationResponse.model_validate(i) for i in investigations]


def unrated_reports(db: Session, client_id: UUID, limit: int) -> list[UnratedReport]:
    rows = db.execute(
        select(InvestigationReport, InvestigationRequest.title)
        .join(InvestigationRequest, InvestigationReport.investigation_request_id == InvestigationRequest.id)
        .where(
            InvestigationRequest.client_id == client_id,
            InvestigationReport.rating.is_(None),
        )
        .order_by(InvestigationReport.created_at.desc())
        .limit(limit)
    ).all()

    return [
        UnratedReport(**ReportResponse.model_validate(report).model_dump(), title=title)
        for report, title in rows
    ]


def pending_assignments(db: Session, investigator_id: UUID, limit: int) -> list[InvestigationResponse]:
    investigations = db.execute(
        select(InvestigationRequest)
        .where(
            InvestigationRequest.investigator_id == investigator_id,
            InvestigationRequest.status == InvestigationStatus.PENDING,
        )
        .order_by(InvestigationRequest.created_at.desc())
        .limit(limit)
    ).scalars().all()
    return [InvestigationResponse.model_validate(i) for i in investigations]


# =============================================================================
# Endpoints
# =============================================================================

@router.get("", response_model=DashboardResponse)
def get_dashboard(
    principal: CurrentPrincipal,
    db: DbSession,
):
    """
    Dashboard for every role the caller holds.

    Statistics, recent investigations and pending actions are filled in per
    granted role; sections for roles the caller lacks stay empty.
    """
    limit = settings.DASHBOARD_RECENT_LIMIT
    statistics = Statistics()
    recent_investigations = RecentInvestigations()
    pending_actions = PendingActions()

    if principal.has_role(UserRole.CLIENT.value):
        statistics.client = client_statistics(db, principal.id)
        recent_investigations.client = recent(db, InvestigationRequest.client_id, principal.id, limit)
        pending_actions.client = unrated_reports(db, principal.id, limit)

    if principal.has_role(UserRole.INVESTIGATOR.value):
        statistics.investigator = investigator_statistics(db, principal.id)
        recent_investigations.investigator = recent(db, InvestigationRequest.investigator_id, principal.id, limit)
        pending_actions.investigator = pending_assignments(db, principal.id, limit)

    return DashboardResponse(
        roles=principal.roles,
        active_role=principal.active_role,
        statistics=statistics,
        recent_investigations=recent_investigations,
        pending_actions=pending_actions,
    )
