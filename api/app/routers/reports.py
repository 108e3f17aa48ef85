"""Report endpoints - Deliver and rate investigation reports."""
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Request, status
from pydantic import BaseModel, ConfigDict, Field

from app.core import lifecycle
from app.core.audit import create_audit_log
from app.core.deps import ClientPrincipal, CurrentPrincipal, DbSession, InvestigatorPrincipal
from app.core.validators import ReportContent
from shared.enums import AuditAction

router = APIRouter(prefix="/reports", tags=["reports"])


class ReportCreate(BaseModel):
    report_content: ReportContent


class ReportRate(BaseModel):
    rating: int = Field(ge=lifecycle.MIN_RATING, le=lifecycle.MAX_RATING)
    client_feedback: Optional[str] = None


class ReportResponse(BaseModel):
    id: UUID
    investigation_request_id: UUID
    report_content: str
    rating: Optional[int]
    client_feedback: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


@router.post("/{investigation_id}", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
def submit_report(
    investigation_id: UUID,
    data: ReportCreate,
    request: Request,
    principal: InvestigatorPrincipal,
    db: DbSession,
):
    """Submit the report for a completed investigation. Requires investigator role."""
    report = lifecycle.submit_report(db, investigation_id, principal.id, data.report_content)

    create_audit_log(
        db=db,
        action=AuditAction.REPORT_SUBMITTED,
        resource_type="report",
        resource_id=report.id,
        actor_user_id=principal.id,
        request=request,
        details={"investigation_id": str(investigation_id)},
    )

    db.refresh(report)
    return report


@router.post("/{investigation_id}/rate", response_model=ReportResponse)
def rate_report(
    investigation_id: UUID,
    data: ReportRate,
    request: Request,
    principal: ClientPrincipal,
    db: DbSession,
):
    """Rate the report of the caller's investigation (1-5). Requires client role."""
    report = lifecycle.rate_report(
        db,
        investigation_id,
        principal.id,
        rating=data.rating,
        client_feedback=data.client_feedback,
    )

    create_audit_log(
        db=db,
        action=AuditAction.REPORT_RATED,
        resource_type="report",
        resource_id=report.id,
        actor_user_id=principal.id,
        request=request,
        details={"investigation_id": str(investigation_id), "rating": data.rating},
    )

    db.refresh(report)
    return report


@router.get("/{investigation_id}", response_model=ReportResponse)
def get_report(
    investigation_id: UUID,
    principal: CurrentPrincipal,
    db: DbSession,
):
    """Get the report. Only the investigation's client and investigator may read it."""
    return lifecycle.get_report(db, investigation_id, principal.id)
