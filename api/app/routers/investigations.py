"""Investigation request endpoints - Post, browse and work investigation requests."""
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, Request, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import and_, or_, select

from app.core import lifecycle
from app.core.audit import audit_transition, create_audit_log
from app.core.deps import ClientPrincipal, CurrentPrincipal, DbSession, InvestigatorPrincipal
from app.core.errors import NotFoundError
from app.core.validators import Description, Title
from app.models.investigation import DeclinedInvestigation, InvestigationRequest
from shared.enums import AuditAction, InvestigationStatus, UserRole

router = APIRouter(prefix="/investigations", tags=["investigations"])


# =============================================================================
# Schemas
# =============================================================================

class InvestigationCreate(BaseModel):
    """Create investigation request."""
    title: Title
    description: Description
    budget: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    deadline: Optional[date] = None


class PartySummary(BaseModel):
    """Public name of a client or investigator."""
    id: UUID
    first_name: str
    last_name: str

    model_config = ConfigDict(from_attributes=True)


class InvestigationResponse(BaseModel):
    """Investigation request response."""
    id: UUID
    client_id: UUID
    investigator_id: Optional[UUID]
    title: str
    description: str
    status: InvestigationStatus
    budget: Optional[Decimal]
    deadline: Optional[date]
    created_at: datetime
    updated_at: datetime
    client: Optional[PartySummary] = None
    investigator: Optional[PartySummary] = None

    model_config = ConfigDict(from_attributes=True)


class DeclineResponse(BaseModel):
    investigation_id: UUID
    investigator_id: UUID
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Visibility
# =============================================================================

def _declined_by(investigator_id: UUID):
    return select(DeclinedInvestigation.investigation_id).where(
        DeclinedInvestigation.investigator_id == investigator_id
    )


def _investigator_scope(investigator_id: UUID):
    """Assigned to the investigator, or still open and not declined by them."""
    return or_(
        InvestigationRequest.investigator_id == investigator_id,
        and_(
            InvestigationRequest.investigator_id.is_(None),
            InvestigationRequest.status == InvestigationStatus.SUBMITTED,
            InvestigationRequest.id.not_in(_declined_by(investigator_id)),
        ),
    )


# =============================================================================
# Endpoints
# =============================================================================

@router.get("", response_model=list[InvestigationResponse])
def list_investigations(
    principal: CurrentPrincipal,
    db: DbSession,
    status: Optional[InvestigationStatus] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    """
    List investigation requests for the caller's active role.

    - client: the caller's own requests
    - investigator: the caller's assignments plus open requests the
      caller has not declined
    """
    query = select(InvestigationRequest)

    if principal.active_role == UserRole.CLIENT.value:
        query = query.where(InvestigationRequest.client_id == principal.id)
    elif principal.active_role == UserRole.INVESTIGATOR.value:
        query = query.where(_investigator_scope(principal.id))
    else:
        return []

    if status:
        query = query.where(InvestigationRequest.status == status)

    query = query.order_by(InvestigationRequest.created_at.desc()).limit(limit).offset(offset)

    return db.execute(query).scalars().all()


@router.post("", response_model=InvestigationResponse, status_code=status.HTTP_201_CREATED)
def create_investigation(
    data: InvestigationCreate,
    request: Request,
    principal: ClientPrincipal,
    db: DbSession,
):
    """Create new investigation request. Requires client role."""
    investigation = lifecycle.create_request(
        db,
        client_id=principal.id,
        title=data.title,
        description=data.description,
        budget=data.budget,
        deadline=data.deadline,
    )

    create_audit_log(
        db=db,
        action=AuditAction.INVESTIGATION_CREATED,
        resource_type="investigation",
        resource_id=investigation.id,
        actor_user_id=principal.id,
        request=request,
        details={"title": data.title},
    )

    db.refresh(investigation)
    return investigation


@router.get("/{investigation_id}", response_model=InvestigationResponse)
def get_investigation(
    investigation_id: UUID,
    principal: CurrentPrincipal,
    db: DbSession,
):
    """
    Get investigation request details.

    Visible to its client, its investigator, and to investigators while it
    is still open (unless they declined it).
    """
    visibility = [
        InvestigationRequest.client_id == principal.id,
    ]
    if principal.has_role(UserRole.INVESTIGATOR.value):
        visibility.append(_investigator_scope(principal.id))

    investigation = db.execute(
        select(InvestigationRequest).where(
            InvestigationRequest.id == investigation_id,
            or_(*visibility),
        )
    ).scalar_one_or_none()

    if not investigation:
        raise NotFoundError("Investigation request not found")

    return investigation


@router.patch("/{investigation_id}/accept", response_model=InvestigationResponse)
def accept_investigation(
    investigation_id: UUID,
    request: Request,
    principal: InvestigatorPrincipal,
    db: DbSession,
):
    """Accept an open request. Requires investigator role. First acceptor wins."""
    investigation = lifecycle.accept_request(db, investigation_id, principal.id)

    audit_transition(
        db, AuditAction.INVESTIGATION_ACCEPTED, investigation_id, principal.id, request,
        InvestigationStatus.SUBMITTED.value, InvestigationStatus.PENDING.value,
    )

    db.refresh(investigation)
    return investigation


@router.patch("/{investigation_id}/complete", response_model=InvestigationResponse)
def complete_investigation(
    investigation_id: UUID,
    request: Request,
    principal: InvestigatorPrincipal,
    db: DbSession,
):
    """Mark the caller's pending assignment as completed. Requires investigator role."""
    investigation = lifecycle.complete_request(db, investigation_id, principal.id)

    audit_transition(
        db, AuditAction.INVESTIGATION_COMPLETED, investigation_id, principal.id, request,
        InvestigationStatus.PENDING.value, InvestigationStatus.COMPLETED.value,
    )

    db.refresh(investigation)
    return investigation


@router.post(
    "/{investigation_id}/decline",
    response_model=DeclineResponse,
    status_code=status.HTTP_201_CREATED,
)
def decline_investigation(
    investigation_id: UUID,
    request: Request,
    principal: InvestigatorPrincipal,
    db: DbSession,
):
    """Opt out of an open request. It disappears from the caller's listings for good."""
    declined = lifecycle.decline_request(db, investigation_id, principal.id)

    audit_transition(
        db, AuditAction.INVESTIGATION_DECLINED, investigation_id, principal.id, request,
        InvestigationStatus.SUBMITTED.value, InvestigationStatus.SUBMITTED.value,
    )

    db.refresh(declined)
    return declined
