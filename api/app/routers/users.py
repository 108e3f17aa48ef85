"""User profile endpoints."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Request
from pydantic import BaseModel
from sqlalchemy import func, select

from app.core.audit import create_audit_log
from app.core.deps import CurrentPrincipal, DbSession
from app.core.errors import NotFoundError, ValidationError
from app.core.roles import active_role_names
from app.core.security import hash_password, verify_password
from app.core.validators import Password, PersonName, Phone
from app.models.investigation import InvestigationRequest
from app.models.report import InvestigationReport
from app.models.user import User
from app.routers.auth import UserResponse
from shared.enums import AuditAction, UserRole

router = APIRouter(prefix="/users", tags=["users"])


class ProfileUpdate(BaseModel):
    first_name: Optional[PersonName] = None
    last_name: Optional[PersonName] = None
    bio: Optional[str] = None
    phone: Optional[Phone] = None
    current_password: Optional[str] = None
    new_password: Optional[Password] = None


class RatingSummary(BaseModel):
    average_rating: Optional[float] = None
    total_ratings: int = 0


class InvestigatorProfile(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    bio: Optional[str] = None
    phone: Optional[str] = None
    ratings: RatingSummary


@router.get("/profile", response_model=UserResponse)
def get_profile(principal: CurrentPrincipal):
    """Get the caller's profile."""
    return UserResponse.build(principal.user, principal.roles, principal.active_role)


@router.patch("/profile", response_model=UserResponse)
def update_profile(
    data: ProfileUpdate,
    request: Request,
    principal: CurrentPrincipal,
    db: DbSession,
):
    """
    Partially update the caller's profile.

    ``bio`` and ``phone`` may be cleared by sending null. Changing the
    password requires both ``current_password`` and ``new_password``.
    """
    user = principal.user
    changed = []

    if data.first_name:
        user.first_name = data.first_name
        changed.append("first_name")
    if data.last_name:
        user.last_name = data.last_name
        changed.append("last_name")
    if "bio" in data.model_fields_set:
        user.bio = data.bio
        changed.append("bio")
    if "phone" in data.model_fields_set:
        user.phone = data.phone
        changed.append("phone")

    if data.new_password is not None or data.current_password is not None:
        if not data.current_password or not data.new_password:
            raise ValidationError("Both current_password and new_password are required to change the password")
        if not verify_password(data.current_password, user.password_hash):
            raise ValidationError("Current password is incorrect")
        user.password_hash = hash_password(data.new_password)
        changed.append("password")

    db.commit()
    db.refresh(user)

    if changed:
        create_audit_log(
            db=db,
            action=AuditAction.PROFILE_UPDATED,
            resource_type="user",
            resource_id=user.id,
            actor_user_id=user.id,
            request=request,
            details={"fields": changed},
        )

    return UserResponse.build(user, principal.roles, principal.active_role)


@router.get("/investigators/{investigator_id}", response_model=InvestigatorProfile)
def get_investigator_profile(
    investigator_id: UUID,
    principal: CurrentPrincipal,
    db: DbSession,
):
    """Public investigator profile with rating summary."""
    investigator = db.execute(
        select(User).where(User.id == investigator_id, User.is_active.is_(True))
    ).scalar_one_or_none()

    if investigator is None or UserRole.INVESTIGATOR.value not in active_role_names(db, investigator_id):
        raise NotFoundError("Investigator not found")

    average, total = db.execute(
        select(func.avg(InvestigationReport.rating), func.count(InvestigationReport.id))
        .join(InvestigationRequest, InvestigationReport.investigation_request_id == InvestigationRequest.id)
        .where(
            InvestigationRequest.investigator_id == investigator_id,
            InvestigationReport.rating.is_not(None),
        )
    ).one()

    return InvestigatorProfile(
        id=investigator.id,
        first_name=investigator.first_name,
        last_name=investigator.last_name,
        bio=investigator.bio,
        phone=investigator.phone,
        ratings=RatingSummary(
            average_rating=round(float(average), 2) if average is not None else None,
            total_ratings=total,
        ),
    )
