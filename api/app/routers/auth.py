from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Request, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.core import metrics
from app.core.audit import audit_login, create_audit_log
from app.core.deps import CurrentPrincipal, DbSession
from app.core.errors import UnauthorizedError, ValidationError
from app.core.roles import active_role_names, grant_role, resolve_active_role
from app.core.security import create_access_token, hash_password, password_needs_rehash, verify_password
from app.core.validators import Email, Password, PersonName
from app.models.user import User
from shared.enums import AuditAction, UserRole

router = APIRouter(prefix="/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    email: Email
    password: Password
    first_name: PersonName
    last_name: PersonName
    roles: list[UserRole] = Field(min_length=1)


class LoginRequest(BaseModel):
    email: Email
    password: str = Field(min_length=1)


class UserResponse(BaseModel):
    id: UUID
    email: str
    first_name: str
    last_name: str
    bio: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool
    roles: list[str] = []
    active_role: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def build(cls, user: User, roles: list[str], active_role: str | None) -> "UserResponse":
        response = cls.model_validate(user)
        response.roles = roles
        response.active_role = active_role
        return response


class AuthResponse(BaseModel):
    user: UserResponse
    access_token: str
    token_type: str = "bearer"


class ToggleRoleResponse(BaseModel):
    roles: list[str]
    active_role: str
    access_token: str
    token_type: str = "bearer"


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    data: RegisterRequest,
    request: Request,
    db: DbSession,
):
    """Register a new user with one or both roles."""
    existing = db.execute(select(User).where(User.email == data.email)).scalar_one_or_none()
    if existing:
        raise ValidationError("Email already registered")

    user = User(
        email=data.email,
        password_hash=hash_password(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
    )
    db.add(user)
    try:
        db.flush()
        for role in dict.fromkeys(data.roles):
            grant_role(db, user.id, role.value)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationError("Email already registered")
    except ValidationError:
        db.rollback()
        raise
    db.refresh(user)

    roles = active_role_names(db, user.id)
    active_role = resolve_active_role(roles, None)

    create_audit_log(
        db=db,
        action=AuditAction.USER_REGISTERED,
        resource_type="user",
        resource_id=user.id,
        actor_user_id=user.id,
        request=request,
        details={"roles": roles},
    )

    token = create_access_token(user_id=user.id, email=user.email, role=active_role)
    return AuthResponse(user=UserResponse.build(user, roles, active_role), access_token=token)


@router.post("/login", response_model=AuthResponse)
def login(
    data: LoginRequest,
    request: Request,
    db: DbSession,
):
    """Login and get access token."""
    user = db.execute(select(User).where(User.email == data.email)).scalar_one_or_none()

    if user is None or not verify_password(data.password, user.password_hash):
        metrics.login_attempts.labels(result="invalid").inc()
        if user:
            audit_login(db, user.id, request, success=False)
        raise UnauthorizedError("Invalid email or password")

    if not user.is_active:
        metrics.login_attempts.labels(result="inactive").inc()
        raise UnauthorizedError("User account is deactivated")

    if password_needs_rehash(user.password_hash):
        user.password_hash = hash_password(data.password)
        db.commit()

    roles = active_role_names(db, user.id)
    active_role = resolve_active_role(roles, None)

    token = create_access_token(user_id=user.id, email=user.email, role=active_role)

    metrics.login_attempts.labels(result="ok").inc()
    audit_login(db, user.id, request, success=True)

    return AuthResponse(user=UserResponse.build(user, roles, active_role), access_token=token)


@router.post("/toggle-role", response_model=ToggleRoleResponse)
def toggle_role(
    principal: CurrentPrincipal,
    request: Request,
    db: DbSession,
):
    """
    Switch the active role between client and investigator.

    A single-role user is granted the other role (or has an inactive grant
    reactivated). A dual-role user flips away from the token's active role.
    Returns a new token carrying the new active role.
    """
    has_client = principal.has_role(UserRole.CLIENT.value)
    has_investigator = principal.has_role(UserRole.INVESTIGATOR.value)

    if not has_client and not has_investigator:
        raise ValidationError("User must have at least one role (client or investigator)")

    if has_client and not has_investigator:
        target = UserRole.INVESTIGATOR
    elif has_investigator and not has_client:
        target = UserRole.CLIENT
    else:
        current = principal.active_role or UserRole.CLIENT.value
        target = UserRole.INVESTIGATOR if current == UserRole.CLIENT.value else UserRole.CLIENT

    try:
        grant_role(db, principal.id, target.value)
        db.commit()
    except ValidationError:
        db.rollback()
        raise

    roles = active_role_names(db, principal.id)

    create_audit_log(
        db=db,
        action=AuditAction.ROLE_TOGGLED,
        resource_type="user",
        resource_id=principal.id,
        actor_user_id=principal.id,
        request=request,
        details={"from": principal.active_role, "to": target.value},
    )

    token = create_access_token(user_id=principal.id, email=principal.user.email, role=target.value)
    return ToggleRoleResponse(roles=roles, active_role=target.value, access_token=token)


@router.get("/me", response_model=UserResponse)
def get_me(principal: CurrentPrincipal):
    """Get current user info."""
    return UserResponse.build(principal.user, principal.roles, principal.active_role)
