from dataclasses import dataclass, field
from typing import Annotated
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.core.errors import ForbiddenError, UnauthorizedError
from app.core.roles import active_role_names, resolve_active_role
from app.core.security import decode_access_token
from app.models.user import User
from shared.enums import UserRole

security = HTTPBearer()

DbSession = Annotated[Session, Depends(get_db)]


@dataclass
class Principal:
    """Authenticated user plus the roles resolved for this request."""
    user: User
    roles: list[str] = field(default_factory=list)
    active_role: str | None = None

    @property
    def id(self) -> UUID:
        return self.user.id

    def has_role(self, role: str) -> bool:
        return role in self.roles


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: DbSession,
) -> Principal:
    """Resolve the bearer token into the user and their active role grants."""
    payload = decode_access_token(credentials.credentials)

    if payload is None:
        raise UnauthorizedError("Invalid or expired token")

    user_id = payload.get("sub")
    if not user_id:
        raise UnauthorizedError("Invalid token payload")

    try:
        user_uuid = UUID(user_id)
    except ValueError:
        raise UnauthorizedError("Invalid token payload")

    user = db.execute(select(User).where(User.id == user_uuid)).scalar_one_or_none()

    if user is None or not user.is_active:
        raise UnauthorizedError("User not found or inactive")

    roles = active_role_names(db, user.id)
    return Principal(
        user=user,
        roles=roles,
        active_role=resolve_active_role(roles, payload.get("role")),
    )


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


class RoleChecker:
    """Dependency to check that the user holds an active grant for a role."""

    def __init__(self, role: UserRole):
        self.role = role

    def __call__(self, principal: CurrentPrincipal) -> Principal:
        if not principal.has_role(self.role.value):
            raise ForbiddenError(f"Requires {self.role.value} role")
        return principal


# Pre-configured role checkers
require_client = RoleChecker(UserRole.CLIENT)
require_investigator = RoleChecker(UserRole.INVESTIGATOR)

ClientPrincipal = Annotated[Principal, Depends(require_client)]
InvestigatorPrincipal = Annotated[Principal, Depends(require_investigator)]
