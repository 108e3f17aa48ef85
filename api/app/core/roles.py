"""Role grant helpers.

A user holds zero or more grants in ``user_roles``. Only active grants count
for authorization. The *active role* is the grant the user is currently
acting as and travels in the JWT.
"""
import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import ValidationError
from app.models.user import Role, UserRole
from shared.enums import UserRole as RoleName


def active_role_names(db: Session, user_id: uuid.UUID) -> list[str]:
    """Names of the user's active grants, in role id order."""
    return list(
        db.execute(
            select(Role.name)
            .join(UserRole, UserRole.role_id == Role.id)
            .where(UserRole.user_id == user_id, UserRole.is_active.is_(True))
            .order_by(Role.id)
        ).scalars().all()
    )


def resolve_active_role(roles: list[str], requested: str | None) -> str | None:
    """Pick the active role: the token's role if still granted, else the first grant."""
    if requested and requested in roles:
        return requested
    return roles[0] if roles else None


def get_role(db: Session, name: str) -> Role:
    role = db.execute(select(Role).where(Role.name == name)).scalar_one_or_none()
    if role is None:
        raise ValidationError("Required roles not found in the system")
    return role


def ensure_roles_seeded(db: Session) -> None:
    """Insert the built-in roles if missing. Migrations do this in deployment."""
    existing = set(db.execute(select(Role.name)).scalars().all())
    for name in RoleName:
        if name.value not in existing:
            db.add(Role(name=name.value))
    db.flush()


def grant_role(db: Session, user_id: uuid.UUID, role_name: str) -> UserRole:
    """Create the grant or reactivate an existing inactive one. Does not commit."""
    role = get_role(db, role_name)
    grant = db.execute(
        select(UserRole).where(UserRole.user_id == user_id, UserRole.role_id == role.id)
    ).scalar_one_or_none()

    if grant is None:
        grant = UserRole(user_id=user_id, role_id=role.id, is_active=True)
        db.add(grant)
    elif not grant.is_active:
        grant.is_active = True

    db.flush()
    return grant
