"""Investigation request model - A job posted by a client for investigators."""

import uuid
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Date, Enum, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, CreatedAtMixin, TimestampMixin, UUIDPrimaryKeyMixin
from shared.enums import InvestigationStatus

if TYPE_CHECKING:
    from app.models.report import InvestigationReport
    from app.models.user import User


class InvestigationRequest(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Investigation request submitted by a client.

    Lifecycle: submitted -> pending (accepted by an investigator) -> completed.
    ``investigator_id`` is only set once the request leaves ``submitted``.
    """

    __tablename__ = "investigation_requests"

    # Parties
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    investigator_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Basic info
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    budget: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    deadline: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # Status
    status: Mapped[InvestigationStatus] = mapped_column(
        Enum(
            InvestigationStatus,
            name="investigation_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=InvestigationStatus.SUBMITTED,
        index=True,
    )

    # Relationships
    client: Mapped["User"] = relationship("User", foreign_keys=[client_id], lazy="joined")
    investigator: Mapped[Optional["User"]] = relationship("User", foreign_keys=[investigator_id], lazy="joined")
    report: Mapped[Optional["InvestigationReport"]] = relationship(
        "InvestigationReport",
        back_populates="investigation",
        uselist=False,
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<InvestigationRequest(id={self.id!r}, title={self.title!r}, status={self.status.value!r})>"


class DeclinedInvestigation(Base, CreatedAtMixin):
    """Records that an investigator opted out of a request. Never undone."""

    __tablename__ = "declined_investigations"

    investigation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("investigation_requests.id", ondelete="CASCADE"),
        primary_key=True,
    )
    investigator_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
