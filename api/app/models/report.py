"""Investigation report - The deliverable for a completed request."""

import uuid
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, ForeignKey, Integer, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from app.models.investigation import InvestigationRequest


class InvestigationReport(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Report written once by the investigator and rated once by the client."""

    __tablename__ = "investigation_reports"
    __table_args__ = (
        CheckConstraint("rating IS NULL OR (rating >= 1 AND rating <= 5)", name="valid_rating"),
    )

    investigation_request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("investigation_requests.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    report_content: Mapped[str] = mapped_column(Text, nullable=False)
    rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    client_feedback: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    investigation: Mapped["InvestigationRequest"] = relationship(
        "InvestigationRequest",
        back_populates="report",
    )

    def __repr__(self) -> str:
        return f"<InvestigationReport(id={self.id!r}, rating={self.rating!r})>"
