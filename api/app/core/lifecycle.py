"""
Investigation request lifecycle.

    submitted --accept--> pending --complete--> completed --report--> (rated)

Every transition is a single conditional UPDATE whose WHERE clause encodes
the legal source state. If the UPDATE matches no row the transaction is
rolled back and the current row is inspected only to pick the right error:
404 when the request does not exist, 400 for a wrong state or owner.
Concurrent callers racing on the same row therefore see exactly one winner.
"""
import uuid
from datetime import date
from decimal import Decimal

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core import metrics
from app.core.errors import NotFoundError, ValidationError
from app.models.investigation import DeclinedInvestigation, InvestigationRequest
from app.models.report import InvestigationReport
from shared.enums import InvestigationStatus


logger = structlog.get_logger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def _rejected(db: Session, transition: str, error: Exception) -> Exception:
    """Roll back, count the rejection, and hand the error back to be raised."""
    db.rollback()
    metrics.investigation_transitions.labels(transition=transition, outcome="rejected").inc()
    return error


def _accepted(transition: str, **log_kw) -> None:
    metrics.investigation_transitions.labels(transition=transition, outcome="ok").inc()
    logger.info(f"investigation.{transition}", **log_kw)


# =============================================================================
# Requests
# =============================================================================

def create_request(
    db: Session,
    client_id: uuid.UUID,
    title: str,
    description: str,
    budget: Decimal | None = None,
    deadline: date | None = None,
) -> InvestigationRequest:
    """Create a new unassigned request in ``submitted``."""
    investigation = InvestigationRequest(
        client_id=client_id,
        title=title,
        description=description,
        budget=budget,
        deadline=deadline,
        status=InvestigationStatus.SUBMITTED,
        investigator_id=None,
    )
    db.add(investigation)
    db.commit()
    db.refresh(investigation)

    metrics.investigations_created.inc()
    logger.info("investigation.created", investigation_id=str(investigation.id), client_id=str(client_id))
    return investigation


def accept_request(db: Session, investigation_id: uuid.UUID, investigator_id: uuid.UUID) -> InvestigationRequest:
    """
    Assign an unassigned ``submitted`` request to the investigator. First writer wins.

    An investigator who declined the request can no longer accept it.
    """
    result = db.execute(
        update(InvestigationRequest)
        .where(
            InvestigationRequest.id == investigation_id,
            InvestigationRequest.status == InvestigationStatus.SUBMITTED,
            InvestigationRequest.investigator_id.is_(None),
            InvestigationRequest.id.not_in(
                select(DeclinedInvestigation.investigation_id).where(
                    DeclinedInvestigation.investigator_id == investigator_id
                )
            ),
        )
        .values(investigator_id=investigator_id, status=InvestigationStatus.PENDING)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        existing = db.get(InvestigationRequest, investigation_id, populate_existing=True)
        if existing is None:
            raise _rejected(db, "accept", NotFoundError("Investigation request not found."))
        if db.get(DeclinedInvestigation, (investigation_id, investigator_id)) is not None:
            raise _rejected(db, "accept", ValidationError("You have declined this investigation request."))
        raise _rejected(db, "accept", ValidationError(
            "Investigation request has already been accepted or is not available."
        ))

    db.commit()
    investigation = db.get(InvestigationRequest, investigation_id)
    _accepted("accept", investigation_id=str(investigation_id), investigator_id=str(investigator_id))
    return investigation


def decline_request(db: Session, investigation_id: uuid.UUID, investigator_id: uuid.UUID) -> DeclinedInvestigation:
    """Record that the investigator opted out. Does not change the request."""
    investigation = db.get(InvestigationRequest, investigation_id)
    if investigation is None:
        raise _rejected(db, "decline", NotFoundError("Investigation request not found."))

    if investigation.status != InvestigationStatus.SUBMITTED or investigation.investigator_id is not None:
        raise _rejected(db, "decline", ValidationError(
            "Only unassigned submitted investigation requests can be declined."
        ))

    already = db.get(DeclinedInvestigation, (investigation_id, investigator_id))
    if already is not None:
        raise _rejected(db, "decline", ValidationError("You have already declined this investigation request."))

    declined = DeclinedInvestigation(investigation_id=investigation_id, investigator_id=investigator_id)
    db.add(declined)
    try:
        db.commit()
    except IntegrityError:
        raise _rejected(db, "decline", ValidationError("You have already declined this investigation request."))

    db.refresh(declined)
    _accepted("decline", investigation_id=str(investigation_id), investigator_id=str(investigator_id))
    return declined


def complete_request(db: Session, investigation_id: uuid.UUID, investigator_id: uuid.UUID) -> InvestigationRequest:
    """Move the caller's ``pending`` assignment to ``completed``."""
    result = db.execute(
        update(InvestigationRequest)
        .where(
            InvestigationRequest.id == investigation_id,
            InvestigationRequest.investigator_id == investigator_id,
            InvestigationRequest.status == InvestigationStatus.PENDING,
        )
        .values(status=InvestigationStatus.COMPLETED)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        existing = db.get(InvestigationRequest, investigation_id, populate_existing=True)
        if existing is None:
            raise _rejected(db, "complete", NotFoundError("Investigation request not found."))
        if existing.investigator_id != investigator_id:
            raise _rejected(db, "complete", ValidationError("Investigation not assigned to this investigator."))
        raise _rejected(db, "complete", ValidationError(
            f"Investigation status is '{existing.status.value}', not 'pending'. Cannot complete."
        ))

    db.commit()
    investigation = db.get(InvestigationRequest, investigation_id)
    _accepted("complete", investigation_id=str(investigation_id), investigator_id=str(investigator_id))
    return investigation


# =============================================================================
# Reports
# =============================================================================

def submit_report(
    db: Session,
    investigation_id: uuid.UUID,
    investigator_id: uuid.UUID,
    report_content: str,
) -> InvestigationReport:
    """Attach the single report to a completed request the caller worked on."""
    investigation = db.get(InvestigationRequest, investigation_id)
    if investigation is None:
        raise _rejected(db, "report", NotFoundError("Investigation not found."))
    if investigation.investigator_id != investigator_id:
        raise _rejected(db, "report", ValidationError("Investigation not assigned to this investigator."))
    if investigation.status != InvestigationStatus.COMPLETED:
        raise _rejected(db, "report", ValidationError(
            f"Investigation status is '{investigation.status.value}', not 'completed'. "
            "Cannot submit report yet."
        ))

    existing = db.execute(
        select(InvestigationReport.id).where(InvestigationReport.investigation_request_id == investigation_id)
    ).scalar_one_or_none()
    if existing is not None:
        raise _rejected(db, "report", ValidationError("A report has already been submitted for this investigation."))

    report = InvestigationReport(investigation_request_id=investigation_id, report_content=report_content)
    db.add(report)
    try:
        db.commit()
    except IntegrityError:
        # Lost the race against a concurrent submission
        raise _rejected(db, "report", ValidationError("A report has already been submitted for this investigation."))

    db.refresh(report)
    metrics.reports_submitted.inc()
    _accepted("report", investigation_id=str(investigation_id), report_id=str(report.id))
    return report


def rate_report(
    db: Session,
    investigation_id: uuid.UUID,
    client_id: uuid.UUID,
    rating: int,
    client_feedback: str | None = None,
) -> InvestigationReport:
    """Rate the report of the caller's completed request. Allowed once."""
    if rating < MIN_RATING or rating > MAX_RATING:
        raise _rejected(db, "rate", ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}"))

    investigation = db.get(InvestigationRequest, investigation_id)
    if investigation is None:
        raise _rejected(db, "rate", NotFoundError("Investigation not found."))
    if investigation.client_id != client_id:
        raise _rejected(db, "rate", ValidationError("This investigation does not belong to you."))
    if investigation.status != InvestigationStatus.COMPLETED:
        raise _rejected(db, "rate", ValidationError(
            f"Investigation status is '{investigation.status.value}', not 'completed'. "
            "Cannot rate report yet."
        ))

    result = db.execute(
        update(InvestigationReport)
        .where(
            InvestigationReport.investigation_request_id == investigation_id,
            InvestigationReport.rating.is_(None),
        )
        .values(rating=rating, client_feedback=client_feedback or None)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        report = db.execute(
            select(InvestigationReport).where(InvestigationReport.investigation_request_id == investigation_id)
        ).scalar_one_or_none()
        if report is None:
            raise _rejected(db, "rate", NotFoundError("Report not found for this investigation."))
        raise _rejected(db, "rate", ValidationError("This report has already been rated."))

    db.commit()
    report = db.execute(
        select(InvestigationReport).where(InvestigationReport.investigation_request_id == investigation_id)
    ).scalar_one()
    metrics.reports_rated.labels(rating=str(rating)).inc()
    _accepted("rate", investigation_id=str(investigation_id), rating=rating)
    return report


def get_report(db: Session, investigation_id: uuid.UUID, user_id: uuid.UUID) -> InvestigationReport:
    """Fetch the report of a completed request visible to its client or investigator."""
    investigation = db.execute(
        select(InvestigationRequest).where(
            InvestigationRequest.id == investigation_id,
            InvestigationRequest.status == InvestigationStatus.COMPLETED,
            (InvestigationRequest.client_id == user_id) | (InvestigationRequest.investigator_id == user_id),
        )
    ).scalar_one_or_none()

    if investigation is None:
        raise NotFoundError("Investigation not found or access denied")

    report = db.execute(
        select(InvestigationReport).where(InvestigationReport.investigation_request_id == investigation_id)
    ).scalar_one_or_none()

    if report is None:
        raise NotFoundError("Report not found for this investigation")

    return report
