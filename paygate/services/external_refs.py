"""Lookups of payments by the host application's own entity id."""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from paygate.models import Payment, PaymentStatus

DEFAULT_REFERENCE_TYPE = "order"


def _by_reference(external_reference_id: str, reference_type: str | None):
    stmt = select(Payment).where(Payment.external_reference_id == external_reference_id)
    if reference_type is not None:
        stmt = stmt.where(Payment.reference_type == reference_type)
    return stmt


def find_by_external_reference(
    db: Session, external_reference_id: str, reference_type: str | None = None
) -> list[Payment]:
    """Return every payment for the entity, newest first.

    ``reference_type`` narrows the match; without it every type is returned.
    """

    stmt = _by_reference(external_reference_id, reference_type).order_by(
        Payment.created_at.desc(), Payment.id.desc()
    )
    return list(db.scalars(stmt).all())


def latest_by_external_reference(
    db: Session, external_reference_id: str, reference_type: str | None = None
) -> Payment | None:
    stmt = (
        _by_reference(external_reference_id, reference_type)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .limit(1)
    )
    return db.scalars(stmt).first()


def successful_by_external_reference(
    db: Session, external_reference_id: str, reference_type: str | None = None
) -> Payment | None:
    stmt = (
        _by_reference(external_reference_id, reference_type)
        .where(Payment.status == PaymentStatus.PAID)
        .order_by(Payment.paid_at.desc(), Payment.created_at.desc())
        .limit(1)
    )
    return db.scalars(stmt).first()


def has_successful_payment(
    db: Session, external_reference_id: str, reference_type: str | None = None
) -> bool:
    return successful_by_external_reference(db, external_reference_id, reference_type) is not None


__all__ = [
    "DEFAULT_REFERENCE_TYPE",
    "find_by_external_reference",
    "latest_by_external_reference",
    "successful_by_external_reference",
    "has_successful_payment",
]
