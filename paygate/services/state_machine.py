"""Payment status transitions shared by every gateway and the manual review flow.

Only ``pending`` payments move. Once a payment is ``paid``, ``failed``,
``cancelled`` or ``refunded`` a later transition request leaves the row
untouched and hands the stored record back, so a duplicate or out-of-order
webhook can never flip an outcome or re-stamp ``paid_at``/``failed_at``.
"""
from __future__ import annotations

import enum
import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from paygate.models import Payment, PaymentStatus
from paygate.utils.time import utcnow

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_REASON = "Payment failed or cancelled"


class GatewayStatus(str, enum.Enum):
    """Normalised provider status every adapter maps its own codes onto."""

    COMPLETED = "completed"
    REFUNDED = "refunded"
    AUTHORIZED = "authorized"
    FAILED = "failed"
    PENDING = "pending"
    ERROR = "error"


_OUTCOME_BY_GATEWAY_STATUS: dict[GatewayStatus, PaymentStatus] = {
    GatewayStatus.COMPLETED: PaymentStatus.PAID,
    GatewayStatus.FAILED: PaymentStatus.FAILED,
    GatewayStatus.ERROR: PaymentStatus.FAILED,
    GatewayStatus.PENDING: PaymentStatus.PENDING,
    GatewayStatus.AUTHORIZED: PaymentStatus.PENDING,
    # Refunds are reported but not applied here; see DESIGN.md.
    GatewayStatus.REFUNDED: PaymentStatus.PENDING,
}


def normalize_status(
    raw_status: Any,
    status_map: Mapping[str, GatewayStatus],
    *,
    gateway: str | None = None,
) -> GatewayStatus:
    """Map a provider status onto :class:`GatewayStatus`.

    Unknown or missing values fall back to ``pending`` so an undocumented
    status string never fails a payment.
    """

    key = "" if raw_status is None else str(raw_status).strip().lower()
    mapped = status_map.get(key)
    if mapped is None:
        logger.warning(
            "Unrecognised provider status; treating as pending",
            extra={"gateway": gateway, "provider_status": key or None},
        )
        return GatewayStatus.PENDING
    return mapped


def classify(gateway_status: GatewayStatus) -> PaymentStatus:
    """Return the payment status a provider outcome should drive a record to."""

    return _OUTCOME_BY_GATEWAY_STATUS[gateway_status]


def lock_payment(db: Session, payment_id: str) -> Payment | None:
    """Reload a payment row with ``SELECT ... FOR UPDATE`` before a transition."""

    stmt = (
        select(Payment)
        .where(Payment.id == payment_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return db.scalars(stmt).first()


def mark_paid(
    db: Session,
    payment: Payment,
    *,
    transaction_id: str | None = None,
    response: Any = None,
) -> Payment:
    """Drive ``pending -> paid``; terminal records are returned unchanged."""

    if payment.is_terminal:
        _log_ignored(payment, PaymentStatus.PAID)
        return payment

    payment.status = PaymentStatus.PAID
    payment.paid_at = utcnow()
    if transaction_id:
        payment.gateway_transaction_id = transaction_id
    if response is not None:
        payment.gateway_response = response
    db.add(payment)
    db.commit()
    db.refresh(payment)
    logger.info(
        "Payment marked as paid",
        extra={"payment_id": payment.id, "gateway": payment.gateway, "status": payment.status.value},
    )
    return payment


def mark_failed(
    db: Session,
    payment: Payment,
    *,
    reason: str | None = None,
    response: Any = None,
) -> Payment:
    """Drive ``pending -> failed`` and record ``failure_reason`` in metadata."""

    if payment.is_terminal:
        _log_ignored(payment, PaymentStatus.FAILED)
        return payment

    payment.status = PaymentStatus.FAILED
    payment.failed_at = utcnow()
    if response is not None:
        payment.gateway_response = response
    # Reassign so the JSON column is flagged dirty.
    payment.metadata_ = {**(payment.metadata_ or {}), "failure_reason": reason or DEFAULT_FAILURE_REASON}
    db.add(payment)
    db.commit()
    db.refresh(payment)
    logger.info(
        "Payment marked as failed",
        extra={"payment_id": payment.id, "gateway": payment.gateway, "reason": reason},
    )
    return payment


def apply_outcome(
    db: Session,
    payment: Payment,
    outcome: PaymentStatus,
    *,
    transaction_id: str | None = None,
    response: Any = None,
    reason: str | None = None,
) -> Payment:
    """Apply a classified provider outcome to ``payment``."""

    if outcome == PaymentStatus.PAID:
        return mark_paid(db, payment, transaction_id=transaction_id, response=response)
    if outcome == PaymentStatus.FAILED:
        return mark_failed(db, payment, reason=reason, response=response)
    logger.info(
        "Provider outcome still pending; no transition applied",
        extra={"payment_id": payment.id, "gateway": payment.gateway, "status": payment.status.value},
    )
    return payment


def _log_ignored(payment: Payment, requested: PaymentStatus) -> None:
    if payment.status == requested:
        logger.info(
            "Duplicate transition ignored",
            extra={"payment_id": payment.id, "status": payment.status.value},
        )
    else:
        logger.warning(
            "Late transition ignored for terminal payment",
            extra={
                "payment_id": payment.id,
                "status": payment.status.value,
                "requested_status": requested.value,
            },
        )


__all__ = [
    "DEFAULT_FAILURE_REASON",
    "GatewayStatus",
    "normalize_status",
    "classify",
    "lock_payment",
    "mark_paid",
    "mark_failed",
    "apply_outcome",
]
