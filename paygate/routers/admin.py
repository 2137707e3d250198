"""Admin review of manual payments."""
from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from paygate.db import get_db
from paygate.schemas.payment import PaymentResultRead, RejectionPayload
from paygate.security import require_admin
from paygate.services.payments import PaymentService, get_payment_service
from paygate.utils.errors import http_error

router = APIRouter(prefix="/admin/payments", tags=["admin"], dependencies=[Depends(require_admin)])


@router.post("/{payment_id}/approve", response_model=PaymentResultRead)
def approve_payment(
    payment_id: str,
    db: Session = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
):
    result = service.approve_manual_payment(db, payment_id)
    if not result.success:
        raise http_error(result.error, result.message or "Approval failed")
    return PaymentResultRead.from_result(result)


@router.post("/{payment_id}/reject", response_model=PaymentResultRead)
def reject_payment(
    payment_id: str,
    payload: RejectionPayload | None = Body(default=None),
    db: Session = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
):
    result = service.reject_manual_payment(db, payment_id, payload.reason if payload else None)
    if not result.success:
        raise http_error(result.error, result.message or "Rejection failed")
    return PaymentResultRead.from_result(result)
