"""Payment creation, lookup and verification endpoints."""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from paygate.db import get_db
from paygate.errors import NotFound
from paygate.models import PaymentStatus
from paygate.schemas.payment import PaymentCreate, PaymentRead, PaymentResultRead
from paygate.services.payments import PaymentService, get_payment_service
from paygate.utils.errors import http_error

router = APIRouter(prefix="/payments", tags=["payments"])


def _found(payment, **lookup) -> PaymentRead:
    if payment is None:
        raise http_error(NotFound(**lookup), "Payment not found")
    return PaymentRead.model_validate(payment)


@router.post("", response_model=PaymentResultRead, status_code=status.HTTP_201_CREATED)
def create_payment(
    payload: PaymentCreate,
    db: Session = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
):
    """Create a payment through the requested gateway."""

    data = payload.model_dump(exclude_none=True)
    result = service.create_payment(db, data)
    if not result.success:
        extra = {"payment_id": result.payment.id} if result.payment is not None else None
        raise http_error(result.error, result.message or "Payment creation failed", extra=extra)
    return PaymentResultRead.from_result(result)


@router.get("", response_model=list[PaymentRead])
def list_payments(
    status_filter: PaymentStatus = Query(alias="status"),
    db: Session = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
):
    return [PaymentRead.model_validate(p) for p in service.get_payments_by_status(db, status_filter)]


@router.get("/reference/{reference_id}", response_model=PaymentRead)
def read_payment_by_reference(
    reference_id: str,
    db: Session = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
):
    return _found(service.get_payment_by_reference(db, reference_id), reference_id=reference_id)


@router.get("/external/{external_reference_id}", response_model=list[PaymentRead])
def list_payments_for_reference(
    external_reference_id: str,
    reference_type: str | None = None,
    db: Session = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
):
    """List the payments attached to a host-application entity, newest first."""

    payments = service.find_by_external_reference(db, external_reference_id, reference_type)
    return [PaymentRead.model_validate(p) for p in payments]


@router.get("/external/{external_reference_id}/latest", response_model=PaymentRead)
def latest_payment_for_reference(
    external_reference_id: str,
    reference_type: str | None = None,
    db: Session = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
):
    payment = service.latest_by_external_reference(db, external_reference_id, reference_type)
    return _found(payment, external_reference_id=external_reference_id, reference_type=reference_type)


@router.get("/external/{external_reference_id}/paid", response_model=PaymentRead)
def paid_payment_for_reference(
    external_reference_id: str,
    reference_type: str | None = None,
    db: Session = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
):
    payment = service.successful_by_external_reference(db, external_reference_id, reference_type)
    return _found(payment, external_reference_id=external_reference_id, reference_type=reference_type)


@router.get("/verify/{gateway}/{transaction_id}", response_model=PaymentResultRead)
def verify_payment(
    gateway: str,
    transaction_id: str,
    db: Session = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
):
    """Ask the provider for the current status and apply it."""

    result = service.verify_payment(db, gateway, transaction_id)
    if not result.success:
        raise http_error(result.error, result.message or "Payment verification failed")
    return PaymentResultRead.from_result(result)


@router.get("/{payment_id}", response_model=PaymentRead)
def read_payment(
    payment_id: str,
    db: Session = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
):
    return _found(service.get_payment(db, payment_id), payment_id=payment_id)
