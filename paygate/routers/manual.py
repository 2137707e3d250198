"""Proof upload endpoint for manual payments."""
from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from paygate.db import get_db
from paygate.schemas.payment import PaymentResultRead
from paygate.services.payments import PaymentService, get_payment_service
from paygate.services.storage import ProofFile
from paygate.utils.errors import http_error

router = APIRouter(prefix="/payments/manual", tags=["manual"])


@router.post("/{payment_id}/upload", response_model=PaymentResultRead)
async def upload_proof(
    payment_id: str,
    proof_file: UploadFile = File(...),
    db: Session = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
):
    """Attach a proof of payment to a pending manual payment."""

    proof = ProofFile(
        filename=proof_file.filename or "",
        content=await proof_file.read(),
        content_type=proof_file.content_type,
    )
    result = service.upload_proof(db, payment_id, proof)
    if not result.success:
        raise http_error(result.error, result.message or "Proof upload failed")
    return PaymentResultRead.from_result(result)
