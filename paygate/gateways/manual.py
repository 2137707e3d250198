"""Manual bank-transfer gateway settled by admin review of an uploaded proof."""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy.orm import Session

from paygate.config import ManualConfig
from paygate.errors import FileRejected, InvalidTransition, MissingProof, NotFound
from paygate.models import PaymentStatus
from paygate.services import state_machine
from paygate.services.storage import LocalProofStorage, ProofFile, ProofStorage
from paygate.utils.time import isoformat_utc

from .base import BaseGateway, GatewayContext, GatewayResult

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASON = "Payment proof rejected by admin"


class ManualGateway(BaseGateway):
    name = "manual"
    provider_label = "Manual Payment"
    required_fields = ("amount",)

    config: ManualConfig

    def __init__(
        self,
        config: ManualConfig,
        context: GatewayContext,
        *,
        storage: ProofStorage | None = None,
    ) -> None:
        super().__init__(config, context)
        self.storage = storage if storage is not None else LocalProofStorage(config.storage_root)

    def upload_url(self, payment_id: str) -> str:
        return f"{self.context.base_url}/payments/manual/{payment_id}/upload"

    def validate_proof(self, proof: ProofFile) -> None:
        """Raise :class:`FileRejected` when ``proof`` breaks the size or type limits."""

        max_kb = self.config.max_file_size
        if proof.size > max_kb * 1024:
            raise FileRejected(
                f"File size exceeds maximum allowed size of {max_kb}KB",
                details={"size": proof.size, "max_kb": max_kb},
            )
        allowed = self.config.allowed_extensions
        if proof.extension not in allowed:
            raise FileRejected(
                f"File type not allowed. Allowed types: {', '.join(allowed)}",
                details={"extension": proof.extension},
            )

    def create_payment(self, db: Session, data: Mapping[str, Any]) -> GatewayResult:
        self.validate_required_fields(data)

        proof = data.get("proof_file")
        if proof is not None:
            try:
                self.validate_proof(proof)
            except FileRejected as exc:
                return GatewayResult.failure(exc.message, error=exc)

        payment = self.create_payment_record(db, data)
        payment.payment_url = self.upload_url(payment.id)
        db.add(payment)
        db.commit()
        db.refresh(payment)

        if proof is not None:
            result = self.handle_proof_upload(db, payment.id, proof)
            if not result.success:
                return result
            payment = result.payment

        requires_upload = not payment.proof_file_path
        return GatewayResult(
            success=True,
            message=(
                "Manual payment created. Please upload proof of payment."
                if requires_upload
                else "Manual payment created. Awaiting verification."
            ),
            payment_url=payment.payment_url,
            payment=payment,
            requires_upload=requires_upload,
        )

    def handle_callback(self, db: Session, data: Mapping[str, Any]) -> GatewayResult:
        return GatewayResult.failure("Manual payments do not support callbacks")

    def verify_payment(self, db: Session, transaction_id: str) -> GatewayResult:
        return GatewayResult.failure("Manual payments require admin verification")

    def _load(self, db: Session, payment_id: str):
        payment = state_machine.lock_payment(db, payment_id)
        if payment is None or payment.gateway != self.name:
            return None
        return payment

    def handle_proof_upload(self, db: Session, payment_id: str, proof: ProofFile) -> GatewayResult:
        """Validate and store ``proof`` against a pending manual payment."""

        payment = self._load(db, payment_id)
        if payment is None:
            return GatewayResult.failure("Payment not found", error=NotFound(payment_id=payment_id))
        if payment.status != PaymentStatus.PENDING:
            return GatewayResult.failure(
                f"Payment is already {payment.status.value}",
                error=InvalidTransition(
                    f"Payment is already {payment.status.value}", details={"payment_id": payment.id}
                ),
                payment=payment,
            )

        try:
            self.validate_proof(proof)
        except FileRejected as exc:
            return GatewayResult.failure(exc.message, error=exc, payment=payment)

        key = self.storage.save(proof, self.config.upload_path)
        payment.proof_file_path = key
        payment.metadata_ = {
            **(payment.metadata_ or {}),
            "proof_uploaded_at": isoformat_utc(),
            "original_filename": proof.filename,
        }
        db.add(payment)
        db.commit()
        db.refresh(payment)
        logger.info("Payment proof stored", extra={"payment_id": payment.id, "path": key})
        return GatewayResult(
            success=True,
            message="Payment proof uploaded successfully. Awaiting verification.",
            payment=payment,
        )

    def approve_payment(self, db: Session, payment_id: str) -> GatewayResult:
        payment = self._load(db, payment_id)
        if payment is None:
            return GatewayResult.failure("Payment not found", error=NotFound(payment_id=payment_id))

        if payment.status == PaymentStatus.PAID:
            return GatewayResult(success=True, message="Payment already approved", payment=payment)
        if payment.status != PaymentStatus.PENDING:
            message = f"Cannot approve a {payment.status.value} payment"
            return GatewayResult.failure(
                message,
                error=InvalidTransition(message, details={"payment_id": payment.id}),
                payment=payment,
            )
        if not payment.proof_file_path:
            return GatewayResult.failure("No proof file uploaded", error=MissingProof(), payment=payment)

        payment = state_machine.mark_paid(db, payment, response={"approved_by_admin": True})
        return GatewayResult(success=True, message="Payment approved successfully", payment=payment)

    def reject_payment(self, db: Session, payment_id: str, reason: str | None = None) -> GatewayResult:
        payment = self._load(db, payment_id)
        if payment is None:
            return GatewayResult.failure("Payment not found", error=NotFound(payment_id=payment_id))

        if payment.status == PaymentStatus.FAILED:
            return GatewayResult(success=True, message="Payment already rejected", payment=payment)
        if payment.status != PaymentStatus.PENDING:
            message = f"Cannot reject a {payment.status.value} payment"
            return GatewayResult.failure(
                message,
                error=InvalidTransition(message, details={"payment_id": payment.id}),
                payment=payment,
            )

        payment = state_machine.mark_failed(
            db,
            payment,
            reason=reason or DEFAULT_REJECTION_REASON,
            response={"rejected_by_admin": True},
        )
        return GatewayResult(success=True, message="Payment rejected", payment=payment)


__all__ = ["ManualGateway", "DEFAULT_REJECTION_REASON"]
