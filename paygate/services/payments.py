"""Payment orchestration: resolve the gateway, delegate, normalise the outcome."""
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

import httpx
from fastapi import Request
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from paygate.config import get_settings
from paygate.errors import GatewayNotFound, NotFound, PaymentError
from paygate.gateways.base import BaseGateway, GatewayResult
from paygate.gateways.registry import GatewayRegistry, build_registry
from paygate.models import MANUAL_GATEWAY, Payment, PaymentStatus
from paygate.services import external_refs
from paygate.services.storage import ProofFile

logger = logging.getLogger(__name__)


class PaymentService:
    """Entry point used by the API and by host applications."""

    def __init__(self, registry: GatewayRegistry, *, default_gateway: str = MANUAL_GATEWAY) -> None:
        self.registry = registry
        self.default_gateway = default_gateway

    # -- gateway-routed operations ------------------------------------------
    def _run(
        self,
        db: Session,
        operation: str,
        gateway_name: str | None,
        call: Callable[[BaseGateway], GatewayResult],
    ) -> GatewayResult:
        try:
            gateway = self.registry.get(gateway_name)
        except GatewayNotFound as exc:
            logger.info("Gateway unavailable", extra={"gateway": gateway_name, "operation": operation})
            return GatewayResult.failure(exc.message, error=exc)

        try:
            return call(gateway)
        except PaymentError as exc:
            logger.warning(
                "Payment operation rejected",
                extra={"gateway": gateway.name, "operation": operation, "error": exc.message},
            )
            return GatewayResult.failure(exc.message, error=exc)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Payment operation failed", extra={"gateway": gateway.name, "operation": operation})
            return GatewayResult.failure(f"Payment {operation} failed", error=exc)
        except Exception as exc:
            db.rollback()
            logger.exception("Unexpected gateway error", extra={"gateway": gateway.name, "operation": operation})
            return GatewayResult.failure(f"Payment {operation} failed", error=exc)

    def create_payment(self, db: Session, data: Mapping[str, Any]) -> GatewayResult:
        """Create a payment through ``data["gateway"]`` (or the default gateway)."""

        gateway_name = data.get("gateway") or self.default_gateway
        result = self._run(db, "creation", gateway_name, lambda gateway: gateway.create_payment(db, data))
        if result.success and result.payment is not None:
            logger.info(
                "Payment created",
                extra={
                    "payment_id": result.payment.id,
                    "reference_id": result.payment.reference_id,
                    "gateway": result.payment.gateway,
                },
            )
        return result

    def create_payment_with_external_reference(
        self,
        db: Session,
        data: Mapping[str, Any],
        external_reference_id: str,
        reference_type: str = external_refs.DEFAULT_REFERENCE_TYPE,
    ) -> GatewayResult:
        payload = {**data, "external_reference_id": external_reference_id, "reference_type": reference_type}
        return self.create_payment(db, payload)

    def handle_callback(self, db: Session, gateway_name: str, data: Mapping[str, Any]) -> GatewayResult:
        result = self._run(db, "callback", gateway_name, lambda gateway: gateway.handle_callback(db, data))
        logger.info(
            "Callback processed",
            extra={
                "gateway": gateway_name,
                "success": result.success,
                "status": result.status,
                "transaction_id": result.transaction_id,
            },
        )
        return result

    def verify_payment(self, db: Session, gateway_name: str, transaction_id: str) -> GatewayResult:
        return self._run(
            db, "verification", gateway_name, lambda gateway: gateway.verify_payment(db, transaction_id)
        )

    # -- manual review ------------------------------------------------------
    def _manual_payment(self, db: Session, payment_id: str) -> GatewayResult | None:
        payment = self.get_payment(db, payment_id)
        if payment is None or not payment.is_manual_payment:
            return GatewayResult.failure(
                "Manual payment not found", error=NotFound("Manual payment not found", payment_id=payment_id)
            )
        return None

    def upload_proof(self, db: Session, payment_id: str, proof: ProofFile) -> GatewayResult:
        missing = self._manual_payment(db, payment_id)
        if missing is not None:
            return missing
        return self._run(
            db, "proof upload", MANUAL_GATEWAY, lambda gateway: gateway.handle_proof_upload(db, payment_id, proof)
        )

    def approve_manual_payment(self, db: Session, payment_id: str) -> GatewayResult:
        missing = self._manual_payment(db, payment_id)
        if missing is not None:
            return missing
        result = self._run(
            db, "approval", MANUAL_GATEWAY, lambda gateway: gateway.approve_payment(db, payment_id)
        )
        logger.info(
            "Manual payment reviewed",
            extra={"payment_id": payment_id, "action": "approve", "success": result.success},
        )
        return result

    def reject_manual_payment(self, db: Session, payment_id: str, reason: str | None = None) -> GatewayResult:
        missing = self._manual_payment(db, payment_id)
        if missing is not None:
            return missing
        result = self._run(
            db, "rejection", MANUAL_GATEWAY, lambda gateway: gateway.reject_payment(db, payment_id, reason)
        )
        logger.info(
            "Manual payment reviewed",
            extra={"payment_id": payment_id, "action": "reject", "success": result.success},
        )
        return result

    # -- lookups ------------------------------------------------------------
    def available_gateways(self) -> dict[str, str]:
        """Return ``{name: display name}`` for every enabled gateway."""

        return {name: gateway.display_name for name, gateway in self.registry.available().items()}

    def get_payment(self, db: Session, payment_id: str) -> Payment | None:
        return db.get(Payment, payment_id)

    def get_payment_by_reference(self, db: Session, reference_id: str) -> Payment | None:
        return db.scalars(select(Payment).where(Payment.reference_id == reference_id)).first()

    def get_payments_by_status(self, db: Session, status: PaymentStatus | str) -> list[Payment]:
        stmt = (
            select(Payment)
            .where(Payment.status == PaymentStatus(status))
            .order_by(Payment.created_at.desc(), Payment.id.desc())
        )
        return list(db.scalars(stmt).all())

    def find_by_external_reference(
        self, db: Session, external_reference_id: str, reference_type: str | None = None
    ) -> list[Payment]:
        return external_refs.find_by_external_reference(db, external_reference_id, reference_type)

    def latest_by_external_reference(
        self, db: Session, external_reference_id: str, reference_type: str | None = None
    ) -> Payment | None:
        return external_refs.latest_by_external_reference(db, external_reference_id, reference_type)

    def successful_by_external_reference(
        self, db: Session, external_reference_id: str, reference_type: str | None = None
    ) -> Payment | None:
        return external_refs.successful_by_external_reference(db, external_reference_id, reference_type)

    def has_successful_payment(
        self, db: Session, external_reference_id: str, reference_type: str | None = None
    ) -> bool:
        return external_refs.has_successful_payment(db, external_reference_id, reference_type)


def build_payment_service(**registry_kwargs: Any) -> PaymentService:
    """Build the service from settings; every adapter shares one HTTP client."""

    settings = get_settings()
    if registry_kwargs.get("http_client") is None:
        registry_kwargs["http_client"] = httpx.Client(timeout=settings.http_timeout_seconds)
    registry = build_registry(settings, **registry_kwargs)
    return PaymentService(registry, default_gateway=settings.default_gateway)


def get_payment_service(request: Request) -> PaymentService:
    """Return the service attached to the app at startup, building it on first use."""

    service = getattr(request.app.state, "payment_service", None)
    if service is None:
        service = build_payment_service()
        request.app.state.payment_service = service
    return service


__all__ = ["PaymentService", "build_payment_service", "get_payment_service"]
