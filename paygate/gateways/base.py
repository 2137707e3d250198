"""Gateway adapter contract and the behaviour shared by every provider."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, ClassVar

import httpx
from sqlalchemy import select
from sqlalchemy.orm import Session

from paygate.config import GatewayConfig, Settings
from paygate.errors import NotFound, ProviderError, ValidationError
from paygate.models import Payment, PaymentStatus, generate_reference_id
from paygate.services import state_machine
from paygate.services.state_machine import GatewayStatus
from paygate.utils.masking import mask_payload

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


@dataclass
class GatewayResult:
    """Uniform outcome returned by adapters and the payment service."""

    success: bool
    message: str | None = None
    payment: Payment | None = None
    payment_url: str | None = None
    transaction_id: str | None = None
    status: str | None = None
    gateway_status: str | None = None
    data: Any = None
    requires_upload: bool | None = None
    error: BaseException | None = field(default=None, repr=False)

    @classmethod
    def failure(
        cls,
        message: str,
        *,
        error: BaseException | None = None,
        payment: Payment | None = None,
        data: Any = None,
    ) -> "GatewayResult":
        return cls(success=False, message=message, error=error, payment=payment, data=data)

    def to_dict(self) -> dict[str, Any]:
        """Return the non-empty fields, leaving ``payment`` for the caller to serialise."""

        payload: dict[str, Any] = {"success": self.success}
        for key in (
            "message",
            "payment_url",
            "transaction_id",
            "status",
            "gateway_status",
            "data",
            "requires_upload",
        ):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload


@dataclass(frozen=True)
class GatewayContext:
    """Process-wide values adapters need, passed in instead of read globally."""

    base_url: str
    success_path: str = "/payments/success"
    failed_path: str = "/payments/failed"
    currency: str = "MYR"
    timeout_seconds: float = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "GatewayContext":
        return cls(
            base_url=settings.base_url,
            success_path=settings.success_path,
            failed_path=settings.failed_path,
            currency=settings.currency,
            timeout_seconds=settings.http_timeout_seconds,
        )


def format_amount(value: Any) -> Decimal:
    """Round an amount to two decimal places."""

    try:
        return Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid amount: {value!r}", field="amount") from exc


def to_minor_units(value: Any) -> int:
    """Convert a major-unit amount to integer minor units (cents/sen)."""

    return int((format_amount(value) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return not value
    return False


class BaseGateway(ABC):
    """Base class for payment gateway adapters."""

    name: ClassVar[str]
    provider_label: ClassVar[str] = "Provider"
    required_fields: ClassVar[tuple[str, ...]] = ("amount",)
    status_map: ClassVar[Mapping[str, GatewayStatus]] = {}

    def __init__(
        self,
        config: GatewayConfig,
        context: GatewayContext,
        *,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.config = config
        self.context = context
        self._http_client = http_client

    # -- identity ---------------------------------------------------------
    def get_name(self) -> str:
        return self.name

    def is_enabled(self) -> bool:
        return bool(self.config.enabled)

    def get_config(self) -> dict[str, Any]:
        return self.config.model_dump()

    @property
    def display_name(self) -> str:
        return self.config.name or self.name

    # -- contract ---------------------------------------------------------
    @abstractmethod
    def create_payment(self, db: Session, data: Mapping[str, Any]) -> GatewayResult:
        """Create a pending payment and start the provider checkout."""

    @abstractmethod
    def handle_callback(self, db: Session, data: Mapping[str, Any]) -> GatewayResult:
        """Apply a provider webhook to the matching payment."""

    def verify_payment(self, db: Session, transaction_id: str) -> GatewayResult:
        return GatewayResult.failure(f"Payment verification not supported for {self.name}")

    # -- URLs -------------------------------------------------------------
    def callback_url(self) -> str:
        return f"{self.context.base_url}/payments/callback/{self.name}"

    def success_url(self, payment: Payment | None = None) -> str:
        url = f"{self.context.base_url}{self.context.success_path}"
        return f"{url}?payment_id={payment.id}" if payment is not None else url

    def failed_url(self, payment: Payment | None = None) -> str:
        url = f"{self.context.base_url}{self.context.failed_path}"
        return f"{url}?payment_id={payment.id}" if payment is not None else url

    # -- validation & records ---------------------------------------------
    def validate_required_fields(self, data: Mapping[str, Any], required: tuple[str, ...] | None = None) -> None:
        for field_name in required if required is not None else self.required_fields:
            if _is_blank(data.get(field_name)):
                raise ValidationError.missing_field(field_name, self.name)

        if "amount" in data and data.get("amount") is not None:
            if format_amount(data["amount"]) <= 0:
                raise ValidationError(
                    f"Field 'amount' must be greater than zero for {self.name} gateway",
                    field="amount",
                    gateway=self.name,
                )

    def create_payment_record(self, db: Session, data: Mapping[str, Any]) -> Payment:
        """Persist a new ``pending`` payment owned by this gateway."""

        metadata = data.get("metadata")
        payment = Payment(
            reference_id=data.get("reference_id") or generate_reference_id(),
            gateway=self.name,
            amount=format_amount(data["amount"]),
            currency=(data.get("currency") or self.context.currency).upper(),
            status=PaymentStatus.PENDING,
            description=data.get("description"),
            customer_name=data.get("customer_name"),
            customer_email=data.get("customer_email"),
            customer_phone=data.get("customer_phone"),
            metadata_=dict(metadata) if metadata else None,
            external_reference_id=data.get("external_reference_id"),
            reference_type=data.get("reference_type"),
        )
        db.add(payment)
        db.commit()
        db.refresh(payment)
        logger.info(
            "Payment record created",
            extra={
                "payment_id": payment.id,
                "reference_id": payment.reference_id,
                "gateway": self.name,
                "amount": str(payment.amount),
                "currency": payment.currency,
            },
        )
        return payment

    def record_checkout(
        self,
        db: Session,
        payment: Payment,
        *,
        payment_url: str,
        transaction_id: str | None,
        response: Any,
    ) -> Payment:
        """Store the checkout URL, provider id and raw response in one write."""

        payment.payment_url = payment_url
        if transaction_id:
            payment.gateway_transaction_id = transaction_id
        payment.gateway_response = response
        db.add(payment)
        db.commit()
        db.refresh(payment)
        return payment

    def find_payment_by_transaction(self, db: Session, transaction_id: str) -> Payment | None:
        stmt = (
            select(Payment)
            .where(Payment.gateway == self.name, Payment.gateway_transaction_id == transaction_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return db.scalars(stmt).first()

    # -- status handling --------------------------------------------------
    def normalize_status(self, raw_status: Any) -> GatewayStatus:
        return state_machine.normalize_status(raw_status, self.status_map, gateway=self.name)

    def apply_provider_status(
        self,
        db: Session,
        *,
        transaction_id: str | None,
        raw_status: Any,
        data: Mapping[str, Any],
        failure_reason: str | None = None,
        missing_id_message: str = "Missing transaction ID",
    ) -> GatewayResult:
        """Match a provider notification to its payment and apply the outcome."""

        if not transaction_id:
            return GatewayResult.failure(missing_id_message)

        payment = self.find_payment_by_transaction(db, str(transaction_id))
        if payment is None:
            logger.info(
                "Callback for unknown payment",
                extra={"gateway": self.name, "transaction_id": transaction_id},
            )
            return GatewayResult.failure(
                "Payment not found",
                error=NotFound(gateway=self.name, transaction_id=str(transaction_id)),
            )

        payload = dict(data)
        gateway_status = self.normalize_status(raw_status)
        outcome = state_machine.classify(gateway_status)

        if payment.is_terminal:
            # Keep the audit trail of the first outcome; only log the late delivery.
            logger.info(
                "Callback received for settled payment",
                extra={
                    "payment_id": payment.id,
                    "gateway": self.name,
                    "status": payment.status.value,
                    "provider_status": gateway_status.value,
                },
            )
        else:
            payment.callback_data = payload
            payment = state_machine.apply_outcome(
                db,
                payment,
                outcome,
                transaction_id=str(transaction_id),
                response=payload,
                reason=failure_reason,
            )
            if outcome == PaymentStatus.PENDING:
                db.commit()
                db.refresh(payment)

        return GatewayResult(
            success=True,
            status=payment.status.value,
            gateway_status=gateway_status.value,
            transaction_id=str(transaction_id),
            payment=payment,
        )

    # -- HTTP -------------------------------------------------------------
    @property
    def http(self) -> httpx.Client:
        if self._http_client is None:
            self._http_client = httpx.Client(timeout=self.context.timeout_seconds)
        return self._http_client

    def send_request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        data: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Issue one provider call and return its decoded JSON body.

        Raises :class:`ProviderError` on transport failures, non-2xx responses
        and bodies that are not JSON.
        """

        label = self.provider_label
        logger.info(
            "Provider request",
            extra={"gateway": self.name, "method": method, "url": url, "payload": mask_payload(json or data or {})},
        )
        try:
            response = self.http.request(
                method,
                url,
                json=json,
                data=dict(data) if data is not None else None,
                headers=dict(headers or {}),
                timeout=self.context.timeout_seconds,
            )
        except httpx.TimeoutException as exc:
            logger.warning("Provider request timed out", extra={"gateway": self.name, "url": url})
            raise ProviderError(f"{label} API connection failed: request timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("Provider request failed", extra={"gateway": self.name, "url": url, "error": str(exc)})
            raise ProviderError(f"{label} API connection failed: {exc}") from exc

        if not response.is_success:
            message = f"{label} API request failed with HTTP code: {response.status_code}"
            provider_message = _provider_error_text(response)
            if provider_message:
                message = f"{message} ({provider_message})"
            logger.warning(
                "Provider returned an error response",
                extra={"gateway": self.name, "http_status": response.status_code},
            )
            raise ProviderError(message, http_status=response.status_code, response=response.text)

        try:
            return response.json()
        except ValueError as exc:
            logger.warning("Provider returned invalid JSON", extra={"gateway": self.name})
            raise ProviderError(
                f"Invalid JSON response from {label} API",
                http_status=response.status_code,
                response=response.text,
            ) from exc


def _provider_error_text(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, list) and body and isinstance(body[0], Mapping):
        body = body[0]
    if isinstance(body, Mapping):
        for key in ("message", "msg", "error", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
            if isinstance(value, Mapping) and isinstance(value.get("message"), str):
                return value["message"]
    return None


__all__ = [
    "BaseGateway",
    "GatewayContext",
    "GatewayResult",
    "format_amount",
    "to_minor_units",
]
