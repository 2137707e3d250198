"""CHIP (chip-in.asia) hosted checkout gateway."""
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, ClassVar

import httpx
from sqlalchemy.orm import Session

from paygate.config import ChipInConfig
from paygate.errors import ProviderError, ValidationError
from paygate.services import state_machine
from paygate.services.state_machine import GatewayStatus

from .base import BaseGateway, GatewayContext, GatewayResult, to_minor_units

logger = logging.getLogger(__name__)

API_URL = "https://gate.chip-in.asia/api/v1/"


def _positive_int(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        return None
    text = str(value).strip()
    if not text.isdigit() or int(text) < 1:
        return None
    return int(text)


class ChipInGateway(BaseGateway):
    """Creates CHIP purchases and settles them from purchase callbacks."""

    name = "chipin"
    provider_label = "Chip-in"
    required_fields = ("amount", "customer_email")
    status_map: ClassVar[Mapping[str, GatewayStatus]] = {
        "created": GatewayStatus.PENDING,
        "sent": GatewayStatus.PENDING,
        "viewed": GatewayStatus.PENDING,
        "pending_execute": GatewayStatus.PENDING,
        "pending_charge": GatewayStatus.PENDING,
        "hold": GatewayStatus.AUTHORIZED,
        "preauthorized": GatewayStatus.AUTHORIZED,
        "pending_capture": GatewayStatus.AUTHORIZED,
        "pending_release": GatewayStatus.AUTHORIZED,
        "paid": GatewayStatus.COMPLETED,
        "cleared": GatewayStatus.COMPLETED,
        "settled": GatewayStatus.COMPLETED,
        "pending_refund": GatewayStatus.REFUNDED,
        "refunded": GatewayStatus.REFUNDED,
        "chargeback": GatewayStatus.REFUNDED,
        "error": GatewayStatus.ERROR,
        "cancelled": GatewayStatus.FAILED,
        "overdue": GatewayStatus.FAILED,
        "expired": GatewayStatus.FAILED,
        "blocked": GatewayStatus.FAILED,
        "released": GatewayStatus.FAILED,
    }

    config: ChipInConfig

    def __init__(
        self,
        config: ChipInConfig,
        context: GatewayContext,
        *,
        http_client: httpx.Client | None = None,
    ) -> None:
        super().__init__(config, context, http_client=http_client)

    @property
    def api_url(self) -> str:
        # CHIP serves sandbox and live brands from the same host.
        return API_URL

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.secret_key or ''}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def build_products(self, data: Mapping[str, Any], amount: Any) -> list[dict[str, Any]]:
        """Return CHIP line items in minor units.

        Without explicit ``products`` a single line item named after the
        description and carrying the full amount is sent.
        """

        products = data.get("products") or []
        if not products:
            return [
                {
                    "name": data.get("description") or "Payment",
                    "price": to_minor_units(amount),
                    "quantity": 1,
                }
            ]

        if not isinstance(products, Sequence) or isinstance(products, (str, bytes)):
            raise ValidationError("Field 'products' must be a list", field="products", gateway=self.name)

        items: list[dict[str, Any]] = []
        for index, product in enumerate(products):
            if not isinstance(product, Mapping) or not product.get("name") or product.get("price") is None:
                raise ValidationError(
                    f"Product #{index + 1} requires 'name' and 'price' for {self.name} gateway",
                    field="products",
                    gateway=self.name,
                )
            raw_quantity = product.get("quantity")
            quantity = _positive_int(1 if raw_quantity is None else raw_quantity)
            if quantity is None:
                raise ValidationError(
                    f"Product #{index + 1} quantity must be a positive integer",
                    field="products",
                    gateway=self.name,
                )
            item: dict[str, Any] = {
                "name": str(product["name"]),
                "price": to_minor_units(product["price"]),
                "quantity": quantity,
            }
            if product.get("discount"):
                item["discount"] = to_minor_units(product["discount"])
            items.append(item)
        return items

    def create_payment(self, db: Session, data: Mapping[str, Any]) -> GatewayResult:
        self.validate_required_fields(data)
        products = self.build_products(data, data["amount"])
        payment = self.create_payment_record(db, data)

        purchase: dict[str, Any] = {
            "currency": payment.currency,
            "products": products,
            "total_override": to_minor_units(payment.amount),
        }
        if data.get("discount"):
            purchase["total_discount_override"] = to_minor_units(data["discount"])

        body: dict[str, Any] = {
            "brand_id": self.config.brand_id or "",
            "client_reference": payment.reference_id,
            "reference": payment.reference_id,
            "purchase": purchase,
            "client": {
                "email": data["customer_email"],
                "phone": data.get("customer_phone") or "",
                "full_name": data.get("customer_name") or "",
            },
            "success_callback": self.callback_url(),
            "success_redirect": self.success_url(payment),
            "failure_redirect": self.failed_url(payment),
            "cancel_redirect": self.failed_url(payment),
        }

        try:
            response = self.send_request("POST", f"{self.api_url}purchases/", json=body, headers=self._headers())
        except ProviderError as exc:
            return GatewayResult.failure(str(exc), error=exc, payment=payment)

        response = response if isinstance(response, Mapping) else {}
        purchase_id = response.get("id")
        checkout_url = response.get("checkout_url") or response.get("payment_url")
        if not purchase_id or not checkout_url:
            message = "Failed to create Chip-in purchase"
            logger.warning(
                "CHIP purchase response missing id or checkout URL",
                extra={"payment_id": payment.id, "response": dict(response)},
            )
            return GatewayResult.failure(
                message,
                error=ProviderError(message, response=response),
                payment=payment,
                data=dict(response),
            )

        payment = self.record_checkout(
            db, payment, payment_url=checkout_url, transaction_id=str(purchase_id), response=dict(response)
        )
        logger.info("CHIP purchase created", extra={"payment_id": payment.id, "purchase_id": purchase_id})
        return GatewayResult(
            success=True,
            payment_url=checkout_url,
            transaction_id=str(purchase_id),
            payment=payment,
        )

    def handle_callback(self, db: Session, data: Mapping[str, Any]) -> GatewayResult:
        raw_status = data.get("status")
        return self.apply_provider_status(
            db,
            transaction_id=data.get("id"),
            raw_status=raw_status,
            data=data,
            failure_reason=f"{state_machine.DEFAULT_FAILURE_REASON} ({raw_status})" if raw_status else None,
            missing_id_message="Missing purchase ID",
        )

    def verify_payment(self, db: Session, transaction_id: str) -> GatewayResult:
        try:
            response = self.send_request(
                "GET", f"{self.api_url}purchases/{transaction_id}/", headers=self._headers()
            )
        except ProviderError as exc:
            return GatewayResult.failure(str(exc), error=exc)

        if not isinstance(response, Mapping) or "status" not in response:
            return GatewayResult.failure("Purchase not found", data=response)

        gateway_status = self.normalize_status(response.get("status"))
        outcome = state_machine.classify(gateway_status)

        payment = self.find_payment_by_transaction(db, transaction_id)
        if payment is not None:
            payment = state_machine.apply_outcome(
                db,
                payment,
                outcome,
                transaction_id=transaction_id,
                response=dict(response),
                reason=f"{state_machine.DEFAULT_FAILURE_REASON} ({response.get('status')})",
            )

        return GatewayResult(
            success=True,
            status=payment.status.value if payment is not None else outcome.value,
            gateway_status=gateway_status.value,
            transaction_id=str(response.get("id") or transaction_id),
            data=dict(response),
            payment=payment,
        )


__all__ = ["ChipInGateway"]
