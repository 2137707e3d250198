"""ToyyibPay bill gateway."""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, ClassVar

import httpx
from sqlalchemy.orm import Session

from paygate.config import ToyyibpayConfig
from paygate.errors import ProviderError
from paygate.services import state_machine
from paygate.services.state_machine import GatewayStatus

from .base import BaseGateway, GatewayContext, GatewayResult, to_minor_units

logger = logging.getLogger(__name__)

SANDBOX_HOST = "https://dev.toyyibpay.com"
PRODUCTION_HOST = "https://toyyibpay.com"

# ToyyibPay limits bill names to 30 characters and descriptions to 100.
BILL_NAME_MAX = 30
BILL_DESCRIPTION_MAX = 100


class ToyyibpayGateway(BaseGateway):
    """Creates ToyyibPay bills and settles them from ``status_id`` callbacks."""

    name = "toyyibpay"
    provider_label = "ToyyibPay"
    required_fields = ("amount", "customer_name", "customer_email")
    status_map: ClassVar[Mapping[str, GatewayStatus]] = {
        "1": GatewayStatus.COMPLETED,
        "2": GatewayStatus.PENDING,
        "3": GatewayStatus.FAILED,
        "4": GatewayStatus.PENDING,
    }

    config: ToyyibpayConfig

    def __init__(
        self,
        config: ToyyibpayConfig,
        context: GatewayContext,
        *,
        http_client: httpx.Client | None = None,
    ) -> None:
        super().__init__(config, context, http_client=http_client)

    @property
    def host(self) -> str:
        return SANDBOX_HOST if self.config.sandbox else PRODUCTION_HOST

    @property
    def api_url(self) -> str:
        return f"{self.host}/index.php/api/"

    def checkout_url(self, bill_code: str) -> str:
        return f"{self.host}/{bill_code}"

    def create_payment(self, db: Session, data: Mapping[str, Any]) -> GatewayResult:
        self.validate_required_fields(data)
        payment = self.create_payment_record(db, data)

        description = data.get("description") or "Payment"
        bill = {
            "categoryCode": self.config.category_code or "",
            "billName": description[:BILL_NAME_MAX],
            "billDescription": description[:BILL_DESCRIPTION_MAX],
            "billPriceSetting": 1,
            "billPayorInfo": 1,
            "billAmount": to_minor_units(payment.amount),
            "billReturnUrl": self.success_url(payment),
            "billCallbackUrl": self.callback_url(),
            "billExternalReferenceNo": payment.reference_id,
            "billTo": data["customer_name"],
            "billEmail": data["customer_email"],
            "billPhone": data.get("customer_phone") or "",
        }

        try:
            response = self._post("createBill", bill)
        except ProviderError as exc:
            return GatewayResult.failure(str(exc), error=exc, payment=payment)

        bill_code = _first_row(response).get("BillCode")
        if not bill_code:
            logger.warning(
                "ToyyibPay did not return a bill code",
                extra={"payment_id": payment.id, "response": response},
            )
            message = "Failed to create ToyyibPay bill"
            provider_message = _first_row(response).get("msg")
            if provider_message:
                message = f"{message}: {provider_message}"
            return GatewayResult.failure(
                message,
                error=ProviderError(message, response=response),
                payment=payment,
                data=response,
            )

        payment_url = self.checkout_url(bill_code)
        payment = self.record_checkout(
            db, payment, payment_url=payment_url, transaction_id=bill_code, response=response
        )
        logger.info("ToyyibPay bill created", extra={"payment_id": payment.id, "bill_code": bill_code})
        return GatewayResult(
            success=True,
            payment_url=payment_url,
            transaction_id=bill_code,
            payment=payment,
        )

    def handle_callback(self, db: Session, data: Mapping[str, Any]) -> GatewayResult:
        raw_status = data.get("status_id", data.get("status"))
        reason = data.get("reason") or state_machine.DEFAULT_FAILURE_REASON
        return self.apply_provider_status(
            db,
            transaction_id=data.get("billcode"),
            raw_status=raw_status,
            data=data,
            failure_reason=reason,
            missing_id_message="Missing bill code",
        )

    def verify_payment(self, db: Session, transaction_id: str) -> GatewayResult:
        try:
            response = self._post("getBillTransactions", {"billCode": transaction_id})
        except ProviderError as exc:
            return GatewayResult.failure(str(exc), error=exc)

        transactions = [row for row in response if isinstance(row, Mapping)] if isinstance(response, list) else []
        if not transactions:
            return GatewayResult.failure("Transaction not found", data=response)

        # A bill can carry several attempts; a successful one wins.
        transaction = next(
            (row for row in transactions if str(row.get("billpaymentStatus")) == "1"),
            transactions[0],
        )
        gateway_status = self.normalize_status(transaction.get("billpaymentStatus"))
        outcome = state_machine.classify(gateway_status)

        payment = self.find_payment_by_transaction(db, transaction_id)
        if payment is not None:
            payment = state_machine.apply_outcome(
                db,
                payment,
                outcome,
                transaction_id=transaction_id,
                response=dict(transaction),
                reason=transaction.get("billpaymentStatusReason") or state_machine.DEFAULT_FAILURE_REASON,
            )

        return GatewayResult(
            success=True,
            status=payment.status.value if payment is not None else outcome.value,
            gateway_status=gateway_status.value,
            transaction_id=transaction_id,
            data=dict(transaction),
            payment=payment,
        )

    def _post(self, endpoint: str, payload: Mapping[str, Any]) -> Any:
        form = {**payload, "userSecretKey": self.config.secret_key or ""}
        return self.send_request("POST", f"{self.api_url}{endpoint}", data=form)


def _first_row(response: Any) -> Mapping[str, Any]:
    if isinstance(response, list) and response and isinstance(response[0], Mapping):
        return response[0]
    if isinstance(response, Mapping):
        return response
    return {}


__all__ = ["ToyyibpayGateway"]
