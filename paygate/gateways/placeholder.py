"""Providers that are registered but not integrated yet."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy.orm import Session

from .base import BaseGateway, GatewayResult


class PlaceholderGateway(BaseGateway):
    """Records a pending payment and reports the provider as unavailable."""

    required_fields = ("amount", "customer_email")

    def create_payment(self, db: Session, data: Mapping[str, Any]) -> GatewayResult:
        self.validate_required_fields(data)
        payment = self.create_payment_record(db, data)
        return GatewayResult.failure(f"{self.provider_label} gateway is not yet implemented", payment=payment)

    def handle_callback(self, db: Session, data: Mapping[str, Any]) -> GatewayResult:
        return GatewayResult.failure(f"{self.provider_label} callback handling is not yet implemented")

    def verify_payment(self, db: Session, transaction_id: str) -> GatewayResult:
        return GatewayResult.failure(f"{self.provider_label} payment verification is not yet implemented")


class PaypalGateway(PlaceholderGateway):
    name = "paypal"
    provider_label = "PayPal"


class StripeGateway(PlaceholderGateway):
    name = "stripe"
    provider_label = "Stripe"


__all__ = ["PlaceholderGateway", "PaypalGateway", "StripeGateway"]
