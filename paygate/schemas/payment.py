"""Schemas for payment entities."""
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from paygate.models.payment import PaymentStatus


class ProductLine(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    price: Decimal = Field(gt=Decimal("0"))
    quantity: int = Field(default=1, ge=1)
    discount: Decimal | None = Field(default=None, ge=Decimal("0"))


class PaymentCreate(BaseModel):
    gateway: str | None = Field(default=None, max_length=50)
    amount: Decimal = Field(gt=Decimal("0"), max_digits=18, decimal_places=2)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    description: str | None = None
    customer_name: str | None = Field(default=None, max_length=255)
    customer_email: EmailStr | None = None
    customer_phone: str | None = Field(default=None, max_length=32)
    reference_id: str | None = Field(default=None, max_length=64)
    external_reference_id: str | None = Field(default=None, max_length=128)
    reference_type: str | None = Field(default=None, max_length=50)
    products: list[ProductLine] | None = None
    discount: Decimal | None = Field(default=None, ge=Decimal("0"))
    metadata: dict[str, Any] | None = None

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, value: str | None) -> str | None:
        return value.upper() if value else value

    @field_validator("gateway")
    @classmethod
    def _lower_gateway(cls, value: str | None) -> str | None:
        return value.strip().lower() if value else value


class PaymentRead(BaseModel):
    id: str
    reference_id: str
    gateway: str
    amount: Decimal
    currency: str
    formatted_amount: str
    status: PaymentStatus
    description: str | None
    customer_name: str | None
    customer_email: str | None
    customer_phone: str | None
    payment_url: str | None
    gateway_transaction_id: str | None
    proof_file_path: str | None
    is_manual_payment: bool
    paid_at: datetime | None
    failed_at: datetime | None
    metadata: dict[str, Any] | None = Field(default=None, validation_alias="metadata_")
    external_reference_id: str | None
    reference_type: str | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentResultRead(BaseModel):
    """Outcome of a create, callback, verify or review call."""

    success: bool
    message: str | None = None
    payment_url: str | None = None
    transaction_id: str | None = None
    status: str | None = None
    gateway_status: str | None = None
    requires_upload: bool | None = None
    data: Any = None
    payment: PaymentRead | None = None

    @classmethod
    def from_result(cls, result: Any) -> "PaymentResultRead":
        payment = PaymentRead.model_validate(result.payment) if result.payment is not None else None
        return cls(**result.to_dict(), payment=payment)


class RejectionPayload(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class GatewayRead(BaseModel):
    name: str
    display_name: str
