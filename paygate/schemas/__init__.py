"""Schema package exports."""
from .payment import (
    GatewayRead,
    PaymentCreate,
    PaymentRead,
    PaymentResultRead,
    ProductLine,
    RejectionPayload,
)

__all__ = [
    "GatewayRead",
    "PaymentCreate",
    "PaymentRead",
    "PaymentResultRead",
    "ProductLine",
    "RejectionPayload",
]
