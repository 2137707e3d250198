"""ORM models package."""
from .base import Base
from .payment import (
    MANUAL_GATEWAY,
    TERMINAL_STATUSES,
    Payment,
    PaymentStatus,
    generate_reference_id,
)

__all__ = [
    "Base",
    "MANUAL_GATEWAY",
    "TERMINAL_STATUSES",
    "Payment",
    "PaymentStatus",
    "generate_reference_id",
]
