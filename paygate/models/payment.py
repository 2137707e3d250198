"""Payment model definitions."""
import enum
import secrets
import time
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Enum as SqlEnum,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base

MANUAL_GATEWAY = "manual"


class PaymentStatus(str, enum.Enum):
    """Possible statuses for a payment."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


TERMINAL_STATUSES = frozenset(
    {PaymentStatus.PAID, PaymentStatus.FAILED, PaymentStatus.CANCELLED, PaymentStatus.REFUNDED}
)


def generate_reference_id() -> str:
    """Return a shareable reference such as ``PAY-3F9A0C1B7E2D-1735689600``."""

    return f"PAY-{secrets.token_hex(6).upper()}-{int(time.time())}"


class Payment(Base):
    """A single payment attempt owned by one gateway."""

    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payment_positive_amount"),
        UniqueConstraint("reference_id", name="uq_payments_reference_id"),
        UniqueConstraint("gateway", "gateway_transaction_id", name="uq_payments_gateway_transaction"),
        Index("ix_payments_status", "status"),
        Index("ix_payments_created_at", "created_at"),
        Index("ix_payments_external_reference", "external_reference_id", "reference_type"),
    )

    reference_id: Mapped[str] = mapped_column(String(64), nullable=False, default=generate_reference_id)
    gateway: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    status: Mapped[PaymentStatus] = mapped_column(
        SqlEnum(PaymentStatus, values_callable=lambda enum_cls: [member.value for member in enum_cls]),
        nullable=False,
        default=PaymentStatus.PENDING,
    )

    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    customer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    customer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    customer_phone: Mapped[str | None] = mapped_column(String(32), nullable=True)

    payment_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    gateway_transaction_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    gateway_response: Mapped[dict | list | None] = mapped_column(JSON, nullable=True)
    callback_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    proof_file_path: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    failed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)

    external_reference_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    reference_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    @property
    def is_manual_payment(self) -> bool:
        return self.gateway == MANUAL_GATEWAY

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def formatted_amount(self) -> str:
        return f"{Decimal(self.amount):,.2f} {self.currency}"

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"<Payment {self.reference_id} {self.gateway} {self.status.value}>"
