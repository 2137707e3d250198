"""Create payments table

Revision ID: 7c1e5a2f9b30
Revises:
Create Date: 2026-10-17 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "7c1e5a2f9b30"
down_revision = None
branch_labels = None
depends_on = None

payment_status = sa.Enum(
    "pending",
    "paid",
    "failed",
    "cancelled",
    "refunded",
    name="paymentstatus",
)


def upgrade() -> None:
    op.create_table(
        "payments",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("reference_id", sa.String(length=64), nullable=False),
        sa.Column("gateway", sa.String(length=50), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("status", payment_status, nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("customer_name", sa.String(length=255), nullable=True),
        sa.Column("customer_email", sa.String(length=255), nullable=True),
        sa.Column("customer_phone", sa.String(length=32), nullable=True),
        sa.Column("payment_url", sa.String(length=1024), nullable=True),
        sa.Column("gateway_transaction_id", sa.String(length=128), nullable=True),
        sa.Column("gateway_response", sa.JSON(), nullable=True),
        sa.Column("callback_data", sa.JSON(), nullable=True),
        sa.Column("proof_file_path", sa.String(length=1024), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("failed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("external_reference_id", sa.String(length=128), nullable=True),
        sa.Column("reference_type", sa.String(length=50), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_payment_positive_amount"),
        sa.UniqueConstraint("reference_id", name="uq_payments_reference_id"),
        sa.UniqueConstraint("gateway", "gateway_transaction_id", name="uq_payments_gateway_transaction"),
    )
    op.create_index("ix_payments_gateway", "payments", ["gateway"])
    op.create_index("ix_payments_status", "payments", ["status"])
    op.create_index("ix_payments_created_at", "payments", ["created_at"])
    op.create_index(
        "ix_payments_external_reference",
        "payments",
        ["external_reference_id", "reference_type"],
    )


def downgrade() -> None:
    op.drop_index("ix_payments_external_reference", table_name="payments")
    op.drop_index("ix_payments_created_at", table_name="payments")
    op.drop_index("ix_payments_status", table_name="payments")
    op.drop_index("ix_payments_gateway", table_name="payments")
    op.drop_table("payments")
    payment_status.drop(op.get_bind(), checkfirst=True)
