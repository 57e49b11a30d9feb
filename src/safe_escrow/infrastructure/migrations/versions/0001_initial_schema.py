"""Initial schema: users, products, transactions, safe_transactions, sms_logs.

Revision ID: 0001
Revises:
Create Date: 2026-10-17
"""

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=True),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="USER"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "products",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "transactions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("product_id", sa.Uuid(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("buyer_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("seller_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("reseller_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="IN_PROGRESS"),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('PENDING', 'IN_PROGRESS', 'COMPLETED', 'CANCELLED')",
            name="ck_transaction_valid_status",
        ),
    )
    op.create_index("idx_transaction_product", "transactions", ["product_id"])

    op.create_table(
        "safe_transactions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "transaction_id",
            sa.Uuid(),
            sa.ForeignKey("transactions.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column("deposit_amount", sa.Numeric(14, 0), nullable=False),
        sa.Column("deposit_confirmed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deposit_confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("shipping_confirmed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("shipping_confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("tracking_number", sa.String(50), nullable=True),
        sa.Column("courier", sa.String(50), nullable=True),
        sa.Column("delivery_confirmed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("settlement_status", sa.String(30), nullable=False, server_default="WAITING"),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "settlement_status IN ('WAITING', 'READY_FOR_SETTLEMENT', 'SETTLED')",
            name="ck_safe_transaction_settlement_status",
        ),
        sa.CheckConstraint("deposit_amount > 0", name="ck_safe_transaction_positive_deposit"),
    )
    op.create_index(
        "idx_safe_transaction_settlement", "safe_transactions", ["settlement_status"]
    )
    op.create_index("idx_safe_transaction_created_at", "safe_transactions", ["created_at"])

    op.create_table(
        "sms_logs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "safe_transaction_id",
            sa.Uuid(),
            sa.ForeignKey("safe_transactions.id"),
            nullable=True,
        ),
        sa.Column("phone_number", sa.String(20), nullable=False),
        sa.Column("message_type", sa.String(30), nullable=False),
        sa.Column("message_content", sa.Text(), nullable=False),
        sa.Column("is_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_sms_log_safe_transaction", "sms_logs", ["safe_transaction_id"])


def downgrade() -> None:
    op.drop_index("idx_sms_log_safe_transaction", table_name="sms_logs")
    op.drop_table("sms_logs")
    op.drop_index("idx_safe_transaction_created_at", table_name="safe_transactions")
    op.drop_index("idx_safe_transaction_settlement", table_name="safe_transactions")
    op.drop_table("safe_transactions")
    op.drop_index("idx_transaction_product", table_name="transactions")
    op.drop_table("transactions")
    op.drop_table("products")
    op.drop_table("users")
