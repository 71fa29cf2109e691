"""Dispute engine schema

Revision ID: 001_dispute_engine
Revises:
Create Date: 2026-10-18

Creates accounts, card transactions, disputes and the provisional credit ledger.
"""

from typing import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers
revision: str = "001_dispute_engine"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("account_id", sa.String(11), primary_key=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("current_balance", sa.Numeric(12, 2), nullable=False, server_default="0.00"),
        sa.Column("credit_limit", sa.Numeric(12, 2), nullable=False, server_default="0.00"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "card_transactions",
        sa.Column("transaction_id", sa.String(16), primary_key=True),
        sa.Column(
            "account_id",
            sa.String(11),
            sa.ForeignKey("accounts.account_id"),
            nullable=False,
        ),
        sa.Column("card_number", sa.String(19), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("merchant_id", sa.String(20), nullable=False),
        sa.Column("merchant_name", sa.String(100), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("transaction_timestamp", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_card_transactions_account_id", "card_transactions", ["account_id"])

    op.create_table(
        "disputes",
        sa.Column("dispute_id", sa.Uuid(), primary_key=True),
        sa.Column(
            "transaction_id",
            sa.String(16),
            sa.ForeignKey("card_transactions.transaction_id"),
            nullable=False,
        ),
        sa.Column(
            "account_id",
            sa.String(11),
            sa.ForeignKey("accounts.account_id"),
            nullable=False,
        ),
        sa.Column("merchant_id", sa.String(20), nullable=False),
        sa.Column("dispute_type", sa.String(30), nullable=False),
        sa.Column("reason_code", sa.String(30), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status", sa.String(30), nullable=False, server_default="OPENED"),
        sa.Column("dispute_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "provisional_credit_amount", sa.Numeric(12, 2), nullable=False, server_default="0.00"
        ),
        sa.Column(
            "permanent_credit_amount", sa.Numeric(12, 2), nullable=False, server_default="0.00"
        ),
        sa.Column(
            "documentation_required", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("documentation_received_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("documentation_reference", sa.String(100), nullable=True),
        sa.Column("chargeback_id", sa.String(40), nullable=True),
        sa.Column("network_reason_code", sa.String(4), nullable=True),
        sa.Column("escalation_level", sa.String(30), nullable=True),
        sa.Column("escalation_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("regulatory_deadline", sa.DateTime(timezone=True), nullable=False),
        sa.Column("resolution_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolution_reason", sa.Text(), nullable=True),
        sa.Column("closed_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
    )
    op.create_index("ix_disputes_transaction_id", "disputes", ["transaction_id"])
    op.create_index("ix_disputes_account_id", "disputes", ["account_id"])
    op.create_index("ix_disputes_status", "disputes", ["status"])

    op.create_table(
        "dispute_ledger",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("entry_type", sa.String(40), nullable=False),
        sa.Column("direction", sa.String(10), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("balance_after", sa.Numeric(12, 2), nullable=True),
        sa.Column(
            "dispute_id",
            sa.Uuid(),
            sa.ForeignKey("disputes.dispute_id"),
            nullable=False,
        ),
        sa.Column(
            "account_id",
            sa.String(11),
            sa.ForeignKey("accounts.account_id"),
            nullable=False,
        ),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("effective_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_dispute_ledger_dispute_id", "dispute_ledger", ["dispute_id"])


def downgrade() -> None:
    op.drop_table("dispute_ledger")
    op.drop_table("disputes")
    op.drop_table("card_transactions")
    op.drop_table("accounts")
