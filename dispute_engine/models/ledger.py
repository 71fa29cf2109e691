"""Provisional credit ledger.

Append-only record of every balance movement the dispute engine makes.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from dispute_engine.database import Base


class DisputeLedgerEntry(Base):
    """Single provisional credit movement for a dispute."""

    __tablename__ = "dispute_ledger"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Entry type
    entry_type: Mapped[str] = mapped_column(
        String(40), nullable=False
    )  # provisional_credit_issued, provisional_credit_reversed, provisional_credit_finalized

    # Direction: credit (to cardholder) or debit (back from cardholder)
    direction: Mapped[str] = mapped_column(String(10), nullable=False)

    # Amount (always positive, direction indicates flow)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)
    balance_after: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))

    # References
    dispute_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("disputes.dispute_id"), nullable=False, index=True
    )
    account_id: Mapped[str] = mapped_column(
        String(11), ForeignKey("accounts.account_id"), nullable=False
    )

    description: Mapped[str | None] = mapped_column(Text)

    # Timestamps
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
