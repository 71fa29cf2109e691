"""Card account and transaction models.

Both records are owned by the card platform; the dispute engine reads
transactions and only ever changes an account balance through
provisional credit.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from dispute_engine.database import Base


class Account(Base):
    """Cardholder account with its running balance."""

    __tablename__ = "accounts"

    account_id: Mapped[str] = mapped_column(String(11), primary_key=True)
    status: Mapped[str] = mapped_column(
        String(20), default="active", nullable=False
    )  # active, closed, suspended

    current_balance: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0.00"), nullable=False
    )
    credit_limit: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0.00"), nullable=False
    )

    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class CardTransaction(Base):
    """Posted card transaction that a cardholder may dispute."""

    __tablename__ = "card_transactions"

    transaction_id: Mapped[str] = mapped_column(String(16), primary_key=True)
    account_id: Mapped[str] = mapped_column(
        String(11), ForeignKey("accounts.account_id"), nullable=False, index=True
    )
    card_number: Mapped[str] = mapped_column(String(19), nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    merchant_id: Mapped[str] = mapped_column(String(20), nullable=False)
    merchant_name: Mapped[str | None] = mapped_column(String(100))
    description: Mapped[str | None] = mapped_column(Text)

    transaction_timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
