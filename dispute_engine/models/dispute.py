"""Dispute record model."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from dispute_engine.database import Base
from dispute_engine.domain.dispute_state import DisputeStatus
from dispute_engine.domain.reason_codes import DisputeType, ReasonCode


class Dispute(Base):
    """Cardholder dispute against a single card transaction.

    Mutated only through DisputeService. The ``version`` column is the
    optimistic concurrency token: a save against a stale version fails.
    """

    __tablename__ = "disputes"

    dispute_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )

    # References (immutable)
    transaction_id: Mapped[str] = mapped_column(
        String(16), ForeignKey("card_transactions.transaction_id"), nullable=False, index=True
    )
    account_id: Mapped[str] = mapped_column(
        String(11), ForeignKey("accounts.account_id"), nullable=False, index=True
    )
    merchant_id: Mapped[str] = mapped_column(String(20), nullable=False)

    # Classification
    dispute_type: Mapped[DisputeType] = mapped_column(
        Enum(DisputeType, native_enum=False, length=30), nullable=False
    )
    reason_code: Mapped[ReasonCode] = mapped_column(
        Enum(ReasonCode, native_enum=False, length=30), nullable=False
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)

    # Lifecycle
    status: Mapped[DisputeStatus] = mapped_column(
        Enum(DisputeStatus, native_enum=False, length=30),
        default=DisputeStatus.OPENED,
        nullable=False,
        index=True,
    )

    # Money
    dispute_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    provisional_credit_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0.00"), nullable=False
    )
    permanent_credit_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0.00"), nullable=False
    )

    # Documentation
    documentation_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    documentation_received_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    documentation_reference: Mapped[str | None] = mapped_column(String(100))

    # Chargeback
    chargeback_id: Mapped[str | None] = mapped_column(String(40))
    network_reason_code: Mapped[str | None] = mapped_column(String(4))

    # Escalation
    escalation_level: Mapped[str | None] = mapped_column(String(30))
    escalation_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Timeline
    created_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    regulatory_deadline: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    resolution_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    resolution_reason: Mapped[str | None] = mapped_column(Text)
    closed_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
