"""Escalation policy domain logic.

Triggers (each one is sufficient on its own):
- TIMELINE_EXCEEDED: investigation window elapsed without a verdict
- HIGH_VALUE: provisional credit or disputed amount above the threshold
- FRAUD_INVESTIGATION: fraud dispute carrying a high-risk reason code
"""

from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum

from dispute_engine.domain.dispute_state import DisputeStatus, is_resolved
from dispute_engine.domain.reason_codes import HIGH_RISK_FRAUD_REASONS, DisputeType, ReasonCode


class EscalationTrigger(str, Enum):
    """Label recorded as the dispute's escalation level."""

    TIMELINE_EXCEEDED = "TIMELINE_EXCEEDED"
    HIGH_VALUE = "HIGH_VALUE"
    FRAUD_INVESTIGATION = "FRAUD_INVESTIGATION"


def timeline_exceeded(
    status: DisputeStatus,
    created_date: datetime,
    now: datetime,
    investigation_window_days: int,
) -> bool:
    """True when the dispute is unresolved past the investigation window."""
    if is_resolved(status):
        return False
    return now - created_date > timedelta(days=investigation_window_days)


def high_value(
    provisional_credit_amount: Decimal,
    dispute_amount: Decimal,
    threshold: Decimal,
) -> bool:
    """True when either the outstanding credit or the disputed amount exceeds threshold."""
    return abs(provisional_credit_amount) > threshold or dispute_amount > threshold


def fraud_investigation(dispute_type: DisputeType, reason_code: ReasonCode) -> bool:
    """True for fraud disputes with a high-risk reason code."""
    return dispute_type == DisputeType.FRAUD and reason_code in HIGH_RISK_FRAUD_REASONS


def applicable_triggers(
    *,
    status: DisputeStatus,
    dispute_type: DisputeType,
    reason_code: ReasonCode,
    created_date: datetime,
    now: datetime,
    provisional_credit_amount: Decimal,
    dispute_amount: Decimal,
    investigation_window_days: int,
    high_value_threshold: Decimal,
) -> list[EscalationTrigger]:
    """Return every trigger whose condition currently holds, in priority order."""
    triggers: list[EscalationTrigger] = []

    if timeline_exceeded(status, created_date, now, investigation_window_days):
        triggers.append(EscalationTrigger.TIMELINE_EXCEEDED)

    if high_value(provisional_credit_amount, dispute_amount, high_value_threshold):
        triggers.append(EscalationTrigger.HIGH_VALUE)

    if fraud_investigation(dispute_type, reason_code):
        triggers.append(EscalationTrigger.FRAUD_INVESTIGATION)

    return triggers
