"""Dispute type and reason code tables.

The pairing of dispute types with reason codes is a fixed allow-list.
Keep it as data so it can be audited and tested on its own.
"""

from decimal import Decimal
from enum import Enum

from dispute_engine.core.exceptions import ValidationError


class DisputeType(str, Enum):
    """Category of cardholder complaint."""

    UNAUTHORIZED = "UNAUTHORIZED"
    DUPLICATE = "DUPLICATE"
    FRAUD = "FRAUD"
    BILLING_ERROR = "BILLING_ERROR"
    NON_RECEIPT = "NON_RECEIPT"
    QUALITY_ISSUES = "QUALITY_ISSUES"


class ReasonCode(str, Enum):
    """Issuer-side reason recorded on the dispute."""

    UNAUTHORIZED = "UNAUTHORIZED"
    FRAUD_CARD_ABSENT = "FRAUD_CARD_ABSENT"
    FRAUD_COUNTERFEIT = "FRAUD_COUNTERFEIT"
    DUPLICATE = "DUPLICATE"
    DUPLICATE_PROCESSING = "DUPLICATE_PROCESSING"
    AMOUNT_ERROR = "AMOUNT_ERROR"
    CANCELLED_RECURRING = "CANCELLED_RECURRING"
    CREDIT_NOT_PROCESSED = "CREDIT_NOT_PROCESSED"
    NON_RECEIPT = "NON_RECEIPT"
    QUALITY_ISSUES = "QUALITY_ISSUES"


VALID_REASON_CODES: dict[DisputeType, frozenset[ReasonCode]] = {
    DisputeType.UNAUTHORIZED: frozenset(
        {ReasonCode.UNAUTHORIZED, ReasonCode.FRAUD_CARD_ABSENT}
    ),
    DisputeType.FRAUD: frozenset(
        {ReasonCode.UNAUTHORIZED, ReasonCode.FRAUD_CARD_ABSENT, ReasonCode.FRAUD_COUNTERFEIT}
    ),
    DisputeType.DUPLICATE: frozenset(
        {ReasonCode.DUPLICATE, ReasonCode.DUPLICATE_PROCESSING}
    ),
    DisputeType.BILLING_ERROR: frozenset(
        {
            ReasonCode.AMOUNT_ERROR,
            ReasonCode.CANCELLED_RECURRING,
            ReasonCode.CREDIT_NOT_PROCESSED,
            ReasonCode.DUPLICATE_PROCESSING,
        }
    ),
    DisputeType.NON_RECEIPT: frozenset({ReasonCode.NON_RECEIPT}),
    DisputeType.QUALITY_ISSUES: frozenset({ReasonCode.QUALITY_ISSUES}),
}

# Fraud reasons serious enough to escalate on their own
HIGH_RISK_FRAUD_REASONS: frozenset[ReasonCode] = frozenset(
    {ReasonCode.FRAUD_CARD_ABSENT, ReasonCode.FRAUD_COUNTERFEIT}
)

# Types that always need supporting documents regardless of amount
DOCUMENTATION_REQUIRED_TYPES: frozenset[DisputeType] = frozenset(
    {DisputeType.FRAUD, DisputeType.QUALITY_ISSUES}
)

# Card network reason codes accepted when filing a chargeback
NETWORK_REASON_CODES: dict[str, str] = {
    "4808": "Authorization-related chargeback",
    "4834": "Duplicate processing",
    "4837": "No cardholder authorization",
    "4840": "Fraudulent processing",
    "4841": "Canceled recurring transaction",
    "4842": "Late presentment",
    "4853": "Cardholder dispute",
    "4855": "Goods/Services not provided",
}


def parse_dispute_type(value: str | DisputeType) -> DisputeType:
    """Convert a raw value to DisputeType or raise ValidationError."""
    try:
        return DisputeType(value)
    except ValueError as exc:
        raise ValidationError(f"Unknown dispute type: {value}") from exc


def parse_reason_code(value: str | ReasonCode) -> ReasonCode:
    """Convert a raw value to ReasonCode or raise ValidationError."""
    try:
        return ReasonCode(value)
    except ValueError as exc:
        raise ValidationError(f"Unknown reason code: {value}") from exc


def is_valid_combination(dispute_type: DisputeType, reason_code: ReasonCode) -> bool:
    """Return True if the reason code is allowed for the dispute type."""
    return reason_code in VALID_REASON_CODES.get(dispute_type, frozenset())


def assert_valid_combination(dispute_type: DisputeType, reason_code: ReasonCode) -> None:
    """Raise ValidationError when the pair is not on the allow-list."""
    if not is_valid_combination(dispute_type, reason_code):
        raise ValidationError("Invalid dispute type and reason code combination")


def requires_documentation(
    dispute_type: DisputeType,
    amount: Decimal,
    amount_threshold: Decimal,
) -> bool:
    """Documentation rule: certain types always, anything else from a threshold up."""
    return dispute_type in DOCUMENTATION_REQUIRED_TYPES or amount >= amount_threshold


def network_reason_description(network_reason_code: str) -> str:
    """Description for a card network reason code.

    Raises:
        ValidationError: If the code is not one the network accepts
    """
    description = NETWORK_REASON_CODES.get(network_reason_code)
    if description is None:
        raise ValidationError(f"Unknown network reason code: {network_reason_code}")
    return description
