"""Provisional credit calculation rules.

Rules, applied in order:
1. Never more than the disputed amount
2. Never more than the regulatory maximum
3. Partial credit for anything other than unauthorized use
4. Never less than the minimum credit
"""

from decimal import ROUND_HALF_UP, Decimal

from dispute_engine.domain.dispute_state import DisputeStatus, is_resolved
from dispute_engine.domain.reason_codes import ReasonCode
from dispute_engine.utils.money import CENTS

# Reasons that earn the full credit
FULL_CREDIT_REASONS: frozenset[ReasonCode] = frozenset({ReasonCode.UNAUTHORIZED})


def is_eligible_for_provisional_credit(
    status: DisputeStatus,
    dispute_amount: Decimal,
    eligibility_minimum: Decimal,
) -> tuple[bool, str | None]:
    """Check if a dispute may receive provisional credit.

    Returns:
        Tuple of (eligible, reason if not eligible)
    """
    if is_resolved(status):
        return False, f"Dispute is already {DisputeStatus(status).value}"

    if dispute_amount < eligibility_minimum:
        return False, f"Disputed amount is below the {eligibility_minimum} minimum"

    return True, None


def calculate_provisional_amount(
    requested_amount: Decimal,
    dispute_amount: Decimal,
    reason_code: ReasonCode,
    *,
    maximum: Decimal,
    minimum: Decimal,
    partial_rate: Decimal,
) -> Decimal:
    """Calculate the provisional credit for a request.

    Args:
        requested_amount: Amount asked for by the cardholder
        dispute_amount: Amount of the disputed transaction
        reason_code: Dispute reason code
        maximum: Regulatory cap on provisional credit
        minimum: Floor applied after all other rules
        partial_rate: Fraction granted for partial-credit reasons

    Returns:
        Decimal: Credit amount rounded half-up to cents
    """
    amount = min(requested_amount, dispute_amount)
    amount = min(amount, maximum)

    if reason_code not in FULL_CREDIT_REASONS:
        amount = amount * partial_rate

    amount = max(amount, minimum)

    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)
