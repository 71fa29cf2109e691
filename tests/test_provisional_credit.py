"""Tests for provisional credit calculation."""

from decimal import Decimal

from dispute_engine.domain.dispute_state import DisputeStatus
from dispute_engine.domain.provisional_credit import (
    calculate_provisional_amount,
    is_eligible_for_provisional_credit,
)
from dispute_engine.domain.reason_codes import ReasonCode

LIMITS = {
    "maximum": Decimal("5000.00"),
    "minimum": Decimal("10.00"),
    "partial_rate": Decimal("0.80"),
}


class TestCalculateProvisionalAmount:
    def test_unauthorized_gets_full_amount(self):
        amount = calculate_provisional_amount(
            Decimal("250.00"), Decimal("250.00"), ReasonCode.UNAUTHORIZED, **LIMITS
        )
        assert amount == Decimal("250.00")

    def test_capped_at_disputed_amount(self):
        amount = calculate_provisional_amount(
            Decimal("400.00"), Decimal("250.00"), ReasonCode.UNAUTHORIZED, **LIMITS
        )
        assert amount == Decimal("250.00")

    def test_capped_at_regulatory_maximum(self):
        amount = calculate_provisional_amount(
            Decimal("9000.00"), Decimal("9000.00"), ReasonCode.UNAUTHORIZED, **LIMITS
        )
        assert amount == Decimal("5000.00")

    def test_partial_credit_for_other_reasons(self):
        amount = calculate_provisional_amount(
            Decimal("80.00"), Decimal("80.00"), ReasonCode.AMOUNT_ERROR, **LIMITS
        )
        assert amount == Decimal("64.00")

    def test_partial_credit_rounds_half_up(self):
        amount = calculate_provisional_amount(
            Decimal("33.33"), Decimal("33.33"), ReasonCode.NON_RECEIPT, **LIMITS
        )
        # 33.33 * 0.80 = 26.664
        assert amount == Decimal("26.66")

        amount = calculate_provisional_amount(
            Decimal("10.05"), Decimal("100.00"), ReasonCode.DUPLICATE, **LIMITS
        )
        # 10.05 * 0.80 = 8.04, floored to the minimum
        assert amount == Decimal("10.00")

    def test_minimum_applies_last(self):
        amount = calculate_provisional_amount(
            Decimal("5.00"), Decimal("250.00"), ReasonCode.UNAUTHORIZED, **LIMITS
        )
        assert amount == Decimal("10.00")


class TestEligibility:
    def test_open_dispute_above_minimum_is_eligible(self):
        eligible, reason = is_eligible_for_provisional_credit(
            DisputeStatus.INVESTIGATING, Decimal("250.00"), Decimal("25.00")
        )
        assert eligible
        assert reason is None

    def test_resolved_dispute_not_eligible(self):
        eligible, reason = is_eligible_for_provisional_credit(
            DisputeStatus.RESOLVED_CUSTOMER, Decimal("250.00"), Decimal("25.00")
        )
        assert not eligible
        assert "RESOLVED_CUSTOMER" in reason

    def test_small_dispute_not_eligible(self):
        eligible, _ = is_eligible_for_provisional_credit(
            DisputeStatus.OPENED, Decimal("20.00"), Decimal("25.00")
        )
        assert not eligible
