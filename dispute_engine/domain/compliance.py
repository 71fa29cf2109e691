"""Regulatory compliance aggregation."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from dispute_engine.domain.dispute_state import DisputeStatus, is_resolved

RATE_PRECISION = Decimal("0.0001")


@dataclass(frozen=True)
class DisputeTiming:
    """The fields compliance looks at for one dispute."""

    status: DisputeStatus
    regulatory_deadline: datetime
    resolution_date: datetime | None


@dataclass(frozen=True)
class ComplianceMetrics:
    """Aggregated on-time resolution figures."""

    total_disputes: int
    on_time_resolutions: int
    overdue_count: int
    pending_count: int
    compliance_rate: Decimal


def is_overdue(timing: DisputeTiming, now: datetime) -> bool:
    """Overdue if flagged, resolved late, or still open past the deadline."""
    if timing.status == DisputeStatus.OVERDUE:
        return True
    if timing.resolution_date is not None:
        return timing.resolution_date > timing.regulatory_deadline
    return not is_resolved(timing.status) and now > timing.regulatory_deadline


def is_resolved_on_time(timing: DisputeTiming) -> bool:
    """Resolved no later than the regulatory deadline."""
    return (
        timing.status != DisputeStatus.OVERDUE
        and timing.resolution_date is not None
        and timing.resolution_date <= timing.regulatory_deadline
    )


def summarize_compliance(timings: Iterable[DisputeTiming], now: datetime) -> ComplianceMetrics:
    """Count on-time and overdue disputes and compute the compliance rate.

    The rate is on-time resolutions over all disputes considered, and is
    zero when there are no disputes at all.
    """
    total = on_time = overdue = 0
    for timing in timings:
        total += 1
        if is_overdue(timing, now):
            overdue += 1
        elif is_resolved_on_time(timing):
            on_time += 1

    if total == 0:
        rate = Decimal("0")
    else:
        rate = (Decimal(on_time) / Decimal(total)).quantize(RATE_PRECISION, rounding=ROUND_HALF_UP)

    return ComplianceMetrics(
        total_disputes=total,
        on_time_resolutions=on_time,
        overdue_count=overdue,
        pending_count=total - on_time - overdue,
        compliance_rate=rate,
    )


@dataclass(frozen=True)
class TimelineReport:
    """Where a single dispute stands against its regulatory clock."""

    days_elapsed: int
    days_remaining: int
    violations: list[str]
    risk_level: str


# Fewer days than this left before the deadline is medium risk
MEDIUM_RISK_DAYS_REMAINING = 10


def assess_timeline(
    timing: DisputeTiming,
    created_date: datetime,
    now: datetime,
    investigation_overrun: bool,
) -> TimelineReport:
    """Days elapsed/remaining, violations and a LOW/MEDIUM/HIGH risk level."""
    days_elapsed = (now - created_date).days
    days_remaining = (timing.regulatory_deadline - now).days

    violations: list[str] = []
    if is_overdue(timing, now):
        violations.append("Regulatory deadline exceeded")
    if investigation_overrun:
        violations.append("Investigation window exceeded")

    if violations:
        risk_level = "HIGH"
    elif not is_resolved(timing.status) and days_remaining < MEDIUM_RISK_DAYS_REMAINING:
        risk_level = "MEDIUM"
    else:
        risk_level = "LOW"

    return TimelineReport(
        days_elapsed=days_elapsed,
        days_remaining=days_remaining,
        violations=violations,
        risk_level=risk_level,
    )
