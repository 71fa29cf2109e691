"""Dispute lifecycle state machine."""

from enum import Enum

from dispute_engine.core.exceptions import IllegalStateError


class DisputeStatus(str, Enum):
    """Lifecycle position of a dispute."""

    OPENED = "OPENED"
    INVESTIGATING = "INVESTIGATING"
    CHARGEBACK_INITIATED = "CHARGEBACK_INITIATED"
    PENDING_MERCHANT_RESPONSE = "PENDING_MERCHANT_RESPONSE"
    REPRESENTMENT_REVIEW = "REPRESENTMENT_REVIEW"
    RESOLVED_MERCHANT = "RESOLVED_MERCHANT"
    RESOLVED_CUSTOMER = "RESOLVED_CUSTOMER"
    ESCALATED = "ESCALATED"
    OVERDUE = "OVERDUE"
    CLOSED = "CLOSED"


VERDICT_STATES: frozenset[DisputeStatus] = frozenset(
    {DisputeStatus.RESOLVED_MERCHANT, DisputeStatus.RESOLVED_CUSTOMER}
)

TERMINAL_STATES: frozenset[DisputeStatus] = frozenset({DisputeStatus.CLOSED})

# Anything not yet holding a verdict can still be escalated or go overdue
OPEN_STATES: frozenset[DisputeStatus] = frozenset(
    set(DisputeStatus) - VERDICT_STATES - TERMINAL_STATES
)

RESOLUTION_TARGETS: frozenset[DisputeStatus] = frozenset(
    {DisputeStatus.RESOLVED_CUSTOMER, DisputeStatus.RESOLVED_MERCHANT, DisputeStatus.CLOSED}
)

# States from which a chargeback may still be filed
PRE_CHARGEBACK_STATES: frozenset[DisputeStatus] = frozenset(
    {DisputeStatus.OPENED, DisputeStatus.INVESTIGATING, DisputeStatus.ESCALATED}
)

# States in which merchant or network answers are expected
AWAITING_RESPONSE_STATES: frozenset[DisputeStatus] = frozenset(
    {
        DisputeStatus.INVESTIGATING,
        DisputeStatus.CHARGEBACK_INITIATED,
        DisputeStatus.PENDING_MERCHANT_RESPONSE,
        DisputeStatus.REPRESENTMENT_REVIEW,
        DisputeStatus.ESCALATED,
    }
)

_VERDICTS = {DisputeStatus.RESOLVED_MERCHANT, DisputeStatus.RESOLVED_CUSTOMER, DisputeStatus.CLOSED}
_SIDE_STATES = {DisputeStatus.ESCALATED, DisputeStatus.OVERDUE}

DISPUTE_TRANSITIONS: dict[DisputeStatus, set[DisputeStatus]] = {
    DisputeStatus.OPENED: {
        DisputeStatus.INVESTIGATING,
        DisputeStatus.CHARGEBACK_INITIATED,
        *_VERDICTS,
        *_SIDE_STATES,
    },
    DisputeStatus.INVESTIGATING: {
        DisputeStatus.CHARGEBACK_INITIATED,
        DisputeStatus.PENDING_MERCHANT_RESPONSE,
        DisputeStatus.REPRESENTMENT_REVIEW,
        *_VERDICTS,
        *_SIDE_STATES,
    },
    DisputeStatus.CHARGEBACK_INITIATED: {
        DisputeStatus.PENDING_MERCHANT_RESPONSE,
        DisputeStatus.REPRESENTMENT_REVIEW,
        *_VERDICTS,
        *_SIDE_STATES,
    },
    DisputeStatus.PENDING_MERCHANT_RESPONSE: {
        DisputeStatus.REPRESENTMENT_REVIEW,
        *_VERDICTS,
        *_SIDE_STATES,
    },
    DisputeStatus.REPRESENTMENT_REVIEW: {
        *_VERDICTS,
        *_SIDE_STATES,
    },
    DisputeStatus.ESCALATED: {
        DisputeStatus.INVESTIGATING,
        DisputeStatus.CHARGEBACK_INITIATED,
        DisputeStatus.PENDING_MERCHANT_RESPONSE,
        DisputeStatus.REPRESENTMENT_REVIEW,
        DisputeStatus.OVERDUE,
        *_VERDICTS,
    },
    DisputeStatus.OVERDUE: {
        DisputeStatus.ESCALATED,
        *_VERDICTS,
    },
    DisputeStatus.RESOLVED_MERCHANT: {DisputeStatus.CLOSED},
    DisputeStatus.RESOLVED_CUSTOMER: {DisputeStatus.CLOSED},
    DisputeStatus.CLOSED: set(),
}


def can_transition(current_status: DisputeStatus, new_status: DisputeStatus) -> bool:
    """Return True if new_status is a legal successor of current_status."""
    return new_status in DISPUTE_TRANSITIONS.get(current_status, set())


def assert_dispute_transition(current_status: DisputeStatus, new_status: DisputeStatus) -> None:
    """Raise IllegalStateError unless the transition is on the lifecycle graph."""
    if not can_transition(current_status, new_status):
        raise IllegalStateError(
            f"Invalid dispute transition: {DisputeStatus(current_status).value} → "
            f"{DisputeStatus(new_status).value}"
        )


def is_resolved(status: DisputeStatus) -> bool:
    """Return True once a verdict is recorded or the dispute is closed."""
    return status in VERDICT_STATES or status in TERMINAL_STATES


def processing_stage(status: DisputeStatus) -> str:
    """Human-readable label for where the dispute sits in processing."""
    return _STAGE_LABELS.get(status, "Processing")


_STAGE_LABELS: dict[DisputeStatus, str] = {
    DisputeStatus.OPENED: "Initial Review",
    DisputeStatus.INVESTIGATING: "Under Investigation",
    DisputeStatus.CHARGEBACK_INITIATED: "Chargeback Filed",
    DisputeStatus.PENDING_MERCHANT_RESPONSE: "Awaiting Merchant Response",
    DisputeStatus.REPRESENTMENT_REVIEW: "Representment Review",
    DisputeStatus.ESCALATED: "Escalated Review",
    DisputeStatus.OVERDUE: "Past Regulatory Deadline",
    DisputeStatus.RESOLVED_MERCHANT: "Resolved",
    DisputeStatus.RESOLVED_CUSTOMER: "Resolved",
    DisputeStatus.CLOSED: "Closed",
}


# Normalized merchant verdict -> resulting status
MERCHANT_VERDICT_STATUS: dict[str, DisputeStatus] = {
    "ACCEPTED": DisputeStatus.RESOLVED_MERCHANT,
    "REPRESENTMENT": DisputeStatus.REPRESENTMENT_REVIEW,
    "REJECT": DisputeStatus.REPRESENTMENT_REVIEW,
    "REJECTED": DisputeStatus.REPRESENTMENT_REVIEW,
    "PARTIAL": DisputeStatus.REPRESENTMENT_REVIEW,
}

# Network responses may also just confirm the case is with the merchant
NETWORK_VERDICT_STATUS: dict[str, DisputeStatus] = {
    **MERCHANT_VERDICT_STATUS,
    "SUBMITTED": DisputeStatus.PENDING_MERCHANT_RESPONSE,
    "PENDING": DisputeStatus.PENDING_MERCHANT_RESPONSE,
}
