"""Immutability enforcement for dispute records and the credit ledger."""

import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import event, inspect

from dispute_engine.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

# Never change after the dispute is created
IMMUTABLE_DISPUTE_FIELDS: tuple[str, ...] = (
    "dispute_id",
    "transaction_id",
    "account_id",
    "merchant_id",
    "dispute_type",
    "reason_code",
    "created_date",
    "regulatory_deadline",
)

# May be set once, never overwritten
WRITE_ONCE_DISPUTE_FIELDS: tuple[str, ...] = (
    "resolution_date",
    "resolution_reason",
)

_registered = False


class ImmutabilityViolationError(ValidationError):
    """Raised when attempting to modify immutable dispute data."""

    def __init__(self, model_name: str, operation: str, record_id: str, fields: list[str] | None = None):
        self.model_name = model_name
        self.operation = operation
        self.record_id = record_id
        self.fields = fields or []
        detail = f"Immutability violation: Cannot {operation} {model_name} record {record_id}"
        if self.fields:
            detail = f"{detail} (fields: {', '.join(self.fields)})"
        super().__init__(detail)


def _log_immutability_violation(model_name: str, operation: str, record_id: str) -> None:
    """Log immutability violation for audit purposes."""
    logger.error(
        f"IMMUTABILITY_VIOLATION: Attempted to {operation} {model_name} "
        f"record_id={record_id} at {datetime.now(UTC).isoformat()}"
    )


def find_immutable_changes(before: Mapping[str, Any], after: Mapping[str, Any]) -> list[str]:
    """Return dispute fields whose change is not allowed."""
    changed = [
        field for field in IMMUTABLE_DISPUTE_FIELDS
        if before.get(field) != after.get(field)
    ]
    changed.extend(
        field for field in WRITE_ONCE_DISPUTE_FIELDS
        if before.get(field) is not None and before.get(field) != after.get(field)
    )
    return changed


def assert_dispute_update_allowed(
    record_id: str,
    before: Mapping[str, Any],
    after: Mapping[str, Any],
) -> None:
    """Raise ImmutabilityViolationError if an update touches protected fields."""
    fields = find_immutable_changes(before, after)
    if fields:
        _log_immutability_violation("Dispute", "UPDATE", record_id)
        raise ImmutabilityViolationError("Dispute", "UPDATE", record_id, fields)


def _attribute_snapshots(target: Any, fields: tuple[str, ...]) -> tuple[dict[str, Any], dict[str, Any]]:
    """Pre- and post-flush values of the given attributes."""
    state = inspect(target)
    before: dict[str, Any] = {}
    after: dict[str, Any] = {}
    for field in fields:
        history = state.attrs[field].history
        current = getattr(target, field)
        before[field] = history.deleted[0] if history.deleted else current
        after[field] = current
    return before, after


def register_immutability_enforcement() -> None:
    """Register SQLAlchemy event listeners for immutability enforcement.

    Must be called after models are imported but before session use.
    Safe to call more than once.
    """
    global _registered
    if _registered:
        return

    from dispute_engine.models.dispute import Dispute
    from dispute_engine.models.ledger import DisputeLedgerEntry

    # ============ Dispute: protected fields ============

    @event.listens_for(Dispute, "before_update")
    def prevent_dispute_field_update(mapper, connection, target):
        """Reject updates to immutable or already-set dispute fields."""
        before, after = _attribute_snapshots(
            target, IMMUTABLE_DISPUTE_FIELDS + WRITE_ONCE_DISPUTE_FIELDS
        )
        assert_dispute_update_allowed(str(target.dispute_id), before, after)

    @event.listens_for(Dispute, "before_delete")
    def prevent_dispute_delete(mapper, connection, target):
        """Disputes are closed, never deleted."""
        _log_immutability_violation("Dispute", "DELETE", str(target.dispute_id))
        raise ImmutabilityViolationError("Dispute", "DELETE", str(target.dispute_id))

    # ============ DisputeLedgerEntry: Append-Only ============

    @event.listens_for(DisputeLedgerEntry, "before_update")
    def prevent_ledger_update(mapper, connection, target):
        """Prevent updates to DisputeLedgerEntry (append-only)."""
        _log_immutability_violation("DisputeLedgerEntry", "UPDATE", str(target.id))
        raise ImmutabilityViolationError("DisputeLedgerEntry", "UPDATE", str(target.id))

    @event.listens_for(DisputeLedgerEntry, "before_delete")
    def prevent_ledger_delete(mapper, connection, target):
        """Prevent deletion of DisputeLedgerEntry (append-only)."""
        _log_immutability_violation("DisputeLedgerEntry", "DELETE", str(target.id))
        raise ImmutabilityViolationError("DisputeLedgerEntry", "DELETE", str(target.id))

    _registered = True
    logger.info("Immutability enforcement registered for dispute records")
