"""Database models."""

from dispute_engine.models.account import Account, CardTransaction
from dispute_engine.models.dispute import Dispute
from dispute_engine.models.ledger import DisputeLedgerEntry

__all__ = [
    "Account",
    "CardTransaction",
    "Dispute",
    "DisputeLedgerEntry",
]
