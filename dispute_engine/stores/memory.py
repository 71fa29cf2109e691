"""In-memory implementation of the dispute engine stores.

Rows are kept as plain dicts of column values and handed out as fresh
model instances, so callers never share objects across units of work.
Account locks are held in a registry until the owning unit of work
commits or rolls back; dispute saves are compare-and-swap on ``version``.
"""

from __future__ import annotations

import uuid
from typing import Any, TypeVar

from sqlalchemy import inspect

from dispute_engine.core.exceptions import (
    ConcurrentModificationError,
    IllegalStateError,
    LockUnavailableError,
)
from dispute_engine.core.immutability import assert_dispute_update_allowed
from dispute_engine.domain.dispute_state import DisputeStatus
from dispute_engine.models.account import Account, CardTransaction
from dispute_engine.models.dispute import Dispute
from dispute_engine.models.ledger import DisputeLedgerEntry
from dispute_engine.stores.base import (
    AccountLedger,
    DisputeStore,
    LedgerJournal,
    TransactionStore,
    UnitOfWork,
)

ModelT = TypeVar("ModelT", Account, CardTransaction, Dispute, DisputeLedgerEntry)


def to_row(instance: Any) -> dict[str, Any]:
    """Column values of a model instance."""
    return {attr.key: getattr(instance, attr.key) for attr in inspect(type(instance)).column_attrs}


def from_row(model: type[ModelT], row: dict[str, Any]) -> ModelT:
    """Fresh model instance built from stored column values."""
    return model(**row)


class InMemoryDatabase:
    """Shared committed state for in-memory units of work."""

    def __init__(self) -> None:
        self.disputes: dict[uuid.UUID, dict[str, Any]] = {}
        self.accounts: dict[str, dict[str, Any]] = {}
        self.transactions: dict[str, dict[str, Any]] = {}
        self.ledger: list[dict[str, Any]] = []
        self.locked_accounts: set[str] = set()

    def add_account(self, account: Account) -> None:
        """Seed an account record."""
        self.accounts[account.account_id] = to_row(account)

    def add_transaction(self, transaction: CardTransaction) -> None:
        """Seed a card transaction record."""
        self.transactions[transaction.transaction_id] = to_row(transaction)

    def get_account(self, account_id: str) -> Account | None:
        row = self.accounts.get(account_id)
        return from_row(Account, row) if row else None

    def get_dispute(self, dispute_id: uuid.UUID) -> Dispute | None:
        row = self.disputes.get(dispute_id)
        return from_row(Dispute, row) if row else None

    def ledger_entries(self, dispute_id: uuid.UUID | None = None) -> list[DisputeLedgerEntry]:
        return [
            from_row(DisputeLedgerEntry, row)
            for row in self.ledger
            if dispute_id is None or row["dispute_id"] == dispute_id
        ]

    def unit_of_work(self) -> InMemoryUnitOfWork:
        """Factory suitable for DisputeService(uow_factory=...)."""
        return InMemoryUnitOfWork(self)


class InMemoryDisputeStore(DisputeStore):

    def __init__(self, uow: InMemoryUnitOfWork):
        self._uow = uow
        self._db = uow.database

    def _visible(self) -> list[Dispute]:
        rows = {
            dispute_id: from_row(Dispute, row)
            for dispute_id, row in self._db.disputes.items()
        }
        rows.update(self._uow.staged_disputes)
        return list(rows.values())

    async def find_by_id(self, dispute_id: uuid.UUID) -> Dispute | None:
        staged = self._uow.staged_disputes.get(dispute_id)
        if staged is not None:
            return staged
        return self._db.get_dispute(dispute_id)

    async def find_by_status(self, status: DisputeStatus) -> list[Dispute]:
        matches = [d for d in self._visible() if d.status == status]
        return sorted(matches, key=lambda d: d.created_date)

    async def find_by_account(self, account_id: str) -> list[Dispute]:
        matches = [d for d in self._visible() if d.account_id == account_id]
        return sorted(matches, key=lambda d: d.created_date, reverse=True)

    async def find_open_by_transaction(self, transaction_id: str) -> Dispute | None:
        for dispute in self._visible():
            if dispute.transaction_id == transaction_id and dispute.status != DisputeStatus.CLOSED:
                return dispute
        return None

    async def find_all(self) -> list[Dispute]:
        return sorted(self._visible(), key=lambda d: d.created_date)

    async def save(self, dispute: Dispute) -> None:
        if dispute.dispute_id is None:
            dispute.dispute_id = uuid.uuid4()
        self._uow.staged_disputes[dispute.dispute_id] = dispute


class InMemoryAccountLedger(AccountLedger):

    def __init__(self, uow: InMemoryUnitOfWork):
        self._uow = uow
        self._db = uow.database

    async def find_by_id(self, account_id: str) -> Account | None:
        locked = self._uow.locked_accounts.get(account_id)
        if locked is not None:
            return locked
        return self._db.get_account(account_id)

    async def lock_for_update(self, account_id: str) -> Account | None:
        held = self._uow.locked_accounts.get(account_id)
        if held is not None:
            return held
        if account_id not in self._db.accounts:
            return None
        if account_id in self._db.locked_accounts:
            raise LockUnavailableError(account_id)

        self._db.locked_accounts.add(account_id)
        account = self._db.get_account(account_id)
        self._uow.locked_accounts[account_id] = account
        return account

    async def save(self, account: Account) -> None:
        if account.account_id not in self._uow.locked_accounts:
            raise IllegalStateError(f"Account {account.account_id} must be locked before update")
        self._uow.locked_accounts[account.account_id] = account
        self._uow.dirty_accounts.add(account.account_id)


class InMemoryTransactionStore(TransactionStore):

    def __init__(self, uow: InMemoryUnitOfWork):
        self._db = uow.database

    async def find_by_id(self, transaction_id: str) -> CardTransaction | None:
        row = self._db.transactions.get(transaction_id)
        return from_row(CardTransaction, row) if row else None


class InMemoryLedgerJournal(LedgerJournal):

    def __init__(self, uow: InMemoryUnitOfWork):
        self._uow = uow
        self._db = uow.database

    async def append(self, entry: DisputeLedgerEntry) -> None:
        if entry.id is None:
            entry.id = uuid.uuid4()
        self._uow.staged_entries.append(entry)

    async def find_by_dispute(self, dispute_id: uuid.UUID) -> list[DisputeLedgerEntry]:
        staged = [e for e in self._uow.staged_entries if e.dispute_id == dispute_id]
        return self._db.ledger_entries(dispute_id) + staged


class InMemoryUnitOfWork(UnitOfWork):
    """Unit of work over an InMemoryDatabase."""

    def __init__(self, database: InMemoryDatabase):
        self.database = database
        self.staged_disputes: dict[uuid.UUID, Dispute] = {}
        self.staged_entries: list[DisputeLedgerEntry] = []
        self.locked_accounts: dict[str, Account] = {}
        self.dirty_accounts: set[str] = set()
        self.disputes = InMemoryDisputeStore(self)
        self.accounts = InMemoryAccountLedger(self)
        self.transactions = InMemoryTransactionStore(self)
        self.ledger = InMemoryLedgerJournal(self)

    def _check_dispute_versions(self) -> None:
        for dispute_id, dispute in self.staged_disputes.items():
            stored = self.database.disputes.get(dispute_id)
            if stored is None:
                continue
            if dispute.version != stored["version"]:
                raise ConcurrentModificationError(str(dispute_id))
            assert_dispute_update_allowed(str(dispute_id), stored, to_row(dispute))

    async def commit(self) -> None:
        # Validate everything before applying anything
        self._check_dispute_versions()

        for dispute_id, dispute in self.staged_disputes.items():
            stored = self.database.disputes.get(dispute_id)
            dispute.version = 1 if stored is None else stored["version"] + 1
            self.database.disputes[dispute_id] = to_row(dispute)

        for account_id in self.dirty_accounts:
            self.database.accounts[account_id] = to_row(self.locked_accounts[account_id])

        self.database.ledger.extend(to_row(entry) for entry in self.staged_entries)

        self._reset()

    async def rollback(self) -> None:
        self._reset()

    def _reset(self) -> None:
        for account_id in self.locked_accounts:
            self.database.locked_accounts.discard(account_id)
        self.staged_disputes.clear()
        self.staged_entries.clear()
        self.locked_accounts.clear()
        self.dirty_accounts.clear()
