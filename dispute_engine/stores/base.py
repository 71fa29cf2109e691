"""Store interfaces used by the dispute engine.

The engine only talks to these narrow contracts. Production code uses the
SQLAlchemy implementation; tests and local tooling use the in-memory one.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable
from types import TracebackType

from dispute_engine.domain.dispute_state import DisputeStatus
from dispute_engine.models.account import Account, CardTransaction
from dispute_engine.models.dispute import Dispute
from dispute_engine.models.ledger import DisputeLedgerEntry


class DisputeStore(ABC):
    """Durable dispute records keyed by dispute id."""

    @abstractmethod
    async def find_by_id(self, dispute_id: uuid.UUID) -> Dispute | None:
        """Return the dispute or None."""

    @abstractmethod
    async def find_by_status(self, status: DisputeStatus) -> list[Dispute]:
        """Return every dispute currently in the given status."""

    @abstractmethod
    async def find_by_account(self, account_id: str) -> list[Dispute]:
        """Return the account's disputes, newest first."""

    @abstractmethod
    async def find_open_by_transaction(self, transaction_id: str) -> Dispute | None:
        """Return a dispute on the transaction that is not yet closed."""

    @abstractmethod
    async def find_all(self) -> list[Dispute]:
        """Return every dispute."""

    @abstractmethod
    async def save(self, dispute: Dispute) -> None:
        """Stage an insert or a version-checked update."""


class AccountLedger(ABC):
    """Account balances owned by the card platform."""

    @abstractmethod
    async def find_by_id(self, account_id: str) -> Account | None:
        """Return the account without locking it."""

    @abstractmethod
    async def lock_for_update(self, account_id: str) -> Account | None:
        """Return the account under an exclusive lock held until commit/rollback.

        Returns None if the account does not exist.

        Raises:
            LockUnavailableError: If another transaction holds the lock
        """

    @abstractmethod
    async def save(self, account: Account) -> None:
        """Stage the balance change. The account must be locked."""


class TransactionStore(ABC):
    """Read-only access to posted card transactions."""

    @abstractmethod
    async def find_by_id(self, transaction_id: str) -> CardTransaction | None:
        """Return the transaction or None."""


class LedgerJournal(ABC):
    """Append-only provisional credit ledger."""

    @abstractmethod
    async def append(self, entry: DisputeLedgerEntry) -> None:
        """Stage a new ledger entry."""

    @abstractmethod
    async def find_by_dispute(self, dispute_id: uuid.UUID) -> list[DisputeLedgerEntry]:
        """Return the dispute's entries, oldest first."""


class UnitOfWork(ABC):
    """One atomic unit of store work.

    Leaving the ``async with`` block without ``commit()`` rolls back and
    releases every account lock taken inside it.
    """

    disputes: DisputeStore
    accounts: AccountLedger
    transactions: TransactionStore
    ledger: LedgerJournal

    async def __aenter__(self) -> UnitOfWork:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        try:
            await self.rollback()
        finally:
            await self.close()

    @abstractmethod
    async def commit(self) -> None:
        """Persist staged changes atomically.

        Raises:
            ConcurrentModificationError: If a dispute changed since it was read
        """

    @abstractmethod
    async def rollback(self) -> None:
        """Discard staged changes and release locks. No-op after commit."""

    async def close(self) -> None:
        """Release underlying resources."""


UnitOfWorkFactory = Callable[[], UnitOfWork]
