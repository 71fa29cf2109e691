"""SQLAlchemy implementation of the dispute engine stores."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from dispute_engine.core.exceptions import (
    ConcurrentModificationError,
    IllegalStateError,
    InfrastructureError,
    LockUnavailableError,
)
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

logger = logging.getLogger(__name__)

# PostgreSQL: could not obtain lock on row (NOWAIT)
LOCK_NOT_AVAILABLE = "55P03"


def _sqlstate(exc: DBAPIError) -> str | None:
    """Extract the SQLSTATE code from a wrapped driver error."""
    for candidate in (exc.orig, getattr(exc.orig, "__cause__", None)):
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return code
    return None


class SqlAlchemyDisputeStore(DisputeStore):
    """Dispute records in the ``disputes`` table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_id(self, dispute_id: uuid.UUID) -> Dispute | None:
        result = await self.session.execute(
            select(Dispute).where(Dispute.dispute_id == dispute_id)
        )
        return result.scalar_one_or_none()

    async def find_by_status(self, status: DisputeStatus) -> list[Dispute]:
        result = await self.session.execute(
            select(Dispute)
            .where(Dispute.status == status)
            .order_by(Dispute.created_date)
        )
        return list(result.scalars().all())

    async def find_by_account(self, account_id: str) -> list[Dispute]:
        result = await self.session.execute(
            select(Dispute)
            .where(Dispute.account_id == account_id)
            .order_by(Dispute.created_date.desc())
        )
        return list(result.scalars().all())

    async def find_open_by_transaction(self, transaction_id: str) -> Dispute | None:
        result = await self.session.execute(
            select(Dispute)
            .where(
                Dispute.transaction_id == transaction_id,
                Dispute.status != DisputeStatus.CLOSED,
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def find_all(self) -> list[Dispute]:
        result = await self.session.execute(select(Dispute).order_by(Dispute.created_date))
        return list(result.scalars().all())

    async def save(self, dispute: Dispute) -> None:
        # Attributes are unreadable once a flush has failed
        dispute_id = dispute.dispute_id
        self.session.add(dispute)
        try:
            await self.session.flush()
        except StaleDataError as exc:
            raise ConcurrentModificationError(str(dispute_id)) from exc


class SqlAlchemyAccountLedger(AccountLedger):
    """Account balances with row-level NOWAIT locking."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._locked: set[str] = set()

    async def find_by_id(self, account_id: str) -> Account | None:
        result = await self.session.execute(
            select(Account).where(Account.account_id == account_id)
        )
        return result.scalar_one_or_none()

    async def lock_for_update(self, account_id: str) -> Account | None:
        try:
            result = await self.session.execute(
                select(Account)
                .where(Account.account_id == account_id)
                .with_for_update(nowait=True)
                .execution_options(populate_existing=True)
            )
        except DBAPIError as exc:
            if _sqlstate(exc) == LOCK_NOT_AVAILABLE:
                logger.warning(f"Account {account_id} is locked by another transaction")
                raise LockUnavailableError(account_id) from exc
            raise
        account = result.scalar_one_or_none()
        if account is not None:
            self._locked.add(account_id)
        return account

    async def save(self, account: Account) -> None:
        if account.account_id not in self._locked:
            raise IllegalStateError(f"Account {account.account_id} must be locked before update")
        self.session.add(account)
        await self.session.flush()


class SqlAlchemyTransactionStore(TransactionStore):
    """Read-only card transactions."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_id(self, transaction_id: str) -> CardTransaction | None:
        result = await self.session.execute(
            select(CardTransaction).where(CardTransaction.transaction_id == transaction_id)
        )
        return result.scalar_one_or_none()


class SqlAlchemyLedgerJournal(LedgerJournal):
    """Append-only ``dispute_ledger`` table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def append(self, entry: DisputeLedgerEntry) -> None:
        self.session.add(entry)
        await self.session.flush()

    async def find_by_dispute(self, dispute_id: uuid.UUID) -> list[DisputeLedgerEntry]:
        result = await self.session.execute(
            select(DisputeLedgerEntry)
            .where(DisputeLedgerEntry.dispute_id == dispute_id)
            .order_by(DisputeLedgerEntry.created_at)
        )
        return list(result.scalars().all())


class SqlAlchemyUnitOfWork(UnitOfWork):
    """Unit of work backed by one AsyncSession and its transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None):
        if session_factory is None:
            from dispute_engine.database import AsyncSessionLocal

            session_factory = AsyncSessionLocal
        self._session_factory = session_factory
        self.session: AsyncSession | None = None

    async def __aenter__(self) -> SqlAlchemyUnitOfWork:
        self.session = self._session_factory()
        self.disputes = SqlAlchemyDisputeStore(self.session)
        self.accounts = SqlAlchemyAccountLedger(self.session)
        self.transactions = SqlAlchemyTransactionStore(self.session)
        self.ledger = SqlAlchemyLedgerJournal(self.session)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc is None and self.session is not None:
            # Rows read here are returned to callers; detach them before the
            # rollback so their loaded state is kept rather than expired
            self.session.expunge_all()
        try:
            await super().__aexit__(exc_type, exc, tb)
        except SQLAlchemyError as cleanup_error:
            # Never mask the error that ended the block
            if exc is None:
                raise InfrastructureError("database", str(cleanup_error)) from cleanup_error
            logger.error(f"Rollback failed after {exc_type.__name__}: {cleanup_error}")

        if isinstance(exc, SQLAlchemyError):
            raise InfrastructureError("database", str(exc)) from exc

    async def commit(self) -> None:
        try:
            await self.session.commit()
        except StaleDataError as exc:
            await self.session.rollback()
            raise ConcurrentModificationError() from exc
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise InfrastructureError("database", str(exc)) from exc

    async def rollback(self) -> None:
        if self.session is not None:
            await self.session.rollback()

    async def close(self) -> None:
        if self.session is not None:
            await self.session.close()
            self.session = None
