"""SQLAlchemy store tests against SQLite (aiosqlite)."""

from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from conftest import ACCOUNT_ID, CARD_NUMBER, START
from dispute_engine.core.exceptions import ConcurrentModificationError
from dispute_engine.core.immutability import (
    ImmutabilityViolationError,
    register_immutability_enforcement,
)
from dispute_engine.database import Base
from dispute_engine.domain.dispute_state import DisputeStatus
from dispute_engine.gateways.manual import ManualChargebackGateway
from dispute_engine.models.account import Account, CardTransaction
from dispute_engine.models.dispute import Dispute
from dispute_engine.models.ledger import DisputeLedgerEntry
from dispute_engine.services.dispute_service import DisputeService
from dispute_engine.stores.sqlalchemy_store import SqlAlchemyUnitOfWork


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'disputes.db'}")
    register_immutability_enforcement()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with factory() as session:
        session.add(
            Account(
                account_id=ACCOUNT_ID,
                status="active",
                current_balance=Decimal("1000.00"),
                credit_limit=Decimal("5000.00"),
            )
        )
        await session.flush()
        session.add(
            CardTransaction(
                transaction_id="1001",
                account_id=ACCOUNT_ID,
                card_number=CARD_NUMBER,
                amount=Decimal("250.00"),
                merchant_id="MERCHANT001",
                transaction_timestamp=START,
            )
        )
        await session.commit()

    yield factory
    await engine.dispose()


@pytest.fixture
def sql_service(session_factory, test_settings, clock) -> DisputeService:
    return DisputeService(
        uow_factory=lambda: SqlAlchemyUnitOfWork(session_factory),
        gateway=ManualChargebackGateway(processing_fee=Decimal("15.00")),
        config=test_settings,
        clock=clock,
    )


async def _balance(session_factory) -> Decimal:
    async with session_factory() as session:
        account = await session.get(Account, ACCOUNT_ID)
        return account.current_balance


class TestSqlAlchemyLifecycle:
    async def test_credit_and_merchant_verdict(self, sql_service, session_factory):
        dispute = await sql_service.create_dispute(
            "1001", "UNAUTHORIZED", "UNAUTHORIZED", "Card was in my wallet"
        )
        assert dispute.version == 1

        await sql_service.issue_provisional_credit(dispute.dispute_id, Decimal("250.00"))
        assert await _balance(session_factory) == Decimal("1250.00")

        await sql_service.start_investigation(dispute.dispute_id)
        await sql_service.process_chargeback(dispute.dispute_id, "4837")
        await sql_service.handle_merchant_response(dispute.dispute_id, "ACCEPT", {})

        stored = await sql_service.get_dispute(dispute.dispute_id)
        assert stored.status == DisputeStatus.RESOLVED_MERCHANT
        assert stored.provisional_credit_amount == Decimal("0.00")
        assert stored.chargeback_id.startswith("CB")
        assert await _balance(session_factory) == Decimal("1000.00")

        async with session_factory() as session:
            result = await session.execute(
                select(DisputeLedgerEntry.entry_type).order_by(DisputeLedgerEntry.created_at)
            )
            assert sorted(result.scalars().all()) == [
                "provisional_credit_issued",
                "provisional_credit_reversed",
            ]

    async def test_settlement_through_manual_gateway(self, sql_service):
        dispute = await sql_service.create_dispute(
            "1001", "UNAUTHORIZED", "UNAUTHORIZED", "Card was in my wallet"
        )
        await sql_service.process_chargeback(dispute.dispute_id, "4837")

        amount = await sql_service.calculate_chargeback_settlement(dispute.dispute_id, "ACCEPT")

        assert amount == Decimal("235.00")

    async def test_account_queries(self, sql_service):
        await sql_service.create_dispute("1001", "UNAUTHORIZED", "UNAUTHORIZED", "Card was in my wallet")
        disputes = await sql_service.get_disputes_by_account(ACCOUNT_ID)
        assert len(disputes) == 1
        assert disputes[0].transaction_id == "1001"


class TestSqlAlchemyReadPaths:
    async def test_regulatory_deadline(self, sql_service, clock):
        dispute = await sql_service.create_dispute(
            "1001", "UNAUTHORIZED", "UNAUTHORIZED", "Card was in my wallet"
        )
        assert await sql_service.validate_regulatory(dispute.dispute_id) is True

        clock.advance(days=61)
        assert await sql_service.validate_regulatory(dispute.dispute_id) is False

    async def test_provisional_quote_and_timeline(self, sql_service, clock):
        dispute = await sql_service.create_dispute(
            "1001", "UNAUTHORIZED", "UNAUTHORIZED", "Card was in my wallet"
        )

        quote = await sql_service.calculate_provisional_amount(dispute.dispute_id, "250.00")
        assert quote == Decimal("250.00")

        clock.advance(days=5)
        timeline = await sql_service.validate_dispute_timeline(dispute.dispute_id)
        assert timeline.days_elapsed == 5
        assert timeline.days_remaining == 55

    async def test_compliance_metrics(self, sql_service):
        dispute = await sql_service.create_dispute(
            "1001", "UNAUTHORIZED", "UNAUTHORIZED", "Card was in my wallet"
        )
        await sql_service.resolve_dispute(dispute.dispute_id, "RESOLVED_CUSTOMER", "Refunded")

        metrics = await sql_service.calculate_compliance_metrics()

        assert metrics.total_disputes == 1
        assert metrics.on_time_resolutions == 1
        assert metrics.compliance_rate == Decimal("1")

    async def test_overdue_sweep(self, sql_service, clock):
        dispute = await sql_service.create_dispute(
            "1001", "UNAUTHORIZED", "UNAUTHORIZED", "Card was in my wallet"
        )
        clock.advance(days=61)

        assert await sql_service.sweep_overdue() == 1
        stored = await sql_service.get_dispute(dispute.dispute_id)
        assert stored.status == DisputeStatus.OVERDUE
        assert stored.version == 2

    async def test_escalation_sweep(self, sql_service, clock):
        dispute = await sql_service.create_dispute(
            "1001", "UNAUTHORIZED", "UNAUTHORIZED", "Card was in my wallet"
        )
        clock.advance(days=31)

        assert await sql_service.escalate_stale_disputes() == 1
        stored = await sql_service.get_dispute(dispute.dispute_id)
        assert stored.status == DisputeStatus.ESCALATED
        assert stored.escalation_level == "TIMELINE_EXCEEDED"


class TestSqlAlchemyGuards:
    async def test_stale_write_raises_concurrent_modification(self, sql_service, session_factory):
        dispute = await sql_service.create_dispute(
            "1001", "UNAUTHORIZED", "UNAUTHORIZED", "Card was in my wallet"
        )

        first = SqlAlchemyUnitOfWork(session_factory)
        second = SqlAlchemyUnitOfWork(session_factory)
        async with first:
            a = await first.disputes.find_by_id(dispute.dispute_id)
            async with second:
                b = await second.disputes.find_by_id(dispute.dispute_id)

                a.status = DisputeStatus.INVESTIGATING
                await first.disputes.save(a)
                await first.commit()

                b.status = DisputeStatus.ESCALATED
                with pytest.raises(ConcurrentModificationError) as exc_info:
                    await second.disputes.save(b)
                assert exc_info.value.status_code == 409
                assert exc_info.value.dispute_id == str(dispute.dispute_id)

        stored = await sql_service.get_dispute(dispute.dispute_id)
        assert stored.status == DisputeStatus.INVESTIGATING
        assert stored.version == 2

    async def test_immutable_fields_rejected_on_flush(self, sql_service, session_factory):
        dispute = await sql_service.create_dispute(
            "1001", "UNAUTHORIZED", "UNAUTHORIZED", "Card was in my wallet"
        )

        async with session_factory() as session:
            loaded = await session.get(Dispute, dispute.dispute_id)
            loaded.merchant_id = "MERCHANT999"
            with pytest.raises(ImmutabilityViolationError):
                await session.flush()

    async def test_ledger_is_append_only(self, sql_service, session_factory):
        dispute = await sql_service.create_dispute(
            "1001", "UNAUTHORIZED", "UNAUTHORIZED", "Card was in my wallet"
        )
        await sql_service.issue_provisional_credit(dispute.dispute_id, Decimal("100.00"))

        async with session_factory() as session:
            result = await session.execute(select(DisputeLedgerEntry))
            entry = result.scalar_one()
            entry.amount = Decimal("1.00")
            with pytest.raises(ImmutabilityViolationError):
                await session.flush()
