"""Tests for the in-memory unit of work."""

import uuid
from decimal import Decimal

import pytest

from conftest import ACCOUNT_ID, START
from dispute_engine.core.exceptions import (
    ConcurrentModificationError,
    IllegalStateError,
    LockUnavailableError,
)
from dispute_engine.core.immutability import ImmutabilityViolationError
from dispute_engine.domain.dispute_state import DisputeStatus
from dispute_engine.domain.reason_codes import DisputeType, ReasonCode
from dispute_engine.models.dispute import Dispute


def _dispute(**overrides) -> Dispute:
    values = {
        "dispute_id": uuid.uuid4(),
        "transaction_id": "1001",
        "account_id": ACCOUNT_ID,
        "merchant_id": "MERCHANT001",
        "dispute_type": DisputeType.UNAUTHORIZED,
        "reason_code": ReasonCode.UNAUTHORIZED,
        "description": "Unrecognised charge",
        "status": DisputeStatus.OPENED,
        "dispute_amount": Decimal("250.00"),
        "provisional_credit_amount": Decimal("0.00"),
        "permanent_credit_amount": Decimal("0.00"),
        "documentation_required": False,
        "created_date": START,
        "regulatory_deadline": START,
    }
    values.update(overrides)
    return Dispute(**values)


class TestInMemoryUnitOfWork:
    async def test_uncommitted_work_is_discarded(self, database):
        dispute = _dispute()
        async with database.unit_of_work() as uow:
            await uow.disputes.save(dispute)
            assert await uow.disputes.find_by_id(dispute.dispute_id) is dispute

        assert database.get_dispute(dispute.dispute_id) is None

    async def test_commit_assigns_versions(self, database):
        dispute = _dispute()
        async with database.unit_of_work() as uow:
            await uow.disputes.save(dispute)
            await uow.commit()

        async with database.unit_of_work() as uow:
            loaded = await uow.disputes.find_by_id(dispute.dispute_id)
            loaded.status = DisputeStatus.INVESTIGATING
            await uow.disputes.save(loaded)
            await uow.commit()

        assert database.get_dispute(dispute.dispute_id).version == 2

    async def test_stale_version_rejected(self, database):
        dispute = _dispute()
        async with database.unit_of_work() as uow:
            await uow.disputes.save(dispute)
            await uow.commit()

        first = database.unit_of_work()
        second = database.unit_of_work()
        async with first, second:
            a = await first.disputes.find_by_id(dispute.dispute_id)
            b = await second.disputes.find_by_id(dispute.dispute_id)
            a.status = DisputeStatus.INVESTIGATING
            b.status = DisputeStatus.ESCALATED
            await first.disputes.save(a)
            await second.disputes.save(b)
            await first.commit()
            with pytest.raises(ConcurrentModificationError):
                await second.commit()

        assert database.get_dispute(dispute.dispute_id).status == DisputeStatus.INVESTIGATING

    async def test_immutable_fields_protected(self, database):
        dispute = _dispute()
        async with database.unit_of_work() as uow:
            await uow.disputes.save(dispute)
            await uow.commit()

        async with database.unit_of_work() as uow:
            loaded = await uow.disputes.find_by_id(dispute.dispute_id)
            loaded.merchant_id = "MERCHANT999"
            await uow.disputes.save(loaded)
            with pytest.raises(ImmutabilityViolationError):
                await uow.commit()

        assert database.get_dispute(dispute.dispute_id).merchant_id == "MERCHANT001"

    async def test_account_lock_is_exclusive(self, database):
        holder = database.unit_of_work()
        async with holder:
            account = await holder.accounts.lock_for_update(ACCOUNT_ID)
            assert account.current_balance == Decimal("1000.00")
            # Re-locking inside the same unit of work returns the held copy
            assert await holder.accounts.lock_for_update(ACCOUNT_ID) is account

            async with database.unit_of_work() as other:
                with pytest.raises(LockUnavailableError):
                    await other.accounts.lock_for_update(ACCOUNT_ID)

        async with database.unit_of_work() as uow:
            assert await uow.accounts.lock_for_update(ACCOUNT_ID) is not None

    async def test_unlocked_account_cannot_be_saved(self, database):
        async with database.unit_of_work() as uow:
            account = await uow.accounts.find_by_id(ACCOUNT_ID)
            account.current_balance = Decimal("1.00")
            with pytest.raises(IllegalStateError):
                await uow.accounts.save(account)

    async def test_missing_account_lock_returns_none(self, database):
        async with database.unit_of_work() as uow:
            assert await uow.accounts.lock_for_update("99999999999") is None
