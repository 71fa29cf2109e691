"""Shared fixtures for the dispute engine tests."""

import asyncio
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from dispute_engine.config import Settings
from dispute_engine.core.exceptions import ChargebackProcessingError
from dispute_engine.gateways.base import (
    ChargebackGateway,
    ChargebackGatewayType,
    ChargebackResult,
)
from dispute_engine.models.account import Account, CardTransaction
from dispute_engine.services.dispute_service import DisputeService
from dispute_engine.stores.memory import InMemoryDatabase

ACCOUNT_ID = "00000001001"
OTHER_ACCOUNT_ID = "00000001002"
CARD_NUMBER = "4111111111111111"
START = datetime(2026, 3, 2, 9, 30, tzinfo=UTC)


class FakeClock:
    """Settable clock for deadline and escalation tests."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class ScriptedGateway(ChargebackGateway):
    """In-process chargeback gateway with scripted answers."""

    def __init__(self):
        self.fail_next_chargeback: str | None = None
        self.chargeback_delay = 0.0
        self.acknowledge_responses = True
        self.merchant_verdict: str | None = None
        self.settlement_amount: Decimal | None = None
        self.accept_status_updates = True
        self.status_update_error: str | None = None
        self.filed: list[dict] = []
        self.status_updates: list[tuple[str, str, str]] = []
        self._counter = 0

    @property
    def gateway_type(self) -> ChargebackGatewayType:
        return ChargebackGatewayType.MANUAL

    async def initiate_chargeback(
        self,
        card_number,
        transaction_id,
        reason_code,
        amount,
        merchant_id,
        narrative,
    ) -> ChargebackResult:
        if self.chargeback_delay:
            await asyncio.sleep(self.chargeback_delay)
        if self.fail_next_chargeback:
            message, self.fail_next_chargeback = self.fail_next_chargeback, None
            return ChargebackResult(success=False, error_message=message)

        self._counter += 1
        self.filed.append(
            {
                "card_number": card_number,
                "transaction_id": transaction_id,
                "reason_code": reason_code,
                "amount": amount,
                "merchant_id": merchant_id,
                "narrative": narrative,
            }
        )
        return ChargebackResult(success=True, chargeback_id=f"CB{self._counter:010d}")

    async def update_status(self, chargeback_id, status, note) -> bool:
        if self.status_update_error:
            raise ChargebackProcessingError(self.status_update_error)
        self.status_updates.append((chargeback_id, status, note))
        return self.accept_status_updates

    async def process_response(self, chargeback_id, raw_payload, timestamp) -> bool:
        return self.acknowledge_responses

    async def calculate_settlement(self, chargeback_id, amount, decision, currency) -> Decimal:
        if self.settlement_amount is not None:
            return self.settlement_amount
        return amount

    async def handle_merchant_response(self, chargeback_id, response_type, raw_payload, timestamp) -> str:
        if self.merchant_verdict is not None:
            return self.merchant_verdict
        return {"ACCEPT": "ACCEPTED", "REPRESENTMENT": "REPRESENTMENT"}.get(response_type, "REJECT")


def seed_database(database: InMemoryDatabase) -> None:
    database.add_account(
        Account(
            account_id=ACCOUNT_ID,
            status="active",
            current_balance=Decimal("1000.00"),
            credit_limit=Decimal("5000.00"),
        )
    )
    database.add_account(
        Account(
            account_id=OTHER_ACCOUNT_ID,
            status="active",
            current_balance=Decimal("0.00"),
            credit_limit=Decimal("2000.00"),
        )
    )

    transactions = [
        ("1001", ACCOUNT_ID, Decimal("250.00"), "Online electronics order"),
        ("1002", ACCOUNT_ID, Decimal("1500.00"), "Furniture purchase"),
        ("1003", ACCOUNT_ID, Decimal("80.00"), "Streaming subscription"),
        ("1004", ACCOUNT_ID, Decimal("20.00"), "Coffee shop"),
        ("1005", ACCOUNT_ID, Decimal("600.00"), "Airline ticket"),
        ("2001", OTHER_ACCOUNT_ID, Decimal("120.00"), "Grocery store"),
    ]
    for transaction_id, account_id, amount, description in transactions:
        database.add_transaction(
            CardTransaction(
                transaction_id=transaction_id,
                account_id=account_id,
                card_number=CARD_NUMBER,
                amount=amount,
                merchant_id="MERCHANT001",
                merchant_name="Example Merchant",
                description=description,
                transaction_timestamp=START - timedelta(days=3),
            )
        )

    database.add_transaction(
        CardTransaction(
            transaction_id="1999",
            account_id=ACCOUNT_ID,
            card_number="4111111111111112",
            amount=Decimal("75.00"),
            merchant_id="MERCHANT002",
            transaction_timestamp=START - timedelta(days=1),
        )
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def database() -> InMemoryDatabase:
    db = InMemoryDatabase()
    seed_database(db)
    return db


@pytest.fixture
def gateway() -> ScriptedGateway:
    return ScriptedGateway()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def service(database, gateway, test_settings, clock) -> DisputeService:
    return DisputeService(
        uow_factory=database.unit_of_work,
        gateway=gateway,
        config=test_settings,
        clock=clock,
    )


def balance(database: InMemoryDatabase, account_id: str = ACCOUNT_ID) -> Decimal:
    return database.get_account(account_id).current_balance
