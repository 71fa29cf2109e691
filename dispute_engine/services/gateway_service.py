"""Chargeback gateway service.

Routes chargeback operations to the configured gateway adapter and bounds
every call with a timeout. No business logic here - only gateway coordination.
"""

import asyncio
import logging
from collections.abc import Awaitable
from datetime import datetime
from decimal import Decimal
from typing import TypeVar

import httpx

from dispute_engine.config import settings
from dispute_engine.core.exceptions import ChargebackProcessingError
from dispute_engine.gateways.base import (
    ChargebackGateway,
    ChargebackGatewayType,
    ChargebackResult,
)
from dispute_engine.gateways.manual import ManualChargebackGateway
from dispute_engine.gateways.network import NetworkChargebackGateway

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _is_production() -> bool:
    """Check if running in production environment."""
    return settings.environment == "production"


def _assert_production_for_real_gateway(gateway_type: ChargebackGatewayType) -> None:
    """Block real network chargebacks in non-production environments.

    Raises:
        RuntimeError: If attempting real gateway operation outside production
    """
    if gateway_type == ChargebackGatewayType.NETWORK and not _is_production():
        raise RuntimeError(
            f"Cannot execute real {gateway_type.value} chargeback operations "
            f"in {settings.environment} environment. Set ENV=production or use the manual gateway."
        )


class ChargebackGatewayService(ChargebackGateway):
    """Timeout-bounded facade over the active chargeback gateway."""

    def __init__(
        self,
        gateway: ChargebackGateway | None = None,
        timeout_seconds: float | None = None,
    ):
        self._gateway = gateway
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.chargeback_gateway_timeout_seconds
        )

    def _get_gateway(self) -> ChargebackGateway:
        """Get or create the configured gateway instance."""
        if self._gateway is None:
            try:
                gateway_type = ChargebackGatewayType(settings.chargeback_gateway)
            except ValueError:
                gateway_type = ChargebackGatewayType.MANUAL

            if gateway_type == ChargebackGatewayType.NETWORK:
                # Environment safety: block real gateway in non-production
                _assert_production_for_real_gateway(gateway_type)
                self._gateway = NetworkChargebackGateway()
            else:
                self._gateway = ManualChargebackGateway()

        return self._gateway

    @property
    def gateway_type(self) -> ChargebackGatewayType:
        return self._get_gateway().gateway_type

    async def _bounded(self, operation: str, call: Awaitable[T]) -> T:
        """Await a gateway call, converting timeouts and transport errors."""
        try:
            return await asyncio.wait_for(call, timeout=self.timeout_seconds)
        except TimeoutError as exc:
            logger.error(f"Chargeback gateway timed out after {self.timeout_seconds}s during {operation}")
            raise ChargebackProcessingError(f"Chargeback gateway timed out during {operation}") from exc
        except httpx.HTTPError as exc:
            logger.error(f"Chargeback gateway transport error during {operation}: {exc}")
            raise ChargebackProcessingError(f"Chargeback gateway error during {operation}: {exc}") from exc

    async def initiate_chargeback(
        self,
        card_number: str,
        transaction_id: str,
        reason_code: str,
        amount: Decimal,
        merchant_id: str,
        narrative: str,
    ) -> ChargebackResult:
        """Submit a chargeback via the active gateway."""
        gateway = self._get_gateway()
        return await self._bounded(
            "initiate_chargeback",
            gateway.initiate_chargeback(
                card_number=card_number,
                transaction_id=transaction_id,
                reason_code=reason_code,
                amount=amount,
                merchant_id=merchant_id,
                narrative=narrative,
            ),
        )

    async def update_status(self, chargeback_id: str, status: str, note: str) -> bool:
        gateway = self._get_gateway()
        return await self._bounded("update_status", gateway.update_status(chargeback_id, status, note))

    async def process_response(
        self,
        chargeback_id: str,
        raw_payload: dict,
        timestamp: datetime,
    ) -> bool:
        gateway = self._get_gateway()
        return await self._bounded(
            "process_response",
            gateway.process_response(chargeback_id, raw_payload, timestamp),
        )

    async def calculate_settlement(
        self,
        chargeback_id: str,
        amount: Decimal,
        decision: str,
        currency: str,
    ) -> Decimal:
        gateway = self._get_gateway()
        return await self._bounded(
            "calculate_settlement",
            gateway.calculate_settlement(chargeback_id, amount, decision, currency),
        )

    async def handle_merchant_response(
        self,
        chargeback_id: str,
        response_type: str,
        raw_payload: dict,
        timestamp: datetime,
    ) -> str:
        gateway = self._get_gateway()
        return await self._bounded(
            "handle_merchant_response",
            gateway.handle_merchant_response(chargeback_id, response_type, raw_payload, timestamp),
        )


# Singleton instance
gateway_service = ChargebackGatewayService()
