"""Card network chargeback gateway adapter (JSON over HTTPS)."""

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation

import httpx

from dispute_engine.config import settings
from dispute_engine.core.exceptions import ChargebackProcessingError
from dispute_engine.gateways.base import (
    ChargebackGateway,
    ChargebackGatewayType,
    ChargebackResult,
)
from dispute_engine.utils.cards import mask_card_number

logger = logging.getLogger(__name__)


class NetworkChargebackGateway(ChargebackGateway):
    """Chargeback gateway talking to the card network's dispute API."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = (base_url or settings.chargeback_network_url or "").rstrip("/")
        self.api_key = api_key or settings.chargeback_network_api_key
        self._http_client = client

    @property
    def gateway_type(self) -> ChargebackGatewayType:
        return ChargebackGatewayType.NETWORK

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazy-load HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=settings.chargeback_gateway_timeout_seconds)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _post(self, path: str, body: dict) -> dict:
        """POST to the network and return the JSON body.

        Raises:
            ChargebackProcessingError: If not configured or the network rejects the call
        """
        if not self.is_configured:
            raise ChargebackProcessingError("Chargeback network not configured")

        response = await self.http_client.post(
            f"{self.base_url}{path}",
            json=body,
            headers=self._headers(),
        )
        if response.status_code >= 400:
            raise ChargebackProcessingError(
                f"Network returned {response.status_code} for {path}"
            )
        return response.json()

    async def initiate_chargeback(
        self,
        card_number: str,
        transaction_id: str,
        reason_code: str,
        amount: Decimal,
        merchant_id: str,
        narrative: str,
    ) -> ChargebackResult:
        """Create a chargeback case on the network."""
        if not self.is_configured:
            return ChargebackResult(
                success=False,
                error_message="Chargeback network not configured",
            )

        try:
            response = await self.http_client.post(
                f"{self.base_url}/chargebacks",
                json={
                    "card_number": card_number,
                    "transaction_id": transaction_id,
                    "reason_code": reason_code,
                    "amount": str(amount),
                    "merchant_id": merchant_id,
                    "narrative": narrative,
                },
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            logger.error(
                f"Chargeback submission failed for card {mask_card_number(card_number)}: {e}"
            )
            return ChargebackResult(success=False, error_message=str(e))

        if response.status_code not in (200, 201):
            return ChargebackResult(
                success=False,
                error_message=f"API returned {response.status_code}",
                raw_response={"status_code": response.status_code},
            )

        data = response.json()
        chargeback_id = data.get("chargeback_id")
        if not chargeback_id:
            return ChargebackResult(
                success=False,
                error_message="Network response missing chargeback_id",
                raw_response=data,
            )

        return ChargebackResult(success=True, chargeback_id=chargeback_id, raw_response=data)

    async def update_status(self, chargeback_id: str, status: str, note: str) -> bool:
        data = await self._post(
            f"/chargebacks/{chargeback_id}/status",
            {"status": status, "note": note},
        )
        return bool(data.get("accepted"))

    async def process_response(
        self,
        chargeback_id: str,
        raw_payload: dict,
        timestamp: datetime,
    ) -> bool:
        data = await self._post(
            f"/chargebacks/{chargeback_id}/responses/verify",
            {"payload": raw_payload, "timestamp": timestamp.isoformat()},
        )
        return bool(data.get("valid"))

    async def calculate_settlement(
        self,
        chargeback_id: str,
        amount: Decimal,
        decision: str,
        currency: str,
    ) -> Decimal:
        data = await self._post(
            f"/chargebacks/{chargeback_id}/settlement",
            {"amount": str(amount), "decision": decision, "currency": currency},
        )
        try:
            return Decimal(str(data["settlement_amount"]))
        except (KeyError, InvalidOperation) as exc:
            raise ChargebackProcessingError("Network returned an invalid settlement amount") from exc

    async def handle_merchant_response(
        self,
        chargeback_id: str,
        response_type: str,
        raw_payload: dict,
        timestamp: datetime,
    ) -> str:
        data = await self._post(
            f"/chargebacks/{chargeback_id}/merchant-responses",
            {
                "response_type": response_type,
                "payload": raw_payload,
                "timestamp": timestamp.isoformat(),
            },
        )
        return str(data.get("verdict", "")).upper()
