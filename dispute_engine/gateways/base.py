"""Base chargeback gateway interface.

All gateway adapters must implement this interface.
Business logic should NOT live in adapters - only network communication.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum


class ChargebackGatewayType(str, Enum):
    """Supported chargeback gateways."""

    NETWORK = "network"
    MANUAL = "manual"


class SettlementDecision(str, Enum):
    """Outcome a settlement is calculated for."""

    ACCEPT = "ACCEPT"
    REJECT = "REJECT"
    PARTIAL = "PARTIAL"


class MerchantResponseType(str, Enum):
    """Kinds of answer a merchant can send."""

    ACCEPT = "ACCEPT"
    REJECT = "REJECT"
    REPRESENTMENT = "REPRESENTMENT"
    PARTIAL_ACCEPT = "PARTIAL_ACCEPT"


@dataclass
class ChargebackResult:
    """Result of a chargeback submission."""

    success: bool
    chargeback_id: str | None = None
    error_message: str | None = None
    raw_response: dict | None = None


class ChargebackGateway(ABC):
    """Abstract base class for chargeback gateways."""

    @property
    @abstractmethod
    def gateway_type(self) -> ChargebackGatewayType:
        """Return the gateway type."""
        pass

    @abstractmethod
    async def initiate_chargeback(
        self,
        card_number: str,
        transaction_id: str,
        reason_code: str,
        amount: Decimal,
        merchant_id: str,
        narrative: str,
    ) -> ChargebackResult:
        """Submit a chargeback to the card network.

        Args:
            card_number: Primary account number of the disputed card
            transaction_id: Disputed transaction
            reason_code: Network reason code (e.g. 4855)
            amount: Disputed amount
            merchant_id: Merchant the chargeback is raised against
            narrative: Free-text explanation sent to the acquirer

        Returns:
            ChargebackResult with the network chargeback id
        """
        pass

    @abstractmethod
    async def update_status(self, chargeback_id: str, status: str, note: str) -> bool:
        """Report a local status change for a chargeback.

        Returns:
            True if the network accepted the update
        """
        pass

    @abstractmethod
    async def process_response(
        self,
        chargeback_id: str,
        raw_payload: dict,
        timestamp: datetime,
    ) -> bool:
        """Acknowledge a network response for a chargeback.

        Returns:
            True if the payload is genuine and belongs to the chargeback
        """
        pass

    @abstractmethod
    async def calculate_settlement(
        self,
        chargeback_id: str,
        amount: Decimal,
        decision: str,
        currency: str,
    ) -> Decimal:
        """Calculate the settlement amount for a decision.

        Returns:
            Decimal: Amount the network will settle
        """
        pass

    @abstractmethod
    async def handle_merchant_response(
        self,
        chargeback_id: str,
        response_type: str,
        raw_payload: dict,
        timestamp: datetime,
    ) -> str:
        """Interpret a merchant response.

        Returns:
            str: Normalized verdict such as ACCEPTED, REPRESENTMENT or REJECT
        """
        pass
