"""Manual chargeback gateway for offline processing.

Used outside production and by back-office staff who file chargebacks
through the acquirer portal. Ids are generated locally and verdicts are
derived from the response type alone.
"""

import logging
import secrets
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from dispute_engine.config import settings
from dispute_engine.gateways.base import (
    ChargebackGateway,
    ChargebackGatewayType,
    ChargebackResult,
    MerchantResponseType,
    SettlementDecision,
)
from dispute_engine.utils.cards import mask_card_number

logger = logging.getLogger(__name__)

CHARGEBACK_ID_PREFIX = "CB"

# Merchant response type -> normalized verdict
MERCHANT_VERDICTS: dict[MerchantResponseType, str] = {
    MerchantResponseType.ACCEPT: "ACCEPTED",
    MerchantResponseType.REJECT: "REJECT",
    MerchantResponseType.REPRESENTMENT: "REPRESENTMENT",
    MerchantResponseType.PARTIAL_ACCEPT: "PARTIAL",
}


def generate_chargeback_id() -> str:
    """Generate a chargeback id like CB4829301755."""
    return CHARGEBACK_ID_PREFIX + "".join(str(secrets.randbelow(10)) for _ in range(10))


class ManualChargebackGateway(ChargebackGateway):
    """Chargeback gateway that records everything locally."""

    def __init__(self, processing_fee: Decimal | None = None):
        self.processing_fee = (
            processing_fee if processing_fee is not None else settings.chargeback_processing_fee
        )
        self.statuses: dict[str, str] = {}

    @property
    def gateway_type(self) -> ChargebackGatewayType:
        return ChargebackGatewayType.MANUAL

    async def initiate_chargeback(
        self,
        card_number: str,
        transaction_id: str,
        reason_code: str,
        amount: Decimal,
        merchant_id: str,
        narrative: str,
    ) -> ChargebackResult:
        """Record a manual chargeback (always succeeds)."""
        chargeback_id = generate_chargeback_id()
        self.statuses[chargeback_id] = "SUBMITTED"
        logger.info(
            f"Manual chargeback {chargeback_id} recorded for card {mask_card_number(card_number)} "
            f"transaction {transaction_id} reason {reason_code} amount {amount}"
        )
        return ChargebackResult(
            success=True,
            chargeback_id=chargeback_id,
            raw_response={
                "type": "manual_chargeback",
                "status": "SUBMITTED",
                "merchant_id": merchant_id,
                "narrative": narrative,
                "note": "File with the acquirer portal and attach this reference",
            },
        )

    async def update_status(self, chargeback_id: str, status: str, note: str) -> bool:
        """Track the status locally."""
        self.statuses[chargeback_id] = status
        return True

    async def process_response(
        self,
        chargeback_id: str,
        raw_payload: dict,
        timestamp: datetime,
    ) -> bool:
        """Accept payloads that reference the chargeback they claim to answer."""
        referenced = raw_payload.get("chargeback_id")
        return referenced is None or referenced == chargeback_id

    async def calculate_settlement(
        self,
        chargeback_id: str,
        amount: Decimal,
        decision: str,
        currency: str,
    ) -> Decimal:
        """Amount less the processing fee; half for partial; nothing on reject."""
        decision = SettlementDecision(decision)
        if decision == SettlementDecision.REJECT:
            return Decimal("0.00")

        base = amount
        if decision == SettlementDecision.PARTIAL:
            base = amount / 2

        settled = max(base - self.processing_fee, Decimal("0"))
        return settled.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    async def handle_merchant_response(
        self,
        chargeback_id: str,
        response_type: str,
        raw_payload: dict,
        timestamp: datetime,
    ) -> str:
        """Map the response type to a verdict.

        A rejection that carries evidence is treated as representment.
        """
        try:
            response = MerchantResponseType(response_type)
        except ValueError:
            return str(response_type).upper()

        if response == MerchantResponseType.REJECT and raw_payload.get("evidence"):
            return "REPRESENTMENT"
        return MERCHANT_VERDICTS[response]
