"""Dispute and chargeback lifecycle service.

Every mutating operation runs inside a single unit of work: the dispute
record, the account balance and the credit ledger entry commit together
or not at all. Account balances are only touched under an exclusive
lock taken through ``AccountLedger.lock_for_update``; dispute saves are
version-checked so two writers cannot interleave on the same dispute.
"""

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta
from decimal import Decimal

from dispute_engine.config import Settings, settings
from dispute_engine.core.exceptions import (
    ChargebackProcessingError,
    ConcurrentModificationError,
    IllegalStateError,
    NotFoundError,
    ValidationError,
)
from dispute_engine.domain.compliance import (
    ComplianceMetrics,
    DisputeTiming,
    TimelineReport,
    assess_timeline,
    summarize_compliance,
)
from dispute_engine.domain.dispute_state import (
    AWAITING_RESPONSE_STATES,
    MERCHANT_VERDICT_STATUS,
    NETWORK_VERDICT_STATUS,
    OPEN_STATES,
    PRE_CHARGEBACK_STATES,
    RESOLUTION_TARGETS,
    DisputeStatus,
    assert_dispute_transition,
    is_resolved,
)
from dispute_engine.domain.escalation_policy import (
    EscalationTrigger,
    applicable_triggers,
    timeline_exceeded,
)
from dispute_engine.domain.provisional_credit import (
    calculate_provisional_amount,
    is_eligible_for_provisional_credit,
)
from dispute_engine.domain.reason_codes import (
    assert_valid_combination,
    network_reason_description,
    parse_dispute_type,
    parse_reason_code,
    requires_documentation,
)
from dispute_engine.gateways.base import ChargebackGateway, MerchantResponseType, SettlementDecision
from dispute_engine.models.dispute import Dispute
from dispute_engine.models.ledger import DisputeLedgerEntry
from dispute_engine.services.gateway_service import gateway_service
from dispute_engine.stores.base import UnitOfWork, UnitOfWorkFactory
from dispute_engine.utils.cards import mask_card_number, validate_card_number
from dispute_engine.utils.dates import ensure_utc, utcnow
from dispute_engine.utils.money import ZERO, is_cent_precise, to_money

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 500


def _default_uow_factory() -> UnitOfWork:
    from dispute_engine.stores.sqlalchemy_store import SqlAlchemyUnitOfWork

    return SqlAlchemyUnitOfWork()


def _require_text(value: str | None, field: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{field} is required")
    return value.strip()


def _parse_amount(amount: Decimal | int | str) -> Decimal:
    """Validate a caller-supplied credit amount without rounding it."""
    if isinstance(amount, float):
        raise ValidationError("Monetary amounts must be exact decimals, not floats")
    value = to_money(amount)
    if not is_cent_precise(Decimal(amount)):
        raise ValidationError("Amount must have at most two decimal places")
    if value <= ZERO:
        raise ValidationError("Amount must be greater than zero")
    return value


class DisputeService:
    """Service for the dispute and chargeback lifecycle."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory | None = None,
        gateway: ChargebackGateway | None = None,
        config: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._uow_factory = uow_factory or _default_uow_factory
        self.gateway = gateway or gateway_service
        self.settings = config or settings
        self._clock = clock or utcnow

    def _now(self) -> datetime:
        return ensure_utc(self._clock())

    # ==================== CREATION & QUERIES ====================

    async def create_dispute(
        self,
        transaction_id: str,
        dispute_type: str,
        reason_code: str,
        description: str,
    ) -> Dispute:
        """Open a dispute against a posted card transaction.

        Raises:
            ValidationError: Missing fields or type/reason pair not allowed
            NotFoundError: Transaction does not exist
            IllegalStateError: Transaction already has an open dispute
        """
        transaction_id = _require_text(transaction_id, "Transaction ID")
        description = _require_text(description, "Description")
        if len(description) > MAX_DESCRIPTION_LENGTH:
            raise ValidationError(f"Description must not exceed {MAX_DESCRIPTION_LENGTH} characters")

        parsed_type = parse_dispute_type(dispute_type)
        parsed_reason = parse_reason_code(reason_code)
        assert_valid_combination(parsed_type, parsed_reason)

        async with self._uow_factory() as uow:
            transaction = await uow.transactions.find_by_id(transaction_id)
            if transaction is None:
                raise NotFoundError("Transaction", transaction_id)

            existing = await uow.disputes.find_open_by_transaction(transaction_id)
            if existing is not None:
                raise IllegalStateError(
                    f"Transaction {transaction_id} is already under dispute "
                    f"({DisputeStatus(existing.status).value})"
                )

            now = self._now()
            amount = to_money(transaction.amount)
            window_days = self.settings.deadline_days_for(parsed_type.value)

            dispute = Dispute(
                dispute_id=uuid.uuid4(),
                transaction_id=transaction.transaction_id,
                account_id=transaction.account_id,
                merchant_id=transaction.merchant_id,
                dispute_type=parsed_type,
                reason_code=parsed_reason,
                description=description,
                status=DisputeStatus.OPENED,
                dispute_amount=amount,
                provisional_credit_amount=ZERO,
                permanent_credit_amount=ZERO,
                documentation_required=requires_documentation(
                    parsed_type, amount, self.settings.documentation_amount_threshold
                ),
                created_date=now,
                regulatory_deadline=now + timedelta(days=window_days),
                updated_at=now,
            )
            await uow.disputes.save(dispute)
            await uow.commit()

        logger.info(
            f"Dispute {dispute.dispute_id} opened for transaction {transaction_id}: "
            f"{parsed_type.value}/{parsed_reason.value} amount {amount}, "
            f"deadline {dispute.regulatory_deadline.isoformat()}"
        )
        return dispute

    async def get_dispute(self, dispute_id: uuid.UUID) -> Dispute:
        """Fetch a dispute by id."""
        async with self._uow_factory() as uow:
            return await self._get_dispute(uow, dispute_id)

    async def get_disputes_by_account(self, account_id: str) -> list[Dispute]:
        """All disputes for an account, newest first."""
        account_id = _require_text(account_id, "Account ID")
        async with self._uow_factory() as uow:
            return await uow.disputes.find_by_account(account_id)

    # ==================== INVESTIGATION ====================

    async def start_investigation(self, dispute_id: uuid.UUID) -> Dispute:
        """Move a dispute into investigation."""
        return await self._advance(dispute_id, DisputeStatus.INVESTIGATING)

    async def request_merchant_response(self, dispute_id: uuid.UUID) -> Dispute:
        """Ask the merchant to respond before any chargeback is filed."""
        return await self._advance(dispute_id, DisputeStatus.PENDING_MERCHANT_RESPONSE)

    async def submit_documentation(
        self,
        dispute_id: uuid.UUID,
        document_type: str,
        reference: str,
    ) -> Dispute:
        """Record that supporting documentation was received."""
        document_type = _require_text(document_type, "Document type")
        reference = _require_text(reference, "Document reference")

        async with self._uow_factory() as uow:
            dispute = await self._get_dispute(uow, dispute_id)
            if is_resolved(dispute.status):
                raise IllegalStateError(
                    f"Cannot add documentation to a {DisputeStatus(dispute.status).value} dispute"
                )

            now = self._now()
            dispute.documentation_received_date = now
            dispute.documentation_reference = f"{document_type}:{reference}"[:100]
            dispute.updated_at = now
            await uow.disputes.save(dispute)
            await uow.commit()

        logger.info(f"Documentation {document_type} received for dispute {dispute_id}")
        return dispute

    # ==================== PROVISIONAL CREDIT ====================

    async def calculate_provisional_amount(
        self,
        dispute_id: uuid.UUID,
        requested_amount: Decimal | int | str,
    ) -> Decimal:
        """Quote the provisional credit a dispute qualifies for. Read only."""
        requested = _parse_amount(requested_amount)

        async with self._uow_factory() as uow:
            dispute = await self._get_dispute(uow, dispute_id)

        eligible, reason = is_eligible_for_provisional_credit(
            dispute.status,
            dispute.dispute_amount,
            self.settings.provisional_credit_eligibility_minimum,
        )
        if not eligible:
            raise IllegalStateError(reason)

        return calculate_provisional_amount(
            requested,
            dispute.dispute_amount,
            dispute.reason_code,
            maximum=self.settings.max_provisional_credit,
            minimum=self.settings.min_provisional_credit,
            partial_rate=self.settings.partial_provisional_credit_rate,
        )

    async def issue_provisional_credit(
        self,
        dispute_id: uuid.UUID,
        amount: Decimal | int | str,
    ) -> bool:
        """Credit the cardholder's account while the dispute is worked.

        Raises:
            NotFoundError: Dispute or account missing
            IllegalStateError: Credit already outstanding, dispute resolved,
                or the account is locked elsewhere
            ValidationError: Amount not positive, above the disputed amount
                or above the regulatory maximum
        """
        credit = _parse_amount(amount)

        async with self._uow_factory() as uow:
            dispute = await self._get_dispute(uow, dispute_id)

            if dispute.provisional_credit_amount != ZERO:
                raise IllegalStateError("Provisional credit already issued")
            if is_resolved(dispute.status):
                raise IllegalStateError(
                    f"Cannot issue provisional credit for a {DisputeStatus(dispute.status).value} dispute"
                )
            if credit > dispute.dispute_amount:
                raise ValidationError(
                    f"Provisional credit {credit} exceeds disputed amount {dispute.dispute_amount}"
                )
            if credit > self.settings.max_provisional_credit:
                raise ValidationError(
                    f"Provisional credit {credit} exceeds maximum {self.settings.max_provisional_credit}"
                )

            now = self._now()
            await self._adjust_balance(
                uow,
                dispute,
                credit,
                entry_type="provisional_credit_issued",
                description=f"Provisional credit for dispute {dispute.dispute_id}",
                now=now,
            )
            dispute.provisional_credit_amount = credit
            dispute.updated_at = now
            await uow.disputes.save(dispute)
            await uow.commit()

        logger.info(f"Provisional credit {credit} issued for dispute {dispute_id}")
        return True

    async def reverse_provisional_credit(self, dispute_id: uuid.UUID) -> bool:
        """Take back an outstanding provisional credit.

        Raises:
            NotFoundError: Dispute or account missing
            IllegalStateError: Nothing to reverse, or the account is locked elsewhere
        """
        async with self._uow_factory() as uow:
            dispute = await self._get_dispute(uow, dispute_id)
            if dispute.provisional_credit_amount == ZERO:
                raise IllegalStateError("No provisional credit to reverse")

            now = self._now()
            reversed_amount = await self._reverse_outstanding_credit(uow, dispute, now)
            dispute.updated_at = now
            await uow.disputes.save(dispute)
            await uow.commit()

        logger.info(f"Provisional credit {reversed_amount} reversed for dispute {dispute_id}")
        return True

    # ==================== CHARGEBACK ====================

    async def process_chargeback(
        self,
        dispute_id: uuid.UUID,
        network_reason_code: str,
        narrative: str | None = None,
    ) -> bool:
        """File a chargeback with the card network.

        Nothing changes locally unless the gateway accepts the chargeback.

        Raises:
            ValidationError: Unknown network reason code or invalid card number
            IllegalStateError: Dispute is past the pre-chargeback states
            ChargebackProcessingError: Gateway failed or timed out
        """
        reason_description = network_reason_description(network_reason_code)
        narrative = (narrative or "").strip() or reason_description

        async with self._uow_factory() as uow:
            dispute = await self._get_dispute(uow, dispute_id)

            if dispute.chargeback_id:
                raise IllegalStateError(
                    f"Chargeback {dispute.chargeback_id} already initiated for dispute {dispute_id}"
                )
            if dispute.status not in PRE_CHARGEBACK_STATES:
                raise IllegalStateError(
                    f"Cannot initiate chargeback from {DisputeStatus(dispute.status).value}"
                )
            assert_dispute_transition(dispute.status, DisputeStatus.CHARGEBACK_INITIATED)

            transaction = await uow.transactions.find_by_id(dispute.transaction_id)
            if transaction is None:
                raise NotFoundError("Transaction", dispute.transaction_id)
            if not validate_card_number(transaction.card_number):
                raise ValidationError("Transaction card number failed validation")

            result = await self.gateway.initiate_chargeback(
                card_number=transaction.card_number,
                transaction_id=transaction.transaction_id,
                reason_code=network_reason_code,
                amount=to_money(transaction.amount),
                merchant_id=transaction.merchant_id,
                narrative=narrative,
            )
            if not result.success or not result.chargeback_id:
                logger.error(
                    f"Chargeback rejected for dispute {dispute_id} "
                    f"(card {mask_card_number(transaction.card_number)}): {result.error_message}"
                )
                raise ChargebackProcessingError(result.error_message or "Chargeback initiation failed")

            now = self._now()
            dispute.chargeback_id = result.chargeback_id
            dispute.network_reason_code = network_reason_code
            dispute.status = DisputeStatus.CHARGEBACK_INITIATED
            dispute.updated_at = now
            try:
                await uow.disputes.save(dispute)
                await uow.commit()
            except ConcurrentModificationError:
                logger.error(
                    f"Chargeback {result.chargeback_id} was filed but dispute {dispute_id} "
                    f"changed concurrently; reconcile manually"
                )
                raise

        logger.info(
            f"Chargeback {result.chargeback_id} initiated for dispute {dispute_id} "
            f"reason {network_reason_code} ({reason_description})"
        )
        return True

    async def handle_network_response(self, dispute_id: uuid.UUID, response: dict) -> bool:
        """Apply a card network response to an initiated chargeback.

        Raises:
            IllegalStateError: Response after the regulatory deadline or no chargeback on file
            ChargebackProcessingError: Gateway rejected the payload or verdict unrecognized
        """
        async with self._uow_factory() as uow:
            dispute = await self._get_dispute(uow, dispute_id)
            now = self._now()
            self._assert_within_deadline(dispute, now, "network")

            if not dispute.chargeback_id:
                raise IllegalStateError("No chargeback has been initiated for this dispute")

            acknowledged = await self.gateway.process_response(dispute.chargeback_id, response, now)
            if not acknowledged:
                raise ChargebackProcessingError("Network response was not acknowledged by the gateway")

            raw_verdict = response.get("decision") or response.get("status") or ""
            verdict = str(raw_verdict).strip().upper()
            target = NETWORK_VERDICT_STATUS.get(verdict)
            if target is None:
                raise ChargebackProcessingError(f"Unrecognized network verdict: {raw_verdict!r}")

            await self._apply_verdict(uow, dispute, target, f"Network response: {verdict}", now)
            await uow.commit()

        logger.info(f"Network verdict {verdict} applied to dispute {dispute_id}")
        return True

    async def handle_merchant_response(
        self,
        dispute_id: uuid.UUID,
        response_type: str,
        response_payload: dict,
    ) -> bool:
        """Apply a merchant's answer to the dispute.

        Raises:
            IllegalStateError: Response after the regulatory deadline or dispute not awaiting one
            ValidationError: Unknown response type
            ChargebackProcessingError: Gateway failed or verdict unrecognized
        """
        async with self._uow_factory() as uow:
            dispute = await self._get_dispute(uow, dispute_id)
            now = self._now()
            self._assert_within_deadline(dispute, now, "merchant")

            try:
                response = MerchantResponseType(response_type)
            except ValueError as exc:
                raise ValidationError(f"Unknown merchant response type: {response_type}") from exc

            if dispute.status not in AWAITING_RESPONSE_STATES:
                raise IllegalStateError(
                    f"Dispute is not awaiting a merchant response "
                    f"(status {DisputeStatus(dispute.status).value})"
                )

            reference = dispute.chargeback_id or str(dispute.dispute_id)
            raw_verdict = await self.gateway.handle_merchant_response(
                reference, response.value, response_payload, now
            )
            verdict = str(raw_verdict or "").strip().upper()
            target = MERCHANT_VERDICT_STATUS.get(verdict)
            if target is None:
                raise ChargebackProcessingError(f"Unrecognized merchant verdict: {raw_verdict!r}")

            await self._apply_verdict(
                uow, dispute, target, f"Merchant response {response.value}: {verdict}", now
            )
            await uow.commit()

        logger.info(f"Merchant verdict {verdict} applied to dispute {dispute_id}")
        return True

    async def calculate_chargeback_settlement(
        self,
        dispute_id: uuid.UUID,
        decision: str,
        currency: str | None = None,
    ) -> Decimal:
        """Ask the gateway what a decision would settle for. Read only."""
        try:
            parsed = SettlementDecision(decision)
        except ValueError as exc:
            raise ValidationError(f"Unknown settlement decision: {decision}") from exc

        async with self._uow_factory() as uow:
            dispute = await self._get_dispute(uow, dispute_id)
            if not dispute.chargeback_id:
                raise IllegalStateError("No chargeback has been initiated for this dispute")

            amount = await self.gateway.calculate_settlement(
                dispute.chargeback_id,
                dispute.dispute_amount,
                parsed.value,
                currency or self.settings.currency,
            )

        return to_money(amount)

    # ==================== RESOLUTION ====================

    async def resolve_dispute(
        self,
        dispute_id: uuid.UUID,
        target_status: str | DisputeStatus,
        reason: str,
    ) -> bool:
        """Record a verdict or close the dispute.

        Credit reversal (merchant wins) or finalization (customer wins) and
        the resolution itself commit as one unit.

        Raises:
            ValidationError: Target is not a resolution status or reason missing
            IllegalStateError: Illegal transition, already resolved, credit
                still outstanding on close, or the account is locked elsewhere
        """
        try:
            target = DisputeStatus(target_status)
        except ValueError as exc:
            raise ValidationError(f"Unknown dispute status: {target_status}") from exc
        if target not in RESOLUTION_TARGETS:
            raise ValidationError(f"{target.value} is not a resolution status")
        reason = _require_text(reason, "Resolution reason")

        async with self._uow_factory() as uow:
            dispute = await self._get_dispute(uow, dispute_id)
            current = DisputeStatus(dispute.status)

            if current == target:
                raise IllegalStateError(f"Dispute is already {target.value}")
            assert_dispute_transition(current, target)

            outstanding = dispute.provisional_credit_amount
            if target == DisputeStatus.CLOSED and outstanding != ZERO:
                raise IllegalStateError(
                    f"Provisional credit {outstanding} must be reversed or finalized before closing"
                )

            if (
                dispute.documentation_required
                and dispute.documentation_received_date is None
                and "document" not in reason.lower()
            ):
                logger.warning(
                    f"Dispute {dispute_id} resolved as {target.value} without recorded documentation review"
                )

            now = self._now()

            chargeback_id = dispute.chargeback_id

            if target == DisputeStatus.RESOLVED_MERCHANT and outstanding != ZERO:
                await self._reverse_outstanding_credit(uow, dispute, now)
            elif target == DisputeStatus.RESOLVED_CUSTOMER and outstanding != ZERO:
                await self._finalize_outstanding_credit(uow, dispute, now)

            self._record_resolution(dispute, target, reason, now)
            await uow.disputes.save(dispute)
            await uow.commit()

        logger.info(f"Dispute {dispute_id} resolved: {current.value} → {target.value} ({reason})")

        # Only a committed verdict is reported to the network
        if chargeback_id:
            await self._notify_network_status(dispute_id, chargeback_id, target, reason)
        return True

    async def _notify_network_status(
        self,
        dispute_id: uuid.UUID,
        chargeback_id: str,
        target: DisputeStatus,
        reason: str,
    ) -> None:
        """Report a committed resolution; failures are logged for reconciliation."""
        try:
            accepted = await self.gateway.update_status(chargeback_id, target.value, reason)
        except ChargebackProcessingError as e:
            logger.error(
                f"Dispute {dispute_id} resolved as {target.value} but chargeback {chargeback_id} "
                f"status update failed, needs reconciliation: {e.detail}"
            )
            return
        if not accepted:
            logger.warning(
                f"Network did not accept status {target.value} for chargeback {chargeback_id}, "
                f"dispute {dispute_id} needs reconciliation"
            )

    async def close_dispute(self, dispute_id: uuid.UUID, reason: str) -> bool:
        """Close a dispute; shorthand for resolving to CLOSED."""
        return await self.resolve_dispute(dispute_id, DisputeStatus.CLOSED, reason)

    # ==================== ESCALATION & DEADLINES ====================

    def evaluate_escalation(self, dispute: Dispute) -> EscalationTrigger | None:
        """First escalation trigger that holds for the dispute, if any."""
        triggers = self._applicable_triggers(dispute, self._now())
        return triggers[0] if triggers else None

    async def escalate_dispute(
        self,
        dispute_id: uuid.UUID,
        trigger: str | EscalationTrigger,
    ) -> bool:
        """Escalate a dispute for the given trigger.

        Raises:
            ValidationError: Unknown trigger
            IllegalStateError: Trigger condition does not hold or the dispute
                cannot be escalated from its current status
        """
        try:
            parsed = EscalationTrigger(trigger)
        except ValueError as exc:
            raise ValidationError(f"Unknown escalation trigger: {trigger}") from exc

        async with self._uow_factory() as uow:
            dispute = await self._get_dispute(uow, dispute_id)
            assert_dispute_transition(dispute.status, DisputeStatus.ESCALATED)

            now = self._now()
            if parsed not in self._applicable_triggers(dispute, now):
                raise IllegalStateError(
                    f"Escalation trigger {parsed.value} does not apply to dispute {dispute_id}"
                )

            dispute.status = DisputeStatus.ESCALATED
            dispute.escalation_level = parsed.value
            dispute.escalation_date = now
            dispute.updated_at = now
            await uow.disputes.save(dispute)
            await uow.commit()

        logger.warning(f"Dispute {dispute_id} escalated: {parsed.value}")
        return True

    async def escalate_stale_disputes(self) -> int:
        """Escalate every open dispute that meets a trigger. Returns the count."""
        async with self._uow_factory() as uow:
            candidates = [
                d for d in await uow.disputes.find_all()
                if d.status in OPEN_STATES and d.status != DisputeStatus.ESCALATED
            ]

        escalated = 0
        for dispute in candidates:
            trigger = self.evaluate_escalation(dispute)
            if trigger is None:
                continue
            try:
                await self.escalate_dispute(dispute.dispute_id, trigger)
            except IllegalStateError as e:
                logger.warning(f"Skipped escalation of dispute {dispute.dispute_id}: {e.detail}")
                continue
            escalated += 1

        return escalated

    async def validate_regulatory(self, dispute_id: uuid.UUID) -> bool:
        """True while the dispute is within its regulatory deadline."""
        async with self._uow_factory() as uow:
            dispute = await self._get_dispute(uow, dispute_id)
        return self._now() <= ensure_utc(dispute.regulatory_deadline)

    async def validate_dispute_timeline(self, dispute_id: uuid.UUID) -> TimelineReport:
        """Days elapsed/remaining, violations and risk level for one dispute."""
        async with self._uow_factory() as uow:
            dispute = await self._get_dispute(uow, dispute_id)

        now = self._now()
        return assess_timeline(
            self._timing(dispute),
            ensure_utc(dispute.created_date),
            now,
            investigation_overrun=timeline_exceeded(
                dispute.status,
                ensure_utc(dispute.created_date),
                now,
                self.settings.investigation_window_days,
            ),
        )

    async def mark_overdue(self, dispute_id: uuid.UUID) -> bool:
        """Flag an unresolved dispute whose regulatory deadline has passed."""
        async with self._uow_factory() as uow:
            dispute = await self._get_dispute(uow, dispute_id)
            now = self._now()
            if now <= ensure_utc(dispute.regulatory_deadline):
                raise IllegalStateError("Regulatory deadline has not passed")
            assert_dispute_transition(dispute.status, DisputeStatus.OVERDUE)

            dispute.status = DisputeStatus.OVERDUE
            dispute.updated_at = now
            await uow.disputes.save(dispute)
            await uow.commit()

        logger.warning(f"Dispute {dispute_id} is past its regulatory deadline")
        return True

    async def sweep_overdue(self) -> int:
        """Mark every unresolved dispute past its deadline as overdue. Returns the count."""
        now = self._now()
        async with self._uow_factory() as uow:
            candidates = [
                d.dispute_id for d in await uow.disputes.find_all()
                if d.status in OPEN_STATES
                and d.status != DisputeStatus.OVERDUE
                and now > ensure_utc(d.regulatory_deadline)
            ]

        marked = 0
        for dispute_id in candidates:
            try:
                await self.mark_overdue(dispute_id)
            except IllegalStateError as e:
                logger.warning(f"Skipped overdue marking of dispute {dispute_id}: {e.detail}")
                continue
            marked += 1

        return marked

    async def calculate_compliance_metrics(
        self,
        status: str | DisputeStatus | None = None,
    ) -> ComplianceMetrics:
        """On-time versus overdue resolution across disputes."""
        async with self._uow_factory() as uow:
            if status is None:
                disputes = await uow.disputes.find_all()
            else:
                try:
                    parsed = DisputeStatus(status)
                except ValueError as exc:
                    raise ValidationError(f"Unknown dispute status: {status}") from exc
                disputes = await uow.disputes.find_by_status(parsed)

        return summarize_compliance((self._timing(d) for d in disputes), self._now())

    # ==================== HELPERS ====================

    async def _get_dispute(self, uow: UnitOfWork, dispute_id: uuid.UUID) -> Dispute:
        """Get dispute by ID or raise NotFoundError."""
        dispute = await uow.disputes.find_by_id(dispute_id)
        if dispute is None:
            raise NotFoundError("Dispute", str(dispute_id))
        return dispute

    async def _advance(self, dispute_id: uuid.UUID, target: DisputeStatus) -> Dispute:
        """Plain status transition with no side effects."""
        async with self._uow_factory() as uow:
            dispute = await self._get_dispute(uow, dispute_id)
            current = DisputeStatus(dispute.status)
            assert_dispute_transition(current, target)

            dispute.status = target
            dispute.updated_at = self._now()
            await uow.disputes.save(dispute)
            await uow.commit()

        logger.info(f"Dispute {dispute_id}: {current.value} → {target.value}")
        return dispute

    def _assert_within_deadline(self, dispute: Dispute, now: datetime, source: str) -> None:
        if now > ensure_utc(dispute.regulatory_deadline):
            logger.warning(
                f"Rejected late {source} response for dispute {dispute.dispute_id} "
                f"(deadline {ensure_utc(dispute.regulatory_deadline).isoformat()})"
            )
            raise IllegalStateError("Response received after deadline")

    async def _apply_verdict(
        self,
        uow: UnitOfWork,
        dispute: Dispute,
        target: DisputeStatus,
        reason: str,
        now: datetime,
    ) -> None:
        """Move the dispute to the verdict's status, reconciling credit if the merchant won."""
        if dispute.status == target:
            logger.info(f"Dispute {dispute.dispute_id} already {target.value}; response acknowledged")
            return

        assert_dispute_transition(dispute.status, target)

        if target == DisputeStatus.RESOLVED_MERCHANT:
            if dispute.provisional_credit_amount != ZERO:
                await self._reverse_outstanding_credit(uow, dispute, now)
            self._record_resolution(dispute, target, reason, now)
        else:
            dispute.status = target

        dispute.updated_at = now
        await uow.disputes.save(dispute)

    def _record_resolution(
        self,
        dispute: Dispute,
        target: DisputeStatus,
        reason: str,
        now: datetime,
    ) -> None:
        """Set status and the write-once resolution fields."""
        dispute.status = target
        if dispute.resolution_date is None:
            dispute.resolution_date = now
            dispute.resolution_reason = reason
        if target == DisputeStatus.CLOSED:
            dispute.closed_date = now
        dispute.updated_at = now

    async def _adjust_balance(
        self,
        uow: UnitOfWork,
        dispute: Dispute,
        delta: Decimal,
        entry_type: str,
        description: str,
        now: datetime,
    ) -> None:
        """Apply a signed amount to the dispute's account under lock and journal it."""
        account = await uow.accounts.lock_for_update(dispute.account_id)
        if account is None:
            raise NotFoundError("Account", dispute.account_id)

        account.current_balance = to_money(account.current_balance + delta)
        account.updated_at = now
        await uow.accounts.save(account)

        await uow.ledger.append(
            DisputeLedgerEntry(
                id=uuid.uuid4(),
                entry_type=entry_type,
                direction="credit" if delta > ZERO else "debit",
                amount=abs(delta),
                currency=self.settings.currency,
                balance_after=account.current_balance,
                dispute_id=dispute.dispute_id,
                account_id=dispute.account_id,
                description=description,
                effective_date=now.date(),
                created_at=now,
            )
        )

    async def _reverse_outstanding_credit(
        self,
        uow: UnitOfWork,
        dispute: Dispute,
        now: datetime,
    ) -> Decimal:
        amount = dispute.provisional_credit_amount
        await self._adjust_balance(
            uow,
            dispute,
            -amount,
            entry_type="provisional_credit_reversed",
            description=f"Provisional credit reversed for dispute {dispute.dispute_id}",
            now=now,
        )
        dispute.provisional_credit_amount = ZERO
        return amount

    async def _finalize_outstanding_credit(
        self,
        uow: UnitOfWork,
        dispute: Dispute,
        now: datetime,
    ) -> None:
        """Make the outstanding credit permanent; the balance already reflects it."""
        amount = dispute.provisional_credit_amount
        await uow.ledger.append(
            DisputeLedgerEntry(
                id=uuid.uuid4(),
                entry_type="provisional_credit_finalized",
                direction="credit",
                amount=amount,
                currency=self.settings.currency,
                balance_after=None,
                dispute_id=dispute.dispute_id,
                account_id=dispute.account_id,
                description=f"Provisional credit made permanent for dispute {dispute.dispute_id}",
                effective_date=now.date(),
                created_at=now,
            )
        )
        dispute.permanent_credit_amount = to_money(dispute.permanent_credit_amount + amount)
        dispute.provisional_credit_amount = ZERO

    def _applicable_triggers(self, dispute: Dispute, now: datetime) -> list[EscalationTrigger]:
        return applicable_triggers(
            status=dispute.status,
            dispute_type=dispute.dispute_type,
            reason_code=dispute.reason_code,
            created_date=ensure_utc(dispute.created_date),
            now=now,
            provisional_credit_amount=dispute.provisional_credit_amount,
            dispute_amount=dispute.dispute_amount,
            investigation_window_days=self.settings.investigation_window_days,
            high_value_threshold=self.settings.high_value_threshold,
        )

    @staticmethod
    def _timing(dispute: Dispute) -> DisputeTiming:
        return DisputeTiming(
            status=DisputeStatus(dispute.status),
            regulatory_deadline=ensure_utc(dispute.regulatory_deadline),
            resolution_date=ensure_utc(dispute.resolution_date) if dispute.resolution_date else None,
        )


# Singleton instance
dispute_service = DisputeService()
