"""Dispute and chargeback endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from dispute_engine.api.deps import get_dispute_service
from dispute_engine.domain.dispute_state import DisputeStatus, processing_stage
from dispute_engine.gateways.base import SettlementDecision
from dispute_engine.models.dispute import Dispute
from dispute_engine.schemas.dispute import (
    AmountResponse,
    ChargebackRequest,
    ComplianceMetricsResponse,
    DisputeCreate,
    DisputeResponse,
    DocumentationRequest,
    EscalateRequest,
    MerchantResponseRequest,
    NetworkResponseRequest,
    OperationResult,
    ProvisionalCreditRequest,
    RegulatoryStatusResponse,
    ResolveRequest,
    TimelineResponse,
)
from dispute_engine.services.dispute_service import DisputeService

router = APIRouter()

Service = Annotated[DisputeService, Depends(get_dispute_service)]


async def _result(service: DisputeService, dispute_id: UUID, success: bool) -> OperationResult:
    dispute = await service.get_dispute(dispute_id)
    return OperationResult(success=success, dispute=DisputeResponse.model_validate(dispute))


# ============ DISPUTES ============


@router.post("", response_model=DisputeResponse, status_code=status.HTTP_201_CREATED)
async def open_dispute(data: DisputeCreate, service: Service) -> Dispute:
    """Open a new dispute against a card transaction."""
    return await service.create_dispute(
        transaction_id=data.transaction_id,
        dispute_type=data.dispute_type,
        reason_code=data.reason_code,
        description=data.description,
    )


@router.get("", response_model=list[DisputeResponse])
async def list_account_disputes(
    service: Service,
    account_id: Annotated[str, Query(min_length=1, max_length=11)],
) -> list[Dispute]:
    """List an account's disputes, newest first."""
    return await service.get_disputes_by_account(account_id)


@router.get("/compliance/metrics", response_model=ComplianceMetricsResponse)
async def compliance_metrics(
    service: Service,
    dispute_status: Annotated[DisputeStatus | None, Query(alias="status")] = None,
) -> ComplianceMetricsResponse:
    """On-time resolution metrics, optionally for one status."""
    metrics = await service.calculate_compliance_metrics(dispute_status)
    return ComplianceMetricsResponse.model_validate(metrics)


@router.get("/{dispute_id}", response_model=DisputeResponse)
async def get_dispute(dispute_id: UUID, service: Service) -> Dispute:
    """Get dispute details."""
    return await service.get_dispute(dispute_id)


# ============ INVESTIGATION ============


@router.post("/{dispute_id}/investigation", response_model=DisputeResponse)
async def start_investigation(dispute_id: UUID, service: Service) -> Dispute:
    """Start investigating a dispute."""
    return await service.start_investigation(dispute_id)


@router.post("/{dispute_id}/merchant-response-request", response_model=DisputeResponse)
async def request_merchant_response(dispute_id: UUID, service: Service) -> Dispute:
    """Ask the merchant to respond."""
    return await service.request_merchant_response(dispute_id)


@router.post("/{dispute_id}/documentation", response_model=DisputeResponse)
async def submit_documentation(
    dispute_id: UUID,
    data: DocumentationRequest,
    service: Service,
) -> Dispute:
    """Record supporting documentation."""
    return await service.submit_documentation(dispute_id, data.document_type, data.reference)


# ============ PROVISIONAL CREDIT ============


@router.post("/{dispute_id}/provisional-credit", response_model=OperationResult)
async def issue_provisional_credit(
    dispute_id: UUID,
    data: ProvisionalCreditRequest,
    service: Service,
) -> OperationResult:
    """Issue provisional credit to the cardholder."""
    success = await service.issue_provisional_credit(dispute_id, data.amount)
    return await _result(service, dispute_id, success)


@router.delete("/{dispute_id}/provisional-credit", response_model=OperationResult)
async def reverse_provisional_credit(dispute_id: UUID, service: Service) -> OperationResult:
    """Reverse outstanding provisional credit."""
    success = await service.reverse_provisional_credit(dispute_id)
    return await _result(service, dispute_id, success)


@router.post("/{dispute_id}/provisional-credit/quote", response_model=AmountResponse)
async def quote_provisional_credit(
    dispute_id: UUID,
    data: ProvisionalCreditRequest,
    service: Service,
) -> AmountResponse:
    """Calculate the provisional credit a request qualifies for."""
    amount = await service.calculate_provisional_amount(dispute_id, data.amount)
    return AmountResponse(dispute_id=dispute_id, amount=amount, currency=service.settings.currency)


# ============ CHARGEBACK ============


@router.post("/{dispute_id}/chargeback", response_model=OperationResult)
async def process_chargeback(
    dispute_id: UUID,
    data: ChargebackRequest,
    service: Service,
) -> OperationResult:
    """File a chargeback with the card network."""
    success = await service.process_chargeback(dispute_id, data.network_reason_code, data.narrative)
    return await _result(service, dispute_id, success)


@router.post("/{dispute_id}/network-response", response_model=OperationResult)
async def handle_network_response(
    dispute_id: UUID,
    data: NetworkResponseRequest,
    service: Service,
) -> OperationResult:
    """Apply a card network response."""
    success = await service.handle_network_response(dispute_id, data.payload)
    return await _result(service, dispute_id, success)


@router.post("/{dispute_id}/merchant-response", response_model=OperationResult)
async def handle_merchant_response(
    dispute_id: UUID,
    data: MerchantResponseRequest,
    service: Service,
) -> OperationResult:
    """Apply a merchant response."""
    success = await service.handle_merchant_response(dispute_id, data.response_type, data.payload)
    return await _result(service, dispute_id, success)


@router.get("/{dispute_id}/settlement", response_model=AmountResponse)
async def chargeback_settlement(
    dispute_id: UUID,
    service: Service,
    decision: SettlementDecision,
    currency: Annotated[str | None, Query(min_length=3, max_length=3)] = None,
) -> AmountResponse:
    """Settlement amount for a chargeback decision."""
    amount = await service.calculate_chargeback_settlement(dispute_id, decision, currency)
    return AmountResponse(
        dispute_id=dispute_id,
        amount=amount,
        currency=currency or service.settings.currency,
    )


# ============ RESOLUTION & ESCALATION ============


@router.post("/{dispute_id}/resolution", response_model=OperationResult)
async def resolve_dispute(
    dispute_id: UUID,
    data: ResolveRequest,
    service: Service,
) -> OperationResult:
    """Resolve or close a dispute."""
    success = await service.resolve_dispute(dispute_id, data.target_status, data.reason)
    return await _result(service, dispute_id, success)


@router.post("/{dispute_id}/escalation", response_model=OperationResult)
async def escalate_dispute(
    dispute_id: UUID,
    data: EscalateRequest,
    service: Service,
) -> OperationResult:
    """Escalate a dispute."""
    success = await service.escalate_dispute(dispute_id, data.trigger)
    return await _result(service, dispute_id, success)


@router.post("/{dispute_id}/overdue", response_model=OperationResult)
async def mark_overdue(dispute_id: UUID, service: Service) -> OperationResult:
    """Flag a dispute past its regulatory deadline."""
    success = await service.mark_overdue(dispute_id)
    return await _result(service, dispute_id, success)


# ============ COMPLIANCE ============


@router.get("/{dispute_id}/regulatory", response_model=RegulatoryStatusResponse)
async def regulatory_status(dispute_id: UUID, service: Service) -> RegulatoryStatusResponse:
    """Whether the dispute is still inside its regulatory window."""
    within_deadline = await service.validate_regulatory(dispute_id)
    dispute = await service.get_dispute(dispute_id)
    return RegulatoryStatusResponse(
        dispute_id=dispute_id,
        within_deadline=within_deadline,
        regulatory_deadline=dispute.regulatory_deadline,
    )


@router.get("/{dispute_id}/timeline", response_model=TimelineResponse)
async def dispute_timeline(dispute_id: UUID, service: Service) -> TimelineResponse:
    """Timeline validation and risk level."""
    report = await service.validate_dispute_timeline(dispute_id)
    dispute = await service.get_dispute(dispute_id)
    return TimelineResponse(
        dispute_id=dispute_id,
        status=dispute.status,
        processing_stage=processing_stage(dispute.status),
        days_elapsed=report.days_elapsed,
        days_remaining=report.days_remaining,
        violations=report.violations,
        risk_level=report.risk_level,
    )
