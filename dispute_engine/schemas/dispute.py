"""Dispute-related Pydantic schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from dispute_engine.domain.dispute_state import DisputeStatus
from dispute_engine.domain.escalation_policy import EscalationTrigger
from dispute_engine.domain.reason_codes import DisputeType, ReasonCode
from dispute_engine.gateways.base import MerchantResponseType


class DisputeCreate(BaseModel):
    """Schema for opening a dispute."""

    transaction_id: str = Field(..., min_length=1, max_length=16)
    dispute_type: DisputeType
    reason_code: ReasonCode
    description: str = Field(..., min_length=1, max_length=500)


class ProvisionalCreditRequest(BaseModel):
    """Schema for issuing or quoting provisional credit."""

    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)


class ChargebackRequest(BaseModel):
    """Schema for filing a chargeback."""

    network_reason_code: str = Field(..., pattern=r"^\d{4}$")
    narrative: str | None = Field(default=None, max_length=1000)


class NetworkResponseRequest(BaseModel):
    """Raw card network response payload."""

    payload: dict[str, Any]


class MerchantResponseRequest(BaseModel):
    """Merchant answer to a dispute."""

    response_type: MerchantResponseType
    payload: dict[str, Any] = Field(default_factory=dict)


class DocumentationRequest(BaseModel):
    """Supporting documentation received for a dispute."""

    document_type: str = Field(..., min_length=1, max_length=40)
    reference: str = Field(..., min_length=1, max_length=60)


class ResolveRequest(BaseModel):
    """Schema for resolving or closing a dispute."""

    target_status: DisputeStatus
    reason: str = Field(..., min_length=1, max_length=2000)


class EscalateRequest(BaseModel):
    """Schema for escalating a dispute."""

    trigger: EscalationTrigger


class DisputeResponse(BaseModel):
    """Schema for dispute response."""

    model_config = ConfigDict(from_attributes=True)

    dispute_id: UUID
    transaction_id: str
    account_id: str
    merchant_id: str
    dispute_type: DisputeType
    reason_code: ReasonCode
    description: str
    status: DisputeStatus
    dispute_amount: Decimal
    provisional_credit_amount: Decimal
    permanent_credit_amount: Decimal
    documentation_required: bool
    documentation_received_date: datetime | None
    chargeback_id: str | None
    network_reason_code: str | None
    escalation_level: str | None
    escalation_date: datetime | None
    created_date: datetime
    regulatory_deadline: datetime
    resolution_date: datetime | None
    resolution_reason: str | None
    closed_date: datetime | None


class OperationResult(BaseModel):
    """Outcome of a lifecycle operation with the dispute's new state."""

    success: bool
    dispute: DisputeResponse


class RegulatoryStatusResponse(BaseModel):
    """Whether a dispute is still inside its regulatory window."""

    dispute_id: UUID
    within_deadline: bool
    regulatory_deadline: datetime


class TimelineResponse(BaseModel):
    """Timeline validation for a dispute."""

    model_config = ConfigDict(from_attributes=True)

    dispute_id: UUID
    status: DisputeStatus
    processing_stage: str
    days_elapsed: int
    days_remaining: int
    violations: list[str]
    risk_level: str


class AmountResponse(BaseModel):
    """A single calculated amount."""

    dispute_id: UUID
    amount: Decimal
    currency: str


class ComplianceMetricsResponse(BaseModel):
    """Aggregated on-time resolution figures."""

    model_config = ConfigDict(from_attributes=True)

    total_disputes: int
    on_time_resolutions: int
    overdue_count: int
    pending_count: int
    compliance_rate: Decimal
