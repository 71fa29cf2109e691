"""Pydantic schemas for API validation."""

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

__all__ = [
    "AmountResponse",
    "ChargebackRequest",
    "ComplianceMetricsResponse",
    "DisputeCreate",
    "DisputeResponse",
    "DocumentationRequest",
    "EscalateRequest",
    "MerchantResponseRequest",
    "NetworkResponseRequest",
    "OperationResult",
    "ProvisionalCreditRequest",
    "RegulatoryStatusResponse",
    "ResolveRequest",
    "TimelineResponse",
]
