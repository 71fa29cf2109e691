"""Core utilities: exceptions, immutability guards and middleware."""

from dispute_engine.core.exceptions import (
    AppException,
    ChargebackProcessingError,
    ConcurrentModificationError,
    IllegalStateError,
    InfrastructureError,
    LockUnavailableError,
    NotFoundError,
    ValidationError,
)

__all__ = [
    "AppException",
    "ChargebackProcessingError",
    "ConcurrentModificationError",
    "IllegalStateError",
    "InfrastructureError",
    "LockUnavailableError",
    "NotFoundError",
    "ValidationError",
]
