"""Custom application exceptions."""

from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class ValidationError(AppException):
    """Bad input shape, invalid type/reason pairing or missing required field."""

    def __init__(self, detail: str = "Validation failed", errors: list[dict[str, Any]] | None = None) -> None:
        self.errors = errors
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class NotFoundError(AppException):
    """Resource not found exception."""

    def __init__(self, resource: str = "Resource", identifier: str | None = None) -> None:
        self.resource = resource
        self.identifier = identifier
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} with ID '{identifier}' not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class IllegalStateError(AppException):
    """Operation attempted from a state that forbids it."""

    def __init__(self, detail: str = "Operation not allowed in the current state") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class LockUnavailableError(IllegalStateError):
    """Account row is locked by another in-flight transaction."""

    def __init__(self, account_id: str | None = None) -> None:
        self.account_id = account_id
        super().__init__("Unable to lock account for update")


class ConcurrentModificationError(IllegalStateError):
    """Dispute was changed by another writer since it was read."""

    def __init__(self, dispute_id: str | None = None) -> None:
        self.dispute_id = dispute_id
        detail = "Dispute was modified concurrently"
        if dispute_id:
            detail = f"Dispute '{dispute_id}' was modified concurrently"
        super().__init__(detail)


class InfrastructureError(AppException):
    """Store or gateway failure; the caller may retry."""

    def __init__(self, service: str, detail: str | None = None) -> None:
        self.service = service
        message = f"External service '{service}' is unavailable"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=message)


class ChargebackProcessingError(InfrastructureError):
    """Chargeback gateway failed, timed out or returned an unusable answer."""

    def __init__(self, detail: str) -> None:
        super().__init__("chargeback_gateway", detail)
