"""API dependencies."""

from dispute_engine.services.dispute_service import DisputeService, dispute_service


def get_dispute_service() -> DisputeService:
    """Dispute engine used by request handlers. Overridden in tests."""
    return dispute_service
