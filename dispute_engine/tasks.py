"""Celery background tasks for dispute housekeeping."""

import asyncio
import logging

from celery import shared_task

from dispute_engine.core.exceptions import InfrastructureError
from dispute_engine.services.dispute_service import DisputeService, dispute_service

logger = logging.getLogger(__name__)


_worker_loop: asyncio.AbstractEventLoop | None = None


def run_async(coro):
    """Run async function in sync context.

    Every task in a worker process shares one loop: pooled database
    connections are bound to the loop that opened them.
    """
    global _worker_loop
    if _worker_loop is None or _worker_loop.is_closed():
        _worker_loop = asyncio.new_event_loop()
    return _worker_loop.run_until_complete(coro)


# ==================== DEADLINE TASKS ====================


@shared_task(bind=True, max_retries=3)
def sweep_overdue_disputes(self):
    """Mark unresolved disputes past their regulatory deadline as OVERDUE.

    Runs hourly.
    """
    try:
        marked = run_async(_sweep_overdue_disputes())
        return {"status": "success", "marked_overdue": marked}
    except InfrastructureError as exc:
        raise self.retry(exc=exc, countdown=300)


async def _sweep_overdue_disputes(service: DisputeService | None = None) -> int:
    """Async implementation of the overdue sweep."""
    service = service or dispute_service
    marked = await service.sweep_overdue()
    if marked:
        logger.warning(f"Marked {marked} dispute(s) overdue")
    return marked


# ==================== ESCALATION TASKS ====================


@shared_task(bind=True, max_retries=3)
def escalate_stale_disputes(self):
    """Escalate open disputes that meet an escalation trigger.

    Runs daily at 2 AM UTC.
    """
    try:
        escalated = run_async(_escalate_stale_disputes())
        return {"status": "success", "escalated": escalated}
    except InfrastructureError as exc:
        raise self.retry(exc=exc, countdown=300)


async def _escalate_stale_disputes(service: DisputeService | None = None) -> int:
    """Async implementation of the escalation sweep."""
    service = service or dispute_service
    escalated = await service.escalate_stale_disputes()
    if escalated:
        logger.warning(f"Escalated {escalated} dispute(s)")
    return escalated
