"""Celery worker configuration.

Scheduled dispute housekeeping:
- Overdue sweep (regulatory deadlines), hourly
- Escalation sweep (investigation window, high value, fraud), daily
"""

from celery import Celery
from celery.schedules import crontab

from dispute_engine.config import settings

celery_app = Celery(
    "dispute_tasks",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["dispute_engine.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Sweeps are idempotent, so redelivery after a lost worker is safe
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=300,
    task_soft_time_limit=240,
    worker_prefetch_multiplier=1,

    task_routes={"dispute_engine.tasks.*": {"queue": settings.celery_queue}},
    result_expires=3600,

    beat_schedule={
        "sweep-overdue-disputes": {
            "task": "dispute_engine.tasks.sweep_overdue_disputes",
            "schedule": crontab(minute=settings.overdue_sweep_minute),
        },
        "escalate-stale-disputes": {
            "task": "dispute_engine.tasks.escalate_stale_disputes",
            "schedule": crontab(hour=settings.escalation_sweep_hour, minute=0),
        },
    },
)


if __name__ == "__main__":
    celery_app.start()
