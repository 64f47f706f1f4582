"""Celery worker and beat for the event outbox."""

import logging

from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging

from src.config import settings

OUTBOX_QUEUE = "event-outbox"

celery = Celery("giftflow", broker=settings.celery_broker_url, backend=settings.celery_result_backend)

celery.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_default_queue=OUTBOX_QUEUE,
    # Redelivered events are deduplicated through processed_events
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    result_expires=3600,
    broker_connection_retry_on_startup=True,
    beat_schedule={
        "process-event-outbox": {
            "task": "src.modules.events.tasks.process_outbox",
            "schedule": settings.event_outbox_poll_seconds,
        },
        "cleanup-processed-events": {
            "task": "src.modules.events.tasks.cleanup_processed_events",
            "schedule": crontab(hour=3, minute=30),
        },
    },
)


@setup_logging.connect
def configure_worker_logging(**kwargs):
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


celery.autodiscover_tasks(["src.modules.events"])
