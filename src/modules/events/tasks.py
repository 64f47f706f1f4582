"""Celery tasks for outbox delivery."""

from celery_app import celery
from src.modules.events.outbox_processor import OutboxProcessor
from src.modules.notification.handlers import register_handlers

register_handlers()


@celery.task(name="src.modules.events.tasks.process_outbox")
def process_outbox():
    return OutboxProcessor().process_batch()


@celery.task(name="src.modules.events.tasks.cleanup_processed_events")
def cleanup_processed_events():
    return OutboxProcessor().cleanup_expired()
