"""OutboxProcessor: delivers pending outbox events from Celery workers."""

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy import text
from sqlalchemy.orm import Session

from src.config import settings
from src.database.engine import sync_engine
from src.modules.events.handlers import EventHandlerRegistry

logger = logging.getLogger(__name__)

NO_HANDLERS = "no_handlers"


class OutboxProcessor:
    """Runs registered handlers for PENDING outbox rows.

    Rows are claimed with ``FOR UPDATE SKIP LOCKED`` so several workers can
    poll at once. A row already present in ``processed_events`` is completed
    without running its handlers again. A row whose handlers keep failing is
    moved to FAILED after ``max_retries`` attempts.
    """

    def __init__(self, engine=None) -> None:
        self.engine = engine or sync_engine

    def process_batch(self, batch_size: int | None = None) -> dict:
        """Deliver up to ``batch_size`` events; returns processed/failed counts."""
        batch_size = batch_size or settings.event_outbox_batch_size
        counts = {"processed": 0, "failed": 0}

        with Session(self.engine) as session:
            rows = session.execute(
                text("""
                    SELECT id, event_type, payload, retry_count, max_retries
                    FROM event_outbox
                    WHERE status = 'PENDING'
                    ORDER BY created_at ASC
                    LIMIT :batch_size
                    FOR UPDATE SKIP LOCKED
                """),
                {"batch_size": batch_size},
            ).fetchall()

            for row in rows:
                try:
                    self._deliver(session, row)
                    session.commit()
                    counts["processed"] += 1
                except Exception as exc:
                    session.rollback()
                    logger.exception("Outbox event %s (%s) failed", row.id, row.event_type)
                    self._record_attempt(session, row, exc)
                    session.commit()
                    counts["failed"] += 1

        if rows:
            logger.info(
                "Outbox batch: %d delivered, %d failed", counts["processed"], counts["failed"]
            )
        return counts

    def _deliver(self, session: Session, row) -> None:
        seen = session.execute(
            text("SELECT 1 FROM processed_events WHERE event_id = :event_id LIMIT 1"),
            {"event_id": row.id},
        ).fetchone()
        if seen:
            logger.info("Outbox event %s already delivered, skipping handlers", row.id)
            self._complete(session, row.id)
            return

        # Left uncommitted: a worker crash rolls the row back to PENDING
        session.execute(
            text("UPDATE event_outbox SET status = 'PROCESSING' WHERE id = :event_id"),
            {"event_id": row.id},
        )

        results = EventHandlerRegistry.dispatch(row.event_type, row.payload)
        errors = [r for r in results if r["status"] == "error"]
        if errors:
            raise RuntimeError(
                "; ".join(f"{r['handler']}: {r['error']}" for r in errors)
            )

        session.execute(
            text("""
                INSERT INTO processed_events
                    (id, event_id, event_type, handler_names, processed_at, expires_at)
                VALUES
                    (gen_random_uuid(), :event_id, :event_type, :handler_names, now(), :expires_at)
            """),
            {
                "event_id": row.id,
                "event_type": row.event_type,
                "handler_names": ",".join(r["handler"] for r in results) or NO_HANDLERS,
                "expires_at": datetime.now(UTC) + timedelta(days=settings.processed_event_ttl_days),
            },
        )
        self._complete(session, row.id)

    @staticmethod
    def _complete(session: Session, event_id) -> None:
        session.execute(
            text("""
                UPDATE event_outbox
                SET status = 'COMPLETED', processed_at = now()
                WHERE id = :event_id
            """),
            {"event_id": event_id},
        )

    @staticmethod
    def _record_attempt(session: Session, row, exc: Exception) -> None:
        attempts = row.retry_count + 1
        session.execute(
            text("""
                UPDATE event_outbox
                SET status = :status, retry_count = :retry_count, last_error = :error
                WHERE id = :event_id
            """),
            {
                "status": "FAILED" if attempts >= row.max_retries else "PENDING",
                "retry_count": attempts,
                "error": str(exc),
                "event_id": row.id,
            },
        )

    def cleanup_expired(self) -> int:
        """Drop expired idempotency records and old COMPLETED outbox rows.

        FAILED rows are kept until someone resolves them.
        """
        with Session(self.engine) as session:
            expired = session.execute(
                text("DELETE FROM processed_events WHERE expires_at < now()")
            ).rowcount
            completed = session.execute(
                text("""
                    DELETE FROM event_outbox
                    WHERE status = 'COMPLETED'
                      AND processed_at < now() - make_interval(days => :days)
                """),
                {"days": settings.completed_event_retention_days},
            ).rowcount
            session.commit()

        logger.info(
            "Outbox cleanup removed %d processed records and %d completed events",
            expired,
            completed,
        )
        return expired + completed
