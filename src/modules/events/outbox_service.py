"""Writes and reconciles rows in the event outbox."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.exceptions import NotFoundException
from src.models.enums import EventStatus
from src.models.event_outbox import EventOutbox


class OutboxService:
    """Adds outbox rows inside the caller's transaction."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _add(self, event: EventOutbox) -> EventOutbox:
        self.session.add(event)
        await self.session.flush()
        return event

    async def publish_event(
        self,
        event_type: str,
        aggregate_type: str,
        aggregate_id: str,
        payload: dict,
        schema_version: int = 1,
    ) -> EventOutbox:
        """Queue an event for the processor; it commits with the business change."""
        return await self._add(
            EventOutbox(
                event_type=event_type,
                aggregate_type=aggregate_type,
                aggregate_id=aggregate_id,
                payload=payload,
                status=EventStatus.PENDING,
                schema_version=schema_version,
            )
        )

    async def record_failure(
        self,
        event_type: str,
        aggregate_type: str,
        aggregate_id: str,
        payload: dict,
        error: str,
    ) -> EventOutbox:
        """Store a best-effort side effect that failed, for manual reconciliation.

        The row is written directly as FAILED so the processor never picks it
        up; operators find it with ``list_failed_events``.
        """
        return await self._add(
            EventOutbox(
                event_type=event_type,
                aggregate_type=aggregate_type,
                aggregate_id=aggregate_id,
                payload=payload,
                status=EventStatus.FAILED,
                last_error=error,
            )
        )

    async def list_failed_events(
        self, event_type: str | None = None, limit: int = 100
    ) -> list[EventOutbox]:
        statement = select(EventOutbox).where(EventOutbox.status == EventStatus.FAILED)
        if event_type:
            statement = statement.where(EventOutbox.event_type == event_type)
        statement = statement.order_by(EventOutbox.created_at.desc()).limit(limit)
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def resolve_failed_event(self, event_id: uuid.UUID) -> EventOutbox:
        """Close out a FAILED event once its side effect was handled by hand."""
        event = await self.session.get(EventOutbox, event_id)
        if event is None or event.status != EventStatus.FAILED:
            raise NotFoundException(f"Failed event {event_id} not found")
        event.status = EventStatus.COMPLETED
        event.processed_at = datetime.now(UTC)
        await self.session.flush()
        return event
