"""Year-scoped business document numbers (``PO-2026-0001``, ``DC-2026-0042``).

Each (prefix, year) pair owns one ``document_sequences`` row that is bumped
with a single atomic UPDATE ... RETURNING, so two concurrent allocations can
never observe the same value. The first allocation of a year seeds the
counter from the greatest number already issued, which keeps numbering
continuous for rows created before the counter existed.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from src.models.document_sequence import DocumentSequence

logger = logging.getLogger(__name__)

SEQUENCE_WIDTH = 4


def format_document_number(prefix: str, year: int, value: int) -> str:
    return f"{prefix}-{year}-{value:0{SEQUENCE_WIDTH}d}"


def parse_sequence_suffix(number: str | None) -> int:
    """Return the numeric suffix of ``PREFIX-YYYY-NNNN``, or 0 if it has none."""
    if not number:
        return 0
    try:
        return int(number.rsplit("-", 1)[1])
    except (IndexError, ValueError):
        return 0


class DocumentNumberService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def next_number(
        self,
        prefix: str,
        source_column: InstrumentedAttribute,
        year: int | None = None,
    ) -> str:
        """Allocate the next number for ``prefix`` in ``year`` (default: current)."""
        year = year or datetime.now(UTC).year

        value = await self._increment(prefix, year)
        if value is None:
            seed = await self._max_issued_suffix(prefix, year, source_column)
            value = await self._create_counter(prefix, year, seed + 1)

        number = format_document_number(prefix, year, value)
        logger.info("Allocated document number %s", number)
        return number

    async def is_taken(self, number: str, source_column: InstrumentedAttribute) -> bool:
        result = await self.db.execute(
            select(func.count()).where(source_column == number)
        )
        return (result.scalar() or 0) > 0

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _increment(self, prefix: str, year: int) -> int | None:
        result = await self.db.execute(
            update(DocumentSequence)
            .where(DocumentSequence.prefix == prefix, DocumentSequence.year == year)
            .values(last_value=DocumentSequence.last_value + 1)
            .returning(DocumentSequence.last_value)
        )
        return result.scalar_one_or_none()

    async def _max_issued_suffix(
        self, prefix: str, year: int, source_column: InstrumentedAttribute
    ) -> int:
        result = await self.db.execute(
            select(func.max(source_column)).where(source_column.like(f"{prefix}-{year}-%"))
        )
        return parse_sequence_suffix(result.scalar())

    async def _create_counter(self, prefix: str, year: int, initial_value: int) -> int:
        # A concurrent first allocation may insert the row first; fall through
        # to a plain increment of whatever it wrote.
        statement = (
            insert(DocumentSequence)
            .values(prefix=prefix, year=year, last_value=initial_value)
            .on_conflict_do_update(
                constraint="uq_document_sequences_prefix_year",
                set_={"last_value": DocumentSequence.last_value + 1},
            )
            .returning(DocumentSequence.last_value)
        )
        result = await self.db.execute(statement)
        return result.scalar_one()
