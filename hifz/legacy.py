"""
Import of memorization rows from the legacy single-table schema.

Older app databases keep memorized verses in a ``memorization`` table with
camelCase columns and a ``streak`` counter instead of ``consecutiveCorrect``.
Rows are copied into ``memorization_items`` once; verses that are already
registered are left untouched. A row with an invalid verse reference, status
or negative counter aborts the whole import. Ease values are brought to two
decimals and the 1.3 floor.
"""

import re
from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hifz import crud
from hifz.database import init_db
from hifz.errors import StorageError, ValidationError
from hifz.logging import logger
from hifz.models import ItemStatus, MemorizationItem
from hifz.schemas import ItemCreate
from hifz.sm2 import INITIAL_EASE, MIN_EASE
from hifz.utils import as_utc_naive, parse_iso_timestamp

LEGACY_COLUMNS = (
    "id", "surah", "ayah", "status", "nextReviewAt", "intervalDays",
    "easeFactor", "streak", "createdAt", "updatedAt",
)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _legacy_status(value) -> ItemStatus:
    try:
        return ItemStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown legacy status: {value!r}") from None


def _legacy_verse(row) -> ItemCreate:
    try:
        return ItemCreate(surah=row["surah"], ayah=row["ayah"], page=0)
    except PydanticValidationError as exc:
        raise ValidationError(
            f"Invalid legacy verse reference {row['surah']}:{row['ayah']} (id {row['id']})"
        ) from exc


def _non_negative(row, column: str) -> int:
    value = row[column] or 0
    if value < 0:
        raise ValidationError(f"Negative legacy {column} {value} (id {row['id']})")
    return int(value)


def _legacy_ease(value) -> float:
    if value is None:
        return INITIAL_EASE
    # Legacy ease values are float sums such as 2.1799999999999997
    return max(MIN_EASE, round(float(value), 2))


def _legacy_item(row, now: datetime) -> MemorizationItem:
    verse = _legacy_verse(row)
    created_at = parse_iso_timestamp(row["createdAt"]) or now
    return MemorizationItem(
        id=row["id"],
        surah=verse.surah,
        ayah=verse.ayah,
        page=verse.page,
        status=_legacy_status(row["status"]),
        total_reps=0,
        consecutive_correct=_non_negative(row, "streak"),
        ease_factor=_legacy_ease(row["easeFactor"]),
        interval_days=_non_negative(row, "intervalDays"),
        next_review_at=parse_iso_timestamp(row["nextReviewAt"]),
        last_attempt_at=None,
        last_grade=None,
        created_at=created_at,
        updated_at=parse_iso_timestamp(row["updatedAt"]) or created_at,
    )


def import_legacy_items(engine, table: str = "memorization", now: Optional[datetime] = None) -> int:
    """
    Copy rows of a legacy memorization table into memorization_items.

    Args:
        engine: Engine holding both the legacy table and the new schema
        table: Legacy table name
        now: Fallback for missing timestamps (defaults to the current UTC time)

    Returns:
        Number of imported items; 0 when the legacy table does not exist
    """
    if not _IDENTIFIER.match(table):
        raise ValidationError(f"Invalid table name: {table!r}")
    now = as_utc_naive(now or datetime.now(timezone.utc))

    try:
        inspector = inspect(engine)
        if not inspector.has_table(table):
            logger.info("legacy.import_skipped", table=table, reason="no legacy table")
            return 0

        columns = {column["name"] for column in inspector.get_columns(table)}
        missing = [name for name in LEGACY_COLUMNS if name not in columns]
        if missing:
            raise ValidationError(f"Legacy table {table} is missing columns: {', '.join(missing)}")

        init_db(bind=engine)

        imported = 0
        with Session(engine) as db, db.begin():
            rows = db.execute(
                text(f'SELECT {", ".join(LEGACY_COLUMNS)} FROM "{table}" ORDER BY createdAt')
            ).mappings().all()
            seen = set()
            for row in rows:
                verse = (int(row["surah"]), int(row["ayah"]))
                if verse in seen or crud.find_item(db, *verse):
                    continue
                seen.add(verse)
                db.add(_legacy_item(row, now))
                imported += 1
            db.flush()
    except SQLAlchemyError as exc:
        logger.error("legacy.import_failed", table=table, error=str(exc))
        raise StorageError(f"Legacy import from {table} failed: {exc}") from exc

    logger.info("legacy.import_finished", table=table, imported=imported, total=len(rows))
    return imported
