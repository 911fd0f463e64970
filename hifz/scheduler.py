"""
Memorization scheduler: the public operations of the Hifz review engine.

Every operation runs in its own short transaction and takes the current time
from the caller, so the engine holds no state between calls and is
deterministic under test.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import List, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from hifz import crud
from hifz.config import settings
from hifz.database import SessionLocal
from hifz.errors import (
    ConcurrentUpdateError,
    DuplicateItemError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from hifz.logging import logger
from hifz.models import Grade, ItemStatus, MemorizationItem
from hifz.schemas import AttemptOutcome, ItemCreate, ProgressStats
from hifz.sm2 import SM2Algorithm
from hifz.utils import as_utc_naive


def get_scheduler() -> "HifzScheduler":
    """Scheduler bound to the configured database"""
    return HifzScheduler(SessionLocal)


class HifzScheduler:
    """Due-queue selection, grading and statistics over memorization items"""

    def __init__(self, session_factory: sessionmaker = None):
        self._session_factory = session_factory or SessionLocal

    @contextmanager
    def _transaction(self, operation: str):
        """Session in a transaction; database failures surface as StorageError"""
        try:
            with self._session_factory.begin() as db:
                yield db
        except StaleDataError as exc:
            logger.warning("memorization.storage_error", operation=operation, error=str(exc))
            raise ConcurrentUpdateError(
                f"{operation}: item was modified concurrently, re-read and retry"
            ) from exc
        except IntegrityError as exc:
            logger.warning("memorization.storage_error", operation=operation, error=str(exc))
            raise DuplicateItemError(f"{operation}: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            logger.error("memorization.storage_error", operation=operation, error=str(exc))
            raise StorageError(f"{operation} failed: {exc}") from exc

    @staticmethod
    def _validate_item(surah: int, ayah: int, page: int) -> ItemCreate:
        try:
            return ItemCreate(surah=surah, ayah=ayah, page=page)
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid verse reference {surah}:{ayah}: {exc}") from exc

    def add_item(self, surah: int, ayah: int, page: int = 0, *, now: datetime) -> str:
        """
        Register a verse for memorization.

        Registration is idempotent: if the verse is already tracked its
        existing id is returned and nothing is written.
        """
        item_data = self._validate_item(surah, ayah, page)
        now = as_utc_naive(now)

        try:
            with self._transaction("add_item") as db:
                existing = crud.find_item(db, item_data.surah, item_data.ayah)
                if existing:
                    logger.info("memorization.item_exists", item_id=existing.id,
                                surah=existing.surah, ayah=existing.ayah)
                    return existing.id
                item_id = crud.insert_item(db, item_data, now).id
        except DuplicateItemError:
            # Lost an insert race for the same verse
            with self._transaction("add_item") as db:
                existing = crud.find_item(db, item_data.surah, item_data.ayah)
                if existing is None:
                    raise
                return existing.id

        logger.info("memorization.item_added", item_id=item_id,
                    surah=item_data.surah, ayah=item_data.ayah, page=item_data.page)
        return item_id

    def remove_item(self, item_id: str, *, strict: bool = False) -> bool:
        """Delete an item. A missing id is a no-op unless `strict` is set."""
        with self._transaction("remove_item") as db:
            removed = crud.delete_item(db, item_id)
        if not removed and strict:
            raise NotFoundError(item_id)
        if removed:
            logger.info("memorization.item_removed", item_id=item_id)
        return removed

    def get_item(self, item_id: str) -> MemorizationItem:
        with self._transaction("get_item") as db:
            item = crud.get_item(db, item_id)
        if item is None:
            raise NotFoundError(item_id)
        return item

    def list_items(self) -> List[MemorizationItem]:
        with self._transaction("list_items") as db:
            return crud.list_items(db)

    def get_due_items(self, now: datetime, limit: Optional[int] = None) -> List[MemorizationItem]:
        """Review queue at `now`, truncated to `limit` items (0 gives an empty queue)"""
        if limit is None:
            limit = settings.due_queue_limit
        if limit < 0:
            raise ValidationError(f"limit must not be negative, got {limit}")
        now = as_utc_naive(now)
        if limit == 0:
            return []
        with self._transaction("get_due_items") as db:
            return crud.list_due(db, now, limit)

    def record_attempt(
        self,
        item_id: str,
        grade: Union[Grade, int, str],
        *,
        now: datetime
    ) -> AttemptOutcome:
        """
        Apply a self-reported grade to an item and persist the new schedule.

        The item is re-read inside the transaction, so the update is always
        computed from the stored state. A concurrent grade of the same item
        makes this call fail with ConcurrentUpdateError instead of silently
        overwriting it.
        """
        grade = Grade.parse(grade)
        now = as_utc_naive(now)

        with self._transaction("record_attempt") as db:
            item = crud.get_item(db, item_id)
            if item is None:
                raise NotFoundError(item_id)

            update = SM2Algorithm.calculate_next_review(
                item.ease_factor,
                item.interval_days,
                item.consecutive_correct,
                ItemStatus(item.status),
                grade,
                reference_time=now
            )
            item.ease_factor = update.ease_factor
            item.interval_days = update.interval_days
            item.consecutive_correct = update.consecutive_correct
            item.status = update.status
            item.next_review_at = update.next_review_at
            item.total_reps = item.total_reps + 1
            item.last_attempt_at = now
            item.last_grade = int(grade)
            item.updated_at = now
            crud.update_item(db, item)

            outcome = AttemptOutcome(
                id=item.id,
                next_review_at=update.next_review_at,
                interval_days=update.interval_days,
                status=update.status,
                ease_factor=update.ease_factor,
                consecutive_correct=update.consecutive_correct
            )

        logger.info("memorization.attempt_recorded", item_id=item_id, grade=grade.name.lower(),
                    interval_days=outcome.interval_days, status=outcome.status.value,
                    ease_factor=outcome.ease_factor)
        return outcome

    def get_progress_stats(self, now: datetime) -> ProgressStats:
        now = as_utc_naive(now)
        with self._transaction("get_progress_stats") as db:
            by_status = crud.count_by_status(db)
            return ProgressStats(
                total_items=crud.count_items(db),
                due_today=crud.count_due(db, now),
                mastered_count=by_status[ItemStatus.MASTERED],
                learning_count=by_status[ItemStatus.LEARNING],
                review_count=by_status[ItemStatus.REVIEW]
            )
