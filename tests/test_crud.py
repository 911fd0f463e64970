from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from hifz import crud
from hifz.database import init_db, make_engine
from hifz.errors import ConcurrentUpdateError
from hifz.models import ItemStatus, MemorizationItem
from hifz.scheduler import HifzScheduler
from hifz.schemas import ItemCreate


def test_insert_and_find(db, now):
    item = crud.insert_item(db, ItemCreate(surah=67, ayah=1, page=562), now)

    assert item.id
    assert item.version == 1
    assert crud.find_item(db, 67, 1) is item
    assert crud.get_item(db, item.id) is item
    assert crud.find_item(db, 67, 2) is None


def test_unique_verse_constraint(db, now):
    crud.insert_item(db, ItemCreate(surah=67, ayah=1), now)
    with pytest.raises(IntegrityError):
        crud.insert_item(db, ItemCreate(surah=67, ayah=1), now)


def test_update_bumps_version(db, now):
    item = crud.insert_item(db, ItemCreate(surah=67, ayah=1), now)
    item.interval_days = 1
    crud.update_item(db, item)

    assert item.version == 2


def test_delete_item(db, now):
    item = crud.insert_item(db, ItemCreate(surah=67, ayah=1), now)

    assert crud.delete_item(db, item.id) is True
    assert crud.get_item(db, item.id) is None
    assert crud.delete_item(db, item.id) is False


def test_list_due_orders_nulls_first(db, now):
    scheduled = crud.insert_item(db, ItemCreate(surah=1, ayah=1), now - timedelta(days=2))
    unscheduled = crud.insert_item(db, ItemCreate(surah=1, ayah=2), now)
    unscheduled.next_review_at = None
    later = crud.insert_item(db, ItemCreate(surah=1, ayah=3), now + timedelta(minutes=1))
    db.flush()

    due = crud.list_due(db, now, limit=10)

    assert due == [unscheduled, scheduled]
    assert later not in due
    assert crud.list_due(db, now, limit=1) == [unscheduled]
    assert crud.count_due(db, now) == 2


def test_counts(db, now):
    first = crud.insert_item(db, ItemCreate(surah=1, ayah=1), now)
    crud.insert_item(db, ItemCreate(surah=1, ayah=2), now)
    first.status = ItemStatus.MASTERED
    db.flush()

    assert crud.count_items(db) == 2
    assert crud.count_by_status(db) == {
        ItemStatus.LEARNING: 1,
        ItemStatus.REVIEW: 0,
        ItemStatus.MASTERED: 1,
    }


def test_list_items_in_mushaf_order(db, now):
    crud.insert_item(db, ItemCreate(surah=2, ayah=1), now)
    crud.insert_item(db, ItemCreate(surah=1, ayah=7), now)
    crud.insert_item(db, ItemCreate(surah=1, ayah=2), now)

    assert [(i.surah, i.ayah) for i in crud.list_items(db)] == [(1, 2), (1, 7), (2, 1)]


@pytest.fixture
def file_sessions(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'hifz.db'}")
    init_db(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    engine.dispose()


def test_stale_update_is_rejected(file_sessions, now):
    with file_sessions.begin() as db:
        item_id = crud.insert_item(db, ItemCreate(surah=1, ayah=1), now).id

    first = file_sessions()
    second = file_sessions()
    try:
        stale = crud.get_item(first, item_id)
        fresh = crud.get_item(second, item_id)

        fresh.interval_days = 1
        crud.update_item(second, fresh)
        second.commit()

        stale.interval_days = 6
        with pytest.raises(StaleDataError):
            crud.update_item(first, stale)
    finally:
        first.rollback()
        second.close()
        first.close()

    with file_sessions() as db:
        assert db.get(MemorizationItem, item_id).interval_days == 1


def test_scheduler_reports_concurrent_grade(file_sessions, now, monkeypatch):
    scheduler = HifzScheduler(file_sessions)
    item_id = scheduler.add_item(1, 1, now=now)
    original_get = crud.get_item

    def get_then_race(db, requested_id):
        item = original_get(db, requested_id)
        # Another client grades the same item between our read and write
        with file_sessions.begin() as other:
            other_item = original_get(other, requested_id)
            other_item.interval_days = 1
            other_item.total_reps = 1
        return item

    monkeypatch.setattr(crud, "get_item", get_then_race)
    with pytest.raises(ConcurrentUpdateError):
        scheduler.record_attempt(item_id, "good", now=now)
    monkeypatch.setattr(crud, "get_item", original_get)

    item = scheduler.get_item(item_id)
    assert item.total_reps == 1
    assert item.version == 2
