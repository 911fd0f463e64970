from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from hifz.models import ItemStatus, MemorizationItem
from hifz.schemas import ItemCreate
from hifz.sm2 import INITIAL_EASE
from datetime import datetime
from typing import Dict, List, Optional

def _due_filter(now: datetime):
    return or_(
        MemorizationItem.next_review_at.is_(None),
        MemorizationItem.next_review_at <= now
    )

def get_item(db: Session, item_id: str) -> Optional[MemorizationItem]:
    """Get item by ID"""
    return db.get(MemorizationItem, item_id)

def find_item(db: Session, surah: int, ayah: int) -> Optional[MemorizationItem]:
    """Get the item registered for a verse"""
    return db.query(MemorizationItem).filter(
        MemorizationItem.surah == surah,
        MemorizationItem.ayah == ayah
    ).first()

def insert_item(db: Session, item: ItemCreate, now: datetime) -> MemorizationItem:
    """Insert a new learning item, due immediately"""
    db_item = MemorizationItem(
        **item.model_dump(),
        status=ItemStatus.LEARNING,
        total_reps=0,
        consecutive_correct=0,
        ease_factor=INITIAL_EASE,
        interval_days=0,
        next_review_at=now,
        created_at=now,
        updated_at=now
    )
    db.add(db_item)
    db.flush()
    return db_item

def update_item(db: Session, item: MemorizationItem) -> MemorizationItem:
    """Write pending changes; raises StaleDataError if the row changed since it was read"""
    db.add(item)
    db.flush()
    return item

def delete_item(db: Session, item_id: str) -> bool:
    """Delete item, returns False if it did not exist"""
    db_item = get_item(db, item_id)
    if not db_item:
        return False
    db.delete(db_item)
    db.flush()
    return True

def list_due(db: Session, now: datetime, limit: int) -> List[MemorizationItem]:
    """Items due at `now`, never-scheduled first, then oldest due, then oldest registered"""
    return db.query(MemorizationItem).filter(
        _due_filter(now)
    ).order_by(
        MemorizationItem.next_review_at.asc().nulls_first(),
        MemorizationItem.created_at.asc()
    ).limit(limit).all()

def list_items(db: Session) -> List[MemorizationItem]:
    """All items in mushaf order"""
    return db.query(MemorizationItem).order_by(
        MemorizationItem.surah, MemorizationItem.ayah
    ).all()

def count_items(db: Session) -> int:
    return db.query(func.count(MemorizationItem.id)).scalar() or 0

def count_due(db: Session, now: datetime) -> int:
    return db.query(func.count(MemorizationItem.id)).filter(_due_filter(now)).scalar() or 0

def count_by_status(db: Session) -> Dict[ItemStatus, int]:
    """Item counts per status; statuses with no items are reported as 0"""
    counts = {status: 0 for status in ItemStatus}
    rows = db.query(MemorizationItem.status, func.count(MemorizationItem.id)).group_by(
        MemorizationItem.status
    ).all()
    for status, count in rows:
        counts[ItemStatus(status)] = count
    return counts
