from pydantic import BaseModel, Field
from datetime import datetime
from hifz.models import ItemStatus

MAX_SURAH = 114

class ItemCreate(BaseModel):
    """Schema for registering a verse for memorization"""
    surah: int = Field(ge=1, le=MAX_SURAH)
    ayah: int = Field(ge=1)
    page: int = Field(default=0, ge=0)

class AttemptOutcome(BaseModel):
    """Scheduling outcome of one graded attempt"""
    id: str
    next_review_at: datetime
    interval_days: int
    status: ItemStatus
    ease_factor: float
    consecutive_correct: int

class ProgressStats(BaseModel):
    """Aggregate counts over all memorization items"""
    total_items: int = 0
    due_today: int = 0
    mastered_count: int = 0
    learning_count: int = 0
    review_count: int = 0
