import uuid
from enum import Enum, IntEnum
from sqlalchemy import Column, Integer, String, Float, DateTime, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from hifz.database import Base
from hifz.errors import ValidationError
from hifz.review_schedule import ReviewSchedule, from_timestamp

class ItemStatus(str, Enum):
    """Lifecycle classification of a memorized verse"""
    LEARNING = "learning"
    REVIEW = "review"
    MASTERED = "mastered"

class Grade(IntEnum):
    """Self-reported recall quality for one review attempt"""
    AGAIN = 0
    HARD = 1
    GOOD = 2
    EASY = 3
    
    @classmethod
    def parse(cls, value) -> "Grade":
        """Accept a Grade, an int 0-3, or a name/number string ("good", "2")"""
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise ValidationError(f"Invalid grade: {value!r}")
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise ValidationError(f"Invalid grade: {value!r} (expected 0-3)") from None
        if isinstance(value, str):
            text = value.strip()
            if text.isdigit():
                return cls.parse(int(text))
            try:
                return cls[text.upper()]
            except KeyError:
                raise ValidationError(f"Invalid grade: {value!r}") from None
        raise ValidationError(f"Invalid grade: {value!r}")

def _new_id() -> str:
    return str(uuid.uuid4())

class MemorizationItem(Base):
    """Spaced repetition state for one memorized (surah, ayah)"""
    __tablename__ = "memorization_items"
    __table_args__ = (
        UniqueConstraint("surah", "ayah", name="uq_memorization_surah_ayah"),
    )
    
    id = Column(String(36), primary_key=True, default=_new_id)
    surah = Column(Integer, nullable=False)
    ayah = Column(Integer, nullable=False)
    page = Column(Integer, nullable=False, default=0)  # display hint only
    
    status = Column(
        SAEnum(ItemStatus, name="item_status", native_enum=False,
               values_callable=lambda statuses: [s.value for s in statuses]),
        nullable=False,
        default=ItemStatus.LEARNING,
    )
    
    # SM-2 fields
    total_reps = Column(Integer, nullable=False, default=0)
    consecutive_correct = Column(Integer, nullable=False, default=0)
    ease_factor = Column(Float, nullable=False, default=2.5)
    interval_days = Column(Integer, nullable=False, default=0)
    
    next_review_at = Column(DateTime, index=True)  # NULL: never scheduled, due now
    last_attempt_at = Column(DateTime)
    last_grade = Column(Integer)
    
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)
    
    # Bumped on every UPDATE; a stale version fails the flush
    version = Column(Integer, nullable=False)
    
    __mapper_args__ = {"version_id_col": version}
    
    @property
    def review_schedule(self) -> ReviewSchedule:
        return from_timestamp(self.next_review_at)
    
    @property
    def last_grade_enum(self):
        return Grade(self.last_grade) if self.last_grade is not None else None
    
    def __repr__(self):
        return f"<MemorizationItem {self.surah}:{self.ayah} {self.status.value}>"
