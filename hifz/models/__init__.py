from hifz.models.memorization import Grade, ItemStatus, MemorizationItem

__all__ = [
    "Grade",
    "ItemStatus",
    "MemorizationItem",
]
