class HifzError(Exception):
    """Base class for memorization engine errors"""


class ValidationError(HifzError, ValueError):
    """Malformed input, rejected before anything is written"""


class NotFoundError(HifzError, LookupError):
    """No memorization item exists for the given id"""

    def __init__(self, item_id: str):
        super().__init__(f"Memorization item {item_id} not found")
        self.item_id = item_id


class StorageError(HifzError):
    """The underlying database failed; the transaction was rolled back"""


class DuplicateItemError(StorageError):
    """A concurrent insert already registered the same (surah, ayah)"""


class ConcurrentUpdateError(StorageError):
    """The item changed in the database after it was read"""
