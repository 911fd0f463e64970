from datetime import datetime, timezone
from typing import Optional
from hifz.errors import ValidationError

def as_utc_naive(value: datetime) -> datetime:
    """Naive UTC; aware values are converted, naive ones are taken as UTC"""
    if not isinstance(value, datetime):
        raise ValidationError(f"Expected a datetime, got {value!r}")
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value

def parse_iso_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse ISO-8601 text such as '2024-03-01T05:00:00.000Z'; empty means absent"""
    if value is None or not str(value).strip():
        return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return as_utc_naive(datetime.fromisoformat(text))
    except ValueError:
        raise ValidationError(f"Invalid timestamp: {value!r}") from None
