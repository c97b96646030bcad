from datetime import date, datetime, timedelta
from typing import Iterator

def normalize_day(value) -> date:
    """Calendar day of a date, datetime or ISO string. Time of day is dropped."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    raise TypeError(f"Cannot read a calendar day from {value!r}")

def iter_days(start, end) -> Iterator[date]:
    """Inclusive on both ends."""
    day, last = normalize_day(start), normalize_day(end)
    while day <= last:
        yield day
        day += timedelta(days=1)
