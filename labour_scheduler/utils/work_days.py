"""Working-day helpers shared by the allocation strategies."""

from datetime import date, datetime, timedelta
from typing import Iterator, Union

DateLike = Union[date, datetime, str]

# date.weekday(): Monday == 0 ... Saturday == 5, Sunday == 6
WEEKEND_DAYS = frozenset({5, 6})


def to_date(value: DateLike) -> date:
    """Coerce an ISO string, datetime or date into a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def format_date(value: DateLike) -> str:
    """Format as the YYYY-MM-DD key used by allocation maps."""
    return to_date(value).isoformat()


def is_working_day(value: DateLike) -> bool:
    return to_date(value).weekday() not in WEEKEND_DAYS


def iter_days(start: DateLike, end: DateLike) -> Iterator[date]:
    """Yield every calendar day in [start, end]. Empty when end < start."""
    current = to_date(start)
    last = to_date(end)
    while current <= last:
        yield current
        current += timedelta(days=1)


def iter_working_days(start: DateLike, end: DateLike) -> Iterator[date]:
    """Yield Monday-Friday days in [start, end]."""
    for day in iter_days(start, end):
        if is_working_day(day):
            yield day


def count_working_days(start: DateLike, end: DateLike) -> int:
    return sum(1 for _ in iter_working_days(start, end))


def window_end(start: DateLike, length_days: int) -> date:
    """Last day of a window of ``length_days`` calendar days starting at ``start``."""
    return to_date(start) + timedelta(days=length_days - 1)
