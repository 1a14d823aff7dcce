"""Date helpers shared by the store, the analyzer and the routers."""
import calendar
from datetime import date, datetime, time, timezone
from typing import Optional, Union


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Union[datetime, date, str, None]) -> Optional[datetime]:
    """
    Normalise a datetime, date or ISO string to an aware UTC datetime.
    Naive values are taken to be UTC already.
    """
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    elif not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso(value: Union[datetime, date, str]) -> str:
    # Fixed microsecond precision keeps lexical order equal to time order in DynamoDB.
    return as_utc(value).isoformat(timespec="microseconds")


def start_of_day(value: datetime) -> datetime:
    return as_utc(value).replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(value: datetime) -> datetime:
    return as_utc(value).replace(hour=23, minute=59, second=59, microsecond=999999)


def parse_bound(raw: Optional[str], end: bool = False) -> Optional[datetime]:
    """
    Parse a startDate/endDate query value. A bare ``YYYY-MM-DD`` end bound
    covers the whole of that day.
    """
    if not raw:
        return None
    parsed = as_utc(raw)
    if end and len(raw.strip()) == 10:
        return end_of_day(parsed)
    return parsed


def shift_months(value: datetime, months: int) -> datetime:
    """Move ``value`` by whole calendar months, clamping the day to the target month."""
    index = value.year * 12 + (value.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def month_key(value: datetime) -> str:
    return as_utc(value).strftime("%Y-%m")


def day_key(value: datetime) -> str:
    return as_utc(value).date().isoformat()
