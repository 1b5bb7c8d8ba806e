from datetime import date, datetime, time
from typing import Optional, Union
from pytz import UTC, timezone


def local_timezone(tz_name: str):
    return timezone(tz_name)


def now_utc() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    # mongo hands back naive UTC datetimes
    if value.tzinfo is None:
        return UTC.localize(value)
    return value.astimezone(UTC)


def to_local(value: datetime, tz_name: str) -> datetime:
    return as_utc(value).astimezone(local_timezone(tz_name))


def calendar_day(value: Union[date, datetime]) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def start_of_day(value: Union[date, datetime]) -> datetime:
    """Naive midnight for the calendar date, the form dates are stored in."""
    return datetime.combine(calendar_day(value), time.min)


def local_at(day: Union[date, datetime], hour: int, minute: int, tz_name: str) -> datetime:
    naive = datetime.combine(calendar_day(day), time(hour, minute))
    return local_timezone(tz_name).localize(naive)


def format_local(value: Optional[datetime], tz_name: str, fmt: str = "%d/%m/%Y %H:%M") -> str:
    if value is None:
        return ""
    return to_local(value, tz_name).strftime(fmt)
