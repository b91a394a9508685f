"""
Regional clock helpers.

Slot windows, selection deadlines and QR expiry are all wall-clock values in
the configured ``APP_TIMEZONE``. Anything persisted as a timestamp is stored
as naive UTC.
"""
from datetime import date, datetime, time, timedelta
from functools import lru_cache

import pytz

from campus_meals.config import get_settings


@lru_cache()
def local_zone():
    return pytz.timezone(get_settings().APP_TIMEZONE)


def local_now() -> datetime:
    """Current time as an aware datetime in the regional zone"""
    return datetime.now(pytz.utc).astimezone(local_zone())


def local_today() -> date:
    return local_now().date()


def at_local(day: date, moment: time) -> datetime:
    """Combine a calendar date and a wall-clock time in the regional zone"""
    return local_zone().localize(datetime.combine(day, moment.replace(tzinfo=None)))


def shift_local(value: datetime, delta: timedelta) -> datetime:
    """Add ``delta`` to a regional datetime, re-resolving the zone offset"""
    return local_zone().normalize(value + delta)


def end_of_local_day(day: date) -> datetime:
    """Regional midnight that closes ``day``"""
    return at_local(day + timedelta(days=1), time(0, 0))


def to_naive_utc(value: datetime) -> datetime:
    return value.astimezone(pytz.utc).replace(tzinfo=None)


def utc_now() -> datetime:
    """Naive UTC now, derived from the regional clock so both move together"""
    return to_naive_utc(local_now())


def iter_days(start: date, end: date):
    """Yield every date from start to end, inclusive"""
    cursor = start
    while cursor <= end:
        yield cursor
        cursor += timedelta(days=1)
