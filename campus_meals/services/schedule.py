"""
Selection deadlines and serving windows.

All wall-clock inputs (slot start/end) are read in the regional zone, so a
deadline computed here and the "now" it is compared against always share one
interpretation.
"""
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from fastapi import HTTPException

from campus_meals.services.campus_service import SlotConfig
from campus_meals.utils import timeutils

SELECTED = "SELECTED"
NOT_INTERESTED = "NOT_INTERESTED"
NOT_SELECTED = "NOT_SELECTED"
CLOSED = "CLOSED"


def selection_deadline(day: date, start_time: time, offset_hours: int) -> datetime:
    """Slot start on ``day`` shifted by the signed offset, as an aware datetime"""
    return timeutils.shift_local(timeutils.at_local(day, start_time), timedelta(hours=offset_hours))


def is_past(deadline: datetime, now: Optional[datetime] = None) -> bool:
    now = now or timeutils.local_now()
    return now > deadline


def selection_status(
    responded: bool,
    ordered: bool,
    deadline: datetime,
    now: Optional[datetime] = None,
) -> str:
    if ordered:
        return SELECTED
    if responded:
        return NOT_INTERESTED
    if is_past(deadline, now):
        return CLOSED
    return NOT_SELECTED


def active_slot(configs: Iterable[SlotConfig], now: Optional[datetime] = None) -> Optional[SlotConfig]:
    """First configured slot whose [start, end) window contains now"""
    now = now or timeutils.local_now()
    current = now.time().replace(tzinfo=None, microsecond=0)
    for config in configs:
        if config.start_time <= current < config.end_time:
            return config
    return None


def check_date_range(start: date, end: date) -> None:
    if start > end:
        raise HTTPException(status_code=400, detail="'from' must be on or before 'to'")
