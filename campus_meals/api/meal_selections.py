"""
Meal selection endpoints
"""
import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_meals.database import get_db
from campus_meals.models.campus import MealSlot, MealSlotName
from campus_meals.models.meal_record import UserMealRecord, MealReceipt
from campus_meals.models.user import RoleName, ADMIN_ROLES
from campus_meals.services.access_control import Principal
from campus_meals.services.campus_service import campus_slot_configs, resolve_primary_campus_id, slot_ids_by_name
from campus_meals.services.menu_service import published_items
from campus_meals.services import schedule
from campus_meals.utils import timeutils
from campus_meals.utils.db_compat import upsert
from campus_meals.api.auth import get_current_user

router = APIRouter()
logger = logging.getLogger(__name__)

MAX_SELECTION_DAYS = 62


class SelectionInput(BaseModel):
    meal_slot: str
    selected: bool


class SelectionRequest(BaseModel):
    day: Optional[date] = Field(default=None, alias="date")
    from_date: Optional[date] = Field(default=None, alias="from")
    to_date: Optional[date] = Field(default=None, alias="to")
    items: List[SelectionInput] = Field(min_length=1)

    class Config:
        populate_by_name = True


def _expand_dates(data: SelectionRequest) -> List[date]:
    if data.day is not None:
        return [data.day]
    if data.from_date is not None and data.to_date is not None:
        if data.from_date > data.to_date:
            raise HTTPException(status_code=400, detail="Invalid date range")
        if (data.to_date - data.from_date).days + 1 > MAX_SELECTION_DAYS:
            raise HTTPException(status_code=400, detail=f"Date range cannot exceed {MAX_SELECTION_DAYS} days")
        return list(timeutils.iter_days(data.from_date, data.to_date))
    raise HTTPException(status_code=400, detail="Provide either date or from/to range")


async def _resolve_slot_filter(db: AsyncSession, slot: Optional[str]) -> Optional[int]:
    """Accept a slot name (any case) or a numeric slot id"""
    if not slot:
        return None

    slot_ids = await slot_ids_by_name(db)
    value = slot.strip()
    if value.isdigit() and int(value) in slot_ids.values():
        return int(value)
    try:
        name = MealSlotName(value.upper())
    except ValueError:
        name = None
    if name is not None and name in slot_ids:
        return slot_ids[name]

    allowed = ", ".join(n.value for n in slot_ids)
    raise HTTPException(
        status_code=400,
        detail=f"Invalid slot filter. Allowed names: {allowed} or valid slot ids.",
    )


async def build_history(
    db: AsyncSession,
    user_id: int,
    start: date,
    end: date,
    slot_id: Optional[int] = None,
    campus_id: Optional[int] = None,
) -> dict:
    """date -> slot -> {selected, received}, merging selections with receipts"""
    schedule.check_date_range(start, end)

    selections = (
        select(UserMealRecord.meal_date.label("day"), MealSlot.name.label("slot"), UserMealRecord.ordered)
        .join(MealSlot, UserMealRecord.meal_slot_id == MealSlot.id)
        .where(
            UserMealRecord.user_id == user_id,
            UserMealRecord.meal_date >= start,
            UserMealRecord.meal_date <= end,
        )
        .order_by(UserMealRecord.meal_date)
    )
    receipts = (
        select(MealReceipt.date.label("day"), MealSlot.name.label("slot"))
        .join(MealSlot, MealReceipt.meal_slot_id == MealSlot.id)
        .where(
            MealReceipt.user_id == user_id,
            MealReceipt.date >= start,
            MealReceipt.date <= end,
        )
    )
    if slot_id is not None:
        selections = selections.where(UserMealRecord.meal_slot_id == slot_id)
        receipts = receipts.where(MealReceipt.meal_slot_id == slot_id)
    if campus_id is not None:
        selections = selections.where(UserMealRecord.campus_id == campus_id)
        receipts = receipts.where(MealReceipt.campus_id == campus_id)

    history: dict[str, dict] = {}
    for row in (await db.execute(selections)).all():
        entry = history.setdefault(row.day.isoformat(), {}).setdefault(
            MealSlotName(row.slot).value, {"selected": False, "received": False}
        )
        entry["selected"] = bool(row.ordered)

    for row in (await db.execute(receipts)).all():
        entry = history.setdefault(row.day.isoformat(), {}).setdefault(
            MealSlotName(row.slot).value, {"selected": False, "received": False}
        )
        entry["received"] = True

    return history


@router.post("/")
async def create_selections(
    data: SelectionRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    """Opt in or out of slots for one date or an inclusive range.

    Every (date, slot) must still be open; one closed pair rejects the request
    and nothing is written.
    """
    current_user.require_roles(RoleName.STUDENT, detail="Only students can select meals")
    campus_id = current_user.campus_id
    if campus_id is None:
        raise HTTPException(status_code=400, detail="Campus not set for user")

    dates = _expand_dates(data)
    configs = {c.name: c for c in await campus_slot_configs(db, campus_id)}
    menu = await published_items(db, campus_id, min(dates), max(dates))

    now = timeutils.local_now()
    results = []
    for item in data.items:
        try:
            slot = MealSlotName(item.meal_slot.strip().upper())
        except ValueError:
            slot = None
        config = configs.get(slot)
        if config is None:
            raise HTTPException(status_code=400, detail=f"Meal slot not found for campus: {item.meal_slot}")

        for day in dates:
            deadline = schedule.selection_deadline(day, config.start_time, config.selection_deadline_offset_hours)
            if schedule.is_past(deadline, now):
                raise HTTPException(
                    status_code=400,
                    detail=f"Selection window closed for {day.isoformat()} {slot.value}",
                )

            await upsert(
                db,
                UserMealRecord,
                {
                    "user_id": current_user.id,
                    "campus_id": campus_id,
                    "meal_date": day,
                    "meal_slot_id": config.slot_id,
                    "ordered": item.selected,
                    "received": False,
                    "payload": menu.get((day, slot), {}),
                },
                conflict_on=["user_id", "meal_date", "meal_slot_id"],
                update=["campus_id", "ordered", "received", "payload"],
            )
            results.append({
                "date": day.isoformat(),
                "meal_slot": slot.value,
                "selected": item.selected,
                "deadline": deadline.isoformat(),
            })

    await db.commit()
    logger.info(f"User {current_user.id} recorded {len(results)} meal selections")
    return {"results": results}


@router.get("/me")
async def get_my_selections(
    from_date: date = Query(alias="from"),
    to_date: date = Query(alias="to"),
    slot: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    current_user.require_roles(RoleName.STUDENT, detail="Only students can view their selections")
    slot_id = await _resolve_slot_filter(db, slot)
    return await build_history(db, current_user.id, from_date, to_date, slot_id, current_user.campus_id)


@router.get("/admin/students/{user_id}/history")
async def get_student_history(
    user_id: int,
    from_date: date = Query(alias="from"),
    to_date: date = Query(alias="to"),
    slot: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    """Selection and receipt history for any student on a campus I manage"""
    current_user.require_roles(*ADMIN_ROLES)

    target_campus = await resolve_primary_campus_id(db, user_id)
    if target_campus is None:
        raise HTTPException(status_code=400, detail="Target user campus not set")
    current_user.require_campus_admin(target_campus)

    slot_id = await _resolve_slot_filter(db, slot)
    return await build_history(db, user_id, from_date, to_date, slot_id, target_campus)
