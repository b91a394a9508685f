"""
Daily menu publication endpoints
"""
import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_meals.database import get_db
from campus_meals.models.campus import MealSlotName
from campus_meals.models.menu import DailyMenu, DailyMenuItem, MealItem
from campus_meals.models.meal_record import UserMealRecord
from campus_meals.models.user import ADMIN_ROLES
from campus_meals.services.access_control import Principal
from campus_meals.services.campus_service import campus_slot_configs, slot_ids_by_name
from campus_meals.services.menu_service import published_items
from campus_meals.services import schedule
from campus_meals.utils import timeutils
from campus_meals.utils.db_compat import upsert
from campus_meals.api.auth import get_current_user

router = APIRouter()
logger = logging.getLogger(__name__)


class MenuItemInput(BaseModel):
    slot: str
    meal_item_id: int = Field(gt=0)


class MenuUpsert(BaseModel):
    campus_id: int = Field(gt=0)
    menu_date: date = Field(alias="date")
    items: List[MenuItemInput] = Field(min_length=1)

    class Config:
        populate_by_name = True


def _parse_slots(items: List[MenuItemInput]) -> List[MealSlotName]:
    slots = []
    invalid = []
    for item in items:
        try:
            slots.append(MealSlotName(item.slot.strip().upper()))
        except ValueError:
            invalid.append(item.slot)
    if invalid:
        raise HTTPException(status_code=400, detail=f"Invalid slots: {', '.join(invalid)}")
    if len(set(slots)) != len(slots):
        raise HTTPException(status_code=400, detail="Each slot may appear only once per menu")
    return slots


@router.post("/")
async def upsert_menu(
    data: MenuUpsert,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    """Publish (or replace) the menu for one campus and date"""
    current_user.require_roles(*ADMIN_ROLES)
    current_user.require_campus_admin(data.campus_id)

    slots = _parse_slots(data.items)

    item_ids = {item.meal_item_id for item in data.items}
    result = await db.execute(
        select(MealItem.id, MealItem.is_active).where(MealItem.id.in_(sorted(item_ids)))
    )
    found = {row.id: row.is_active for row in result.all()}

    missing = sorted(item_ids - found.keys())
    if missing:
        raise HTTPException(status_code=400, detail=f"Meal items not found: {', '.join(map(str, missing))}")
    inactive = sorted(i for i, active in found.items() if not active)
    if inactive:
        raise HTTPException(status_code=400, detail=f"Meal items inactive: {', '.join(map(str, inactive))}")

    slot_ids = await slot_ids_by_name(db)
    unseeded = [s.value for s in slots if s not in slot_ids]
    if unseeded:
        raise HTTPException(status_code=400, detail=f"Meal slots not seeded: {', '.join(unseeded)}")

    menu_id = await upsert(
        db,
        DailyMenu,
        {"campus_id": data.campus_id, "date": data.menu_date},
        conflict_on=["campus_id", "date"],
        update=["campus_id"],
        returning=DailyMenu.id,
    )

    for slot, item in zip(slots, data.items):
        await upsert(
            db,
            DailyMenuItem,
            {"daily_menu_id": menu_id, "meal_slot_id": slot_ids[slot], "meal_item_id": item.meal_item_id},
            conflict_on=["daily_menu_id", "meal_slot_id"],
            update=["meal_item_id"],
        )

    await db.commit()
    logger.info(f"Menu for campus {data.campus_id} on {data.menu_date} set by {current_user.email}")
    return {"daily_menu_id": menu_id}


@router.get("/")
async def get_menus(
    campus_id: int,
    from_date: date = Query(alias="from"),
    to_date: date = Query(alias="to"),
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    """Published menus as date -> slot -> item"""
    schedule.check_date_range(from_date, to_date)

    items = await published_items(db, campus_id, from_date, to_date)
    menus: dict[str, dict] = {}
    for (day, slot), item in items.items():
        menus.setdefault(day.isoformat(), {})[slot.value] = item
    return menus


@router.get("/me")
async def get_my_menus(
    from_date: date = Query(alias="from"),
    to_date: date = Query(alias="to"),
    campus_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    """Published menus merged with my own selection state"""
    schedule.check_date_range(from_date, to_date)

    if campus_id is None:
        campus_id = current_user.campus_id
        if campus_id is None:
            raise HTTPException(status_code=400, detail="Campus not resolved for user")
    else:
        current_user.require_campus_member(campus_id)

    configs = {c.name: c for c in await campus_slot_configs(db, campus_id)}
    items = await published_items(db, campus_id, from_date, to_date)

    result = await db.execute(
        select(UserMealRecord.meal_date, UserMealRecord.meal_slot_id, UserMealRecord.ordered).where(
            UserMealRecord.user_id == current_user.id,
            UserMealRecord.campus_id == campus_id,
            UserMealRecord.meal_date >= from_date,
            UserMealRecord.meal_date <= to_date,
        )
    )
    responses = {(row.meal_date, row.meal_slot_id): bool(row.ordered) for row in result.all()}

    now = timeutils.local_now()
    menus: dict[str, dict] = {}
    for (day, slot), item in items.items():
        config = configs.get(slot)
        if config is None:
            continue

        deadline = schedule.selection_deadline(day, config.start_time, config.selection_deadline_offset_hours)
        key = (day, config.slot_id)
        responded = key in responses
        ordered = responses.get(key, False)

        menus.setdefault(day.isoformat(), {})[slot.value] = {
            **item,
            "selected": responded,
            "ordered": ordered,
            "status": schedule.selection_status(responded, ordered, deadline, now),
            "deadline": deadline.isoformat(),
            "serving_time": config.start_time.isoformat(),
        }
    return menus
