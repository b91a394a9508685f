"""
Per-campus meal slot configuration endpoints
"""
import logging
from datetime import time
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from campus_meals.database import get_db
from campus_meals.models.campus import CampusMealSlot, MealSlotName
from campus_meals.models.user import ADMIN_ROLES
from campus_meals.services.access_control import Principal
from campus_meals.services.campus_service import campus_slot_configs, get_campus, slot_ids_by_name
from campus_meals.utils.db_compat import upsert
from campus_meals.api.auth import get_current_user

router = APIRouter()
logger = logging.getLogger(__name__)


class SlotWindow(BaseModel):
    meal_slot: str
    start_time: time
    end_time: time
    selection_deadline_offset_hours: int


class SlotWindowsUpdate(BaseModel):
    slots: List[SlotWindow] = Field(min_length=1)


class SlotWindowsUpsert(SlotWindowsUpdate):
    campus_id: int = Field(gt=0)


async def _upsert_slots(
    db: AsyncSession,
    campus_id: int,
    slots: List[SlotWindow],
    current_user: Principal,
) -> dict:
    current_user.require_roles(*ADMIN_ROLES)
    current_user.require_campus_admin(campus_id)

    if not await get_campus(db, campus_id):
        raise HTTPException(status_code=400, detail="Campus not found")

    slot_ids = await slot_ids_by_name(db)
    resolved = []
    missing = []
    for slot in slots:
        try:
            name = MealSlotName(slot.meal_slot.strip().upper())
        except ValueError:
            missing.append(slot.meal_slot)
            continue
        if name not in slot_ids:
            missing.append(slot.meal_slot)
            continue
        resolved.append((slot_ids[name], slot))
    if missing:
        raise HTTPException(status_code=400, detail=f"Meal slots not found: {', '.join(missing)}")

    for slot_id, slot in resolved:
        if slot.start_time >= slot.end_time:
            raise HTTPException(
                status_code=400,
                detail=f"start_time must be before end_time for {slot.meal_slot}",
            )

    for slot_id, slot in resolved:
        await upsert(
            db,
            CampusMealSlot,
            {
                "campus_id": campus_id,
                "meal_slot_id": slot_id,
                "start_time": slot.start_time,
                "end_time": slot.end_time,
                "selection_deadline_offset_hours": slot.selection_deadline_offset_hours,
            },
            conflict_on=["campus_id", "meal_slot_id"],
            update=["start_time", "end_time", "selection_deadline_offset_hours"],
        )

    await db.commit()
    logger.info(f"User {current_user.email} configured {len(resolved)} slots for campus {campus_id}")
    return {"campus_id": campus_id, "slots": len(resolved)}


@router.get("/{campus_id}")
async def get_campus_slots(
    campus_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    """Configured slots for a campus, breakfast through dinner"""
    configs = await campus_slot_configs(db, campus_id)
    return [
        {
            "meal_slot_id": c.slot_id,
            "meal_slot": c.name.value,
            "start_time": c.start_time.isoformat(),
            "end_time": c.end_time.isoformat(),
            "selection_deadline_offset_hours": c.selection_deadline_offset_hours,
        }
        for c in configs
    ]


@router.post("/")
async def upsert_campus_slots(
    data: SlotWindowsUpsert,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    return await _upsert_slots(db, data.campus_id, data.slots, current_user)


@router.put("/{campus_id}")
async def update_campus_slots(
    campus_id: int,
    data: SlotWindowsUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    return await _upsert_slots(db, campus_id, data.slots, current_user)
