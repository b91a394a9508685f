"""
Campus membership and meal-slot lookups shared across routers
"""
import logging
from dataclasses import dataclass
from datetime import time
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from campus_meals.models.campus import Campus, MealSlot, CampusMealSlot, MealSlotName, SLOT_ORDER, slot_sort_key
from campus_meals.models.user import User, UserCampus
from campus_meals.utils.db_compat import upsert

logger = logging.getLogger(__name__)


@dataclass
class SlotConfig:
    slot_id: int
    name: MealSlotName
    start_time: time
    end_time: time
    selection_deadline_offset_hours: int


async def get_campus(db: AsyncSession, campus_id: int) -> Optional[Campus]:
    result = await db.execute(select(Campus).where(Campus.id == campus_id))
    return result.scalar_one_or_none()


async def resolve_primary_campus_id(db: AsyncSession, user_id: int) -> Optional[int]:
    """Flagged primary link first, then the user's direct campus field"""
    result = await db.execute(
        select(UserCampus.campus_id).where(
            UserCampus.user_id == user_id,
            UserCampus.is_primary == True,
        )
    )
    primary = result.scalars().first()
    if primary is not None:
        return primary

    result = await db.execute(select(User.campus_id).where(User.id == user_id))
    return result.scalar_one_or_none()


async def set_primary_campus(db: AsyncSession, user_id: int, campus_id: int) -> None:
    """Point the user at ``campus_id``, leaving exactly one primary link.

    Flags are cleared before the new one is set; callers commit, so the three
    writes land together or not at all.
    """
    await db.execute(update(User).where(User.id == user_id).values(campus_id=campus_id))
    await db.execute(
        update(UserCampus).where(UserCampus.user_id == user_id).values(is_primary=False)
    )
    await upsert(
        db,
        UserCampus,
        {"user_id": user_id, "campus_id": campus_id, "is_primary": True},
        conflict_on=["user_id", "campus_id"],
        update=["is_primary"],
    )


async def ensure_meal_slots(db: AsyncSession) -> dict[MealSlotName, int]:
    """Seed the fixed slot rows in canonical order; returns name -> id"""
    slot_ids = await slot_ids_by_name(db)
    missing = [name for name in SLOT_ORDER if name not in slot_ids]
    if missing:
        for name in missing:
            db.add(MealSlot(name=name))
        await db.flush()
        logger.info(f"Seeded meal slots: {', '.join(n.value for n in missing)}")
        slot_ids = await slot_ids_by_name(db)
    return slot_ids


async def slot_ids_by_name(db: AsyncSession) -> dict[MealSlotName, int]:
    result = await db.execute(select(MealSlot.id, MealSlot.name))
    return {MealSlotName(row.name): row.id for row in result.all()}


async def campus_slot_configs(db: AsyncSession, campus_id: int) -> list[SlotConfig]:
    """Configured slots for a campus in canonical order"""
    result = await db.execute(
        select(
            MealSlot.id,
            MealSlot.name,
            CampusMealSlot.start_time,
            CampusMealSlot.end_time,
            CampusMealSlot.selection_deadline_offset_hours,
        )
        .join(MealSlot, CampusMealSlot.meal_slot_id == MealSlot.id)
        .where(CampusMealSlot.campus_id == campus_id)
    )
    configs = [
        SlotConfig(
            slot_id=row.id,
            name=MealSlotName(row.name),
            start_time=row.start_time,
            end_time=row.end_time,
            selection_deadline_offset_hours=row.selection_deadline_offset_hours,
        )
        for row in result.all()
    ]
    configs.sort(key=lambda c: slot_sort_key(c.name))
    return configs
