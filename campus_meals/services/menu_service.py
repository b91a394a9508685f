"""
Published menu lookups
"""
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_meals.models.campus import MealSlot, MealSlotName
from campus_meals.models.menu import DailyMenu, DailyMenuItem, MealItem


def item_snapshot(row) -> dict:
    return {
        "meal_item_id": row.meal_item_id,
        "name": row.item_name,
        "description": row.item_description,
    }


async def published_items(
    db: AsyncSession,
    campus_id: int,
    start: date,
    end: date,
) -> dict[tuple[date, MealSlotName], dict]:
    """Menu items published for a campus, keyed by (date, slot name)"""
    result = await db.execute(
        select(
            DailyMenu.date,
            MealSlot.name.label("slot_name"),
            MealItem.id.label("meal_item_id"),
            MealItem.name.label("item_name"),
            MealItem.description.label("item_description"),
        )
        .select_from(DailyMenuItem)
        .join(DailyMenu, DailyMenuItem.daily_menu_id == DailyMenu.id)
        .join(MealSlot, DailyMenuItem.meal_slot_id == MealSlot.id)
        .join(MealItem, DailyMenuItem.meal_item_id == MealItem.id)
        .where(
            DailyMenu.campus_id == campus_id,
            DailyMenu.date >= start,
            DailyMenu.date <= end,
        )
        .order_by(DailyMenu.date)
    )
    return {
        (row.date, MealSlotName(row.slot_name)): item_snapshot(row)
        for row in result.all()
    }
