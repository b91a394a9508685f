"""
Kitchen and super-admin reporting endpoints
"""
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from campus_meals.database import get_db
from campus_meals.models.campus import Campus, MealSlotName, slot_sort_key
from campus_meals.models.meal_record import UserMealRecord, MealReceipt
from campus_meals.models.user import RoleName, KITCHEN_ROLES
from campus_meals.services.access_control import Principal
from campus_meals.services.campus_service import slot_ids_by_name
from campus_meals.services import schedule
from campus_meals.api.auth import get_current_user

router = APIRouter()


async def _ordered_slots(db: AsyncSession) -> list[tuple[MealSlotName, int]]:
    slot_ids = await slot_ids_by_name(db)
    return sorted(slot_ids.items(), key=lambda pair: slot_sort_key(pair[0]))


@router.get("/summary")
async def get_kitchen_summary(
    campus_id: int,
    day: date = Query(alias="date"),
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    """Selected vs received per slot for one campus and day"""
    current_user.require_roles(*KITCHEN_ROLES, detail="Not permitted")
    current_user.require_campus_member(campus_id)

    selected = await db.execute(
        select(UserMealRecord.meal_slot_id, func.count())
        .where(
            UserMealRecord.campus_id == campus_id,
            UserMealRecord.meal_date == day,
            UserMealRecord.ordered == True,
        )
        .group_by(UserMealRecord.meal_slot_id)
    )
    selected_counts = {slot_id: count for slot_id, count in selected.all()}

    received = await db.execute(
        select(MealReceipt.meal_slot_id, func.count())
        .where(MealReceipt.campus_id == campus_id, MealReceipt.date == day)
        .group_by(MealReceipt.meal_slot_id)
    )
    received_counts = {slot_id: count for slot_id, count in received.all()}

    summary = []
    for name, slot_id in await _ordered_slots(db):
        sel = selected_counts.get(slot_id, 0)
        rec = received_counts.get(slot_id, 0)
        summary.append({
            "meal_slot": name.value,
            "selected_count": sel,
            "received_count": rec,
            "missed": max(sel - rec, 0),
        })
    return summary


@router.get("/super/summary")
async def get_super_summary(
    from_date: date = Query(alias="from"),
    to_date: date = Query(alias="to"),
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    """Daily averages and missed share per campus and slot over a date range"""
    current_user.require_roles(RoleName.SUPER_ADMIN, detail="Super admin only")
    schedule.check_date_range(from_date, to_date)
    day_count = (to_date - from_date).days + 1

    selected = await db.execute(
        select(UserMealRecord.campus_id, UserMealRecord.meal_slot_id, func.count())
        .where(
            UserMealRecord.meal_date >= from_date,
            UserMealRecord.meal_date <= to_date,
            UserMealRecord.ordered == True,
        )
        .group_by(UserMealRecord.campus_id, UserMealRecord.meal_slot_id)
    )
    selected_totals = {(c, s): n for c, s, n in selected.all()}

    received = await db.execute(
        select(MealReceipt.campus_id, MealReceipt.meal_slot_id, func.count())
        .where(MealReceipt.date >= from_date, MealReceipt.date <= to_date)
        .group_by(MealReceipt.campus_id, MealReceipt.meal_slot_id)
    )
    received_totals = {(c, s): n for c, s, n in received.all()}

    slots = await _ordered_slots(db)
    campuses = (await db.execute(select(Campus.id, Campus.name).order_by(Campus.id))).all()

    report = []
    for campus in campuses:
        slot_rows = []
        for name, slot_id in slots:
            sel = selected_totals.get((campus.id, slot_id), 0)
            rec = received_totals.get((campus.id, slot_id), 0)
            slot_rows.append({
                "meal_slot": name.value,
                "avg_selected": sel / day_count,
                "avg_received": rec / day_count,
                "missed_percentage": max(sel - rec, 0) / sel if sel else 0,
            })
        report.append({"campus_id": campus.id, "campus_name": campus.name, "slots": slot_rows})
    return report
