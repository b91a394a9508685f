"""
Daily QR token and meal receipt endpoints
"""
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from campus_meals.database import get_db
from campus_meals.models.meal_record import QrToken, MealReceipt, UserMealRecord
from campus_meals.models.user import RoleName, KITCHEN_ROLES
from campus_meals.services.access_control import Principal
from campus_meals.services.campus_service import SlotConfig, campus_slot_configs, get_campus
from campus_meals.services.menu_service import published_items
from campus_meals.services import schedule
from campus_meals.utils import timeutils
from campus_meals.utils.db_compat import insert_ignore, upsert
from campus_meals.api.auth import get_current_user

router = APIRouter()
logger = logging.getLogger(__name__)


class ScanRequest(BaseModel):
    token: str = Field(min_length=1, max_length=255)


@dataclass
class ScanContext:
    qr_token_id: int
    campus_id: int
    slot: SlotConfig
    already_received: bool
    has_selection: bool


def _token_response(token_id: int, campus_id: int, day, token: str, expires_at) -> dict:
    return {
        "id": token_id,
        "campus_id": campus_id,
        "date": day.isoformat(),
        "token": token,
        "expires_at": expires_at.isoformat(),
    }


@router.get("/today")
async def get_today_token(
    campus_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    """Today's token for a campus, minting a fresh one when none is valid"""
    current_user.require_roles(*KITCHEN_ROLES)
    current_user.require_campus_member(campus_id)

    if not await get_campus(db, campus_id):
        raise HTTPException(status_code=404, detail="Campus not found")

    today = timeutils.local_today()
    result = await db.execute(
        select(QrToken).where(QrToken.campus_id == campus_id, QrToken.date == today)
    )
    existing = result.scalar_one_or_none()
    if existing and existing.expires_at > timeutils.utc_now():
        return _token_response(existing.id, existing.campus_id, existing.date, existing.token, existing.expires_at)

    token = uuid.uuid4().hex
    expires_at = timeutils.to_naive_utc(timeutils.end_of_local_day(today))
    token_id = await upsert(
        db,
        QrToken,
        {"campus_id": campus_id, "date": today, "token": token, "expires_at": expires_at},
        conflict_on=["campus_id", "date"],
        update=["token", "expires_at"],
        returning=QrToken.id,
    )
    await db.commit()

    logger.info(f"Minted QR token for campus {campus_id} on {today}")
    return _token_response(token_id, campus_id, today, token, expires_at)


async def _validate_scan(db: AsyncSession, token: str, current_user: Principal) -> ScanContext:
    current_user.require_roles(RoleName.STUDENT, detail="Only students can scan QR")
    campus_id = current_user.campus_id
    if campus_id is None:
        raise HTTPException(status_code=400, detail="Campus not set for user")

    today = timeutils.local_today()
    result = await db.execute(
        select(QrToken.id, QrToken.expires_at).where(
            QrToken.token == token,
            QrToken.campus_id == campus_id,
            QrToken.date == today,
        )
    )
    qr = result.first()
    if qr is None:
        raise HTTPException(status_code=404, detail="QR token not found for today")
    if qr.expires_at <= timeutils.utc_now():
        raise HTTPException(status_code=400, detail="QR token expired")

    slot = schedule.active_slot(await campus_slot_configs(db, campus_id))
    if slot is None:
        raise HTTPException(status_code=400, detail="No active meal slot right now")

    receipt = await db.execute(
        select(MealReceipt.id).where(
            MealReceipt.user_id == current_user.id,
            MealReceipt.date == today,
            MealReceipt.meal_slot_id == slot.slot_id,
        )
    )
    selection = await db.execute(
        select(UserMealRecord.ordered).where(
            UserMealRecord.user_id == current_user.id,
            UserMealRecord.meal_date == today,
            UserMealRecord.meal_slot_id == slot.slot_id,
        )
    )
    ordered: Optional[bool] = selection.scalar_one_or_none()

    return ScanContext(
        qr_token_id=qr.id,
        campus_id=campus_id,
        slot=slot,
        already_received=receipt.scalar_one_or_none() is not None,
        has_selection=bool(ordered),
    )


@router.post("/scan")
async def scan_token(
    data: ScanRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    """Preview what a receive would record, without writing anything"""
    ctx = await _validate_scan(db, data.token, current_user)

    today = timeutils.local_today()
    menu = await published_items(db, ctx.campus_id, today, today)
    item = menu.get((today, ctx.slot.name))

    return {
        "current_slot": ctx.slot.name.value,
        "already_received": ctx.already_received,
        "has_selection": ctx.has_selection,
        "menu_item": item,
    }


@router.post("/receive")
async def receive_meal(
    data: ScanRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    """Record that I collected the current slot's meal; repeat calls are no-ops"""
    ctx = await _validate_scan(db, data.token, current_user)
    already_received = ctx.already_received

    if not already_received:
        today = timeutils.local_today()
        inserted = await insert_ignore(
            db,
            MealReceipt,
            {
                "user_id": current_user.id,
                "campus_id": ctx.campus_id,
                "date": today,
                "meal_slot_id": ctx.slot.slot_id,
                "qr_token_id": ctx.qr_token_id,
                "timestamp": timeutils.utc_now(),
            },
            conflict_on=["user_id", "date", "meal_slot_id"],
        )
        if inserted:
            await db.execute(
                update(UserMealRecord)
                .where(
                    UserMealRecord.user_id == current_user.id,
                    UserMealRecord.meal_date == today,
                    UserMealRecord.meal_slot_id == ctx.slot.slot_id,
                )
                .values(received=True)
            )
            await db.commit()
            logger.info(f"User {current_user.id} received {ctx.slot.name.value} on {today}")
        else:
            # a concurrent confirm got there first
            already_received = True

    return {
        "current_slot": ctx.slot.name.value,
        "already_received": already_received,
    }
