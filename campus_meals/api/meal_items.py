"""
Meal item catalogue endpoints
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_meals.database import get_db
from campus_meals.models.menu import MealItem
from campus_meals.models.user import ADMIN_ROLES
from campus_meals.services.access_control import Principal
from campus_meals.api.auth import get_current_user

router = APIRouter()
logger = logging.getLogger(__name__)


class MealItemResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    is_active: bool

    class Config:
        from_attributes = True


class MealItemCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    is_active: bool = True


@router.get("/", response_model=List[MealItemResponse])
async def list_meal_items(
    active_only: bool = False,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    query = select(MealItem).order_by(MealItem.name)
    if active_only:
        query = query.where(MealItem.is_active == True)

    result = await db.execute(query)
    return result.scalars().all()


@router.post("/", response_model=MealItemResponse)
async def create_meal_item(
    data: MealItemCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    """Add a dish to the catalogue"""
    current_user.require_roles(*ADMIN_ROLES)

    name = data.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Meal item name is required")

    existing = await db.execute(select(MealItem.id).where(MealItem.name == name))
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(status_code=400, detail="Meal item with this name already exists")

    item = MealItem(name=name, description=data.description, is_active=data.is_active)
    db.add(item)
    await db.commit()
    await db.refresh(item)

    logger.info(f"Created meal item {item.name} (id={item.id})")
    return item
