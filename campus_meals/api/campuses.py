"""
Campuses API endpoints
"""
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_meals.database import get_db
from campus_meals.models.campus import Campus

router = APIRouter()


class CampusResponse(BaseModel):
    id: int
    name: str
    address: Optional[str]
    status: Optional[str]

    class Config:
        from_attributes = True


@router.get("/", response_model=List[CampusResponse])
async def list_campuses(db: AsyncSession = Depends(get_db)):
    """List all campuses (public)"""
    result = await db.execute(select(Campus).order_by(Campus.id))
    return result.scalars().all()
