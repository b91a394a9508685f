"""
Campus and meal-slot configuration models
"""
from sqlalchemy import Column, Integer, String, Time, DateTime, ForeignKey, UniqueConstraint, Enum as SQLEnum
from datetime import datetime
from campus_meals.database import Base
from enum import Enum


class MealSlotName(str, Enum):
    BREAKFAST = "BREAKFAST"
    LUNCH = "LUNCH"
    SNACKS = "SNACKS"
    DINNER = "DINNER"


# Canonical display order, independent of storage order
SLOT_ORDER = [MealSlotName.BREAKFAST, MealSlotName.LUNCH, MealSlotName.SNACKS, MealSlotName.DINNER]


def slot_sort_key(name) -> int:
    return SLOT_ORDER.index(MealSlotName(name))


class Campus(Base):
    __tablename__ = "campuses"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    address = Column(String(500), nullable=True)
    status = Column(String(50), default="active")


class MealSlot(Base):
    __tablename__ = "meal_slots"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(SQLEnum(MealSlotName, native_enum=False), unique=True, nullable=False)


class CampusMealSlot(Base):
    """Serving window and selection deadline for one slot at one campus"""
    __tablename__ = "campus_meal_slots"

    id = Column(Integer, primary_key=True, index=True)
    campus_id = Column(Integer, ForeignKey("campuses.id"), nullable=False)
    meal_slot_id = Column(Integer, ForeignKey("meal_slots.id"), nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    # Signed hours relative to start_time; -12 closes selection 12h before serving
    selection_deadline_offset_hours = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("campus_id", "meal_slot_id", name="uq_campus_meal_slot"),
    )
