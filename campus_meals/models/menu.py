"""
Meal catalogue and daily menu models
"""
from sqlalchemy import Column, Integer, String, Text, Date, DateTime, Boolean, ForeignKey, UniqueConstraint
from datetime import datetime
from campus_meals.database import Base


class MealItem(Base):
    __tablename__ = "meal_items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)


class DailyMenu(Base):
    __tablename__ = "daily_menus"

    id = Column(Integer, primary_key=True, index=True)
    campus_id = Column(Integer, ForeignKey("campuses.id"), nullable=False)
    date = Column(Date, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("campus_id", "date", name="uq_daily_menu_campus_date"),
    )


class DailyMenuItem(Base):
    __tablename__ = "daily_menu_items"

    id = Column(Integer, primary_key=True, index=True)
    daily_menu_id = Column(Integer, ForeignKey("daily_menus.id"), nullable=False)
    meal_slot_id = Column(Integer, ForeignKey("meal_slots.id"), nullable=False)
    meal_item_id = Column(Integer, ForeignKey("meal_items.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("daily_menu_id", "meal_slot_id", name="uq_daily_menu_item_slot"),
    )
