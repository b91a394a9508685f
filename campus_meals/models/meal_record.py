"""
Selection ledger, daily QR tokens and meal receipts
"""
from sqlalchemy import Column, Integer, String, Date, DateTime, Boolean, JSON, ForeignKey, UniqueConstraint
from datetime import datetime
from campus_meals.database import Base


class UserMealRecord(Base):
    """One row per (user, date, slot); re-selecting updates it in place"""
    __tablename__ = "user_meal_records"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    campus_id = Column(Integer, ForeignKey("campuses.id"), nullable=False)
    meal_date = Column(Date, nullable=False, index=True)
    meal_slot_id = Column(Integer, ForeignKey("meal_slots.id"), nullable=False)
    ordered = Column(Boolean, nullable=False, default=False)
    received = Column(Boolean, nullable=False, default=False)
    payload = Column(JSON, nullable=False, default=dict)  # menu snapshot at selection time
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "meal_date", "meal_slot_id", name="uq_meal_record_user_date_slot"),
    )


class QrToken(Base):
    __tablename__ = "qr_tokens"

    id = Column(Integer, primary_key=True, index=True)
    campus_id = Column(Integer, ForeignKey("campuses.id"), nullable=False)
    date = Column(Date, nullable=False)
    token = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    expires_at = Column(DateTime, nullable=False)  # naive UTC

    __table_args__ = (
        UniqueConstraint("campus_id", "date", name="uq_qr_token_campus_date"),
    )


class MealReceipt(Base):
    """Write-once proof that a student collected a meal"""
    __tablename__ = "meal_receipts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    campus_id = Column(Integer, ForeignKey("campuses.id"), nullable=False)
    date = Column(Date, nullable=False, index=True)
    meal_slot_id = Column(Integer, ForeignKey("meal_slots.id"), nullable=False)
    qr_token_id = Column(Integer, ForeignKey("qr_tokens.id"), nullable=False)
    timestamp = Column(DateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "date", "meal_slot_id", name="uq_meal_receipt_user_date_slot"),
    )
