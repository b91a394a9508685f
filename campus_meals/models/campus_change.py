"""
Campus change request model
"""
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, Enum as SQLEnum
from datetime import datetime
from campus_meals.database import Base
from enum import Enum


class CampusChangeStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class CampusChangeRequest(Base):
    __tablename__ = "campus_change_requests"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    current_campus_id = Column(Integer, ForeignKey("campuses.id"), nullable=False)
    requested_campus_id = Column(Integer, ForeignKey("campuses.id"), nullable=False)
    reason = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    status = Column(
        SQLEnum(CampusChangeStatus, native_enum=False),
        nullable=False,
        default=CampusChangeStatus.PENDING,
    )

    reviewed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
