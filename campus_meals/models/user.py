"""
User, role and campus-membership models
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean, UniqueConstraint
from datetime import datetime
from campus_meals.database import Base
from enum import Enum


class RoleName(str, Enum):
    STUDENT = "STUDENT"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"
    KITCHEN_STAFF = "KITCHEN_STAFF"
    INCHARGE = "INCHARGE"


KITCHEN_ROLES = (RoleName.KITCHEN_STAFF, RoleName.INCHARGE, RoleName.ADMIN, RoleName.SUPER_ADMIN)
ADMIN_ROLES = (RoleName.ADMIN, RoleName.SUPER_ADMIN)

# Roles a campus admin may hand out; anything else needs a super admin
ADMIN_ASSIGNABLE_ROLES = frozenset({RoleName.STUDENT, RoleName.KITCHEN_STAFF, RoleName.INCHARGE})


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    address = Column(String(500), nullable=True)
    campus_id = Column(Integer, ForeignKey("campuses.id"), nullable=True)  # fallback when no primary link
    google_id = Column(String(255), nullable=True)
    status = Column(String(50), nullable=False, default=UserStatus.ACTIVE.value)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Role(Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class UserRole(Base):
    """A user's role set is exactly the rows present here"""
    __tablename__ = "user_roles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow)


class UserCampus(Base):
    """User-to-campus link. At most one row per user carries is_primary."""
    __tablename__ = "user_campuses"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    campus_id = Column(Integer, ForeignKey("campuses.id"), nullable=False)
    is_primary = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "campus_id", name="uq_user_campus"),
    )
