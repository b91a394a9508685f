"""
Users API endpoints
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import select, delete, update, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession

from campus_meals.database import get_db
from campus_meals.models.campus import Campus
from campus_meals.models.campus_change import CampusChangeRequest
from campus_meals.models.meal_record import UserMealRecord, MealReceipt
from campus_meals.models.user import (
    User, Role, UserRole, UserCampus, RoleName, UserStatus, ADMIN_ROLES, ADMIN_ASSIGNABLE_ROLES,
)
from campus_meals.services.access_control import Principal
from campus_meals.services.campus_service import get_campus, resolve_primary_campus_id, set_primary_campus
from campus_meals.services.user_service import create_user, ensure_role, get_user_by_email, roles_by_user
from campus_meals.api.auth import get_current_user

router = APIRouter()
logger = logging.getLogger(__name__)


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    campus_id: Optional[int]
    status: Optional[str]
    address: Optional[str] = None

    class Config:
        from_attributes = True


class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    campus_id: int = Field(gt=0)
    role: str = RoleName.STUDENT.value
    address: Optional[str] = Field(default=None, max_length=500)
    google_id: Optional[str] = None
    status: Optional[UserStatus] = None


class UserRegister(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    campus_id: int = Field(gt=0)
    address: Optional[str] = Field(default=None, max_length=500)
    google_id: Optional[str] = None


class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=255)
    campus_id: Optional[int] = Field(default=None, gt=0)
    address: Optional[str] = Field(default=None, max_length=500)
    google_id: Optional[str] = None
    status: Optional[UserStatus] = None


class SelfUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=255)
    campus_id: Optional[int] = Field(default=None, gt=0)
    address: Optional[str] = Field(default=None, max_length=500)
    google_id: Optional[str] = None


class SetCampus(BaseModel):
    campus_id: int = Field(gt=0)


class AssignRoles(BaseModel):
    roles: List[str] = Field(min_length=1)


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


async def _require_campus(db: AsyncSession, campus_id: int, status_code: int = 400) -> Campus:
    campus = await get_campus(db, campus_id)
    if not campus:
        raise HTTPException(status_code=status_code, detail="Campus not found")
    return campus


async def _ensure_email_free(db: AsyncSession, email: str) -> None:
    if await get_user_by_email(db, email):
        raise HTTPException(status_code=400, detail="User with this email already exists")


def _parse_role(name: str) -> RoleName:
    try:
        return RoleName(name.strip().upper())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown role: {name}")


@router.post("/register", response_model=UserResponse)
async def register(data: UserRegister, db: AsyncSession = Depends(get_db)):
    """Self-register as a student"""
    await _require_campus(db, data.campus_id)
    await _ensure_email_free(db, data.email)

    user = await create_user(
        db,
        name=data.name,
        email=data.email,
        campus_id=data.campus_id,
        address=data.address,
        google_id=data.google_id,
    )
    await db.commit()
    logger.info(f"Self-registered user {user.email}")
    return user


@router.get("/all", response_model=List[UserResponse])
async def list_all_users(
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    result = await db.execute(select(User).order_by(User.id))
    return result.scalars().all()


@router.get("/")
async def list_campus_users(
    campus_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    """Users of a campus with their roles; admins see only their own campuses"""
    current_user.require_roles(*ADMIN_ROLES)

    if not current_user.is_super_admin:
        if campus_id is not None:
            current_user.require_campus_admin(campus_id)
        else:
            campus_id = current_user.campus_id

    primary_link = and_(UserCampus.user_id == User.id, UserCampus.is_primary == True)
    query = (
        select(User.id, User.name, User.email, User.status, User.campus_id, UserCampus.campus_id.label("primary_campus_id"))
        .outerjoin(UserCampus, primary_link)
        .order_by(User.id)
    )
    if campus_id is not None:
        query = query.where(or_(User.campus_id == campus_id, UserCampus.campus_id == campus_id))

    rows = (await db.execute(query)).all()
    roles = await roles_by_user(db, [row.id for row in rows])

    users = [
        {
            "id": row.id,
            "name": row.name,
            "email": row.email,
            "status": row.status,
            "primary_campus_id": row.primary_campus_id if row.primary_campus_id is not None else row.campus_id,
            "roles": roles.get(row.id, []),
        }
        for row in rows
    ]
    return {
        "users": users,
        "admin_count": sum(1 for u in users if RoleName.ADMIN.value in u["roles"]),
        "student_count": sum(1 for u in users if RoleName.STUDENT.value in u["roles"]),
    }


@router.get("/by-role")
async def list_users_by_role(
    role: str,
    campus_id: Optional[int] = None,
    search: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    """Users holding a role, filtered by campus and a name prefix or id"""
    current_user.require_roles(*ADMIN_ROLES)
    role_name = _parse_role(role)

    if campus_id is not None:
        current_user.require_campus_admin(campus_id)

    query = (
        select(User.id, User.name, User.email, User.status, User.campus_id, Campus.name.label("campus_name"))
        .join(UserRole, UserRole.user_id == User.id)
        .join(Role, Role.id == UserRole.role_id)
        .outerjoin(Campus, Campus.id == User.campus_id)
        .where(Role.name == role_name.value)
        .order_by(User.name)
    )
    if campus_id is not None:
        query = query.where(User.campus_id == campus_id)
    elif not current_user.is_super_admin:
        query = query.where(User.campus_id.in_(sorted(current_user.campus_ids)))

    if search:
        term = search.strip()
        if term.isdigit():
            query = query.where(User.id == int(term))
        else:
            query = query.where(User.name.ilike(f"{term}%"))

    rows = (await db.execute(query)).all()
    return [
        {
            "id": row.id,
            "name": row.name,
            "email": row.email,
            "status": row.status,
            "campus_id": row.campus_id,
            "campus_name": row.campus_name,
            "role": role_name.value,
        }
        for row in rows
    ]


@router.post("/", response_model=UserResponse)
async def create_campus_user(
    data: UserCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    """Create a user on a campus with one role"""
    current_user.require_roles(*ADMIN_ROLES)
    role = _parse_role(data.role)
    if not current_user.is_super_admin:
        current_user.require_campus_admin(data.campus_id)
        if role not in ADMIN_ASSIGNABLE_ROLES:
            raise HTTPException(status_code=403, detail=f"Admins cannot assign roles: {role.value}")

    await _require_campus(db, data.campus_id)
    await _ensure_email_free(db, data.email)

    user = await create_user(
        db,
        name=data.name,
        email=data.email,
        campus_id=data.campus_id,
        role=role.value,
        address=data.address,
        google_id=data.google_id,
        status=(data.status or UserStatus.ACTIVE).value,
    )
    await db.commit()
    logger.info(f"User {current_user.email} created {user.email} as {role.value}")
    return user


@router.post("/me", response_model=UserResponse)
async def update_me(
    data: SelfUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    """Update my own profile"""
    user = await _get_user_or_404(db, current_user.id)
    updates = data.model_dump(exclude_none=True)
    campus_id = updates.pop("campus_id", None)

    for key, value in updates.items():
        setattr(user, key, value.strip() if key == "name" else value)

    if campus_id is not None:
        await _require_campus(db, campus_id, status_code=404)
        await set_primary_campus(db, user.id, campus_id)

    await db.commit()
    await db.refresh(user)
    return user


@router.post("/me/campus", response_model=UserResponse)
async def set_my_campus(
    data: SetCampus,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    await _require_campus(db, data.campus_id, status_code=404)
    user = await _get_user_or_404(db, current_user.id)

    await set_primary_campus(db, user.id, data.campus_id)
    await db.commit()
    await db.refresh(user)
    return user


@router.post("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    data: UserUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    """Admin update of another user's details"""
    current_user.require_roles(*ADMIN_ROLES)
    user = await _get_user_or_404(db, user_id)

    if data.campus_id is not None:
        await _require_campus(db, data.campus_id)

    target_campus = data.campus_id if data.campus_id is not None else user.campus_id
    if not current_user.is_super_admin and target_campus is not None:
        current_user.require_campus_admin(target_campus)

    updates = data.model_dump(exclude_none=True)
    campus_id = updates.pop("campus_id", None)
    if "status" in updates:
        updates["status"] = data.status.value

    for key, value in updates.items():
        setattr(user, key, value)

    if campus_id is not None:
        await set_primary_campus(db, user.id, campus_id)

    await db.commit()
    await db.refresh(user)
    return user


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    """Hard-delete a user together with everything that references them"""
    current_user.require_roles(*ADMIN_ROLES)
    user = await _get_user_or_404(db, user_id)

    if not current_user.is_super_admin:
        current_user.require_campus_admin(await resolve_primary_campus_id(db, user_id))

    await db.execute(delete(UserRole).where(UserRole.user_id == user_id))
    await db.execute(delete(UserCampus).where(UserCampus.user_id == user_id))
    await db.execute(delete(MealReceipt).where(MealReceipt.user_id == user_id))
    await db.execute(delete(UserMealRecord).where(UserMealRecord.user_id == user_id))
    await db.execute(delete(CampusChangeRequest).where(CampusChangeRequest.user_id == user_id))
    await db.execute(
        update(CampusChangeRequest)
        .where(CampusChangeRequest.reviewed_by == user_id)
        .values(reviewed_by=None)
    )
    await db.delete(user)
    await db.commit()

    logger.info(f"User {current_user.email} deleted user {user_id}")
    return {"status": "success", "message": "User deleted successfully"}


@router.post("/{user_id}/roles")
async def assign_roles(
    user_id: int,
    data: AssignRoles,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    """Replace a user's role set with exactly the requested roles"""
    current_user.require_roles(*ADMIN_ROLES)

    requested = []
    for name in data.roles:
        role = _parse_role(name)
        if role not in requested:
            requested.append(role)

    if not current_user.is_super_admin:
        disallowed = [r.value for r in requested if r not in ADMIN_ASSIGNABLE_ROLES]
        if disallowed:
            raise HTTPException(
                status_code=403,
                detail=f"Admins cannot assign roles: {', '.join(disallowed)}",
            )

    await _get_user_or_404(db, user_id)
    if not current_user.is_super_admin:
        current_user.require_campus_admin(await resolve_primary_campus_id(db, user_id))

    desired = {}
    for role in requested:
        desired[await ensure_role(db, role.value)] = role.value

    result = await db.execute(select(UserRole.role_id).where(UserRole.user_id == user_id))
    existing = set(result.scalars().all())

    for role_id in desired.keys() - existing:
        db.add(UserRole(user_id=user_id, role_id=role_id))

    stale = existing - desired.keys()
    if stale:
        await db.execute(
            delete(UserRole).where(UserRole.user_id == user_id, UserRole.role_id.in_(stale))
        )

    await db.commit()
    logger.info(f"User {current_user.email} set roles of user {user_id} to {sorted(desired.values())}")
    return {"roles": sorted(desired.values())}


@router.post("/{user_id}/campus")
async def set_user_campus(
    user_id: int,
    data: SetCampus,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    """Set a user's primary campus"""
    current_user.require_roles(*ADMIN_ROLES)
    current_user.require_campus_admin(data.campus_id)

    await _require_campus(db, data.campus_id, status_code=404)
    await _get_user_or_404(db, user_id)

    await set_primary_campus(db, user_id, data.campus_id)
    await db.commit()
    return {"campus_id": data.campus_id}
