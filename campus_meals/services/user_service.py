"""
User provisioning and role bookkeeping
"""
import logging
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_meals.models.user import User, Role, UserRole, RoleName, UserStatus
from campus_meals.services.campus_service import set_primary_campus

logger = logging.getLogger(__name__)


async def ensure_role(db: AsyncSession, name: str) -> int:
    """Return the role id for ``name``, creating the row on first use"""
    role_name = name.strip().upper()
    result = await db.execute(select(Role.id).where(Role.name == role_name))
    role_id = result.scalar_one_or_none()
    if role_id is not None:
        return role_id

    role = Role(name=role_name, description=f"{role_name.lower()} role")
    db.add(role)
    await db.flush()
    logger.info(f"Created role {role_name}")
    return role.id


async def ensure_roles(db: AsyncSession) -> None:
    for role in RoleName:
        await ensure_role(db, role.value)


async def roles_by_user(db: AsyncSession, user_ids: Iterable[int]) -> dict[int, list[str]]:
    ids = list(user_ids)
    if not ids:
        return {}
    result = await db.execute(
        select(UserRole.user_id, Role.name)
        .join(Role, UserRole.role_id == Role.id)
        .where(UserRole.user_id.in_(ids))
        .order_by(Role.name)
    )
    grouped: dict[int, list[str]] = {}
    for row in result.all():
        grouped.setdefault(row.user_id, []).append(row.name)
    return grouped


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    *,
    name: str,
    email: str,
    campus_id: int,
    role: str = RoleName.STUDENT.value,
    address: Optional[str] = None,
    google_id: Optional[str] = None,
    status: str = UserStatus.ACTIVE.value,
) -> User:
    """Insert a user with a primary campus link and one role"""
    user = User(
        name=name.strip(),
        email=email.strip().lower(),
        campus_id=campus_id,
        address=address,
        google_id=google_id,
        status=status,
    )
    db.add(user)
    await db.flush()

    await set_primary_campus(db, user.id, campus_id)

    role_id = await ensure_role(db, role)
    db.add(UserRole(user_id=user.id, role_id=role_id))
    await db.flush()
    return user
