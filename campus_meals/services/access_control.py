"""
Authenticated principal and the capability checks every router runs.

The principal is rebuilt from the database on each request, so role or campus
changes take effect without waiting for the session token to be re-issued.
"""
from dataclasses import dataclass, field
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_meals.models.user import User, Role, UserRole, UserCampus, RoleName


@dataclass(frozen=True)
class Principal:
    id: int
    email: str
    name: Optional[str] = None
    status: Optional[str] = None
    roles: frozenset = field(default_factory=frozenset)
    campus_ids: frozenset = field(default_factory=frozenset)
    primary_campus_id: Optional[int] = None

    @property
    def is_super_admin(self) -> bool:
        return RoleName.SUPER_ADMIN.value in self.roles

    @property
    def is_admin(self) -> bool:
        return RoleName.ADMIN.value in self.roles

    @property
    def campus_id(self) -> Optional[int]:
        """Campus used for student-facing operations"""
        if self.primary_campus_id is not None:
            return self.primary_campus_id
        return min(self.campus_ids) if self.campus_ids else None

    def has_any_role(self, *roles) -> bool:
        wanted = {RoleName(r).value for r in roles}
        return bool(wanted & self.roles)

    def can_manage_campus(self, campus_id: Optional[int]) -> bool:
        if self.is_super_admin:
            return True
        return self.is_admin and campus_id is not None and campus_id in self.campus_ids

    def belongs_to_campus(self, campus_id: Optional[int]) -> bool:
        if self.is_super_admin:
            return True
        return campus_id is not None and campus_id in self.campus_ids

    def require_roles(self, *roles, detail: str = "Insufficient role") -> None:
        if not self.has_any_role(*roles):
            raise HTTPException(status_code=403, detail=detail)

    def require_campus_admin(self, campus_id: Optional[int]) -> None:
        if not self.can_manage_campus(campus_id):
            raise HTTPException(status_code=403, detail="Campus access denied")

    def require_campus_member(self, campus_id: Optional[int]) -> None:
        if not self.belongs_to_campus(campus_id):
            raise HTTPException(status_code=403, detail="Campus access denied")

    def summary(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "status": self.status,
            "roles": sorted(self.roles),
            "campus_ids": sorted(self.campus_ids),
            "primary_campus_id": self.primary_campus_id,
        }


async def load_principal(db: AsyncSession, user: User) -> Principal:
    """Resolve current roles and campus memberships for a user row"""
    role_rows = await db.execute(
        select(Role.name)
        .join(UserRole, UserRole.role_id == Role.id)
        .where(UserRole.user_id == user.id)
    )
    roles = frozenset(name.upper() for name in role_rows.scalars().all() if name)

    link_rows = await db.execute(
        select(UserCampus.campus_id, UserCampus.is_primary).where(UserCampus.user_id == user.id)
    )
    links = link_rows.all()

    campus_ids = {row.campus_id for row in links}
    if user.campus_id is not None:
        campus_ids.add(user.campus_id)

    primary = next((row.campus_id for row in links if row.is_primary), user.campus_id)

    return Principal(
        id=user.id,
        email=user.email,
        name=user.name,
        status=user.status,
        roles=roles,
        campus_ids=frozenset(campus_ids),
        primary_campus_id=primary,
    )
