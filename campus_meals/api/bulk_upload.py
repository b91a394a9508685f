"""
Bulk student enrollment endpoint
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_meals.database import get_db
from campus_meals.models.campus import Campus
from campus_meals.models.user import RoleName
from campus_meals.services.access_control import Principal
from campus_meals.services.user_service import create_user, get_user_by_email
from campus_meals.api.auth import get_current_user

router = APIRouter()
logger = logging.getLogger(__name__)


class StudentRow(BaseModel):
    email: EmailStr
    name: str = Field(min_length=1, max_length=255)
    campus_name: str = Field(min_length=1)


class StudentUpload(BaseModel):
    students: List[StudentRow] = Field(min_length=1)


@router.post("/students")
async def upload_students(
    data: StudentUpload,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    """Enroll students by email; any unknown campus rejects the whole upload"""
    current_user.require_roles(RoleName.SUPER_ADMIN)

    campus_ids: dict[str, int] = {}
    report = []
    added = 0
    existing = 0

    for row in data.students:
        campus_name = row.campus_name.strip()
        if campus_name not in campus_ids:
            result = await db.execute(select(Campus.id).where(Campus.name == campus_name))
            campus_id = result.scalars().first()
            if campus_id is None:
                raise HTTPException(status_code=400, detail=f"Campus not found: {campus_name}")
            campus_ids[campus_name] = campus_id

        user = await get_user_by_email(db, row.email)
        if user is None:
            user = await create_user(
                db,
                name=row.name,
                email=row.email,
                campus_id=campus_ids[campus_name],
            )
            added += 1
            report.append({"email": user.email, "message": "Added successfully"})
            continue

        if user.name != row.name.strip():
            user.name = row.name.strip()
        existing += 1
        report.append({"email": user.email, "message": "Already present in the campus"})

    await db.commit()

    parts = []
    if added:
        parts.append(f"{added} students successfully added")
    if existing:
        parts.append(f"{existing} students already present")
    message = " & ".join(parts)

    logger.info(f"Bulk upload by {current_user.email}: {message}")
    return {
        "status": "success",
        "message": message,
        "added_count": added,
        "existing_count": existing,
        "students_enrolled": report,
    }
