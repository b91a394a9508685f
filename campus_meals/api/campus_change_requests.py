"""
Campus change request workflow endpoints
"""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_meals.database import get_db
from campus_meals.models.campus_change import CampusChangeRequest, CampusChangeStatus
from campus_meals.models.user import RoleName
from campus_meals.services.access_control import Principal
from campus_meals.services.campus_service import get_campus, resolve_primary_campus_id, set_primary_campus
from campus_meals.utils import timeutils
from campus_meals.api.auth import get_current_user

router = APIRouter()
logger = logging.getLogger(__name__)


class ChangeRequestResponse(BaseModel):
    id: int
    user_id: int
    current_campus_id: int
    requested_campus_id: int
    reason: Optional[str]
    rejection_reason: Optional[str]
    status: CampusChangeStatus
    reviewed_by: Optional[int]
    reviewed_at: Optional[datetime]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class ChangeRequestCreate(BaseModel):
    requested_campus_id: int = Field(gt=0)
    reason: Optional[str] = Field(default=None, max_length=1000)


class ChangeRequestReject(BaseModel):
    rejection_reason: Optional[str] = Field(default=None, max_length=1000)


async def _get_pending(db: AsyncSession, request_id: int, action: str) -> CampusChangeRequest:
    result = await db.execute(
        select(CampusChangeRequest).where(CampusChangeRequest.id == request_id)
    )
    request = result.scalar_one_or_none()
    if not request:
        raise HTTPException(status_code=404, detail="Request not found")
    if request.status != CampusChangeStatus.PENDING:
        raise HTTPException(status_code=400, detail=f"Only pending requests can be {action}")
    return request


@router.post("/", response_model=ChangeRequestResponse)
async def create_change_request(
    data: ChangeRequestCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    """Ask to move my primary campus"""
    current_user.require_roles(RoleName.STUDENT, detail="Only students can request campus change")

    current_campus_id = await resolve_primary_campus_id(db, current_user.id)
    if current_campus_id is None:
        raise HTTPException(status_code=400, detail="Current campus not set for user")

    if not await get_campus(db, data.requested_campus_id):
        raise HTTPException(status_code=404, detail="Campus not found")
    if data.requested_campus_id == current_campus_id:
        raise HTTPException(status_code=400, detail="Requested campus is same as current")

    request = CampusChangeRequest(
        user_id=current_user.id,
        current_campus_id=current_campus_id,
        requested_campus_id=data.requested_campus_id,
        reason=data.reason,
        status=CampusChangeStatus.PENDING,
    )
    db.add(request)
    await db.commit()
    await db.refresh(request)

    logger.info(
        f"User {current_user.id} requested campus change {current_campus_id} -> {data.requested_campus_id}"
    )
    return request


@router.get("/", response_model=List[ChangeRequestResponse])
async def list_change_requests(
    status: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    current_user.require_roles(RoleName.SUPER_ADMIN, detail="Super admin only")

    query = select(CampusChangeRequest).order_by(CampusChangeRequest.created_at.desc(), CampusChangeRequest.id.desc())
    if status:
        try:
            wanted = CampusChangeStatus(status.strip().upper())
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid status filter")
        query = query.where(CampusChangeRequest.status == wanted)

    result = await db.execute(query)
    return result.scalars().all()


@router.post("/{request_id}/approve", response_model=ChangeRequestResponse)
async def approve_change_request(
    request_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    """Move the student to the requested campus and close the request"""
    current_user.require_roles(RoleName.SUPER_ADMIN, detail="Super admin only")
    request = await _get_pending(db, request_id, "approved")

    if not await get_campus(db, request.requested_campus_id):
        raise HTTPException(status_code=404, detail="Campus not found")

    await set_primary_campus(db, request.user_id, request.requested_campus_id)

    request.status = CampusChangeStatus.APPROVED
    request.reviewed_by = current_user.id
    request.reviewed_at = timeutils.utc_now()
    request.rejection_reason = None
    await db.commit()
    await db.refresh(request)

    logger.info(f"Campus change request {request_id} approved by {current_user.email}")
    return request


@router.post("/{request_id}/reject", response_model=ChangeRequestResponse)
async def reject_change_request(
    request_id: int,
    data: Optional[ChangeRequestReject] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    current_user.require_roles(RoleName.SUPER_ADMIN, detail="Super admin only")
    request = await _get_pending(db, request_id, "rejected")

    request.status = CampusChangeStatus.REJECTED
    request.reviewed_by = current_user.id
    request.reviewed_at = timeutils.utc_now()
    request.rejection_reason = data.rejection_reason if data else None
    await db.commit()
    await db.refresh(request)

    logger.info(f"Campus change request {request_id} rejected by {current_user.email}")
    return request
