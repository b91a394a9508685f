"""
Authentication API endpoints
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from pydantic import BaseModel, EmailStr
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from campus_meals.config import get_settings
from campus_meals.database import get_db
from campus_meals.models.campus import Campus
from campus_meals.models.user import User, UserStatus
from campus_meals.services.access_control import Principal, load_principal
from campus_meals.services.campus_service import get_campus
from campus_meals.services.identity import GoogleIdentityVerifier, IdentityVerificationError
from campus_meals.services.user_service import create_user, get_user_by_email

router = APIRouter()
settings = get_settings()
logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class LoginRequest(BaseModel):
    id_token: str
    email: EmailStr


class UserSummary(BaseModel):
    id: int
    name: Optional[str]
    email: str
    status: Optional[str]
    roles: list[str]
    campus_id: Optional[int]
    campus_name: Optional[str]


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserSummary


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Sign a session token; ``sub`` must already be a string"""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def get_identity_verifier(request: Request) -> GoogleIdentityVerifier:
    return request.app.state.identity_verifier


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Principal:
    """Resolve the bearer token to a principal with live roles and campuses"""
    credentials_exception = HTTPException(
        status_code=401,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None or not credentials.credentials:
        raise credentials_exception

    try:
        payload = jwt.decode(credentials.credentials, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        user_id = int(payload.get("sub"))
    except (JWTError, TypeError, ValueError) as e:
        logger.warning(f"Rejected session token: {e}")
        raise credentials_exception

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None or user.status != UserStatus.ACTIVE.value:
        raise credentials_exception

    return await load_principal(db, user)


async def _find_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    try:
        return await get_user_by_email(db, email)
    except SQLAlchemyError as e:
        logger.error(f"User lookup failed for {email}: {e}")
        await db.rollback()
        return None


async def _default_campus_id(db: AsyncSession) -> int:
    if settings.DEFAULT_CAMPUS_ID is not None:
        campus = await get_campus(db, settings.DEFAULT_CAMPUS_ID)
        if campus:
            return campus.id

    result = await db.execute(select(Campus.id).order_by(Campus.id).limit(1))
    campus_id = result.scalar_one_or_none()
    if campus_id is None:
        raise HTTPException(status_code=400, detail="No campus available for new users")
    return campus_id


async def _issue_token(db: AsyncSession, principal: Principal) -> TokenResponse:
    campus_name = None
    if principal.campus_id is not None:
        campus = await get_campus(db, principal.campus_id)
        campus_name = campus.name if campus else None

    summary = UserSummary(
        id=principal.id,
        name=principal.name,
        email=principal.email,
        status=principal.status,
        roles=sorted(principal.roles),
        campus_id=principal.campus_id,
        campus_name=campus_name,
    )
    token = create_access_token({
        "sub": str(principal.id),
        "email": principal.email,
        "name": principal.name,
        "campus_id": principal.campus_id,
        "campus_name": campus_name,
        "status": principal.status,
        "roles": summary.roles,
    })
    return TokenResponse(access_token=token, user=summary)


@router.post("/login", response_model=TokenResponse)
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
    verifier: GoogleIdentityVerifier = Depends(get_identity_verifier),
):
    """Exchange a Google ID token for a session token"""
    try:
        claims = await verifier.verify(data.id_token)
    except IdentityVerificationError as e:
        raise HTTPException(status_code=401, detail=str(e))

    email = data.email.strip().lower()
    if claims.email != email:
        logger.warning(f"Login email mismatch: claimed {email}, token asserts {claims.email}")
        raise HTTPException(status_code=401, detail="Email does not match Google account")

    user = await _find_user_by_email(db, email)
    if user is None:
        campus_id = await _default_campus_id(db)
        user = await create_user(
            db,
            name=claims.name or email.split("@")[0],
            email=email,
            campus_id=campus_id,
            google_id=claims.subject,
        )
        logger.info(f"Provisioned new user {email} on campus {campus_id}")

    if user.status != UserStatus.ACTIVE.value:
        raise HTTPException(status_code=401, detail="User account is inactive")

    if not user.google_id and claims.subject:
        user.google_id = claims.subject

    principal = await load_principal(db, user)
    response = await _issue_token(db, principal)
    await db.commit()

    logger.info(f"User logged in: {email}")
    return response


@router.post("/logout")
async def logout(current_user: Principal = Depends(get_current_user)):
    """Session tokens are stateless; the client discards its copy"""
    logger.info(f"User logged out: {current_user.email}")
    return {"message": "Logged out successfully"}


@router.get("/profile")
async def get_profile(
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    result = await db.execute(select(User).where(User.id == current_user.id))
    user = result.scalar_one()

    campus = await get_campus(db, current_user.campus_id) if current_user.campus_id else None
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "address": user.address,
        "status": user.status,
        "roles": sorted(current_user.roles),
        "campus_id": current_user.campus_id,
        "campus_name": campus.name if campus else None,
        "campus_ids": sorted(current_user.campus_ids),
    }


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    db: AsyncSession = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    """Re-issue a session token from current roles and campus"""
    return await _issue_token(db, current_user)


@router.get("/verify")
async def verify_token(current_user: Principal = Depends(get_current_user)):
    return {"valid": True, "user": current_user.summary()}
