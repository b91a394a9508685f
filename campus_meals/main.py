"""
Main FastAPI application
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from campus_meals.config import get_settings
from campus_meals.database import engine, Base, AsyncSessionLocal
from campus_meals import models  # noqa: F401  registers tables on Base.metadata
from campus_meals.services.campus_service import ensure_meal_slots
from campus_meals.services.identity import GoogleIdentityVerifier
from campus_meals.services.user_service import ensure_roles
from campus_meals.utils.logger import get_logger
from campus_meals.api import auth, users, bulk_upload, campuses, campus_meal_slots, meal_items
from campus_meals.api import menus, meal_selections, qr_token, kitchen, campus_change_requests

settings = get_settings()
logger = get_logger(__name__)


async def seed_reference_data() -> None:
    """Meal slots and roles every deployment needs"""
    async with AsyncSessionLocal() as session:
        await ensure_meal_slots(session)
        await ensure_roles(session)
        await session.commit()
    logger.info("Reference data seeded")


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")

    await seed_reference_data()

    if not settings.GOOGLE_CLIENT_ID:
        logger.warning("GOOGLE_CLIENT_ID is not set; Google token audience will not be checked")
    app.state.identity_verifier = GoogleIdentityVerifier(settings.GOOGLE_CLIENT_ID)

    yield

    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(bulk_upload.router, prefix="/api/bulk-upload", tags=["Bulk Upload"])
app.include_router(campuses.router, prefix="/api/campuses", tags=["Campuses"])
app.include_router(campus_meal_slots.router, prefix="/api/campus-meal-slots", tags=["Campus Meal Slots"])
app.include_router(meal_items.router, prefix="/api/meal-items", tags=["Meal Items"])
app.include_router(menus.router, prefix="/api/menus", tags=["Menus"])
app.include_router(meal_selections.router, prefix="/api/meal-selections", tags=["Meal Selections"])
app.include_router(qr_token.router, prefix="/api/qr-token", tags=["QR Token"])
app.include_router(kitchen.router, prefix="/api/kitchen", tags=["Kitchen"])
app.include_router(campus_change_requests.router, prefix="/api/campus-change-requests", tags=["Campus Change Requests"])


@app.get("/")
async def root():
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "campus_meals.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
