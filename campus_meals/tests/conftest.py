"""
Test fixtures - in-memory SQLite database, seeded campuses/users and per-role HTTP clients
"""
from datetime import datetime, time
from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from campus_meals.database import Base, get_db
from campus_meals.main import app
from campus_meals.api.auth import create_access_token, get_identity_verifier
from campus_meals.models.campus import Campus, CampusMealSlot, MealSlotName
from campus_meals.models.menu import MealItem
from campus_meals.models.user import RoleName, UserStatus
from campus_meals.services.campus_service import ensure_meal_slots
from campus_meals.services.identity import IdentityClaims, IdentityVerificationError
from campus_meals.services.user_service import create_user, ensure_roles
from campus_meals.utils import timeutils


class FakeIdentityVerifier:
    """Accepts tokens shaped like ``google:<email>[:<name>]``"""

    async def verify(self, token: str) -> IdentityClaims:
        parts = token.split(":")
        if len(parts) < 2 or parts[0] != "google":
            raise IdentityVerificationError("Invalid Google token")
        name = parts[2] if len(parts) > 2 else None
        return IdentityClaims(email=parts[1].lower(), name=name, subject=f"sub-{parts[1]}")


NORTH_SLOTS = [
    (MealSlotName.DINNER, time(19, 30), time(21, 0), -4),
    (MealSlotName.BREAKFAST, time(7, 30), time(9, 0), -12),
    (MealSlotName.SNACKS, time(16, 30), time(17, 30), -2),
    (MealSlotName.LUNCH, time(12, 30), time(14, 0), -3),
]


@pytest_asyncio.fixture()
async def db_session():
    """Create a fresh in-memory SQLite database for each test"""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture()
async def seed_data(db_session):
    """Two campuses, slot windows for North, one user per role and a few dishes.

    Returns plain ids so tests never touch expired ORM instances.
    """
    slot_ids = await ensure_meal_slots(db_session)
    await ensure_roles(db_session)

    north = Campus(name="North", address="1 North Road", status="active")
    south = Campus(name="South", address="2 South Road", status="active")
    db_session.add_all([north, south])
    await db_session.flush()

    for name, start, end, offset in NORTH_SLOTS:
        db_session.add(CampusMealSlot(
            campus_id=north.id,
            meal_slot_id=slot_ids[name],
            start_time=start,
            end_time=end,
            selection_deadline_offset_hours=offset,
        ))
    db_session.add(CampusMealSlot(
        campus_id=south.id,
        meal_slot_id=slot_ids[MealSlotName.LUNCH],
        start_time=time(12, 0),
        end_time=time(13, 30),
        selection_deadline_offset_hours=-2,
    ))

    student = await create_user(db_session, name="Asha Student", email="asha@campus.edu", campus_id=north.id)
    other_student = await create_user(db_session, name="Ravi Student", email="ravi@campus.edu", campus_id=south.id)
    admin = await create_user(
        db_session, name="North Admin", email="admin@campus.edu", campus_id=north.id, role=RoleName.ADMIN.value
    )
    super_admin = await create_user(
        db_session, name="Root", email="root@campus.edu", campus_id=north.id, role=RoleName.SUPER_ADMIN.value
    )
    kitchen = await create_user(
        db_session, name="Cook", email="cook@campus.edu", campus_id=north.id, role=RoleName.KITCHEN_STAFF.value
    )
    inactive = await create_user(
        db_session,
        name="Gone",
        email="gone@campus.edu",
        campus_id=north.id,
        status=UserStatus.INACTIVE.value,
    )

    poha = MealItem(name="Poha", description="Flattened rice", is_active=True)
    biryani = MealItem(name="Biryani", description=None, is_active=True)
    retired = MealItem(name="Retired Dish", description=None, is_active=False)
    db_session.add_all([poha, biryani, retired])
    await db_session.commit()

    return SimpleNamespace(
        north_id=north.id,
        south_id=south.id,
        slot_ids={name.value: slot_id for name, slot_id in slot_ids.items()},
        student_id=student.id,
        other_student_id=other_student.id,
        admin_id=admin.id,
        super_admin_id=super_admin.id,
        kitchen_id=kitchen.id,
        inactive_id=inactive.id,
        poha_id=poha.id,
        biryani_id=biryani.id,
        retired_id=retired.id,
    )


@pytest_asyncio.fixture()
async def client_factory(db_session):
    """Build httpx AsyncClients bound to the app, optionally signed in as a user id"""

    async def override_get_db():
        try:
            yield db_session
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity_verifier] = lambda: FakeIdentityVerifier()

    clients = []

    def make(user_id=None):
        transport = ASGITransport(app=app)
        ac = AsyncClient(transport=transport, base_url="http://test", follow_redirects=True)
        if user_id is not None:
            token = create_access_token(data={"sub": str(user_id)})
            ac.headers["Authorization"] = f"Bearer {token}"
        clients.append(ac)
        return ac

    yield make

    for ac in clients:
        await ac.aclose()
    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def unauth_client(client_factory):
    return client_factory()


@pytest_asyncio.fixture()
async def student_client(client_factory, seed_data):
    return client_factory(seed_data.student_id)


@pytest_asyncio.fixture()
async def admin_client(client_factory, seed_data):
    return client_factory(seed_data.admin_id)


@pytest_asyncio.fixture()
async def super_client(client_factory, seed_data):
    return client_factory(seed_data.super_admin_id)


@pytest_asyncio.fixture()
async def kitchen_client(client_factory, seed_data):
    return client_factory(seed_data.kitchen_id)


@pytest_asyncio.fixture()
async def publish_menu(super_client):
    """Publish a menu as super admin: ``await publish_menu(campus_id, "2025-06-10", LUNCH=item_id)``"""

    async def publish(campus_id, day, **slots):
        r = await super_client.post(
            "/api/menus/",
            json={
                "campus_id": campus_id,
                "date": day,
                "items": [{"slot": slot, "meal_item_id": item_id} for slot, item_id in slots.items()],
            },
        )
        assert r.status_code == 200, r.text
        return r.json()["daily_menu_id"]

    return publish


@pytest.fixture()
def freeze_clock(monkeypatch):
    """Pin the regional clock: ``freeze_clock(2025, 6, 10, 8, 0)``"""

    def freeze(*args):
        frozen = timeutils.local_zone().localize(datetime(*args))
        monkeypatch.setattr(timeutils, "local_now", lambda: frozen)
        return frozen

    return freeze
