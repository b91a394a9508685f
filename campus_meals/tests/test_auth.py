"""
Login, session token and principal resolution tests
"""
from datetime import timedelta

from jose import jwt
from sqlalchemy import select, func

from campus_meals.api.auth import create_access_token
from campus_meals.config import get_settings
from campus_meals.models.campus import Campus
from campus_meals.models.user import User, UserCampus


# ===================== HEALTH / ROOT =====================


async def test_root(unauth_client):
    r = await unauth_client.get("/")
    assert r.status_code == 200
    assert r.json()["status"] == "running"


async def test_health(unauth_client):
    r = await unauth_client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"


# ===================== LOGIN =====================


async def test_login_existing_user(unauth_client, seed_data):
    r = await unauth_client.post(
        "/api/auth/login",
        json={"id_token": "google:asha@campus.edu", "email": "asha@campus.edu"},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["id"] == seed_data.student_id
    assert body["user"]["roles"] == ["STUDENT"]
    assert body["user"]["campus_name"] == "North"

    settings = get_settings()
    claims = jwt.decode(body["access_token"], settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    assert claims["sub"] == str(seed_data.student_id)
    assert claims["campus_id"] == seed_data.north_id
    assert claims["roles"] == ["STUDENT"]
    assert "exp" in claims


async def test_login_email_is_case_insensitive(unauth_client, seed_data):
    r = await unauth_client.post(
        "/api/auth/login",
        json={"id_token": "google:Asha@Campus.edu", "email": "ASHA@campus.edu"},
    )
    assert r.status_code == 200
    assert r.json()["user"]["id"] == seed_data.student_id


async def test_login_email_mismatch(unauth_client, seed_data):
    r = await unauth_client.post(
        "/api/auth/login",
        json={"id_token": "google:someone@campus.edu", "email": "asha@campus.edu"},
    )
    assert r.status_code == 401


async def test_login_invalid_google_token(unauth_client, seed_data):
    r = await unauth_client.post(
        "/api/auth/login",
        json={"id_token": "forged", "email": "asha@campus.edu"},
    )
    assert r.status_code == 401


async def test_login_inactive_user(unauth_client, seed_data):
    r = await unauth_client.post(
        "/api/auth/login",
        json={"id_token": "google:gone@campus.edu", "email": "gone@campus.edu"},
    )
    assert r.status_code == 401


async def test_login_provisions_new_student(unauth_client, seed_data, db_session):
    r = await unauth_client.post(
        "/api/auth/login",
        json={"id_token": "google:new@campus.edu:New Person", "email": "new@campus.edu"},
    )
    assert r.status_code == 200
    user = r.json()["user"]
    assert user["roles"] == ["STUDENT"]
    assert user["name"] == "New Person"
    # first campus by id when no default is configured
    assert user["campus_id"] == seed_data.north_id

    result = await db_session.execute(
        select(User.google_id).where(User.email == "new@campus.edu")
    )
    assert result.scalar_one() == "sub-new@campus.edu"

    links = await db_session.execute(
        select(UserCampus.campus_id, UserCampus.is_primary).where(UserCampus.user_id == user["id"])
    )
    assert [(row.campus_id, row.is_primary) for row in links.all()] == [(seed_data.north_id, True)]


async def test_login_backfills_google_id(unauth_client, seed_data, db_session):
    r = await unauth_client.post(
        "/api/auth/login",
        json={"id_token": "google:asha@campus.edu", "email": "asha@campus.edu"},
    )
    assert r.status_code == 200

    result = await db_session.execute(select(User.google_id).where(User.id == seed_data.student_id))
    assert result.scalar_one() == "sub-asha@campus.edu"


async def test_login_without_any_campus(unauth_client, db_session):
    r = await unauth_client.post(
        "/api/auth/login",
        json={"id_token": "google:first@campus.edu", "email": "first@campus.edu"},
    )
    assert r.status_code == 400

    count = await db_session.execute(select(func.count()).select_from(User))
    assert count.scalar() == 0
    campuses = await db_session.execute(select(func.count()).select_from(Campus))
    assert campuses.scalar() == 0


async def test_login_missing_fields(unauth_client, seed_data):
    r = await unauth_client.post("/api/auth/login", json={"email": "asha@campus.edu"})
    assert r.status_code == 400


# ===================== SESSION TOKENS =====================


async def test_protected_route_no_token(unauth_client, seed_data):
    r = await unauth_client.get("/api/auth/profile")
    assert r.status_code == 401


async def test_protected_route_bad_signature(unauth_client, seed_data):
    token = jwt.encode({"sub": str(seed_data.student_id)}, "not-the-secret", algorithm="HS256")
    r = await unauth_client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


async def test_protected_route_expired_token(unauth_client, seed_data):
    token = create_access_token({"sub": str(seed_data.student_id)}, expires_delta=timedelta(minutes=-5))
    r = await unauth_client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


async def test_protected_route_non_integer_subject(unauth_client, seed_data):
    token = create_access_token({"sub": "asha@campus.edu"})
    r = await unauth_client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


async def test_protected_route_unknown_user(client_factory, seed_data):
    ghost = client_factory(99999)
    r = await ghost.get("/api/auth/profile")
    assert r.status_code == 401


async def test_protected_route_inactive_user(client_factory, seed_data):
    r = await client_factory(seed_data.inactive_id).get("/api/auth/verify")
    assert r.status_code == 401


async def test_profile(student_client, seed_data):
    r = await student_client.get("/api/auth/profile")
    assert r.status_code == 200
    body = r.json()
    assert body["email"] == "asha@campus.edu"
    assert body["campus_id"] == seed_data.north_id
    assert body["campus_name"] == "North"
    assert body["roles"] == ["STUDENT"]


async def test_verify_reports_live_principal(admin_client, seed_data):
    r = await admin_client.get("/api/auth/verify")
    assert r.status_code == 200
    body = r.json()
    assert body["valid"] is True
    assert body["user"]["roles"] == ["ADMIN"]
    assert body["user"]["campus_ids"] == [seed_data.north_id]


async def test_refresh_reflects_role_changes(admin_client, super_client, seed_data):
    r = await super_client.post(
        f"/api/users/{seed_data.admin_id}/roles",
        json={"roles": ["ADMIN", "INCHARGE"]},
    )
    assert r.status_code == 200

    r = await admin_client.post("/api/auth/refresh")
    assert r.status_code == 200
    assert r.json()["user"]["roles"] == ["ADMIN", "INCHARGE"]


async def test_logout(student_client):
    r = await student_client.post("/api/auth/logout")
    assert r.status_code == 200
    assert "message" in r.json()


async def test_login_malformed_email(unauth_client, seed_data):
    r = await unauth_client.post("/api/auth/login", json={"id_token": "google:x", "email": "x"})
    assert r.status_code == 400
