"""
Campus change request workflow tests
"""
from sqlalchemy import select

from campus_meals.models.user import User, UserCampus


async def open_request(client, campus_id, reason="Moved hostels"):
    r = await client.post(
        "/api/campus-change-requests/",
        json={"requested_campus_id": campus_id, "reason": reason},
    )
    assert r.status_code == 200, r.text
    return r.json()


async def test_student_opens_request(student_client, seed_data):
    body = await open_request(student_client, seed_data.south_id)
    assert body["status"] == "PENDING"
    assert body["current_campus_id"] == seed_data.north_id
    assert body["requested_campus_id"] == seed_data.south_id
    assert body["reason"] == "Moved hostels"
    assert body["reviewed_by"] is None


async def test_request_same_campus_rejected(student_client, seed_data):
    r = await student_client.post(
        "/api/campus-change-requests/", json={"requested_campus_id": seed_data.north_id}
    )
    assert r.status_code == 400


async def test_request_unknown_campus(student_client, seed_data):
    r = await student_client.post("/api/campus-change-requests/", json={"requested_campus_id": 999})
    assert r.status_code == 404


async def test_only_students_open_requests(admin_client, seed_data):
    r = await admin_client.post(
        "/api/campus-change-requests/", json={"requested_campus_id": seed_data.south_id}
    )
    assert r.status_code == 403


async def test_list_requests_with_status_filter(student_client, client_factory, super_client, seed_data):
    first = await open_request(student_client, seed_data.south_id)
    ravi = client_factory(seed_data.other_student_id)
    second = await open_request(ravi, seed_data.north_id)

    r = await super_client.post(f"/api/campus-change-requests/{first['id']}/reject")
    assert r.status_code == 200

    r = await super_client.get("/api/campus-change-requests/")
    assert r.status_code == 200
    assert [req["id"] for req in r.json()] == [second["id"], first["id"]]

    r = await super_client.get("/api/campus-change-requests/", params={"status": "pending"})
    assert [req["id"] for req in r.json()] == [second["id"]]

    r = await super_client.get("/api/campus-change-requests/", params={"status": "bogus"})
    assert r.status_code == 400


async def test_list_requires_super_admin(admin_client, seed_data):
    r = await admin_client.get("/api/campus-change-requests/")
    assert r.status_code == 403


async def test_approve_moves_primary_campus(student_client, super_client, seed_data, db_session):
    request = await open_request(student_client, seed_data.south_id)

    r = await super_client.post(f"/api/campus-change-requests/{request['id']}/approve")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "APPROVED"
    assert body["reviewed_by"] == seed_data.super_admin_id
    assert body["reviewed_at"] is not None

    primary = await db_session.execute(
        select(UserCampus.campus_id).where(
            UserCampus.user_id == seed_data.student_id, UserCampus.is_primary == True
        )
    )
    assert primary.scalars().all() == [seed_data.south_id]
    direct = await db_session.execute(select(User.campus_id).where(User.id == seed_data.student_id))
    assert direct.scalar_one() == seed_data.south_id

    r = await student_client.get("/api/auth/profile")
    assert r.json()["campus_id"] == seed_data.south_id


async def test_reject_with_reason(student_client, super_client, seed_data, db_session):
    request = await open_request(student_client, seed_data.south_id)

    r = await super_client.post(
        f"/api/campus-change-requests/{request['id']}/reject",
        json={"rejection_reason": "No seats left"},
    )
    assert r.status_code == 200
    assert r.json()["status"] == "REJECTED"
    assert r.json()["rejection_reason"] == "No seats left"

    direct = await db_session.execute(select(User.campus_id).where(User.id == seed_data.student_id))
    assert direct.scalar_one() == seed_data.north_id


async def test_only_pending_requests_can_be_reviewed(student_client, super_client, seed_data):
    request = await open_request(student_client, seed_data.south_id)
    r = await super_client.post(f"/api/campus-change-requests/{request['id']}/approve")
    assert r.status_code == 200

    r = await super_client.post(f"/api/campus-change-requests/{request['id']}/approve")
    assert r.status_code == 400
    r = await super_client.post(f"/api/campus-change-requests/{request['id']}/reject")
    assert r.status_code == 400


async def test_review_missing_request(super_client, seed_data):
    r = await super_client.post("/api/campus-change-requests/999/approve")
    assert r.status_code == 404


async def test_admin_cannot_review(student_client, admin_client, seed_data):
    request = await open_request(student_client, seed_data.south_id)
    r = await admin_client.post(f"/api/campus-change-requests/{request['id']}/approve")
    assert r.status_code == 403
