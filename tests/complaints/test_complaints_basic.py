from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from residence_service import models
from residence_service.config import ALGORITHM, SECRET_KEY
from residence_service.main import app
from residence_service.seed import seed_defaults

client = TestClient(app)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def make_token(user) -> str:
    payload = {
        "sub": user.email,
        "role": user.role.value,
        "user_id": user.id,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=30),
    }
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def headers_for(user) -> dict:
    return {"Authorization": f"Bearer {make_token(user)}"}


@pytest.fixture
def categories(db):
    seed_defaults(db)
    return {c.name: c.id for c in db.query(models.ComplaintCategory).all()}


@pytest.fixture
def resident(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(role=models.UserRole.ADMIN)


def file_complaint(user, category_id, title="Leaking kitchen tap", description="Water drips all night long.", files=None, **extra):
    data = {"category_id": str(category_id), "title": title, "description": description, **extra}
    return client.post("/api/v1/complaints", data=data, files=files, headers=headers_for(user))


# ---------- Categories ----------


def test_categories_are_seeded_and_sorted(resident, categories):
    res = client.get("/api/v1/complaints/categories", headers=headers_for(resident))
    assert res.status_code == 200
    names = [c["name"] for c in res.json()["data"]]
    assert len(names) == 8
    assert names == sorted(names)
    assert "Plumbing" in names


# ---------- Create ----------


def test_create_complaint_defaults(resident, categories):
    res = file_complaint(resident, categories["Plumbing"])
    assert res.status_code == 201
    body = res.json()
    assert body["message"] == "Complaint created successfully"
    data = body["data"]
    assert data["status"] == "open"
    assert data["priority"] == "medium"
    assert data["user_id"] == resident.id
    assert data["category"]["name"] == "Plumbing"
    assert data["image_url"] is None
    assert data["resolved_at"] is None


def test_create_complaint_with_image_is_served(resident, categories):
    res = file_complaint(
        resident,
        categories["Maintenance"],
        priority="high",
        files={"image": ("broken.PNG", PNG_BYTES, "image/png")},
    )
    assert res.status_code == 201
    data = res.json()["data"]
    assert data["priority"] == "high"
    assert data["image_url"].startswith("/uploads/")
    assert data["image_url"].endswith(".png")

    served = client.get(data["image_url"])
    assert served.status_code == 200
    assert served.content == PNG_BYTES


def test_create_complaint_rejects_non_image(resident, categories):
    res = file_complaint(
        resident,
        categories["Other"],
        files={"image": ("notes.txt", b"hello", "text/plain")},
    )
    assert res.status_code == 400
    assert res.json()["error"] == "Only image files are allowed"


def test_create_complaint_unknown_category(resident, categories):
    res = file_complaint(resident, 9999)
    assert res.status_code == 404
    assert res.json()["error"] == "Complaint category not found"


def test_create_complaint_validates_form(resident, categories):
    res = file_complaint(resident, categories["Noise"], title="Loud")
    assert res.status_code == 400
    assert any(d.startswith("title") for d in res.json()["details"])


# ---------- Read ----------


def test_residents_only_see_their_own_complaints(resident, admin, make_user, categories):
    other = make_user()
    mine = file_complaint(resident, categories["Noise"]).json()["data"]
    theirs = file_complaint(other, categories["Security"], title="Door left open").json()["data"]

    res = client.get("/api/v1/complaints", headers=headers_for(resident)).json()["data"]
    assert [c["id"] for c in res["items"]] == [mine["id"]]
    assert res["total"] == 1

    res = client.get("/api/v1/complaints", headers=headers_for(admin)).json()["data"]
    assert {c["id"] for c in res["items"]} == {mine["id"], theirs["id"]}
    # newest first
    assert res["items"][0]["id"] == theirs["id"]

    assert client.get(f"/api/v1/complaints/{mine['id']}", headers=headers_for(resident)).status_code == 200
    assert client.get(f"/api/v1/complaints/{theirs['id']}", headers=headers_for(resident)).status_code == 404
    assert client.get(f"/api/v1/complaints/{theirs['id']}", headers=headers_for(admin)).status_code == 200


def test_list_complaints_filters(resident, categories):
    file_complaint(resident, categories["Noise"], priority="low")
    urgent = file_complaint(resident, categories["Electrical"], priority="urgent").json()["data"]

    res = client.get(
        "/api/v1/complaints",
        params={"priority": "urgent", "status": "open"},
        headers=headers_for(resident),
    ).json()["data"]
    assert [c["id"] for c in res["items"]] == [urgent["id"]]


# ---------- Update ----------


def test_owner_updates_complaint(resident, categories):
    complaint = file_complaint(resident, categories["HVAC"]).json()["data"]

    res = client.put(
        f"/api/v1/complaints/{complaint['id']}",
        json={"title": "Heating is off", "priority": "high"},
        headers=headers_for(resident),
    )
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["title"] == "Heating is off"
    assert data["priority"] == "high"
    assert data["description"] == complaint["description"]


def test_update_access_rules(resident, admin, make_user, categories):
    complaint = file_complaint(resident, categories["Cleaning"]).json()["data"]
    url = f"/api/v1/complaints/{complaint['id']}"

    res = client.put(url, json={"title": "Someone else's"}, headers=headers_for(make_user()))
    assert res.status_code == 403

    res = client.put(url, json={"admin_notes": "Fixed it myself"}, headers=headers_for(resident))
    assert res.status_code == 403
    assert res.json()["error"] == "Only administrators can set admin notes"

    res = client.put(url, json={"admin_notes": "Cleaner booked"}, headers=headers_for(admin))
    assert res.status_code == 200
    assert res.json()["data"]["admin_notes"] == "Cleaner booked"

    assert client.put("/api/v1/complaints/9999", json={}, headers=headers_for(admin)).status_code == 404


# ---------- Status ----------


def test_status_update_is_admin_only_and_resolves(resident, admin, categories):
    complaint = file_complaint(resident, categories["Plumbing"]).json()["data"]
    url = f"/api/v1/complaints/{complaint['id']}/status"

    res = client.put(url, json={"status": "resolved"}, headers=headers_for(resident))
    assert res.status_code == 403

    res = client.put(url, json={"status": "in_progress"}, headers=headers_for(admin))
    assert res.status_code == 200
    assert res.json()["data"]["status"] == "in_progress"
    assert res.json()["data"]["resolved_at"] is None

    res = client.put(url, json={"status": "resolved", "admin_notes": "Tap replaced"}, headers=headers_for(admin))
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["status"] == "resolved"
    assert data["admin_notes"] == "Tap replaced"
    assert data["resolved_at"] is not None

    res = client.put(url, json={"status": "bogus"}, headers=headers_for(admin))
    assert res.status_code == 400
