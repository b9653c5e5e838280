from datetime import datetime, time, timedelta, timezone

from fastapi.testclient import TestClient
from jose import jwt

from residence_service import models
from residence_service.config import ALGORITHM, SECRET_KEY
from residence_service.main import app
from residence_service.seed import DEFAULT_CATEGORIES, DEFAULT_FACILITIES, seed_defaults

client = TestClient(app)


def make_token(user) -> str:
    payload = {
        "sub": user.email,
        "role": user.role.value,
        "user_id": user.id,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=30),
    }
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def test_health():
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"service": "residence", "status": "running"}


def test_list_facilities_only_active_sorted_by_name(make_user, make_facility):
    user = make_user()
    make_facility(name="Tennis Court", opens=time(6, 0), closes=time(21, 0))
    make_facility(name="Gym", requires_approval=False)
    make_facility(name="Old Sauna", is_active=False)
    make_facility(name="BBQ Area", requires_approval=True)

    res = client.get("/api/v1/facilities", headers={"Authorization": f"Bearer {make_token(user)}"})
    assert res.status_code == 200
    data = res.json()["data"]
    assert [f["name"] for f in data] == ["BBQ Area", "Gym", "Tennis Court"]
    assert data[0]["requires_approval"] is True
    assert data[2]["operating_hours_start"] == "06:00:00"
    assert data[2]["operating_hours_end"] == "21:00:00"


def test_list_facilities_requires_auth():
    res = client.get("/api/v1/facilities")
    assert res.status_code in (401, 403)


def test_seed_defaults_is_idempotent(db):
    inserted = seed_defaults(db)
    assert inserted == len(DEFAULT_CATEGORIES) + len(DEFAULT_FACILITIES)
    assert seed_defaults(db) == 0

    pool = db.query(models.Facility).filter(models.Facility.name == "Swimming Pool").one()
    assert pool.requires_approval is False
    assert pool.capacity == 50
    assert pool.operating_hours_start == time(6, 0)
    assert pool.operating_hours_end == time(22, 0)

    room = db.query(models.Facility).filter(models.Facility.name == "Meeting Room A").one()
    assert room.requires_approval is True


def test_startup_seeds_defaults(make_user):
    with TestClient(app) as started:
        user = make_user()
        res = started.get("/api/v1/facilities", headers={"Authorization": f"Bearer {make_token(user)}"})
    names = [f["name"] for f in res.json()["data"]]
    assert "Swimming Pool" in names
    assert len(names) == len(DEFAULT_FACILITIES)
