import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
from main import app

OWNER = {"X-User-Id": "1"}


@pytest.fixture()
def client():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _budget_with_item(client: TestClient) -> tuple[int, int]:
    budget = client.post("/api/budgets", json={"name": "Storm"}, headers=OWNER)
    assert budget.status_code == 201
    budget_id = budget.json()["id"]
    item = client.post(
        f"/api/budgets/{budget_id}/items",
        json={
            "title": "Farrier",
            "category": "Hoof care",
            "amount": 5000,
            "is_recurring": True,
            "start_month": "2024-01",
            "interval_months": 3,
            "anchor_day": 15,
        },
        headers=OWNER,
    )
    assert item.status_code == 201
    return budget_id, item.json()["id"]


def test_requests_without_user_are_rejected(client):
    assert client.get("/api/budgets").status_code == 401
    assert client.get("/api/budgets", headers={"X-User-Id": "abc"}).status_code == 401


def test_range_with_override_and_clear(client):
    budget_id, item_id = _budget_with_item(client)

    resp = client.put(
        f"/api/budgets/{budget_id}/overrides",
        json={
            "budget_item_id": item_id,
            "month": "2024-07",
            "override_amount": 0,
            "skip": True,
        },
        headers=OWNER,
    )
    assert resp.status_code == 200
    assert resp.json()["skip"] is True

    resp = client.get(
        f"/api/budgets/{budget_id}",
        params={"from": "2024-01", "to": "2024-12"},
        headers=OWNER,
    )
    assert resp.status_code == 200
    months = {m["month"]: m for m in resp.json()["months"]}
    assert len(months) == 12
    assert months["2024-04"]["total"] == 5000
    assert months["2024-07"]["total"] == 0
    july = months["2024-07"]["items"][0]
    assert july["skipped"] is True
    assert july["has_override"] is True
    assert july["day"] == 15

    resp = client.put(
        f"/api/budgets/{budget_id}/overrides",
        json={"budget_item_id": item_id, "month": "2024-07"},
        headers=OWNER,
    )
    assert resp.json() == {"deleted": True}

    resp = client.get(
        f"/api/budgets/{budget_id}",
        params={"from": "2024-07", "to": "2024-07"},
        headers=OWNER,
    )
    (july_bucket,) = resp.json()["months"]
    assert july_bucket["total"] == 5000
    assert july_bucket["items"][0]["has_override"] is False


def test_inverted_range_is_empty(client):
    budget_id, _ = _budget_with_item(client)
    resp = client.get(
        f"/api/budgets/{budget_id}",
        params={"from": "2024-12", "to": "2024-01"},
        headers=OWNER,
    )
    assert resp.status_code == 200
    assert resp.json() == {"months": []}


def test_malformed_month_is_rejected(client):
    budget_id, _ = _budget_with_item(client)
    resp = client.get(
        f"/api/budgets/{budget_id}",
        params={"from": "2024-13", "to": "2024-14"},
        headers=OWNER,
    )
    assert resp.status_code == 422


def test_oversized_range_is_rejected(client):
    budget_id, _ = _budget_with_item(client)
    resp = client.get(
        f"/api/budgets/{budget_id}",
        params={"from": "2000-01", "to": "2024-12"},
        headers=OWNER,
    )
    assert resp.status_code == 400


def test_other_users_get_not_found(client):
    budget_id, item_id = _budget_with_item(client)
    other = {"X-User-Id": "2"}

    assert client.get(f"/api/budgets/{budget_id}", headers=other).status_code == 404
    resp = client.patch(
        f"/api/budgets/{budget_id}/items/{item_id}", json={"amount": 1}, headers=other
    )
    assert resp.status_code == 404


def test_item_crud(client):
    budget_id, item_id = _budget_with_item(client)

    resp = client.patch(
        f"/api/budgets/{budget_id}/items/{item_id}",
        json={"amount": 6000, "end_month": "2024-06"},
        headers=OWNER,
    )
    assert resp.status_code == 200
    assert resp.json()["amount"] == 6000
    assert resp.json()["interval_months"] == 3

    resp = client.patch(
        f"/api/budgets/{budget_id}/items/{item_id}",
        json={"interval_weeks": 2, "weekday": 3},
        headers=OWNER,
    )
    assert resp.status_code == 400

    resp = client.get(f"/api/budgets/{budget_id}/items", headers=OWNER)
    assert [item["id"] for item in resp.json()] == [item_id]

    resp = client.delete(f"/api/budgets/{budget_id}/items/{item_id}", headers=OWNER)
    assert resp.status_code == 204
    resp = client.get(f"/api/budgets/{budget_id}/items/{item_id}", headers=OWNER)
    assert resp.status_code == 404


def test_contradictory_recurrence_rejected_on_create(client):
    budget_id, _ = _budget_with_item(client)
    resp = client.post(
        f"/api/budgets/{budget_id}/items",
        json={
            "title": "Lessons",
            "category": "Training",
            "amount": 600,
            "is_recurring": True,
            "start_month": "2024-01",
            "interval_months": 1,
            "interval_weeks": 1,
            "weekday": 2,
        },
        headers=OWNER,
    )
    assert resp.status_code == 422


def test_main_runs_app_with_uvicorn(monkeypatch):
    import uvicorn

    import main

    calls = []
    monkeypatch.setattr(
        uvicorn, "run", lambda *args, **kwargs: calls.append((args, kwargs))
    )

    main.main()

    assert calls == [
        (("main:app",), {"host": "0.0.0.0", "port": 8000, "reload": False})
    ]
