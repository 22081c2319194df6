"""Integration tests for the FastAPI endpoints.

Uses TestClient against an in-memory SQLite database.
"""
from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from vpms.config import get_settings
from vpms.models import Base, Venture
from vpms.schemas import CapitalStatus, Stage

NEW_VENTURE = {
    "code": "VEN-2025-200",
    "name": "EduTech Phnom Penh",
    "sector": "Education",
    "country": "Cambodia",
    "stage": "INTAKE",
    "readinessScore": 10,
    "capitalStatus": "NOT_STARTED",
    "capitalFacilitatedUsd": 0,
}


def _parse_ts(value: str) -> datetime:
    ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return ts if ts.tzinfo else ts.replace(tzinfo=UTC)


@pytest.fixture()
def test_db():
    """Create a temporary SQLite in-memory database for testing.

    Uses StaticPool so all connections share the same in-memory database.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestSession = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    return engine, TestSession


@pytest.fixture()
def client(test_db, monkeypatch):
    """FastAPI TestClient using in-memory database."""
    monkeypatch.setenv("VPMS_DATABASE_URL", "sqlite://")
    get_settings.cache_clear()
    engine, TestSession = test_db
    from vpms.app import app, db_session

    def override_db_session():
        session = TestSession()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[db_session] = override_db_session
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c, TestSession
    app.dependency_overrides.clear()
    get_settings.cache_clear()


@pytest.fixture()
def seeded_client(client):
    """Client with the three sample ventures, oldest update first."""
    c, TestSession = client
    base = datetime(2025, 1, 1, tzinfo=UTC)
    session = TestSession()
    ventures = [
        Venture(code="VEN-2025-101", name="AgriTech Phnom Penh", sector="Agriculture",
                country="Cambodia", stage=Stage.READINESS, readiness_score=78,
                capital_status=CapitalStatus.IN_PROGRESS, capital_facilitated_usd=150000,
                last_updated=base),
        Venture(code="VEN-2025-102", name="Clean Energy Laos", sector="Clean Energy",
                country="Laos", stage=Stage.DIAGNOSTICS, readiness_score=45,
                capital_status=CapitalStatus.NOT_STARTED, capital_facilitated_usd=0,
                last_updated=base + timedelta(days=1)),
        Venture(code="VEN-2025-103", name="FinTech Thailand", sector="Technology",
                country="Thailand", stage=Stage.READINESS, readiness_score=69,
                capital_status=CapitalStatus.FACILITATED, capital_facilitated_usd=250000,
                last_updated=base + timedelta(days=2)),
    ]
    session.add_all(ventures)
    session.commit()
    ids = [v.id for v in ventures]
    session.close()
    return c, TestSession, ids


class TestHealth:
    def test_root(self, client):
        c, _ = client
        resp = c.get("/")
        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "service": "VPMS Backend"}

    def test_security_headers(self, client):
        c, _ = client
        resp = c.get("/")
        assert resp.headers["x-content-type-options"] == "nosniff"
        assert resp.headers["x-frame-options"] == "SAMEORIGIN"

    def test_cors_allows_any_origin_by_default(self, client):
        c, _ = client
        resp = c.get("/api/ventures", headers={"Origin": "https://dashboard.example"})
        assert resp.headers["access-control-allow-origin"] == "*"


class TestListVentures:
    def test_empty_store(self, client):
        c, _ = client
        resp = c.get("/api/ventures")
        assert resp.status_code == 200
        assert resp.json() == []

    def test_list_sorted_by_last_updated_desc(self, seeded_client):
        c, _, _ = seeded_client
        resp = c.get("/api/ventures")
        assert resp.status_code == 200
        data = resp.json()
        assert [v["code"] for v in data] == ["VEN-2025-103", "VEN-2025-102", "VEN-2025-101"]
        item = data[0]
        for key in ("id", "code", "name", "sector", "country", "stage", "readinessScore",
                    "capitalStatus", "capitalFacilitatedUsd", "lastUpdated"):
            assert key in item

    def test_list_is_repeatable(self, seeded_client):
        c, _, _ = seeded_client
        assert c.get("/api/ventures").json() == c.get("/api/ventures").json()

    def test_get_single_venture(self, seeded_client):
        c, _, ids = seeded_client
        resp = c.get(f"/api/ventures/{ids[0]}")
        assert resp.status_code == 200
        assert resp.json()["code"] == "VEN-2025-101"

    def test_get_single_venture_404(self, client):
        c, _ = client
        resp = c.get("/api/ventures/9999")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Not found"}


class TestMetrics:
    def test_metrics_on_sample_portfolio(self, seeded_client):
        c, _, _ = seeded_client
        resp = c.get("/api/metrics")
        assert resp.status_code == 200
        assert resp.json() == {
            "totalVentures": 3,
            "averageReadiness": 64.0,
            "capitalFacilitatedUsd": 400000,
        }

    def test_metrics_on_empty_store(self, client):
        c, _ = client
        resp = c.get("/api/metrics")
        assert resp.json() == {"totalVentures": 0, "averageReadiness": 0, "capitalFacilitatedUsd": 0}


class TestCreateVenture:
    def test_create(self, client):
        c, _ = client
        before = datetime.now(UTC)
        resp = c.post("/api/ventures", json=NEW_VENTURE)
        assert resp.status_code == 201
        data = resp.json()
        assert isinstance(data["id"], int)
        assert data["code"] == "VEN-2025-200"
        assert data["stage"] == "INTAKE"
        assert data["capitalStatus"] == "NOT_STARTED"
        assert before - timedelta(seconds=5) <= _parse_ts(data["lastUpdated"]) <= datetime.now(UTC) + timedelta(seconds=5)

    def test_created_venture_appears_first(self, seeded_client):
        c, _, _ = seeded_client
        c.post("/api/ventures", json=NEW_VENTURE)
        data = c.get("/api/ventures").json()
        assert len(data) == 4
        assert data[0]["code"] == "VEN-2025-200"

    def test_capital_defaults_to_zero(self, client):
        c, _ = client
        payload = {k: v for k, v in NEW_VENTURE.items() if k not in ("capitalFacilitatedUsd", "readinessScore")}
        data = c.post("/api/ventures", json=payload).json()
        assert data["capitalFacilitatedUsd"] == 0
        assert data["readinessScore"] is None

    def test_client_cannot_set_id_or_last_updated(self, client):
        c, _ = client
        payload = {**NEW_VENTURE, "id": 777, "lastUpdated": "2000-01-01T00:00:00Z"}
        data = c.post("/api/ventures", json=payload).json()
        assert data["id"] != 777
        assert _parse_ts(data["lastUpdated"]).year > 2000

    @pytest.mark.parametrize("field", ["code", "name", "sector", "country", "stage", "capitalStatus"])
    def test_missing_required_field(self, client, field):
        c, _ = client
        payload = {k: v for k, v in NEW_VENTURE.items() if k != field}
        resp = c.post("/api/ventures", json=payload)
        assert resp.status_code == 400
        assert resp.json() == {"error": f"{field} is required"}

    def test_invalid_stage(self, client):
        c, _ = client
        resp = c.post("/api/ventures", json={**NEW_VENTURE, "stage": "SCALING"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "invalid stage"}

    def test_invalid_capital_status(self, client):
        c, _ = client
        resp = c.post("/api/ventures", json={**NEW_VENTURE, "capitalStatus": "DONE"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "invalid capitalStatus"}

    @pytest.mark.parametrize("score", [-1, 100.5, 150])
    def test_invalid_readiness_score(self, client, score):
        c, _ = client
        resp = c.post("/api/ventures", json={**NEW_VENTURE, "readinessScore": score})
        assert resp.status_code == 400
        assert resp.json() == {"error": "invalid readinessScore"}

    def test_negative_capital(self, client):
        c, _ = client
        resp = c.post("/api/ventures", json={**NEW_VENTURE, "capitalFacilitatedUsd": -5})
        assert resp.status_code == 400
        assert resp.json() == {"error": "invalid capitalFacilitatedUsd"}

    def test_overflowing_capital_string(self, client):
        c, _ = client
        resp = c.post("/api/ventures", json={**NEW_VENTURE, "capitalFacilitatedUsd": "1e400"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "invalid capitalFacilitatedUsd"}
        assert c.get("/api/ventures").json() == []

    def test_overflowing_capital_literal(self, client):
        c, _ = client
        body = json.dumps({**NEW_VENTURE, "capitalFacilitatedUsd": 0}).replace(
            '"capitalFacilitatedUsd": 0', '"capitalFacilitatedUsd": 1e400')
        resp = c.post("/api/ventures", content=body, headers={"content-type": "application/json"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "invalid capitalFacilitatedUsd"}
        assert c.get("/api/ventures").json() == []

    def test_oversized_readiness_integer(self, client):
        c, _ = client
        body = json.dumps({**NEW_VENTURE, "readinessScore": 0}).replace(
            '"readinessScore": 0', '"readinessScore": 1' + "0" * 400)
        resp = c.post("/api/ventures", content=body, headers={"content-type": "application/json"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "invalid readinessScore"}
        assert c.get("/api/ventures").json() == []

    def test_duplicate_code(self, seeded_client):
        c, _, _ = seeded_client
        resp = c.post("/api/ventures", json={**NEW_VENTURE, "code": "VEN-2025-101"})
        assert resp.status_code == 400
        assert "already exists" in resp.json()["error"]
        assert len(c.get("/api/ventures").json()) == 3

    def test_non_object_body(self, client):
        c, _ = client
        resp = c.post("/api/ventures", json=[NEW_VENTURE])
        assert resp.status_code == 400
        assert resp.json() == {"error": "request body must be a JSON object"}


class TestUpdateVenture:
    def test_update_readiness(self, seeded_client):
        c, _, ids = seeded_client
        before = c.get(f"/api/ventures/{ids[0]}").json()
        resp = c.put(f"/api/ventures/{ids[0]}", json={"readinessScore": 80})
        assert resp.status_code == 200
        data = resp.json()
        assert data["readinessScore"] == 80
        assert data["lastUpdated"] != before["lastUpdated"]
        for key in ("id", "code", "name", "sector", "country", "stage", "capitalStatus",
                    "capitalFacilitatedUsd"):
            assert data[key] == before[key]

    def test_updated_venture_moves_to_front(self, seeded_client):
        c, _, ids = seeded_client
        c.put(f"/api/ventures/{ids[0]}", json={"stage": "CAPITAL_FACILITATION"})
        assert c.get("/api/ventures").json()[0]["id"] == ids[0]

    def test_update_404_does_not_create(self, seeded_client):
        c, _, _ = seeded_client
        resp = c.put("/api/ventures/9999", json={"readinessScore": 80})
        assert resp.status_code == 404
        assert len(c.get("/api/ventures").json()) == 3

    def test_update_invalid_stage(self, seeded_client):
        c, _, ids = seeded_client
        resp = c.put(f"/api/ventures/{ids[0]}", json={"stage": "BOGUS"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "invalid stage"}
        assert c.get(f"/api/ventures/{ids[0]}").json()["stage"] == "READINESS"

    def test_update_overflowing_capital(self, seeded_client):
        c, _, ids = seeded_client
        before = c.get(f"/api/ventures/{ids[0]}").json()
        resp = c.put(f"/api/ventures/{ids[0]}", json={"capitalFacilitatedUsd": "1e400"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "invalid capitalFacilitatedUsd"}
        assert c.get(f"/api/ventures/{ids[0]}").json() == before

    def test_update_duplicate_code(self, seeded_client):
        c, _, ids = seeded_client
        resp = c.put(f"/api/ventures/{ids[0]}", json={"code": "VEN-2025-102"})
        assert resp.status_code == 400

    def test_update_keeps_own_code(self, seeded_client):
        c, _, ids = seeded_client
        resp = c.put(f"/api/ventures/{ids[0]}", json={"code": "VEN-2025-101", "name": "Renamed"})
        assert resp.status_code == 200
        assert resp.json()["name"] == "Renamed"

    def test_non_integer_id(self, client):
        c, _ = client
        resp = c.put("/api/ventures/abc", json={"readinessScore": 1})
        assert resp.status_code == 400


class TestDeleteVenture:
    def test_delete(self, seeded_client):
        c, _, ids = seeded_client
        resp = c.delete(f"/api/ventures/{ids[1]}")
        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "id": ids[1]}
        remaining = c.get("/api/ventures").json()
        assert len(remaining) == 2
        assert ids[1] not in {v["id"] for v in remaining}

    def test_delete_404(self, seeded_client):
        c, _, _ = seeded_client
        resp = c.delete("/api/ventures/9999")
        assert resp.status_code == 404
        assert len(c.get("/api/ventures").json()) == 3


class TestStoreFailure:
    def test_store_error_is_500(self, client, test_db):
        c, _ = client
        engine, _ = test_db
        with engine.begin() as conn:
            conn.exec_driver_sql("DROP TABLE ventures")
        resp = c.get("/api/ventures")
        assert resp.status_code == 500
        assert "error" in resp.json()
