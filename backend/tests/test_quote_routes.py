"""
test_quote_routes.py: HTTP surface of the pricing API.

Uses FastAPI's TestClient without the lifespan, so no database or remote
config store is touched. ``get_db`` is swapped for an in-memory session and
the engine dependencies for a static-defaults engine.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError

from app.api.deps import get_pricing_provider, get_quote_engine
from app.db import get_db
from app.main import app
from app.models.orm_models import gen_uuid


class FakeSession:
    """Just enough of AsyncSession for the quote routes."""

    def __init__(self, fail_on_flush=False):
        self.rows = {}
        self.fail_on_flush = fail_on_flush
        self.commits = 0

    def add(self, row):
        if row.id is None:
            row.id = gen_uuid()
        self.rows[row.id] = row

    async def get(self, model, key):
        return self.rows.get(key)

    async def flush(self):
        if self.fail_on_flush:
            raise SQLAlchemyError("database unavailable")

    async def commit(self):
        self.commits += 1

    async def rollback(self):
        pass

    async def close(self):
        pass


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def client(session, static_provider, quote_engine):
    async def _db():
        yield session

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_quote_engine] = lambda: quote_engine
    app.dependency_overrides[get_pricing_provider] = lambda: static_provider
    yield TestClient(app)
    app.dependency_overrides.clear()


# ===========================================================================
# Class 1: Service and config endpoints
# ===========================================================================

class TestServiceEndpoints:
    """Single-service pricing and config lookups."""

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "active"
        assert "X-Request-ID" in r.headers

    def test_request_id_echoed(self, client):
        r = client.get("/api/pricing/services", headers={"X-Request-ID": "quote-abc"})
        assert r.headers["X-Request-ID"] == "quote-abc"
        assert float(r.headers["X-Process-Time"]) >= 0

    def test_calculate_service(self, client, saniclean_form):
        r = client.post("/api/quotes/services/saniclean/calculate", json={"form": saniclean_form})
        assert r.status_code == 200
        body = r.json()
        assert body["result"]["perVisitPrice"] == 84.0
        assert body["changes"] == []

    def test_calculate_clamps_bad_numbers(self, client):
        r = client.post("/api/quotes/services/carpet/calculate", json={"form": {"area_sqft": "lots"}})
        assert r.status_code == 200
        assert r.json()["result"]["isActive"] is False

    def test_calculate_records_override(self, client, saniclean_form):
        form = dict(saniclean_form, custom_per_visit=100)
        body = client.post("/api/quotes/services/saniclean/calculate", json={"form": form}).json()
        assert body["result"]["perVisitPrice"] == 100.0
        assert body["changes"][0]["field"] == "per_visit"

    def test_calculate_unknown_service(self, client):
        r = client.post("/api/quotes/services/window_tinting/calculate", json={"form": {}})
        assert r.status_code == 404

    def test_list_services(self, client):
        services = client.get("/api/pricing/services").json()["services"]
        assert services[0]["serviceId"] == "saniclean"
        assert all(s["configSource"] == "static" for s in services)

    def test_service_config(self, client):
        body = client.get("/api/pricing/carpet").json()
        assert body["config"]["first_unit_rate"] == 250.0
        assert client.get("/api/pricing/window_tinting").status_code == 404


# ===========================================================================
# Class 2: Agreements
# ===========================================================================

class TestAgreementEndpoints:
    """Summary, save, load and update."""

    def test_summary_does_not_save(self, client, session, saniclean_form):
        r = client.post("/api/quotes/summary", json={"services": {"saniclean": saniclean_form}})
        assert r.status_code == 200
        assert r.json()["summary"]["totalOriginalPerVisit"] == 84.0
        assert session.rows == {}

    def test_summary_unknown_service(self, client):
        r = client.post("/api/quotes/summary", json={"services": {"window_tinting": {}}})
        assert r.status_code == 404

    def test_create_agreement(self, client, session, saniclean_form):
        r = client.post("/api/quotes/agreements", json={"title": "Main St", "services": {"saniclean": saniclean_form}})
        assert r.status_code == 201
        body = r.json()
        assert body["version"] == 1
        row = session.rows[body["agreementId"]]
        assert row.title == "Main St"
        assert row.classification == body["summary"]["classification"]
        assert session.commits == 1

    def test_get_agreement_reprices(self, client, saniclean_form):
        created = client.post("/api/quotes/agreements", json={"services": {"saniclean": saniclean_form}}).json()
        r = client.get(f"/api/quotes/agreements/{created['agreementId']}")
        assert r.status_code == 200
        body = r.json()
        assert body["summary"]["totalOriginalPerVisit"] == 84.0
        assert body["storedClassification"] == created["summary"]["classification"]

    def test_get_missing_agreement(self, client):
        assert client.get(f"/api/quotes/agreements/{gen_uuid()}").status_code == 404

    def test_update_bumps_version(self, client, session, saniclean_form):
        created = client.post("/api/quotes/agreements", json={"services": {"saniclean": saniclean_form}}).json()
        form = dict(saniclean_form, sinks=8)
        r = client.put(f"/api/quotes/agreements/{created['agreementId']}", json={"services": {"saniclean": form}})
        assert r.status_code == 200
        body = r.json()
        assert body["version"] == 2
        assert body["summary"]["totalOriginalPerVisit"] == 112.0
        assert session.rows[created["agreementId"]].version == 2

    def test_save_failure_returns_quote(self, client, session, saniclean_form):
        session.fail_on_flush = True
        r = client.post("/api/quotes/agreements", json={"services": {"saniclean": saniclean_form}})
        assert r.status_code == 503
        assert r.json()["quote"]["summary"]["totalOriginalPerVisit"] == 84.0
