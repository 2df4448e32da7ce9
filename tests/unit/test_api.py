"""
Unit Tests - HTTP API
"""
import pytest
import requests
from fastapi.testclient import TestClient

from cow_analytics.exceptions import PayloadShapeError, SourceFetchError
from cow_analytics.ingestion.cache import SnapshotCache
from cow_analytics.ingestion.fetcher import HttpSource
from cow_analytics.ingestion.pipeline import IngestionPipeline
from cow_analytics.serving.api import create_api_app
from cow_analytics.serving.api.dependencies import get_pipeline

from conftest import AS_OF


class StaticSource:
    source_id = "memory://api"

    def __init__(self, payload: str):
        self.payload = payload

    def read(self) -> str:
        return self.payload


class FailingSource:
    source_id = "memory://down"

    def read(self) -> str:
        raise SourceFetchError("upstream unavailable")


def client_for(source) -> TestClient:
    app = create_api_app()
    pipeline = IngestionPipeline(source=source, cache=SnapshotCache(), today=lambda: AS_OF)
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    return TestClient(app)


@pytest.fixture
def client(sample_payload) -> TestClient:
    return client_for(StaticSource(sample_payload))


class TestDataEndpoints:
    """Tests for the dashboard, asset and diagnostics routes"""

    def test_dashboard(self, client):
        response = client.get("/api/v1/dashboard")

        assert response.status_code == 200
        body = response.json()
        assert body["kpis"]["totalMovements"] == 5
        assert len(body["movements"]) == 5
        assert body["filters"] == {}
        assert [m["Movements"] for m in body["categoryMetrics"]] == [1, 1, 3]

    def test_dashboard_filters(self, client):
        response = client.get("/api/v1/dashboard", params={"year": 2023, "movementType": "Zero"})

        body = response.json()
        assert [m["SN"] for m in body["movements"]] == [4]
        assert body["filters"] == {"year": 2023, "movementType": "Zero"}

    def test_cow(self, client):
        response = client.get("/api/v1/cows/COW001")

        assert response.status_code == 200
        body = response.json()
        assert body["cow"]["COW_ID"] == "COW001"
        assert body["metrics"]["Total_Movements"] == 3
        assert [m["SN"] for m in body["movements"]] == [1, 2, 3]

    def test_unknown_cow(self, client):
        assert client.get("/api/v1/cows/COW404").status_code == 404

    def test_warehouses(self, client):
        body = client.get("/api/v1/warehouses").json()

        assert {w["Location_ID"] for w in body} == {"LOC-stc-jeddah-wh", "LOC-aces-dammam-wh"}

    def test_monthly(self, client):
        body = client.get("/api/v1/movements/monthly", params={"year": 2023}).json()

        assert [(row["Month"], row["Movement_Type"], row["Movements"]) for row in body] == [
            ("2023-06", "Half", 1),
            ("2023-06", "Zero", 1),
        ]

    def test_never_moved(self, client):
        body = client.get("/api/v1/never-moved").json()

        assert [cow["COW_ID"] for cow in body] == ["COW777", "COW999"]

    def test_diagnostics(self, client):
        body = client.get("/api/v1/diagnostics").json()

        assert body["source"] == "memory://api"
        assert body["rejected"] == {"missing_cow_id": 1, "missing_to_location": 1}

    def test_request_id_echoed(self, client):
        response = client.get("/api/v1/health/live", headers={"X-Request-ID": "abc"})

        assert response.headers["X-Request-ID"] == "abc"


class TestUpstreamErrors:
    """Source failures map to 502"""

    def test_fetch_failure(self):
        response = client_for(FailingSource()).get("/api/v1/dashboard")

        assert response.status_code == 502
        assert response.json()["error"] == "SourceFetchError"

    def test_html_payload(self):
        response = client_for(StaticSource("<html><body>login</body></html>")).get("/api/v1/never-moved")

        assert response.status_code == 502
        assert response.json()["error"] == PayloadShapeError.__name__

    def test_bom_only_payload(self):
        response = client_for(StaticSource("\ufeff\n\n")).get("/api/v1/dashboard")

        assert response.status_code == 502
        assert response.json()["error"] == "PayloadShapeError"


class TestHealth:
    """Tests for health routes"""

    def test_liveness(self, client):
        assert client.get("/api/v1/health/live").json() == {"status": "alive"}

    def test_health_shape(self, client):
        body = client.get("/api/v1/health").json()

        assert body["status"] in {"healthy", "degraded"}
        assert "pipeline" in body["checks"]

    def test_info(self, client):
        assert client.get("/api/v1/info").json()["name"] == "COW Movement Analytics API"


class FakeResponse:
    def __init__(self, text: str, status_code: int = 200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def get(self, url, headers=None, timeout=None):
        self.calls.append((url, headers, timeout))
        if self.error:
            raise self.error
        return self.response


class TestHttpSource:
    """Tests for HttpSource"""

    def test_sends_user_agent_and_timeout(self):
        session = FakeSession(FakeResponse("a,b\n1,2"))
        source = HttpSource("https://example.com/export.csv", timeout=5, user_agent="cow-test", session=session)

        assert source.read() == "a,b\n1,2"
        assert session.calls == [("https://example.com/export.csv", {"User-Agent": "cow-test"}, 5)]

    def test_http_error_wrapped(self):
        source = HttpSource("https://example.com/x", session=FakeSession(FakeResponse("", 404)))

        with pytest.raises(SourceFetchError):
            source.read()

    def test_connection_error_wrapped(self):
        source = HttpSource("https://example.com/x", session=FakeSession(error=requests.ConnectionError("down")))

        with pytest.raises(SourceFetchError):
            source.read()
