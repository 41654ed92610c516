"""
HTTP surface tests through FastAPI's TestClient.

Pipeline and connectors are patched where the routes import them; the
dataset and reference singletons are swapped for the in-memory fixtures.
"""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from app import app
from modules import reference_data, risk_dataset
from modules.models import FusedResult
from modules.news import FeedItem, FeedSnapshot, NewsError
from modules.weather import GeocodingError, build_snapshot
from tests.conftest import AIR_QUALITY_PAYLOAD, forecast_payload


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture(autouse=True)
def local_datasets(monkeypatch: pytest.MonkeyPatch, dataset, reference) -> None:
    monkeypatch.setattr(risk_dataset, "_accessor", dataset)
    monkeypatch.setattr(reference_data, "_store", reference)


class TestMeta:
    def test_root_and_health(self, client: TestClient) -> None:
        assert client.get("/").json()["message"] == "Voyant API is running"
        assert client.get("/api/v1/health").json() == {"status": "ok"}


class TestDestinationRoutes:
    def test_search(self, client: TestClient) -> None:
        fused = AsyncMock(return_value=FusedResult(destination="Berlin"))
        with patch("api.routes.destinations.resolve_and_fuse", fused):
            resp = client.get("/api/v1/search", params={"destination": "Berlin, Germany"})

        assert resp.status_code == 200
        assert resp.json()["destination"] == "Berlin"
        fused.assert_awaited_once_with("Berlin, Germany", None)

    def test_search_requires_destination(self, client: TestClient) -> None:
        assert client.get("/api/v1/search").status_code == 422
        assert client.get("/api/v1/search", params={"destination": ""}).status_code == 422

    def test_compare(self, client: TestClient) -> None:
        second = FusedResult(destination="Japan")
        fused = AsyncMock(return_value=FusedResult(destination="Germany", comparison=second))
        with patch("api.routes.destinations.resolve_and_fuse", fused):
            resp = client.post(
                "/api/v1/compare",
                json={"first_destination": "Germany", "second_destination": "Japan"},
            )

        assert resp.status_code == 200
        assert resp.json()["comparison"]["destination"] == "Japan"
        fused.assert_awaited_once_with("Germany", "Japan")

    def test_compare_rejects_blank(self, client: TestClient) -> None:
        resp = client.post("/api/v1/compare", json={"first_destination": "Germany", "second_destination": ""})
        assert resp.status_code == 422

    def test_city_search(self, client: TestClient) -> None:
        body = client.get("/api/v1/city-search", params={"q": "vie"}).json()
        assert [s["display"] for s in body["suggestions"]] == ["Vienna, Austria", "Vienna, United States"]

    def test_countries(self, client: TestClient) -> None:
        countries = client.get("/api/v1/countries").json()["countries"]
        assert len(countries) == 8
        assert countries == sorted(countries)


class TestLiveRoutes:
    def test_weather_with_alerts(self, client: TestClient) -> None:
        snapshot = build_snapshot(
            "Vienna", forecast_payload(precipitation_sum=[25.0] + [0.0] * 15), AIR_QUALITY_PAYLOAD
        )
        with patch("api.routes.live.get_weather_for_place", AsyncMock(return_value=snapshot)):
            resp = client.get("/api/v1/weather", params={"city": "Vienna"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["weather"]["city"] == "Vienna"
        assert body["alerts"][0]["alerts"][0]["type"] == "Heavy Rain"

    def test_weather_failure_is_502(self, client: TestClient) -> None:
        failing = AsyncMock(side_effect=GeocodingError("Failed to geocode: Atlantis"))
        with patch("api.routes.live.get_weather_for_place", failing):
            resp = client.get("/api/v1/weather", params={"city": "Atlantis"})

        assert resp.status_code == 502
        assert resp.json() == {"error": "Failed to fetch weather data", "details": "Failed to geocode: Atlantis"}

    def test_news(self, client: TestClient) -> None:
        snapshot = FeedSnapshot(
            items=[
                FeedItem(title="Lisbon festival opens", link="https://example.com/a",
                         description="Crowds in Lisbon", pub_date="", source="Example Wire"),
                FeedItem(title="Markets close higher", link="https://example.com/b",
                         description="", pub_date="", source="Example Wire"),
            ],
            fetched_at=datetime.now(timezone.utc),
        )
        feed = AsyncMock(return_value=snapshot)
        with patch("api.routes.live.fetch_feed", feed):
            resp = client.get("/api/v1/news", params={"city": "Lisbon", "refresh": "true"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["total_found"] == 1
        assert body["articles"][0]["relevance_score"] == 17
        assert body["hours_back"] == 72
        feed.assert_awaited_once_with(force_refresh=True)

    def test_news_failure_is_502(self, client: TestClient) -> None:
        failing = AsyncMock(side_effect=NewsError("Failed to fetch RSS feed: offline"))
        with patch("api.routes.live.fetch_feed", failing):
            resp = client.get("/api/v1/news", params={"city": "Lisbon"})

        assert resp.status_code == 502
        assert resp.json() == {"error": "Failed to fetch news", "details": "Failed to fetch RSS feed: offline"}
