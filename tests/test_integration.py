from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from src.fleet_risk.main import create_app
from src.fleet_risk.models.domain import ForecastEntry, StationCandidate

START = datetime(2026, 1, 15, 6, 0, tzinfo=timezone.utc)
COORDINATES = [[40.0 + i * 0.1, -3.0] for i in range(10)]


class DummyLookup:
    def find_stations(self, lat, lon, radius_km, category):
        return [
            StationCandidate(
                id=f"{category.value}-1",
                name="Roadside",
                position=(40.25, -3.0),
                category=category,
                brand="Repsol",
            )
        ]


class DummyForecast:
    def get_forecast(self, lat, lon):
        return [ForecastEntry(time=START.timestamp(), temperature=-1, rain_3h=2)]


@pytest.fixture
def api_client(monkeypatch: pytest.MonkeyPatch) -> TestClient:
    from src.fleet_risk.api.routes import risk as risk_routes

    monkeypatch.setattr(risk_routes, "StationLookupClient", lambda *args, **kwargs: DummyLookup())
    monkeypatch.setattr(risk_routes, "ForecastClient", lambda *args, **kwargs: DummyForecast())
    return TestClient(create_app())


def test_health_endpoint(api_client: TestClient):
    response = api_client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_supply_risk_endpoint_suggests_station(api_client: TestClient):
    payload = {
        "vehicle_routes": [
            {"vehicle_id": 1, "coordinates": COORDINATES, "distance": 300_000, "duration": 10_800},
            {"vehicle_id": 2, "coordinates": COORDINATES, "distance": 300_000, "duration": 10_800},
        ],
        "fleet_vehicles": [{"id": 1, "tags": [], "consumption_rate": 1.0}],
    }

    response = api_client.post("/api/supply-risk", json=payload)

    assert response.status_code == 200
    results = response.json()["results"]
    assert len(results) == 2
    first = results[0]
    assert first["vehicle_id"] == "1"
    assert first["overall_risk"] == "HIGH"
    assert [(a["risk_level"], a["segment_index"]) for a in first["alerts"]] == [("MEDIUM", 1), ("HIGH", 2)]
    assert len(first["suggested_stations"]) == 1
    suggestion = first["suggested_stations"][0]
    assert suggestion["station"]["type"] == "gas"
    assert suggestion["station"]["brand"] == "Repsol"
    assert suggestion["deviation_km"] < 6
    assert "gas station" in suggestion["reason"]

    unknown = results[1]
    assert unknown["overall_risk"] == "LOW"
    assert unknown["alerts"] == []
    assert unknown["error"]


def test_supply_risk_endpoint_with_weather_layer(api_client: TestClient):
    payload = {
        "vehicle_routes": [{"vehicle_id": "EV-7", "coordinates": COORDINATES, "distance": 20_000, "duration": 1800}],
        "fleet_vehicles": [{"id": "EV-7", "tags": ["zero", "eco"]}],
        "layers": {"supply_risk": True, "weather_risk": True, "station_suggestions": True},
        "start_time": START.isoformat(),
    }

    response = api_client.post("/api/supply-risk", json=payload)

    assert response.status_code == 200
    result = response.json()["results"][0]
    assert result["overall_risk"] == "LOW"
    assert result["suggested_stations"] == []
    assert result["weather_risk"] == "HIGH"
    assert {alert["event"] for alert in result["weather_alerts"]} == {"ICE"}


def test_supply_risk_endpoint_rejects_empty_route(api_client: TestClient):
    payload = {
        "vehicle_routes": [{"vehicle_id": "V1", "coordinates": [], "distance": 1000}],
        "fleet_vehicles": [{"id": "V1"}],
    }

    response = api_client.post("/api/supply-risk", json=payload)

    assert response.status_code == 422


def test_weather_risk_endpoint(api_client: TestClient):
    payload = {
        "vehicle_routes": [{"vehicle_id": 3, "coordinates": COORDINATES, "distance": 100_000, "duration": 3600}],
        "start_time": START.isoformat(),
    }

    response = api_client.post("/api/weather-risk", json=payload)

    assert response.status_code == 200
    routes = response.json()["routes"]
    assert routes[0]["vehicle_id"] == "3"
    assert routes[0]["risk_level"] == "HIGH"
    assert [alert["segment_index"] for alert in routes[0]["alerts"]] == [0, 2, 5, 7, 9]


def test_weather_risk_endpoint_without_forecast_key(monkeypatch: pytest.MonkeyPatch):
    from src.fleet_risk.config import settings

    monkeypatch.setattr(settings, "openweathermap_api_key", None)
    client = TestClient(create_app())

    response = client.post(
        "/api/weather-risk",
        json={"vehicle_routes": [{"vehicle_id": "V1", "coordinates": COORDINATES}]},
    )

    assert response.status_code == 503


def test_forecast_health_reports_unconfigured(monkeypatch: pytest.MonkeyPatch):
    from src.fleet_risk.config import settings

    monkeypatch.setattr(settings, "openweathermap_api_key", None)
    client = TestClient(create_app())

    response = client.get("/api/health/forecast")

    assert response.status_code == 200
    assert response.json()["configured"] is False


def test_forecast_health_uses_probe_when_configured(monkeypatch: pytest.MonkeyPatch):
    from src.fleet_risk.config import settings
    from src.fleet_risk.services.weather import client as weather_client

    monkeypatch.setattr(settings, "openweathermap_api_key", "secret")
    monkeypatch.setattr(weather_client, "check_health", lambda: True)
    client = TestClient(create_app())

    response = client.get("/api/health/forecast")

    assert response.status_code == 200
    assert response.json() == {"service": "forecast", "configured": True, "healthy": True}
