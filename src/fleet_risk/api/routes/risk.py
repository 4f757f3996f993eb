"""Route risk endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...schemas.risk import SupplyRiskRequest, SupplyRiskResponse, WeatherRiskRequest, WeatherRiskResponse
from ...services.outputs.risk_formatter import (
    layers_from_model,
    risk_results_to_models,
    route_from_model,
    telemetry_from_models,
    vehicle_from_model,
    weather_result_to_model,
)
from ...services.risk.service import analyze_fleet_risk
from ...services.stations.client import StationLookupClient
from ...services.weather.client import ForecastClient
from ...services.weather.detector import analyze_weather_risk

router = APIRouter(tags=["risk"])
logger = logging.getLogger(__name__)


def _forecast_client_or_none() -> ForecastClient | None:
    try:
        return ForecastClient()
    except ValueError as exc:
        logger.warning(f"Weather layer requested but forecast client unavailable: {exc}")
        return None


@router.post("/supply-risk", response_model=SupplyRiskResponse, status_code=status.HTTP_200_OK)
def supply_risk(payload: SupplyRiskRequest) -> SupplyRiskResponse:
    """Estimate supply depletion per vehicle and suggest a stop where risk appears."""
    layers = layers_from_model(payload.layers)
    try:
        results = analyze_fleet_risk(
            [route_from_model(route) for route in payload.vehicle_routes],
            [vehicle_from_model(vehicle) for vehicle in payload.fleet_vehicles],
            layers,
            station_lookup=StationLookupClient() if layers.station_suggestions else None,
            forecast_provider=_forecast_client_or_none() if layers.weather_risk else None,
            telemetry=telemetry_from_models(payload.telemetry),
            start_time=payload.start_time,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error analyzing supply risk: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to analyze supply risk: {str(exc)}",
        ) from exc
    return SupplyRiskResponse(results=risk_results_to_models(results))


@router.post("/weather-risk", response_model=WeatherRiskResponse, status_code=status.HTTP_200_OK)
def weather_risk(payload: WeatherRiskRequest) -> WeatherRiskResponse:
    """Classify forecast hazards at sampled points of each route."""
    try:
        client = ForecastClient()
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    try:
        results = analyze_weather_risk(
            [route_from_model(route) for route in payload.vehicle_routes],
            client,
            start_time=payload.start_time,
        )
    except Exception as exc:
        logging.exception(f"Error analyzing weather risk: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to analyze weather risk: {str(exc)}",
        ) from exc
    return WeatherRiskResponse(routes=[weather_result_to_model(result) for result in results])
