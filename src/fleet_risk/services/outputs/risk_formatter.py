"""Conversions between request/response schemas and risk domain objects."""

from __future__ import annotations

from dataclasses import asdict
from typing import Dict, List

from ...models.domain import (
    FleetVehicle,
    LayerFlags,
    RiskAlert,
    RouteRiskResult,
    StationSuggestion,
    TelemetryData,
    VehicleRoute,
    WeatherRiskResult,
)
from ...schemas.risk import (
    FleetVehicleModel,
    LayerFlagsModel,
    RiskAlertModel,
    RouteRiskModel,
    StationModel,
    StationSuggestionModel,
    TelemetryModel,
    VehicleRouteModel,
    WeatherRouteModel,
)


def route_from_model(model: VehicleRouteModel) -> VehicleRoute:
    return VehicleRoute(
        vehicle_id=model.vehicle_id,
        coordinates=[(lat, lon) for lat, lon in model.coordinates],
        distance_m=model.distance,
        duration_s=model.duration,
    )


def vehicle_from_model(model: FleetVehicleModel) -> FleetVehicle:
    return FleetVehicle(
        vehicle_id=model.id,
        tags=tuple(model.tags),
        consumption_rate=model.consumption_rate,
        label=model.label,
    )


def telemetry_from_models(models: Dict[str, TelemetryModel]) -> Dict[str, TelemetryData]:
    return {
        vehicle_id: TelemetryData(fuel_level=model.fuel_level, battery_level=model.battery_level)
        for vehicle_id, model in models.items()
    }


def layers_from_model(model: LayerFlagsModel) -> LayerFlags:
    return LayerFlags(**model.model_dump())


def alert_to_model(alert: RiskAlert) -> RiskAlertModel:
    return RiskAlertModel(**asdict(alert))


def suggestion_to_model(suggestion: StationSuggestion) -> StationSuggestionModel:
    station = asdict(suggestion.station)
    station["type"] = station.pop("category")
    return StationSuggestionModel(
        station=StationModel(**station),
        deviation_km=suggestion.deviation_km,
        reason=suggestion.reason,
    )


def risk_result_to_model(result: RouteRiskResult) -> RouteRiskModel:
    return RouteRiskModel(
        vehicle_id=result.vehicle_id,
        overall_risk=result.overall_risk,
        alerts=[alert_to_model(alert) for alert in result.alerts],
        suggested_stations=[suggestion_to_model(s) for s in result.suggested_stations],
        weather_risk=result.weather_risk,
        weather_alerts=[alert_to_model(alert) for alert in result.weather_alerts],
        error=result.error,
    )


def weather_result_to_model(result: WeatherRiskResult) -> WeatherRouteModel:
    return WeatherRouteModel(
        vehicle_id=result.vehicle_id,
        risk_level=result.risk_level,
        alerts=[alert_to_model(alert) for alert in result.alerts],
    )


def risk_results_to_models(results: List[RouteRiskResult]) -> List[RouteRiskModel]:
    return [risk_result_to_model(result) for result in results]
