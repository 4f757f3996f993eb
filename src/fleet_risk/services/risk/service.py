"""Fleet risk orchestration service."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Sequence

from ...config import settings
from ...models.domain import (
    FleetVehicle,
    LayerFlags,
    RiskAlert,
    RiskLevel,
    RouteRiskResult,
    StationCategory,
    SupplyRiskConfig,
    TelemetryData,
    VehicleRoute,
)
from ..geospatial import normalize_coordinates
from ..sampling import sample_route
from ..stations.client import StationLookup
from ..supply.estimator import analyze_route
from ..supply.ranker import suggest_best_station
from ..weather.client import ForecastProvider
from ..weather.detector import detect_route_hazards

logger = logging.getLogger(__name__)


def dedupe_alerts(alerts: Sequence[RiskAlert]) -> List[RiskAlert]:
    """Keep the first alert seen for each risk level, preserving order."""

    seen: set[RiskLevel] = set()
    unique: List[RiskAlert] = []
    for alert in alerts:
        if alert.risk_level not in seen:
            seen.add(alert.risk_level)
            unique.append(alert)
    return unique


def build_supply_config(vehicle: FleetVehicle) -> SupplyRiskConfig:
    if vehicle.consumption_rate is not None:
        rate = vehicle.consumption_rate
    elif vehicle.is_electric:
        rate = settings.electric_consumption_rate
    else:
        rate = settings.combustion_consumption_rate
    return SupplyRiskConfig(
        medium_risk_threshold=settings.medium_risk_threshold,
        high_risk_threshold=settings.high_risk_threshold,
        base_consumption_rate=rate,
        buffer_distance_km=settings.buffer_distance_km,
    )


def _representative_alert(alerts: Sequence[RiskAlert]) -> RiskAlert:
    for alert in alerts:
        if alert.risk_level is RiskLevel.HIGH:
            return alert
    return alerts[0]


def analyze_vehicle_route(
    route: VehicleRoute,
    vehicle: FleetVehicle,
    station_lookup: Optional[StationLookup],
    telemetry: Optional[TelemetryData] = None,
    config: Optional[SupplyRiskConfig] = None,
) -> RouteRiskResult:
    """Run the supply estimator for one vehicle and attach a stop suggestion when at risk."""

    result = analyze_route(route, vehicle, telemetry, config or build_supply_config(vehicle))
    result.alerts = dedupe_alerts(result.alerts)

    if result.overall_risk is RiskLevel.LOW or not result.alerts or station_lookup is None:
        return result

    alert = _representative_alert(result.alerts)
    risk_point = normalize_coordinates(alert.coords)
    category = StationCategory.EV if vehicle.is_electric else StationCategory.GAS

    try:
        stations = station_lookup.find_stations(
            risk_point[0], risk_point[1], settings.station_search_radius_km, category
        )
    except Exception as e:
        logger.warning(f"Failed to fetch {category.value} stations for vehicle {route.vehicle_id}: {e}")
        return result

    pre_risk_route = route.coordinates[: alert.segment_index + 1]
    suggestion = suggest_best_station(risk_point, stations, settings.max_deviation_km, pre_risk_route)
    if suggestion is not None:
        result.suggested_stations.append(suggestion)
    return result


def _failed_result(vehicle_id: str, message: str) -> RouteRiskResult:
    return RouteRiskResult(vehicle_id=vehicle_id, overall_risk=RiskLevel.LOW, alerts=[], error=message)


def _analyze_one(
    route: VehicleRoute,
    vehicle: FleetVehicle,
    layer_flags: LayerFlags,
    station_lookup: Optional[StationLookup],
    forecast_provider: Optional[ForecastProvider],
    telemetry: Optional[TelemetryData],
    start_time: datetime,
) -> RouteRiskResult:
    if layer_flags.supply_risk:
        lookup = station_lookup if layer_flags.station_suggestions else None
        result = analyze_vehicle_route(route, vehicle, lookup, telemetry)
    else:
        result = RouteRiskResult(vehicle_id=route.vehicle_id, overall_risk=RiskLevel.LOW, alerts=[])

    if layer_flags.weather_risk and forecast_provider is not None:
        segments = sample_route(route.coordinates, settings.weather_sample_count, start_time, route.duration_s)
        weather = detect_route_hazards(route.vehicle_id, segments, forecast_provider)
        result.weather_risk = weather.risk_level
        result.weather_alerts = weather.alerts
    return result


def analyze_fleet_risk(
    vehicle_routes: Sequence[VehicleRoute],
    vehicles: Sequence[FleetVehicle] | Mapping[str, FleetVehicle],
    layer_flags: Optional[LayerFlags] = None,
    *,
    station_lookup: Optional[StationLookup] = None,
    forecast_provider: Optional[ForecastProvider] = None,
    telemetry: Optional[Mapping[str, TelemetryData]] = None,
    start_time: Optional[datetime] = None,
) -> List[RouteRiskResult]:
    """Analyze every route independently; one vehicle's failure never blocks the others.

    Results come back in the order of ``vehicle_routes``. All analyses share one
    ``analysis_timeout_seconds`` deadline.
    """

    layer_flags = layer_flags or LayerFlags()
    telemetry = telemetry or {}
    start = start_time or datetime.now(timezone.utc)
    if isinstance(vehicles, Mapping):
        by_id: Dict[str, FleetVehicle] = {str(key): value for key, value in vehicles.items()}
    else:
        by_id = {str(vehicle.vehicle_id): vehicle for vehicle in vehicles}

    results: List[Optional[RouteRiskResult]] = [None] * len(vehicle_routes)
    pending = []

    executor = ThreadPoolExecutor(max_workers=settings.max_parallel_requests)
    try:
        for position, route in enumerate(vehicle_routes):
            vehicle = by_id.get(str(route.vehicle_id))
            if vehicle is None:
                logger.warning(f"No vehicle descriptor for route of vehicle {route.vehicle_id}; skipping analysis")
                results[position] = _failed_result(route.vehicle_id, f"Unknown vehicle '{route.vehicle_id}'.")
                continue
            future = executor.submit(
                _analyze_one,
                route,
                vehicle,
                layer_flags,
                station_lookup,
                forecast_provider,
                telemetry.get(str(route.vehicle_id)),
                start,
            )
            pending.append((position, route, future))

        done, _ = wait([future for _, _, future in pending], timeout=settings.analysis_timeout_seconds)
        for position, route, future in pending:
            if future not in done:
                logger.error(f"Risk analysis timed out for vehicle {route.vehicle_id}")
                results[position] = _failed_result(route.vehicle_id, "Analysis timed out.")
                continue
            try:
                results[position] = future.result()
            except Exception as e:
                logger.exception(f"Risk analysis failed for vehicle {route.vehicle_id}: {e}")
                results[position] = _failed_result(route.vehicle_id, str(e))
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    at_risk = sum(1 for result in results if result is not None and result.overall_risk is not RiskLevel.LOW)
    logger.info(f"Fleet risk computed for {len(results)} routes ({at_risk} at supply risk)")
    return [result for result in results if result is not None]
