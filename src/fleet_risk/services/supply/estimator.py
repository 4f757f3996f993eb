"""Fuel/battery depletion simulation along a planned route."""

from __future__ import annotations

from typing import List, Optional

from ...models.domain import (
    FleetVehicle,
    RiskAlert,
    RiskLevel,
    RouteRiskResult,
    SupplyRiskConfig,
    TelemetryData,
    VehicleRoute,
    highest_risk,
)
from ..geospatial import haversine_distance_km

FULL_LEVEL = 100.0


def _step_distances(route: VehicleRoute, config: SupplyRiskConfig) -> List[float]:
    coords = route.coordinates
    if config.per_segment_distance:
        return [0.0] + [haversine_distance_km(coords[i - 1], coords[i]) for i in range(1, len(coords))]
    distance_per_step = (route.distance_m / 1000) / len(coords)
    return [distance_per_step] * len(coords)


def analyze_route(
    route: VehicleRoute,
    vehicle: FleetVehicle,
    telemetry: Optional[TelemetryData] = None,
    config: Optional[SupplyRiskConfig] = None,
) -> RouteRiskResult:
    """Walk every coordinate of the route, draining supply, and raise threshold alerts.

    The HIGH and MEDIUM alerts are tracked by independent flags: each fires
    once, at the first coordinate where the running level drops to or below
    its own threshold. The simulation stops as soon as the level reaches zero.
    """

    config = config or SupplyRiskConfig()
    if not route.coordinates:
        raise ValueError(f"Route for vehicle '{route.vehicle_id}' has no coordinates.")

    level = FULL_LEVEL
    if telemetry is not None and telemetry.starting_level() is not None:
        level = float(telemetry.starting_level())

    alerts: List[RiskAlert] = []
    high_triggered = False
    medium_triggered = False

    for index, step_km in enumerate(_step_distances(route, config)):
        level -= step_km * config.base_consumption_rate
        coords = route.coordinates[index]

        if level <= config.high_risk_threshold and not high_triggered:
            high_triggered = True
            alerts.append(
                RiskAlert(
                    segment_index=index,
                    coords=coords,
                    risk_level=RiskLevel.HIGH,
                    remaining_supply=max(0.0, level),
                    message="Critical supply level detected. Immediate refuel/recharge required.",
                    reason=f"Estimated supply: {level:.1f}%. Below {config.high_risk_threshold:g}% threshold.",
                )
            )
        if level <= config.medium_risk_threshold and not medium_triggered:
            medium_triggered = True
            alerts.append(
                RiskAlert(
                    segment_index=index,
                    coords=coords,
                    risk_level=RiskLevel.MEDIUM,
                    remaining_supply=level,
                    message="Low supply level alert. Consider refilling soon.",
                    reason=f"Estimated supply: {level:.1f}%. Below {config.medium_risk_threshold:g}% threshold.",
                )
            )

        if level <= 0:
            break

    return RouteRiskResult(
        vehicle_id=route.vehicle_id,
        overall_risk=highest_risk([alert.risk_level for alert in alerts]),
        alerts=alerts,
        suggested_stations=[],
    )
