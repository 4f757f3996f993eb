import pytest

from src.fleet_risk.models.domain import (
    FleetVehicle,
    PropulsionClass,
    RiskLevel,
    SupplyRiskConfig,
    TelemetryData,
    VehicleRoute,
)
from src.fleet_risk.services.supply.estimator import analyze_route


def _route(points: int = 10, distance_m: float = 100_000) -> VehicleRoute:
    return VehicleRoute(
        vehicle_id="V1",
        coordinates=[(40.0 + i * 0.1, -3.0) for i in range(points)],
        distance_m=distance_m,
        duration_s=3600,
    )


def test_vehicle_propulsion_from_tags():
    assert FleetVehicle("V1", tags=("zero", "eco")).propulsion is PropulsionClass.ELECTRIC
    assert FleetVehicle("V2", tags=("zero",)).is_electric
    assert FleetVehicle("V3", tags=()).propulsion is PropulsionClass.COMBUSTION


def test_alerts_at_exact_threshold_crossings():
    config = SupplyRiskConfig(medium_risk_threshold=25, high_risk_threshold=15, base_consumption_rate=1.0)

    route = _route()
    result = analyze_route(route, FleetVehicle("V1"), TelemetryData(fuel_level=100), config)

    assert result.vehicle_id == "V1"
    assert result.overall_risk is RiskLevel.HIGH
    assert [(a.risk_level, a.segment_index) for a in result.alerts] == [
        (RiskLevel.MEDIUM, 7),
        (RiskLevel.HIGH, 8),
    ]
    medium, high = result.alerts
    assert medium.remaining_supply == pytest.approx(20.0)
    assert high.remaining_supply == pytest.approx(10.0)
    assert medium.reason == "Estimated supply: 20.0%. Below 25% threshold."
    assert high.reason == "Estimated supply: 10.0%. Below 15% threshold."
    assert high.coords == route.coordinates[8]
    assert result.suggested_stations == []


def test_each_threshold_fires_only_once():
    config = SupplyRiskConfig(medium_risk_threshold=90, high_risk_threshold=80, base_consumption_rate=1.0)

    result = analyze_route(_route(points=50, distance_m=500_000), FleetVehicle("V1"), None, config)

    levels = [alert.risk_level for alert in result.alerts]
    assert levels.count(RiskLevel.HIGH) == 1
    assert levels.count(RiskLevel.MEDIUM) == 1


def test_high_alert_index_matches_step_arithmetic():
    config = SupplyRiskConfig(medium_risk_threshold=40, high_risk_threshold=20, base_consumption_rate=0.22)
    route = _route(points=40, distance_m=400_000)

    result = analyze_route(route, FleetVehicle("V1"), None, config)

    step_consumption = (400_000 / 1000 / 40) * 0.22
    level = 100.0
    expected_high = None
    for index in range(40):
        level -= step_consumption
        if level <= 20:
            expected_high = index
            break
    high = next(a for a in result.alerts if a.risk_level is RiskLevel.HIGH)
    assert high.segment_index == expected_high


def test_both_thresholds_crossed_on_same_step_emit_high_first():
    config = SupplyRiskConfig(medium_risk_threshold=60, high_risk_threshold=55, base_consumption_rate=1.0)

    result = analyze_route(_route(points=2, distance_m=100_000), FleetVehicle("V1"), None, config)

    assert [(a.risk_level, a.segment_index) for a in result.alerts] == [
        (RiskLevel.HIGH, 0),
        (RiskLevel.MEDIUM, 0),
    ]


def test_telemetry_override_sets_starting_level():
    config = SupplyRiskConfig(medium_risk_threshold=25, high_risk_threshold=15, base_consumption_rate=1.0)

    result = analyze_route(_route(), FleetVehicle("V1"), TelemetryData(battery_level=30, fuel_level=90), config)

    assert [(a.risk_level, a.segment_index) for a in result.alerts] == [
        (RiskLevel.MEDIUM, 0),
        (RiskLevel.HIGH, 1),
    ]


def test_high_remaining_supply_is_floored_at_zero():
    config = SupplyRiskConfig(medium_risk_threshold=25, high_risk_threshold=15, base_consumption_rate=1.0)

    result = analyze_route(_route(points=1), FleetVehicle("V1"), TelemetryData(fuel_level=5), config)

    high, medium = result.alerts
    assert high.remaining_supply == 0.0
    assert medium.remaining_supply == pytest.approx(-95.0)
    assert "-95.0%" in high.reason


def test_short_route_is_low_risk():
    result = analyze_route(_route(distance_m=10_000), FleetVehicle("V1"))

    assert result.overall_risk is RiskLevel.LOW
    assert result.alerts == []


def test_medium_only_route():
    config = SupplyRiskConfig(medium_risk_threshold=25, high_risk_threshold=15, base_consumption_rate=0.78)

    result = analyze_route(_route(), FleetVehicle("V1"), None, config)

    assert result.overall_risk is RiskLevel.MEDIUM
    assert [a.risk_level for a in result.alerts] == [RiskLevel.MEDIUM]


def test_per_segment_distance_uses_haversine_steps():
    route = VehicleRoute(
        vehicle_id="V1",
        coordinates=[(0.0, 0.0), (0.0, 1.0), (0.0, 2.0)],
        distance_m=0,
        duration_s=0,
    )
    config = SupplyRiskConfig(
        medium_risk_threshold=90, high_risk_threshold=80, base_consumption_rate=0.1, per_segment_distance=True
    )

    result = analyze_route(route, FleetVehicle("V1"), None, config)

    assert [(a.risk_level, a.segment_index) for a in result.alerts] == [
        (RiskLevel.MEDIUM, 1),
        (RiskLevel.HIGH, 2),
    ]

    uniform = analyze_route(route, FleetVehicle("V1"), None, SupplyRiskConfig(90, 80, 0.1))
    assert uniform.alerts == []


def test_route_without_coordinates_is_rejected():
    route = VehicleRoute(vehicle_id="V1", coordinates=[], distance_m=1000, duration_s=60)

    with pytest.raises(ValueError):
        analyze_route(route, FleetVehicle("V1"))
