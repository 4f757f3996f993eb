"""Fleet risk orchestration helpers."""

from .service import analyze_fleet_risk, analyze_vehicle_route, dedupe_alerts

__all__ = [
    "analyze_fleet_risk",
    "analyze_vehicle_route",
    "dedupe_alerts",
]
