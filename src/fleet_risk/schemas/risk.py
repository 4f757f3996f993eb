"""Risk analysis request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, BeforeValidator, Field

from ..models.domain import RiskLevel, StationCategory, WeatherEvent


def _as_str(value: Any) -> Any:
    return str(value) if isinstance(value, int) else value


# Dashboard clients send numeric vehicle ids
VehicleId = Annotated[str, BeforeValidator(_as_str)]


class VehicleRouteModel(BaseModel):
    vehicle_id: VehicleId
    coordinates: List[Tuple[float, float]] = Field(..., min_length=1, description="Route geometry as [lat, lon] pairs.")
    distance: float = Field(0.0, ge=0, description="Total route distance in meters.")
    duration: float = Field(0.0, ge=0, description="Total route duration in seconds.")


class FleetVehicleModel(BaseModel):
    id: VehicleId
    tags: List[str] = Field(default_factory=list, description="Environmental label tags, e.g. ['zero', 'eco'].")
    consumption_rate: Optional[float] = Field(
        default=None, ge=0, description="Percent of capacity consumed per km; defaults by propulsion class."
    )
    label: Optional[str] = None


class TelemetryModel(BaseModel):
    fuel_level: Optional[float] = Field(default=None, ge=0, le=100)
    battery_level: Optional[float] = Field(default=None, ge=0, le=100)


class LayerFlagsModel(BaseModel):
    supply_risk: bool = True
    weather_risk: bool = False
    station_suggestions: bool = True


class SupplyRiskRequest(BaseModel):
    vehicle_routes: List[VehicleRouteModel]
    fleet_vehicles: List[FleetVehicleModel]
    layers: LayerFlagsModel = Field(default_factory=LayerFlagsModel)
    telemetry: Dict[str, TelemetryModel] = Field(
        default_factory=dict, description="Optional live supply levels keyed by vehicle id."
    )
    start_time: Optional[datetime] = Field(default=None, description="Departure time; defaults to now.")


class WeatherRiskRequest(BaseModel):
    vehicle_routes: List[VehicleRouteModel]
    start_time: Optional[datetime] = Field(default=None, description="Departure time; defaults to now.")


class RiskAlertModel(BaseModel):
    segment_index: int
    coords: Tuple[float, float]
    risk_level: RiskLevel
    message: str
    reason: str
    remaining_supply: Optional[float] = None
    event: Optional[WeatherEvent] = None
    time_window: Optional[datetime] = None


class StationModel(BaseModel):
    id: str
    name: str
    position: Tuple[float, float]
    type: StationCategory
    brand: Optional[str] = None
    operator: Optional[str] = None
    address: Optional[str] = None
    town: Optional[str] = None
    connectors: Optional[int] = None
    connection_types: List[str] = Field(default_factory=list)
    power_kw: Optional[float] = None
    status: Optional[str] = None
    is_operational: Optional[bool] = None
    fuel_diesel: Optional[bool] = None
    fuel_octane_95: Optional[bool] = None
    fuel_octane_98: Optional[bool] = None
    opening_hours: Optional[str] = None


class StationSuggestionModel(BaseModel):
    station: StationModel
    deviation_km: float
    reason: str


class RouteRiskModel(BaseModel):
    vehicle_id: str
    overall_risk: RiskLevel
    alerts: List[RiskAlertModel]
    suggested_stations: List[StationSuggestionModel]
    weather_risk: Optional[RiskLevel] = None
    weather_alerts: List[RiskAlertModel] = Field(default_factory=list)
    error: Optional[str] = None


class SupplyRiskResponse(BaseModel):
    results: List[RouteRiskModel]


class WeatherRouteModel(BaseModel):
    vehicle_id: str
    risk_level: RiskLevel
    alerts: List[RiskAlertModel]


class WeatherRiskResponse(BaseModel):
    routes: List[WeatherRouteModel]
