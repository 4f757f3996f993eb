"""Domain models for routes, vehicles, stations and risk alerts."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Sequence, Tuple

LatLon = Tuple[float, float]

ELECTRIC_TAGS = frozenset({"zero", "eco"})


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class WeatherEvent(str, Enum):
    SNOW = "SNOW"
    RAIN = "RAIN"
    ICE = "ICE"
    WIND = "WIND"
    FOG = "FOG"


class StationCategory(str, Enum):
    GAS = "gas"
    EV = "ev"


class PropulsionClass(str, Enum):
    ELECTRIC = "electric"
    COMBUSTION = "combustion"


@dataclass(slots=True)
class VehicleRoute:
    """Planned path for one vehicle as produced by the routing service."""

    vehicle_id: str
    coordinates: List[LatLon]
    distance_m: float
    duration_s: float


@dataclass(slots=True)
class FleetVehicle:
    """Vehicle descriptor; propulsion is derived from the environmental label tags."""

    vehicle_id: str
    tags: Sequence[str] = ()
    consumption_rate: Optional[float] = None
    label: Optional[str] = None

    @property
    def propulsion(self) -> PropulsionClass:
        if ELECTRIC_TAGS.intersection(self.tags):
            return PropulsionClass.ELECTRIC
        return PropulsionClass.COMBUSTION

    @property
    def is_electric(self) -> bool:
        return self.propulsion is PropulsionClass.ELECTRIC


@dataclass(slots=True)
class TelemetryData:
    fuel_level: Optional[float] = None
    battery_level: Optional[float] = None

    def starting_level(self) -> Optional[float]:
        if self.battery_level is not None:
            return self.battery_level
        return self.fuel_level


@dataclass(slots=True)
class SupplyRiskConfig:
    medium_risk_threshold: float = 25.0
    high_risk_threshold: float = 15.0
    base_consumption_rate: float = 0.05
    buffer_distance_km: float = 10.0
    per_segment_distance: bool = False


@dataclass(slots=True)
class SampledSegment:
    index: int
    coords: LatLon
    fraction: float
    eta: Optional[datetime] = None


@dataclass(slots=True)
class RiskAlert:
    segment_index: int
    coords: LatLon
    risk_level: RiskLevel
    message: str
    reason: str
    remaining_supply: Optional[float] = None
    event: Optional[WeatherEvent] = None
    time_window: Optional[datetime] = None


@dataclass(slots=True)
class StationCandidate:
    """Refuel or recharge point returned by a POI lookup."""

    id: str
    name: str
    position: LatLon
    category: StationCategory
    brand: Optional[str] = None
    operator: Optional[str] = None
    address: Optional[str] = None
    town: Optional[str] = None
    connectors: Optional[int] = None
    connection_types: List[str] = field(default_factory=list)
    power_kw: Optional[float] = None
    status: Optional[str] = None
    is_operational: Optional[bool] = None
    fuel_diesel: Optional[bool] = None
    fuel_octane_95: Optional[bool] = None
    fuel_octane_98: Optional[bool] = None
    opening_hours: Optional[str] = None


@dataclass(slots=True)
class StationSuggestion:
    station: StationCandidate
    deviation_km: float
    reason: str


@dataclass(slots=True)
class ForecastEntry:
    time: float
    temperature: float = math.nan
    rain_3h: float = 0.0
    snow_3h: float = 0.0
    wind_speed: float = 0.0
    visibility: float = 10000.0


@dataclass(slots=True)
class WeatherRiskResult:
    vehicle_id: str
    risk_level: RiskLevel
    alerts: List[RiskAlert]


@dataclass(slots=True)
class RouteRiskResult:
    vehicle_id: str
    overall_risk: RiskLevel
    alerts: List[RiskAlert]
    suggested_stations: List[StationSuggestion] = field(default_factory=list)
    weather_risk: Optional[RiskLevel] = None
    weather_alerts: List[RiskAlert] = field(default_factory=list)
    error: Optional[str] = None


@dataclass(slots=True)
class LayerFlags:
    supply_risk: bool = True
    weather_risk: bool = False
    station_suggestions: bool = True


def highest_risk(levels: Sequence[RiskLevel]) -> RiskLevel:
    """Return HIGH if any level is HIGH, MEDIUM if any is MEDIUM, else LOW."""

    if RiskLevel.HIGH in levels:
        return RiskLevel.HIGH
    if RiskLevel.MEDIUM in levels:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW
