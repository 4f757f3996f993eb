"""Pick the refuel/recharge point closest to the stretch of road leading to a risk."""

from __future__ import annotations

import math
from typing import Optional, Sequence

from ...models.domain import LatLon, StationCandidate, StationCategory, StationSuggestion
from ..geospatial import haversine_distance_km

LOOKBACK_POINTS = 100


def _distance_to_route(station: StationCandidate, risk_point: LatLon, pre_risk_route: Optional[Sequence[LatLon]]) -> float:
    if not pre_risk_route:
        return haversine_distance_km(risk_point, station.position)
    lookback = min(len(pre_risk_route), LOOKBACK_POINTS)
    window = pre_risk_route[len(pre_risk_route) - lookback :]
    return min(haversine_distance_km(point, station.position) for point in window)


def suggest_best_station(
    risk_point: LatLon,
    stations: Sequence[StationCandidate],
    max_deviation_km: float = 5.0,
    pre_risk_route: Optional[Sequence[LatLon]] = None,
) -> Optional[StationSuggestion]:
    """Return the globally closest station if it lies within ``max_deviation_km``.

    With a pre-risk route, distance is measured against its last
    ``LOOKBACK_POINTS`` coordinates; otherwise against the risk point itself.
    Ties keep the first candidate seen.
    """

    best: Optional[StationCandidate] = None
    min_distance = math.inf

    for station in stations:
        distance = _distance_to_route(station, risk_point, pre_risk_route)
        if distance < min_distance:
            min_distance = distance
            best = station

    if best is None or min_distance > max_deviation_km:
        return None

    kind = "charging point" if best.category is StationCategory.EV else "gas station"
    return StationSuggestion(
        station=best,
        deviation_km=min_distance,
        reason=f"Best-fit {kind} found along the route ({min_distance:.1f}km deviation).",
    )
