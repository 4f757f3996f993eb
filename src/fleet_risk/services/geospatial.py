"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Sequence

from ..models.domain import LatLon

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def haversine_distance_km(p1: Sequence[float], p2: Sequence[float]) -> float:
    """Distance between two (lat, lon) pairs."""

    return haversine_km(p1[0], p1[1], p2[0], p2[1])


def normalize_coordinates(pair: Sequence[float]) -> LatLon:
    """Return the pair as (lat, lon), swapping it when it arrived as (lon, lat).

    A first component outside [-90, 90] cannot be a latitude, so the pair is
    flipped. Anything else passes through unchanged.
    """

    first, second = float(pair[0]), float(pair[1])
    if abs(first) > 90:
        return (second, first)
    return (first, second)
