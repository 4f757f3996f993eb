"""Reduce a route geometry to a handful of representative sample points."""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from ..models.domain import LatLon, SampledSegment
from .geospatial import normalize_coordinates

DEFAULT_MAX_SAMPLES = 5


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def sample_indices(length: int, max_samples: int = DEFAULT_MAX_SAMPLES) -> list[int]:
    """Evenly spaced indices over [0, length - 1], both endpoints included."""

    n = min(max_samples, max(1, length))
    if n == 1:
        return [0]
    indices: list[int] = []
    for i in range(n):
        idx = _round_half_up(i * (length - 1) / (n - 1))
        if idx not in indices:
            indices.append(idx)
    return indices


def sample_route(
    coordinates: Sequence[LatLon],
    max_samples: int = DEFAULT_MAX_SAMPLES,
    start_time: Optional[datetime] = None,
    duration_s: Optional[float] = None,
) -> List[SampledSegment]:
    """Build sampled segments with position fraction and, when a start time is known, an ETA."""

    if not coordinates:
        return []

    length = len(coordinates)
    duration = duration_s if duration_s is not None and math.isfinite(duration_s) and duration_s > 0 else 0.0

    segments: List[SampledSegment] = []
    for idx in sample_indices(length, max_samples):
        fraction = 0.0 if length <= 1 else idx / (length - 1)
        eta = None
        if start_time is not None:
            eta = start_time + timedelta(milliseconds=_round_half_up(fraction * duration * 1000))
        segments.append(
            SampledSegment(
                index=idx,
                coords=normalize_coordinates(coordinates[idx]),
                fraction=fraction,
                eta=eta,
            )
        )
    return segments
