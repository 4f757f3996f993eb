"""Adverse-weather hazard detection at sampled route points."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from ...config import settings
from ...models.domain import (
    ForecastEntry,
    RiskAlert,
    RiskLevel,
    SampledSegment,
    VehicleRoute,
    WeatherEvent,
    WeatherRiskResult,
    highest_risk,
)
from ..sampling import sample_route
from .client import ForecastProvider

logger = logging.getLogger(__name__)

_MESSAGES = {
    WeatherEvent.SNOW: "Snow expected on this stretch.",
    WeatherEvent.RAIN: "Heavy rain expected on this stretch.",
    WeatherEvent.ICE: "Possible ice on this stretch from rain at sub-zero temperature.",
    WeatherEvent.WIND: "Strong wind expected on this stretch ({wind:g} m/s).",
    WeatherEvent.FOG: "Reduced visibility on this stretch ({visibility:g} m).",
}


def closest_forecast_entry(forecast: Sequence[ForecastEntry], eta: datetime) -> Optional[ForecastEntry]:
    """Entry with the smallest absolute time difference to ``eta``; the first one wins ties."""

    if not forecast:
        return None
    eta_ts = eta.timestamp()
    closest = forecast[0]
    min_diff = abs(eta_ts - closest.time)
    for entry in forecast:
        diff = abs(eta_ts - entry.time)
        if diff < min_diff:
            min_diff = diff
            closest = entry
    return closest


def classify_forecast(entry: ForecastEntry) -> Optional[Tuple[WeatherEvent, RiskLevel]]:
    """Map a forecast entry to at most one hazard, in fixed priority order."""

    if entry.snow_3h > 0:
        return WeatherEvent.SNOW, RiskLevel.HIGH if entry.snow_3h >= 5 else RiskLevel.MEDIUM
    elif entry.rain_3h > 10 and entry.temperature > 0:
        return WeatherEvent.RAIN, RiskLevel.HIGH if entry.rain_3h >= 20 else RiskLevel.MEDIUM
    elif entry.temperature <= 0 and entry.rain_3h > 0:
        return WeatherEvent.ICE, RiskLevel.HIGH
    elif entry.wind_speed >= 15:
        return WeatherEvent.WIND, RiskLevel.HIGH if entry.wind_speed >= 20 else RiskLevel.MEDIUM
    elif entry.visibility < 1000:
        return WeatherEvent.FOG, RiskLevel.MEDIUM
    return None


def detect_segment_hazard(segment: SampledSegment, forecast: Sequence[ForecastEntry]) -> Optional[RiskAlert]:
    eta = segment.eta or datetime.now(timezone.utc)
    entry = closest_forecast_entry(forecast, eta)
    if entry is None:
        return None
    classified = classify_forecast(entry)
    if classified is None:
        return None
    event, severity = classified
    return RiskAlert(
        segment_index=segment.index,
        coords=segment.coords,
        risk_level=severity,
        event=event,
        time_window=eta,
        message=_MESSAGES[event].format(wind=entry.wind_speed, visibility=entry.visibility),
        reason=(
            f"Forecast near ETA: temp={entry.temperature}, rain={entry.rain_3h}mm, "
            f"snow={entry.snow_3h}mm, wind={entry.wind_speed}m/s, visibility={entry.visibility}m."
        ),
    )


def _fetch_forecast(provider: ForecastProvider, segment: SampledSegment) -> List[ForecastEntry]:
    lat, lon = segment.coords
    return provider.get_forecast(lat, lon)


def detect_route_hazards(
    vehicle_id: str,
    segments: Sequence[SampledSegment],
    forecast_provider: ForecastProvider,
    max_workers: int | None = None,
    timeout: float | None = None,
) -> WeatherRiskResult:
    """Fetch a forecast per segment concurrently and classify the entry nearest each ETA.

    All fetches share one ``timeout`` deadline; the call returns once it passes
    without waiting for fetches still in flight. A failed, timed-out or empty
    forecast only drops its own segment.
    """

    max_workers = max_workers or settings.max_parallel_requests
    timeout = timeout if timeout is not None else settings.analysis_timeout_seconds
    alerts: List[RiskAlert] = []
    if not segments:
        return WeatherRiskResult(vehicle_id=vehicle_id, risk_level=RiskLevel.LOW, alerts=alerts)

    executor = ThreadPoolExecutor(max_workers=min(max_workers, len(segments)))
    try:
        futures = [executor.submit(_fetch_forecast, forecast_provider, segment) for segment in segments]
        done, _ = wait(futures, timeout=timeout)
        # Collected in sample order so alerts keep route order.
        for segment, future in zip(segments, futures):
            if future not in done:
                logger.warning(f"Forecast fetch timed out for vehicle {vehicle_id} segment {segment.index}")
                continue
            try:
                forecast = future.result()
            except Exception as e:
                logger.warning(f"Forecast fetch failed for vehicle {vehicle_id} segment {segment.index}: {e}")
                continue
            if not forecast:
                logger.warning(f"Forecast list empty for vehicle {vehicle_id} segment {segment.index}")
                continue
            alert = detect_segment_hazard(segment, forecast)
            if alert is not None:
                alerts.append(alert)
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    return WeatherRiskResult(
        vehicle_id=vehicle_id,
        risk_level=highest_risk([alert.risk_level for alert in alerts]),
        alerts=alerts,
    )


def analyze_weather_risk(
    vehicle_routes: Sequence[VehicleRoute],
    forecast_provider: ForecastProvider,
    start_time: Optional[datetime] = None,
    max_samples: int | None = None,
) -> List[WeatherRiskResult]:
    """Sample each route and run hazard detection, one result per route."""

    start = start_time or datetime.now(timezone.utc)
    max_samples = max_samples or settings.weather_sample_count
    results: List[WeatherRiskResult] = []
    for route in vehicle_routes:
        try:
            segments = sample_route(route.coordinates, max_samples, start, route.duration_s)
            results.append(detect_route_hazards(route.vehicle_id, segments, forecast_provider))
        except Exception as e:
            logger.exception(f"Weather analysis failed for vehicle {route.vehicle_id}: {e}")
            results.append(WeatherRiskResult(vehicle_id=route.vehicle_id, risk_level=RiskLevel.LOW, alerts=[]))
    logger.info(f"Weather risk computed for {len(results)} routes")
    return results
