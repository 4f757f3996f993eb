"""HTTP client for the OpenWeatherMap 3-hour forecast service."""

from __future__ import annotations

import logging
import math
import time
from typing import Any, Optional, Protocol

import httpx

from ...config import settings
from ...models.domain import ForecastEntry

logger = logging.getLogger(__name__)


class ForecastProvider(Protocol):
    def get_forecast(self, lat: float, lon: float) -> list[ForecastEntry]:
        ...


def _number(value: Any, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def parse_forecast_entry(item: dict) -> ForecastEntry:
    """Map one OpenWeatherMap ``list`` item onto a ForecastEntry."""

    main = item.get("main") or {}
    rain = item.get("rain") or {}
    snow = item.get("snow") or {}
    wind = item.get("wind") or {}
    return ForecastEntry(
        time=float(item["dt"]),
        temperature=_number(main.get("temp"), math.nan),
        rain_3h=_number(rain.get("3h"), 0.0),
        snow_3h=_number(snow.get("3h"), 0.0),
        wind_speed=_number(wind.get("speed"), 0.0),
        visibility=_number(item.get("visibility"), 10000.0),
    )


class ForecastClient:
    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.openweathermap_base_url).rstrip("/")
        self.api_key = api_key or settings.openweathermap_api_key
        if not self.api_key:
            raise ValueError("OpenWeatherMap API key is not configured.")
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.http_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.http_backoff_seconds
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        # One client per call; forecast requests are fanned out across threads.
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=5.0),
            transport=self._transport,
        )

    def get_forecast(self, lat: float, lon: float) -> list[ForecastEntry]:
        """Return the time-ordered forecast series for a location."""
        params = {
            "lat": lat,
            "lon": lon,
            "units": "metric",
            "appid": self.api_key,
        }
        url = f"{self.base_url}/forecast"

        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.get(url, params=params)
                    response.raise_for_status()
                    data = response.json()
                    items = data.get("list")
                    if not isinstance(items, list):
                        raise ValueError("Forecast response missing 'list'.")
                    entries = [parse_forecast_entry(item) for item in items if "dt" in item]
                    entries.sort(key=lambda entry: entry.time)
                    return entries
                except httpx.HTTPStatusError as e:
                    # 4xx means bad key or bad coordinates; retrying will not help
                    if e.response.status_code < 500:
                        raise
                    attempt += 1
                    if attempt > self.max_retries:
                        raise
                    time.sleep(self.backoff_seconds * attempt)
                except httpx.TimeoutException as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"Forecast request timed out after {self.max_retries} retries: {e}")
                        raise
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"Forecast timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    time.sleep(wait_time)
                except (httpx.ConnectError, httpx.NetworkError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ConnectionError(
                            f"Failed to connect to forecast service at {self.base_url}: {e}"
                        ) from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"Forecast network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {e}")
                    time.sleep(wait_time)
        finally:
            client.close()


def check_health(base_url: str | None = None, api_key: str | None = None) -> bool:
    """Check the forecast service by requesting a single location."""
    key = api_key or settings.openweathermap_api_key
    if not key:
        return False
    base = (base_url or settings.openweathermap_base_url).rstrip("/")
    try:
        response = httpx.get(
            f"{base}/forecast",
            params={"lat": 40.4168, "lon": -3.7038, "units": "metric", "appid": key, "cnt": 1},
            timeout=5.0,
        )
        response.raise_for_status()
        return isinstance(response.json().get("list"), list)
    except httpx.HTTPError:
        return False
    except ValueError:
        return False
