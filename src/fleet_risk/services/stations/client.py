"""HTTP client for EV charging points (Open Charge Map) and fuel stations (Overpass)."""

from __future__ import annotations

import logging
import math
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Optional, Protocol

import httpx

from ...config import settings
from ...models.domain import StationCandidate, StationCategory
from ..geospatial import normalize_coordinates

OPENCHARGEMAP_MAX_RESULTS = 100
OVERPASS_MAX_RADIUS_KM = 100.0
KM_PER_DEGREE_LAT = 111.32

logger = logging.getLogger(__name__)


class StationLookup(Protocol):
    def find_stations(
        self, lat: float, lon: float, radius_km: float, category: StationCategory
    ) -> list[StationCandidate]:
        ...


class TTLCache:
    """Small thread-safe cache with per-entry expiry and oldest-first eviction."""

    def __init__(self, ttl_seconds: float, max_entries: int, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, list[StationCandidate]]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str, allow_stale: bool = False) -> Optional[list[StationCandidate]]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, value = entry
            # Expired entries stay until evicted so failed lookups can serve them stale.
            if self._clock() - stored_at > self.ttl_seconds and not allow_stale:
                return None
            return value

    def set(self, key: str, value: list[StationCandidate]) -> None:
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = (self._clock(), value)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def ev_cache_key(lat: float, lon: float, radius_km: float) -> str:
    """Bucket coordinates on a grid whose cell size matches the search radius."""

    lat_bucket_size = max(radius_km / KM_PER_DEGREE_LAT, 0.0001)
    cos_lat = math.cos(math.radians(lat))
    lon_deg_per_km = 1 / (KM_PER_DEGREE_LAT * cos_lat) if cos_lat else 1.0
    lon_bucket_size = max(radius_km * lon_deg_per_km, 0.0001)
    lat_bucket = round(lat / lat_bucket_size)
    lon_bucket = round(lon / lon_bucket_size)
    return f"{lat_bucket}:{lon_bucket}:{round(radius_km)}"


def gas_cache_key(lat: float, lon: float, radius_km: float) -> str:
    return f"{math.floor(lat * 100)}:{math.floor(lon * 100)}:{math.floor(radius_km)}"


def parse_charge_point(item: dict) -> Optional[StationCandidate]:
    address = item.get("AddressInfo") or {}
    lat, lon = address.get("Latitude"), address.get("Longitude")
    if lat is None or lon is None:
        return None
    connections = item.get("Connections") or []
    status = item.get("StatusType") or {}
    operator = item.get("OperatorInfo") or {}
    is_operational = status.get("IsOperational")
    return StationCandidate(
        id=f"ev-{item.get('ID')}",
        name=address.get("Title") or "EV Charging Station",
        position=normalize_coordinates((lat, lon)),
        category=StationCategory.EV,
        operator=operator.get("Title") or "Unknown",
        address=address.get("AddressLine1"),
        town=address.get("Town"),
        connectors=len(connections),
        connection_types=[
            (c.get("ConnectionType") or {}).get("Title")
            for c in connections
            if (c.get("ConnectionType") or {}).get("Title")
        ],
        power_kw=connections[0].get("PowerKW") if connections else None,
        status=status.get("Title") or "Unknown",
        is_operational=True if is_operational is None else bool(is_operational),
    )


def parse_fuel_element(element: dict) -> Optional[StationCandidate]:
    center = element.get("center") or {}
    lat = element.get("lat", center.get("lat"))
    lon = element.get("lon", center.get("lon"))
    if lat is None or lon is None:
        return None
    tags: dict[str, Any] = element.get("tags") or {}
    return StationCandidate(
        id=f"gas-{element.get('id')}",
        name=tags.get("name") or tags.get("brand") or "Gas Station",
        position=normalize_coordinates((lat, lon)),
        category=StationCategory.GAS,
        brand=tags.get("brand"),
        operator=tags.get("operator"),
        address=tags.get("addr:street"),
        fuel_diesel=tags.get("fuel:diesel") == "yes",
        fuel_octane_95=tags.get("fuel:octane_95") == "yes",
        fuel_octane_98=tags.get("fuel:octane_98") == "yes",
        opening_hours=tags.get("opening_hours"),
    )


class StationLookupClient:
    def __init__(
        self,
        openchargemap_base_url: str | None = None,
        openchargemap_api_key: str | None = None,
        overpass_url: str | None = None,
        timeout: float | None = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.openchargemap_base_url = (openchargemap_base_url or settings.openchargemap_base_url).rstrip("/")
        self.openchargemap_api_key = openchargemap_api_key or settings.openchargemap_api_key
        self.overpass_url = overpass_url or settings.overpass_url
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        self._transport = transport
        self.ev_cache = TTLCache(settings.ev_cache_ttl_seconds, settings.ev_cache_max_entries)
        self.gas_cache = TTLCache(settings.gas_cache_ttl_seconds, settings.gas_cache_max_entries)

    def _get_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=5.0),
            headers={"User-Agent": "fleet-risk-advisory/1.0"},
            transport=self._transport,
        )

    def find_stations(
        self, lat: float, lon: float, radius_km: float, category: StationCategory
    ) -> list[StationCandidate]:
        if category is StationCategory.EV:
            return self.find_charge_points(lat, lon, radius_km)
        return self.find_fuel_stations(lat, lon, radius_km)

    def find_charge_points(self, lat: float, lon: float, radius_km: float) -> list[StationCandidate]:
        distance_km = max(0.1, min(radius_km or 1.0, settings.ev_max_distance_km))
        key = ev_cache_key(lat, lon, distance_km)
        cached = self.ev_cache.get(key)
        if cached is not None:
            return cached

        params: dict[str, Any] = {
            "output": "json",
            "latitude": lat,
            "longitude": lon,
            "distance": distance_km,
            "distanceunit": "km",
            "maxresults": OPENCHARGEMAP_MAX_RESULTS,
            "compact": "true",
            "verbose": "false",
        }
        if self.openchargemap_api_key:
            params["key"] = self.openchargemap_api_key

        client = self._get_client()
        try:
            response = client.get(f"{self.openchargemap_base_url}/poi/", params=params)
            response.raise_for_status()
            data = response.json() or []
        finally:
            client.close()

        stations = [station for station in (parse_charge_point(item) for item in data) if station is not None]
        self.ev_cache.set(key, stations)
        logger.debug(f"Open Charge Map returned {len(stations)} charge points near ({lat}, {lon})")
        return stations

    def _query_overpass(self, client: httpx.Client, query: str) -> list[dict]:
        response = client.post(self.overpass_url, content=query)
        response.raise_for_status()
        return response.json().get("elements") or []

    def find_fuel_stations(self, lat: float, lon: float, radius_km: float) -> list[StationCandidate]:
        radius_km = min(radius_km, OVERPASS_MAX_RADIUS_KM)
        key = gas_cache_key(lat, lon, radius_km)
        cached = self.gas_cache.get(key)
        if cached is not None:
            return cached

        radius_m = radius_km * 1000
        node_query = f'[out:json][timeout:30];node["amenity"="fuel"](around:{radius_m},{lat},{lon});out;'
        way_query = f'[out:json][timeout:30];way["amenity"="fuel"](around:{radius_m},{lat},{lon});out center;'

        client = self._get_client()
        try:
            elements = self._query_overpass(client, node_query) + self._query_overpass(client, way_query)
        except (httpx.HTTPError, ValueError) as e:
            stale = self.gas_cache.get(key, allow_stale=True)
            if stale is not None:
                logger.warning(f"Overpass query failed, serving stale stations for {key}: {e}")
                return stale
            raise
        finally:
            client.close()

        stations = [station for station in (parse_fuel_element(el) for el in elements) if station is not None]
        self.gas_cache.set(key, stations)
        logger.debug(f"Overpass returned {len(stations)} fuel stations near ({lat}, {lon})")
        return stations
