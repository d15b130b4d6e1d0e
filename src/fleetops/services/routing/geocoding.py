"""Address geocoding with a per-optimizer in-memory cache."""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional, Protocol

import httpx

from ...config import settings
from ...errors import ProviderError
from ...models.domain import DeliveryStop, GeocodedPoint

logger = logging.getLogger(__name__)

# Statuses that mean the key or quota is wrong, not the address.
_REJECTED_STATUSES = ("REQUEST_DENIED", "OVER_QUERY_LIMIT", "OVER_DAILY_LIMIT")


def compose_address(stop: DeliveryStop, country_suffix: str | None = None) -> str:
    """``street, city, postcode, country`` with empty parts left out.

    The result is also the cache key, so it must be stable for equal stops.
    """
    suffix = settings.address_country_suffix if country_suffix is None else country_suffix
    parts = [stop.street, stop.city, stop.postcode, suffix]
    return ", ".join(part.strip() for part in parts if part and part.strip())


class Geocoder(Protocol):
    def geocode(self, address: str) -> Optional[GeocodedPoint]: ...


class GeocodingCache:
    """Thread-safe address -> coordinate map living as long as its optimizer."""

    def __init__(self) -> None:
        self._entries: dict[str, GeocodedPoint] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, address: str) -> Optional[GeocodedPoint]:
        with self._lock:
            point = self._entries.get(address)
            if point is None:
                self.misses += 1
            else:
                self.hits += 1
            return point

    def put(self, point: GeocodedPoint) -> None:
        with self._lock:
            self._entries[point.address_key] = point

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0
        logger.info("Geocode cache cleared")

    def snapshot(self) -> dict[str, dict[str, float]]:
        with self._lock:
            return {
                key: {"lat": point.latitude, "lng": point.longitude}
                for key, point in self._entries.items()
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, address: object) -> bool:
        with self._lock:
            return address in self._entries


class GoogleGeocoder:
    """Client for the Google Geocoding JSON API.

    Returns None for any address the provider cannot resolve; transport
    errors are retried with backoff before giving up. A rejected key or an
    exhausted quota raises ProviderError.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.api_key = api_key or settings.geocoding_key
        if not self.api_key:
            raise ValueError("Google geocoding API key is not configured.")
        self.base_url = base_url or settings.geocoding_base_url
        self.max_retries = max_retries if max_retries is not None else settings.provider_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.provider_backoff_seconds
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout or settings.http_timeout_seconds, connect=5.0),
            transport=transport,
        )

    def geocode(self, address: str) -> Optional[GeocodedPoint]:
        params = {"address": address, "key": self.api_key}
        attempt = 0
        while True:
            try:
                response = self._client.get(self.base_url, params=params)
                response.raise_for_status()
                data = response.json()
                break
            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                attempt += 1
                if attempt > self.max_retries:
                    logger.warning(f"Geocoding '{address}' failed after {self.max_retries} retries: {exc}")
                    return None
                wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                logger.debug(f"Geocoding network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                time.sleep(wait_time)
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning(f"Geocoding '{address}' failed: {exc}")
                return None

        status = data.get("status")
        results = data.get("results") or []
        if status in _REJECTED_STATUSES:
            raise ProviderError(f"Geocoding provider refused the request: {status} {data.get('error_message', '')}".strip())
        if status != "OK" or not results:
            if status not in ("OK", "ZERO_RESULTS"):
                logger.warning(f"Geocoding provider returned status {status} for '{address}'")
            return None
        try:
            location = results[0]["geometry"]["location"]
            return GeocodedPoint(address_key=address, latitude=float(location["lat"]), longitude=float(location["lng"]))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning(f"Malformed geocoding response for '{address}': {exc}")
            return None

    def close(self) -> None:
        self._client.close()


def check_health(api_key: str | None = None) -> bool:
    """Return True when a geocoding API key is configured."""
    return bool(api_key or settings.geocoding_key)
