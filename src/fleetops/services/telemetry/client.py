"""HTTP client for the fleet backend's GPS endpoints."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ...config import settings
from ...errors import TransientNetworkFailure
from ...models.domain import QueuedSample

logger = logging.getLogger(__name__)


def sample_payload(item: QueuedSample) -> dict:
    """Request body for a single telemetry upload (degrees, meters, m/s)."""
    sample = item.sample
    payload = {
        "lat": sample.latitude,
        "lng": sample.longitude,
        "accuracy": sample.accuracy_m or 0,
        "speed": sample.speed_mps or 0,
        "heading": sample.heading_deg or 0,
        "recorded_at": sample.captured_at.isoformat(),
    }
    if sample.battery_level is not None:
        payload["battery_level"] = sample.battery_level
    return payload


class TelemetryClient:
    def __init__(
        self,
        base_url: str | None = None,
        telemetry_path: str | None = None,
        status_path: str | None = None,
        timeout: float | None = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        if not self.base_url:
            raise ValueError("Fleet API base URL is not configured.")
        self.telemetry_path = telemetry_path or settings.telemetry_path
        self.status_path = status_path or settings.driver_status_path
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout, connect=5.0),
            transport=transport,
        )

    @staticmethod
    def _headers(token: str) -> dict:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
        }

    def post_sample(self, item: QueuedSample, token: str) -> None:
        """Upload one sample. Raises TransientNetworkFailure on any non-2xx outcome."""
        try:
            response = self._client.post(self.telemetry_path, json=sample_payload(item), headers=self._headers(token))
        except httpx.HTTPError as exc:
            raise TransientNetworkFailure(f"Telemetry upload failed: {exc}") from exc
        if not response.is_success:
            raise TransientNetworkFailure(
                f"Telemetry upload rejected: HTTP {response.status_code} {response.reason_phrase}"
            )

    def update_driver_status(self, is_active: bool, token: str, driver_id: str | None = None) -> bool:
        """Report tracking on/off to the backend. Best effort, never raises."""
        body: dict = {"is_active": is_active}
        if driver_id:
            body["driver_id"] = driver_id
        try:
            response = self._client.post(self.status_path, json=body, headers=self._headers(token))
            response.raise_for_status()
            return True
        except httpx.HTTPError as exc:
            logger.warning(f"Failed to update driver status (is_active={is_active}): {exc}")
            return False

    def close(self) -> None:
        self._client.close()


def check_health(base_url: str | None = None) -> bool:
    """Return True if the fleet backend answers at all (any HTTP status below 500)."""
    base = base_url or settings.api_base_url
    if not base:
        return False
    try:
        response = httpx.get(base, timeout=5.0)
        return response.status_code < 500
    except httpx.HTTPError:
        return False
