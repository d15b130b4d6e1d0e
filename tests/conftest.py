from __future__ import annotations

import threading
from pathlib import Path
from typing import Optional, Sequence

import pytest

from fleetops.models.domain import Coordinate, GeocodedPoint
from fleetops.persistence.local_store import LocalStore
from fleetops.services.host import RawLocation
from fleetops.services.routing.routes_client import ExactOrderResult


class FakeLocationProvider:
    """In-memory stand-in for the device location API."""

    def __init__(self, foreground: bool = True, background: bool = True) -> None:
        self.foreground = foreground
        self.background = background
        self.active: set[str] = set()
        self.callbacks: dict = {}
        self.start_calls = 0
        self.stop_calls = 0
        self.fail_start = False
        self.current: Optional[RawLocation] = None

    def request_foreground_permission(self) -> bool:
        return self.foreground

    def request_background_permission(self) -> bool:
        return self.background

    def start_updates(self, task_name, callback, options) -> None:
        self.start_calls += 1
        if self.fail_start:
            raise RuntimeError("location services unavailable")
        self.active.add(task_name)
        self.callbacks[task_name] = callback

    def stop_updates(self, task_name) -> None:
        self.stop_calls += 1
        self.active.discard(task_name)

    def has_started_updates(self, task_name) -> bool:
        return task_name in self.active

    def get_current_position(self) -> Optional[RawLocation]:
        return self.current

    def kill(self, task_name: str) -> None:
        """Simulate the OS terminating the background task."""
        self.active.discard(task_name)


class RecordingNotifier:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def notify(self, title: str, body: str) -> None:
        self.messages.append((title, body))


class FakeGeocoder:
    def __init__(self, known: dict[str, tuple[float, float]]) -> None:
        self.known = known
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def geocode(self, address: str) -> Optional[GeocodedPoint]:
        with self._lock:
            self.calls.append(address)
        for fragment, (lat, lon) in self.known.items():
            if address.startswith(fragment):
                return GeocodedPoint(address_key=address, latitude=lat, longitude=lon)
        return None


class FakeRoutesClient:
    """Returns destinations in reverse order, or a failure when ``fail`` is set."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[int] = []

    def optimize_waypoint_order(self, origin: Coordinate, destinations: Sequence[Coordinate]) -> ExactOrderResult:
        self.calls.append(len(destinations))
        if self.fail:
            return ExactOrderResult.failure("Routes API HTTP 503")
        return ExactOrderResult(
            ok=True,
            order=list(reversed(range(len(destinations)))),
            distance_meters=12345.0,
            duration_seconds=1800.0,
        )


@pytest.fixture
def store(tmp_path: Path):
    local_store = LocalStore(tmp_path / "fleetops.sqlite3")
    yield local_store
    local_store.close()


@pytest.fixture
def location_provider() -> FakeLocationProvider:
    return FakeLocationProvider()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
