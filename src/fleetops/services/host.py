"""Interfaces implemented by the host application.

The core never talks to the device OS, the auth layer or the notification
system directly; the host passes in objects satisfying these protocols.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Protocol, Sequence

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RawLocation:
    """Position fix exactly as the OS location API delivered it."""

    latitude: float
    longitude: float
    timestamp: Optional[datetime] = None
    accuracy: Optional[float] = None
    speed: Optional[float] = None
    heading: Optional[float] = None
    battery_level: Optional[float] = None


@dataclass(slots=True)
class LocationUpdateOptions:
    time_interval_seconds: float
    distance_interval_m: float = 0.0
    high_accuracy: bool = True
    foreground_title: str = ""
    foreground_body: str = ""
    pauses_updates_automatically: bool = False


LocationCallback = Callable[[Sequence[RawLocation]], None]


class LocationProvider(Protocol):
    def request_foreground_permission(self) -> bool: ...

    def request_background_permission(self) -> bool: ...

    def start_updates(self, task_name: str, callback: LocationCallback, options: LocationUpdateOptions) -> None: ...

    def stop_updates(self, task_name: str) -> None: ...

    def has_started_updates(self, task_name: str) -> bool: ...

    def get_current_position(self) -> Optional[RawLocation]: ...


class SessionProvider(Protocol):
    def get_token(self) -> Optional[str]: ...


class DriverIdentityProvider(Protocol):
    def get_driver_id(self) -> Optional[str]: ...


class NetworkMonitor(Protocol):
    def is_connected(self) -> bool: ...


class Notifier(Protocol):
    def notify(self, title: str, body: str) -> None: ...


class StaticSession:
    """Session and identity provider backed by fixed values."""

    def __init__(self, token: Optional[str], driver_id: Optional[str] = None) -> None:
        self.token = token
        self.driver_id = driver_id

    def get_token(self) -> Optional[str]:
        return self.token

    def get_driver_id(self) -> Optional[str]:
        return self.driver_id


class AssumeOnline:
    def is_connected(self) -> bool:
        return True


class LoggingNotifier:
    def notify(self, title: str, body: str) -> None:
        logger.info(f"[notification] {title}: {body}")
