"""Continuous location capture with a supervising health-check loop."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional, Sequence

from ...config import settings
from ...errors import NoDriverSession, PermissionDenied
from ...models.domain import (
    CaptureMode,
    CaptureStartResult,
    CaptureStatus,
    GPSSample,
    utcnow,
)
from ..geospatial import is_valid_gps_coordinates, smooth_accuracy
from ..host import LocationProvider, LocationUpdateOptions, Notifier, RawLocation, SessionProvider
from .client import TelemetryClient
from .queue import PersistentUploadQueue
from .throttle import LeadingEdgeThrottle

logger = logging.getLogger(__name__)


def to_sample(raw: RawLocation) -> Optional[GPSSample]:
    """Convert an OS fix into a GPSSample, or None if the coordinates are invalid."""
    if not is_valid_gps_coordinates(raw.latitude, raw.longitude):
        return None
    return GPSSample(
        latitude=float(raw.latitude),
        longitude=float(raw.longitude),
        captured_at=raw.timestamp or utcnow(),
        accuracy_m=raw.accuracy,
        speed_mps=raw.speed,
        heading_deg=raw.heading,
        battery_level=raw.battery_level,
    )


class LocationCaptureService:
    """Acquires device positions and feeds them, throttled, into the upload queue.

    A supervisor thread compares what the service believes (running) with what
    the OS reports for the background task. When they disagree, the OS has
    killed the task and the service performs a forced restart: stop, cool
    down, start again. This repeats every supervisor period until
    :meth:`stop_capture` is called.
    """

    def __init__(
        self,
        provider: LocationProvider,
        queue: PersistentUploadQueue,
        session: SessionProvider,
        *,
        client: Optional[TelemetryClient] = None,
        notifier: Optional[Notifier] = None,
        task_name: str | None = None,
        throttle_seconds: float | None = None,
        supervisor_interval_seconds: float | None = None,
        restart_cooldown_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], object]] = None,
    ) -> None:
        self.provider = provider
        self.queue = queue
        self.session = session
        self.client = client
        self.notifier = notifier
        self.task_name = task_name or settings.capture_task_name
        self.throttle_seconds = throttle_seconds or settings.capture_throttle_seconds
        self.supervisor_interval_seconds = supervisor_interval_seconds or settings.supervisor_interval_seconds
        self.restart_cooldown_seconds = (
            restart_cooldown_seconds if restart_cooldown_seconds is not None else settings.restart_cooldown_seconds
        )
        self._sleep = sleep

        self._lock = threading.RLock()
        self._running = False
        self._mode = CaptureMode.STOPPED
        self._driver_id: Optional[str] = None
        self._last_sample_at = None
        self._restart_count = 0
        self._smoothed_accuracy: Optional[float] = None
        self._stop_event = threading.Event()
        self._supervisor: Optional[threading.Thread] = None
        self._throttle: LeadingEdgeThrottle[GPSSample] = LeadingEdgeThrottle(
            self.throttle_seconds, self._enqueue, clock=clock
        )

    # -- lifecycle -----------------------------------------------------------------

    def start_capture(self, driver_id: str, *, supervise: bool = True) -> CaptureStartResult:
        """Begin continuous capture for ``driver_id``.

        Raises NoDriverSession without a driver id or session token, and
        PermissionDenied when foreground location access is refused. Missing
        background permission only degrades the mode to foreground-only.
        """
        with self._lock:
            if self._running:
                return CaptureStartResult(
                    started=True,
                    mode=self._mode,
                    background_permission=self._mode is CaptureMode.BACKGROUND,
                )

        if not driver_id:
            raise NoDriverSession("Cannot start location capture without a driver id.")
        token = self.session.get_token()
        if not token:
            raise NoDriverSession("No authenticated session; location capture not started.")

        if not self.provider.request_foreground_permission():
            raise PermissionDenied("Foreground location permission denied.")
        background = bool(self.provider.request_background_permission())
        mode = CaptureMode.BACKGROUND if background else CaptureMode.FOREGROUND_ONLY
        if not background:
            logger.warning("Background location permission not granted; capturing in foreground only")

        with self._lock:
            self._running = True
            self._mode = mode
            self._driver_id = driver_id
            self._smoothed_accuracy = None
            self._stop_event = threading.Event()
            self._throttle.reset()

        started = self._start_updates()
        if started:
            logger.info(f"Location capture started for driver {driver_id} ({mode.value})")
            self._notify("GPS tracking started", "Your location is being shared while on duty.")
        else:
            logger.error("Location updates failed to start; supervisor will retry")

        if self.client is not None:
            self.client.update_driver_status(True, token, driver_id)

        if supervise:
            self._start_supervisor()
        return CaptureStartResult(started=started, mode=mode, background_permission=background)

    def stop_capture(self) -> None:
        """Halt capture and the supervisor. Queued samples are kept."""
        with self._lock:
            if not self._running:
                return
            self._running = False
            self._mode = CaptureMode.STOPPED
            driver_id = self._driver_id
            self._stop_event.set()
            supervisor = self._supervisor
            self._supervisor = None

        if supervisor is not None and supervisor is not threading.current_thread():
            supervisor.join(timeout=self.supervisor_interval_seconds + self.restart_cooldown_seconds + 1.0)

        try:
            self.provider.stop_updates(self.task_name)
        except Exception as exc:
            logger.warning(f"Stopping location updates failed: {exc}")

        token = self.session.get_token()
        if self.client is not None and token:
            self.client.update_driver_status(False, token, driver_id)
        logger.info("Location capture stopped")

    def get_status(self) -> CaptureStatus:
        with self._lock:
            return CaptureStatus(
                running=self._running,
                mode=self._mode,
                driver_id=self._driver_id,
                last_sample_at=self._last_sample_at,
                restart_count=self._restart_count,
            )

    def get_current_location(self) -> Optional[GPSSample]:
        try:
            raw = self.provider.get_current_position()
        except Exception as exc:
            logger.warning(f"Error getting current location: {exc}")
            return None
        return to_sample(raw) if raw is not None else None

    # -- samples -------------------------------------------------------------------

    def on_locations(self, locations: Sequence[RawLocation]) -> None:
        """OS callback. Validates, throttles and enqueues; never raises."""
        for raw in locations:
            if not self._running:
                return
            sample = to_sample(raw)
            if sample is None:
                logger.debug(f"Discarding invalid fix ({raw.latitude}, {raw.longitude})")
                continue
            self._throttle(sample)

    def _enqueue(self, sample: GPSSample) -> None:
        with self._lock:
            if sample.accuracy_m is not None:
                self._smoothed_accuracy = smooth_accuracy(self._smoothed_accuracy, sample.accuracy_m)
                sample.accuracy_m = self._smoothed_accuracy
        try:
            self.queue.enqueue(sample)
        except Exception:
            logger.exception("Failed to enqueue GPS sample")
            return
        with self._lock:
            self._last_sample_at = sample.captured_at

    # -- supervision ---------------------------------------------------------------

    def _options(self) -> LocationUpdateOptions:
        return LocationUpdateOptions(
            time_interval_seconds=self.throttle_seconds,
            distance_interval_m=0.0,
            high_accuracy=True,
            foreground_title=settings.foreground_service_title,
            foreground_body=settings.foreground_service_body,
            pauses_updates_automatically=False,
        )

    def _start_updates(self) -> bool:
        try:
            self.provider.start_updates(self.task_name, self.on_locations, self._options())
            return True
        except Exception as exc:
            logger.error(f"Failed to start location updates: {exc}")
            return False

    def _start_supervisor(self) -> None:
        with self._lock:
            if self._supervisor is not None and self._supervisor.is_alive():
                return
            stop_event = self._stop_event
            self._supervisor = threading.Thread(
                target=self._supervise,
                args=(stop_event,),
                name="location-supervisor",
                daemon=True,
            )
            self._supervisor.start()

    def _supervise(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self.supervisor_interval_seconds):
            try:
                self.check_health()
            except Exception:
                logger.exception("Location supervisor iteration failed")

    def check_health(self) -> bool:
        """One supervisor iteration. Returns True when no restart was needed."""
        with self._lock:
            believed_running = self._running
        if not believed_running:
            return True
        try:
            actually_running = bool(self.provider.has_started_updates(self.task_name))
        except Exception as exc:
            logger.warning(f"Could not query location task state: {exc}")
            actually_running = False
        if actually_running:
            return True
        logger.warning(f"Location task '{self.task_name}' is not running; forcing restart")
        self.force_restart()
        return False

    def force_restart(self) -> bool:
        try:
            self.provider.stop_updates(self.task_name)
        except Exception:
            logger.debug("Location updates already stopped")

        self._wait(self.restart_cooldown_seconds)
        if not self._running:
            return False

        if not self._start_updates():
            return False
        with self._lock:
            self._restart_count += 1
            restarts = self._restart_count
        logger.info(f"Location capture restarted (restart #{restarts})")
        self._notify("GPS tracking restarted", "Location sharing was interrupted and has resumed.")
        return True

    def _wait(self, seconds: float) -> None:
        if self._sleep is not None:
            self._sleep(seconds)
        else:
            self._stop_event.wait(seconds)

    def _notify(self, title: str, body: str) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.notify(title, body)
        except Exception as exc:
            logger.debug(f"Notification failed: {exc}")
