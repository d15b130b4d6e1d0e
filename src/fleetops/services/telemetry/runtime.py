"""Wiring of the telemetry pipeline for a host process."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ...config import settings
from ...models.domain import CaptureStartResult, CaptureStatus
from ...persistence.local_store import LocalStore
from ..host import LocationProvider, LoggingNotifier, Notifier, SessionProvider
from .capture import LocationCaptureService
from .client import TelemetryClient
from .queue import PersistentUploadQueue
from .uploader import TelemetryUploader

logger = logging.getLogger(__name__)


class TrackingRuntime:
    """Owns the queue, uploader and capture service sharing one local store.

    ``initialize`` releases claims a previous run left in flight and starts
    the uploader so that those samples are delivered even before capture
    resumes. Other readers of the same store never release claims.
    """

    def __init__(
        self,
        provider: LocationProvider,
        session: SessionProvider,
        *,
        notifier: Optional[Notifier] = None,
        store: Optional[LocalStore] = None,
        store_path: Optional[Path] = None,
        client: Optional[TelemetryClient] = None,
    ) -> None:
        self.store = store or LocalStore(store_path)
        self.queue = PersistentUploadQueue(self.store, max_size=settings.queue_max_size)
        self.client = client or TelemetryClient()
        self.uploader = TelemetryUploader(self.queue, self.client, session)
        self.capture = LocationCaptureService(
            provider,
            self.queue,
            session,
            client=self.client,
            notifier=notifier or LoggingNotifier(),
        )
        self._initialized = False

    def initialize(self) -> None:
        if self._initialized:
            return
        self.queue.release_stale_claims()
        self.uploader.start()
        self._initialized = True
        logger.info(f"Tracking runtime initialized ({self.queue.size()} samples pending)")

    def start_tracking(self, driver_id: str) -> CaptureStartResult:
        self.initialize()
        return self.capture.start_capture(driver_id)

    def stop_tracking(self) -> None:
        self.capture.stop_capture()

    def status(self) -> CaptureStatus:
        return self.capture.get_status()

    def queue_info(self) -> dict:
        return {
            "size": self.queue.size(),
            "in_flight": self.queue.in_flight_count(),
            "dead_letters": self.queue.dead_letter_count(),
            "is_processing": self.uploader.running,
        }

    def clear_queue(self) -> None:
        self.queue.clear()

    def shutdown(self) -> None:
        self.capture.stop_capture()
        self.uploader.stop()
        self.client.close()
        self.store.close()
        self._initialized = False
