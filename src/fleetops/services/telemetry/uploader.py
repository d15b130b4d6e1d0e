"""Periodic uploader draining the telemetry queue."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from ...config import settings
from ...errors import NoDriverSession, TransientNetworkFailure
from ...models.domain import QueuedSample, RetryState
from ..host import SessionProvider
from .client import TelemetryClient
from .queue import PersistentUploadQueue

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class UploadReport:
    attempted: int = 0
    uploaded: int = 0
    requeued: int = 0
    abandoned: int = 0


class TelemetryUploader:
    """Drains the queue in bounded batches on a fixed tick.

    Per item: PENDING -> IN_FLIGHT -> delivered (acked) or FAILED(n) and
    requeued while n <= max_retries, else ABANDONED into the dead-letter
    table. The tick period is independent of the capture throttle so bursts
    of samples get smoothed out.
    """

    def __init__(
        self,
        queue: PersistentUploadQueue,
        client: TelemetryClient,
        session: SessionProvider,
        *,
        batch_size: int | None = None,
        max_retries: int | None = None,
        interval_seconds: float | None = None,
    ) -> None:
        self.queue = queue
        self.client = client
        self.session = session
        self.batch_size = batch_size or settings.upload_batch_size
        self.max_retries = max_retries if max_retries is not None else settings.upload_max_retries
        self.interval_seconds = interval_seconds or settings.uploader_interval_seconds
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._tick_lock = threading.Lock()

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            args=(self._stop_event,),
            name="telemetry-uploader",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"Telemetry uploader started (every {self.interval_seconds}s, batch {self.batch_size})")

    def stop(self, timeout: float | None = None) -> None:
        self._stop_event.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout if timeout is not None else self.interval_seconds * 5)
        logger.info("Telemetry uploader stopped")

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self.interval_seconds):
            try:
                self.tick()
            except Exception:
                logger.exception("Telemetry upload tick failed")

    def tick(self) -> UploadReport:
        """Upload one batch. Failures are handled per item and never raised."""
        report = UploadReport()
        with self._tick_lock:
            batch = self.queue.dequeue_batch(self.batch_size)
            try:
                for item in batch:
                    report.attempted += 1
                    try:
                        self._settle(item, report)
                    except Exception:
                        logger.exception(f"Could not record upload outcome for sample {item.id}")
            finally:
                released = self.queue.release(batch)
                if released:
                    logger.warning(f"Released {released} claimed samples back to the queue")
        if report.attempted:
            logger.debug(
                f"Upload tick: {report.uploaded}/{report.attempted} uploaded, "
                f"{report.requeued} requeued, {report.abandoned} abandoned"
            )
        return report

    def _settle(self, item: QueuedSample, report: UploadReport) -> None:
        if self._upload(item):
            self.queue.ack(item)
            report.uploaded += 1
            return
        state = self.queue.record_failure(item, self.max_retries)
        if state is RetryState.ABANDONED:
            report.abandoned += 1
        else:
            report.requeued += 1

    def _upload(self, item: QueuedSample) -> bool:
        try:
            token = self.session.get_token()
            if not token:
                raise NoDriverSession("No authenticated session")
            self.client.post_sample(item, token)
            return True
        except (NoDriverSession, TransientNetworkFailure) as exc:
            logger.debug(f"Upload of sample {item.id} failed (retry {item.retry_count}): {exc}")
            return False
        except Exception as exc:
            logger.error(f"Unexpected error uploading sample {item.id}: {exc}")
            return False
