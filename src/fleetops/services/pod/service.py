"""Save proof-of-delivery online, falling back to a local queue."""

from __future__ import annotations

import functools
import logging
import threading
from dataclasses import dataclass
from typing import Optional

from ...errors import NoDriverSession, TransientNetworkFailure
from ...models.domain import OfflineBundle, SyncStatus
from ...persistence.local_store import get_local_store
from ..host import AssumeOnline, DriverIdentityProvider, NetworkMonitor
from .backend import PODBackend, SupabasePODBackend
from .store import OfflinePODQueue

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PODSaveResult:
    success: bool
    queued: bool
    bundle_id: Optional[int] = None
    error: Optional[str] = None


@dataclass(slots=True)
class SyncReport:
    attempted: int = 0
    synced: int = 0
    failed: int = 0
    remaining: int = 0
    offline: bool = False


class ProofOfDeliveryService:
    """The driver's capture flow never sees a sync failure.

    ``save_pod`` reports success whenever the bundle is stored online or
    spooled locally; only a failing local store yields ``success=False``.
    ``sync_pending`` retries spooled bundles with no retry limit and deletes
    each one only after a full online save.
    """

    def __init__(
        self,
        queue: OfflinePODQueue,
        backend: Optional[PODBackend],
        identity: DriverIdentityProvider,
        network: Optional[NetworkMonitor] = None,
    ) -> None:
        self.queue = queue
        self.backend = backend
        self.identity = identity
        self.network = network or AssumeOnline()
        self._sync_lock = threading.Lock()

    def _save_online(self, bundle: OfflineBundle) -> None:
        if self.backend is None:
            raise TransientNetworkFailure("POD backend is not configured.")
        captured_by = self.identity.get_driver_id()
        if not captured_by:
            raise NoDriverSession("No authenticated driver for POD upload.")
        photo_urls = self.backend.upload_photos(bundle.booking_id, bundle.payload_blobs)
        self.backend.insert_record(bundle, photo_urls, captured_by)

    def _is_connected(self) -> bool:
        try:
            return bool(self.network.is_connected())
        except Exception as exc:
            logger.warning(f"Network state unavailable, assuming offline: {exc}")
            return False

    def _enqueue(self, bundle: OfflineBundle, error: Optional[str] = None) -> PODSaveResult:
        try:
            bundle_id = self.queue.add(bundle)
        except Exception as exc:
            logger.exception(f"Could not queue POD for {bundle.booking_reference} locally")
            return PODSaveResult(success=False, queued=False, error=f"Local POD queue unavailable: {exc}")
        logger.info(f"POD for {bundle.booking_reference} queued (id={bundle_id})")
        return PODSaveResult(success=True, queued=True, bundle_id=bundle_id, error=error)

    def save_pod(self, bundle: OfflineBundle) -> PODSaveResult:
        if not self._is_connected():
            logger.info(f"Offline: queueing POD for {bundle.booking_reference}")
            return self._enqueue(bundle)

        try:
            self._save_online(bundle)
        except Exception as exc:
            logger.warning(f"Saving POD for {bundle.booking_reference} failed, queueing for later sync: {exc}")
            bundle.attempts += 1
            return self._enqueue(bundle, error=str(exc))

        bundle.sync_status = SyncStatus.SYNCED
        logger.info(f"POD for {bundle.booking_reference} saved online")
        return PODSaveResult(success=True, queued=False)

    def sync_pending(self) -> SyncReport:
        if not self._is_connected():
            return SyncReport(offline=True, remaining=self.queue.count())

        report = SyncReport()
        with self._sync_lock:
            for bundle in self.queue.pending():
                report.attempted += 1
                try:
                    self._save_online(bundle)
                except Exception as exc:
                    report.failed += 1
                    self.queue.record_attempt(bundle.id, str(exc))
                    logger.warning(f"Sync of POD {bundle.id} ({bundle.booking_reference}) failed: {exc}")
                    continue
                self.queue.remove(bundle.id)
                report.synced += 1
            report.remaining = self.queue.count()
        if report.attempted:
            logger.info(f"POD sync: {report.synced}/{report.attempted} synced, {report.remaining} remaining")
        return report

    def pending_count(self) -> int:
        return self.queue.count()


@functools.lru_cache(maxsize=1)
def get_pod_service() -> ProofOfDeliveryService:
    """Service for the API: settings-backed local store and Supabase backend."""
    from ..host import StaticSession
    from ...config import settings

    try:
        backend: Optional[PODBackend] = SupabasePODBackend()
    except ValueError as exc:
        logger.warning(f"{exc} Bundles will stay queued locally.")
        backend = None
    return ProofOfDeliveryService(
        OfflinePODQueue(get_local_store()),
        backend,
        StaticSession(token=None, driver_id=settings.pod_captured_by),
    )
