"""Online persistence of proof-of-delivery bundles in Supabase."""

from __future__ import annotations

import logging
import time
from typing import Any, Optional, Protocol

from ...config import settings
from ...db.supabase import get_supabase_client
from ...models.domain import OfflineBundle, PODBlob

logger = logging.getLogger(__name__)


class PODBackend(Protocol):
    def upload_photos(self, booking_id: int, blobs: list[PODBlob]) -> list[str]: ...

    def insert_record(self, bundle: OfflineBundle, photo_urls: list[str], captured_by: str) -> None: ...


def pod_record(bundle: OfflineBundle, photo_urls: list[str], captured_by: str) -> dict:
    return {
        "booking_id": bundle.booking_id,
        "miles_ref": bundle.booking_reference,
        "photo_urls": photo_urls,
        "client_name": bundle.client_name,
        "id_card": bundle.id_card,
        "signature_base64": bundle.signature_base64,
        "delivered_date": bundle.delivered_date,
        "delivered_time": bundle.delivered_time,
        "captured_by": captured_by,
        "sync_status": "completed",
        "bizhandle_synced": False,
    }


class SupabasePODBackend:
    """Uploads photos to a storage bucket, then inserts the POD row."""

    def __init__(self, client: Optional[Any] = None, bucket: str | None = None, table: str | None = None) -> None:
        self.client = client or get_supabase_client()
        if self.client is None:
            raise ValueError("Supabase is not configured; cannot save proof of delivery online.")
        self.bucket = bucket or settings.pod_storage_bucket
        self.table = table or settings.pod_table

    def upload_photos(self, booking_id: int, blobs: list[PODBlob]) -> list[str]:
        urls: list[str] = []
        storage = self.client.storage.from_(self.bucket)
        for index, blob in enumerate(blobs):
            file_name = f"{booking_id}/photo_{int(time.time() * 1000)}_{index}.jpg"
            storage.upload(
                path=file_name,
                file=blob.data,
                file_options={"content-type": blob.content_type, "upsert": "false"},
            )
            urls.append(storage.get_public_url(file_name))
            logger.debug(f"Uploaded POD photo {index + 1}/{len(blobs)} for booking {booking_id}")
        return urls

    def insert_record(self, bundle: OfflineBundle, photo_urls: list[str], captured_by: str) -> None:
        self.client.table(self.table).insert(pod_record(bundle, photo_urls, captured_by)).execute()
