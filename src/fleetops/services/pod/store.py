"""Durable queue of proof-of-delivery bundles awaiting sync."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from ...models.domain import OfflineBundle, PODBlob, SyncStatus
from ...persistence.local_store import LocalStore


class OfflinePODQueue:
    def __init__(self, store: LocalStore) -> None:
        self.store = store

    def add(self, bundle: OfflineBundle) -> int:
        with self.store.transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO offline_pods
                    (booking_id, booking_reference, client_name, id_card, signature_base64,
                     delivered_date, delivered_time, created_at, sync_status, attempts)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    bundle.booking_id,
                    bundle.booking_reference,
                    bundle.client_name,
                    bundle.id_card,
                    bundle.signature_base64,
                    bundle.delivered_date,
                    bundle.delivered_time,
                    bundle.created_at.isoformat(),
                    SyncStatus.PENDING.value,
                    bundle.attempts,
                ),
            )
            pod_id = cursor.lastrowid
            conn.executemany(
                "INSERT INTO offline_pod_blobs (pod_id, position, name, content_type, data) VALUES (?, ?, ?, ?, ?)",
                [
                    (pod_id, position, blob.name, blob.content_type, blob.data)
                    for position, blob in enumerate(bundle.payload_blobs)
                ],
            )
        bundle.id = pod_id
        bundle.sync_status = SyncStatus.PENDING
        return pod_id

    def pending(self) -> list[OfflineBundle]:
        """All queued bundles, oldest first, with their blobs."""
        with self.store.transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM offline_pods WHERE sync_status = ? ORDER BY created_at, id",
                (SyncStatus.PENDING.value,),
            ).fetchall()
            blob_rows = conn.execute(
                """
                SELECT b.* FROM offline_pod_blobs b
                JOIN offline_pods p ON p.id = b.pod_id
                WHERE p.sync_status = ?
                ORDER BY b.pod_id, b.position
                """,
                (SyncStatus.PENDING.value,),
            ).fetchall()

        blobs: dict[int, list[PODBlob]] = {}
        for blob in blob_rows:
            blobs.setdefault(blob["pod_id"], []).append(
                PODBlob(name=blob["name"], data=bytes(blob["data"]), content_type=blob["content_type"])
            )
        return [
            OfflineBundle(
                id=row["id"],
                booking_id=row["booking_id"],
                booking_reference=row["booking_reference"],
                payload_blobs=blobs.get(row["id"], []),
                client_name=row["client_name"],
                id_card=row["id_card"],
                signature_base64=row["signature_base64"],
                delivered_date=row["delivered_date"],
                delivered_time=row["delivered_time"],
                created_at=datetime.fromisoformat(row["created_at"]),
                sync_status=SyncStatus(row["sync_status"]),
                attempts=row["attempts"],
            )
            for row in rows
        ]

    def remove(self, pod_id: int) -> None:
        with self.store.transaction() as conn:
            conn.execute("DELETE FROM offline_pods WHERE id = ?", (pod_id,))

    def record_attempt(self, pod_id: int, error: Optional[str]) -> None:
        with self.store.transaction() as conn:
            conn.execute(
                "UPDATE offline_pods SET attempts = attempts + 1, last_error = ? WHERE id = ?",
                (error, pod_id),
            )

    def count(self) -> int:
        with self.store.transaction() as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM offline_pods WHERE sync_status = ?", (SyncStatus.PENDING.value,)
            ).fetchone()[0]

    def clear(self) -> None:
        with self.store.transaction() as conn:
            conn.execute("DELETE FROM offline_pods")
