"""Durable FIFO queue of GPS samples awaiting upload."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from functools import lru_cache
from typing import Optional

from ...config import settings
from ...models.domain import GPSSample, QueuedSample, RetryState, utcnow
from ...persistence.local_store import LocalStore, get_local_store

logger = logging.getLogger(__name__)


def next_state_after_failure(retry_count: int, max_retries: int) -> tuple[RetryState, int]:
    """Transition for a failed upload attempt.

    Returns the new state and retry count. The item stays retryable while the
    incremented count is within ``max_retries``; past that it is abandoned.
    """
    attempts = retry_count + 1
    if attempts <= max_retries:
        return RetryState.FAILED, attempts
    return RetryState.ABANDONED, attempts


def _sample_to_payload(sample: GPSSample) -> dict:
    return {
        "latitude": sample.latitude,
        "longitude": sample.longitude,
        "accuracy_m": sample.accuracy_m,
        "speed_mps": sample.speed_mps,
        "heading_deg": sample.heading_deg,
        "battery_level": sample.battery_level,
        "captured_at": sample.captured_at.isoformat(),
    }


def _row_to_item(row) -> QueuedSample:
    return QueuedSample(
        id=row["id"],
        retry_count=row["retry_count"],
        state=RetryState(row["state"]),
        sample=GPSSample(
            latitude=row["latitude"],
            longitude=row["longitude"],
            accuracy_m=row["accuracy_m"],
            speed_mps=row["speed_mps"],
            heading_deg=row["heading_deg"],
            battery_level=row["battery_level"],
            captured_at=datetime.fromisoformat(row["captured_at"]),
        ),
    )


class PersistentUploadQueue:
    """FIFO of :class:`QueuedSample` persisted in the local store.

    ``dequeue_batch`` claims items (state ``IN_FLIGHT``) instead of deleting
    them; they leave the queue for good only on :meth:`ack` or
    :meth:`abandon`. Claims left behind by a crash are released by
    :meth:`release_stale_claims`, which only the process owning the uploader
    should call.
    """

    def __init__(self, store: LocalStore, max_size: Optional[int] = None) -> None:
        self.store = store
        self.max_size = max_size

    def release_stale_claims(self) -> None:
        """Return every IN_FLIGHT item to PENDING."""
        with self.store.transaction() as conn:
            cursor = conn.execute(
                "UPDATE telemetry_queue SET state = ? WHERE state = ?",
                (RetryState.PENDING.value, RetryState.IN_FLIGHT.value),
            )
        if cursor.rowcount:
            logger.info(f"Released {cursor.rowcount} in-flight samples left over from a previous run")

    @staticmethod
    def _next_position(conn) -> int:
        row = conn.execute("SELECT COALESCE(MAX(position), 0) + 1 FROM telemetry_queue").fetchone()
        return row[0]

    def _insert(self, conn, item: QueuedSample) -> None:
        sample = item.sample
        conn.execute(
            """
            INSERT INTO telemetry_queue
                (id, position, latitude, longitude, accuracy_m, speed_mps, heading_deg,
                 battery_level, captured_at, retry_count, state)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                item.id,
                self._next_position(conn),
                sample.latitude,
                sample.longitude,
                sample.accuracy_m,
                sample.speed_mps,
                sample.heading_deg,
                sample.battery_level,
                sample.captured_at.isoformat(),
                item.retry_count,
                RetryState.PENDING.value,
            ),
        )

    def enqueue(self, item: GPSSample | QueuedSample) -> QueuedSample:
        queued = item if isinstance(item, QueuedSample) else QueuedSample(sample=item)
        queued.state = RetryState.PENDING
        with self.store.transaction() as conn:
            self._insert(conn, queued)
            if self.max_size is not None:
                self._evict_over_high_water_mark(conn)
        return queued

    def _evict_over_high_water_mark(self, conn) -> None:
        pending = conn.execute(
            "SELECT COUNT(*) FROM telemetry_queue WHERE state = ?", (RetryState.PENDING.value,)
        ).fetchone()[0]
        overflow = pending - self.max_size
        if overflow <= 0:
            return
        rows = conn.execute(
            "SELECT * FROM telemetry_queue WHERE state = ? ORDER BY position LIMIT ?",
            (RetryState.PENDING.value, overflow),
        ).fetchall()
        for row in rows:
            self._move_to_dead_letters(conn, _row_to_item(row), reason="evicted")
        logger.warning(f"Telemetry queue above high-water mark ({self.max_size}); evicted {len(rows)} oldest samples")

    def dequeue_batch(self, max_size: int) -> list[QueuedSample]:
        """Claim and return up to ``max_size`` oldest pending items."""
        if max_size <= 0:
            return []
        with self.store.transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM telemetry_queue WHERE state = ? ORDER BY position LIMIT ?",
                (RetryState.PENDING.value, max_size),
            ).fetchall()
            items = [_row_to_item(row) for row in rows]
            conn.executemany(
                "UPDATE telemetry_queue SET state = ? WHERE id = ?",
                [(RetryState.IN_FLIGHT.value, item.id) for item in items],
            )
        for item in items:
            item.state = RetryState.IN_FLIGHT
        return items

    def release(self, items: list[QueuedSample]) -> int:
        """Put items still claimed back to PENDING in place; returns how many were released."""
        with self.store.transaction() as conn:
            released = 0
            for item in items:
                cursor = conn.execute(
                    "UPDATE telemetry_queue SET state = ? WHERE id = ? AND state = ?",
                    (RetryState.PENDING.value, item.id, RetryState.IN_FLIGHT.value),
                )
                if cursor.rowcount:
                    item.state = RetryState.PENDING
                    released += cursor.rowcount
        return released

    def requeue(self, item: QueuedSample) -> None:
        """Re-insert an item at the tail of the queue."""
        with self.store.transaction() as conn:
            conn.execute("DELETE FROM telemetry_queue WHERE id = ?", (item.id,))
            self._insert(conn, item)
        item.state = RetryState.PENDING

    def ack(self, item: QueuedSample) -> None:
        """Drop an item that was delivered."""
        with self.store.transaction() as conn:
            conn.execute("DELETE FROM telemetry_queue WHERE id = ?", (item.id,))

    def record_failure(self, item: QueuedSample, max_retries: int) -> RetryState:
        """Apply the retry policy to a failed upload and persist the outcome."""
        state, attempts = next_state_after_failure(item.retry_count, max_retries)
        item.retry_count = attempts
        if state is RetryState.ABANDONED:
            self.abandon(item, reason=f"exceeded {max_retries} retries")
        else:
            self.requeue(item)
            item.state = RetryState.FAILED
        return state

    def abandon(self, item: QueuedSample, reason: str) -> None:
        with self.store.transaction() as conn:
            self._move_to_dead_letters(conn, item, reason)
        item.state = RetryState.ABANDONED
        logger.warning(
            f"Abandoned telemetry sample {item.id} after {item.retry_count} retries ({reason})"
        )

    @staticmethod
    def _move_to_dead_letters(conn, item: QueuedSample, reason: str) -> None:
        conn.execute("DELETE FROM telemetry_queue WHERE id = ?", (item.id,))
        conn.execute(
            """
            INSERT OR REPLACE INTO telemetry_dead_letters (id, payload, retry_count, reason, abandoned_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (item.id, json.dumps(_sample_to_payload(item.sample)), item.retry_count, reason, utcnow().isoformat()),
        )

    def size(self) -> int:
        with self.store.transaction() as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM telemetry_queue WHERE state = ?", (RetryState.PENDING.value,)
            ).fetchone()[0]

    def in_flight_count(self) -> int:
        with self.store.transaction() as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM telemetry_queue WHERE state = ?", (RetryState.IN_FLIGHT.value,)
            ).fetchone()[0]

    def clear(self) -> None:
        with self.store.transaction() as conn:
            conn.execute("DELETE FROM telemetry_queue")

    def dead_letter_count(self) -> int:
        with self.store.transaction() as conn:
            return conn.execute("SELECT COUNT(*) FROM telemetry_dead_letters").fetchone()[0]

    def dead_letters(self, limit: int = 100) -> list[dict]:
        with self.store.transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM telemetry_dead_letters ORDER BY abandoned_at LIMIT ?", (limit,)
            ).fetchall()
        return [
            {
                "id": row["id"],
                "retry_count": row["retry_count"],
                "reason": row["reason"],
                "abandoned_at": row["abandoned_at"],
                "sample": json.loads(row["payload"]),
            }
            for row in rows
        ]


@lru_cache(maxsize=1)
def get_upload_queue() -> PersistentUploadQueue:
    return PersistentUploadQueue(get_local_store(), max_size=settings.queue_max_size)
