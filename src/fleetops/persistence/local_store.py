"""SQLite-backed local store for data that must survive process restarts."""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path
from typing import Iterator

from ..config import settings

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS telemetry_queue (
    id TEXT PRIMARY KEY,
    position INTEGER NOT NULL,
    latitude REAL NOT NULL,
    longitude REAL NOT NULL,
    accuracy_m REAL,
    speed_mps REAL,
    heading_deg REAL,
    battery_level REAL,
    captured_at TEXT NOT NULL,
    retry_count INTEGER NOT NULL DEFAULT 0,
    state TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_telemetry_queue_state_position
    ON telemetry_queue(state, position);

CREATE TABLE IF NOT EXISTS telemetry_dead_letters (
    id TEXT PRIMARY KEY,
    payload TEXT NOT NULL,
    retry_count INTEGER NOT NULL,
    reason TEXT NOT NULL,
    abandoned_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS offline_pods (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    booking_id INTEGER NOT NULL,
    booking_reference TEXT NOT NULL,
    client_name TEXT NOT NULL,
    id_card TEXT NOT NULL,
    signature_base64 TEXT NOT NULL,
    delivered_date TEXT NOT NULL,
    delivered_time TEXT NOT NULL,
    created_at TEXT NOT NULL,
    sync_status TEXT NOT NULL,
    attempts INTEGER NOT NULL DEFAULT 0,
    last_error TEXT
);

CREATE TABLE IF NOT EXISTS offline_pod_blobs (
    pod_id INTEGER NOT NULL REFERENCES offline_pods(id) ON DELETE CASCADE,
    position INTEGER NOT NULL,
    name TEXT NOT NULL,
    content_type TEXT NOT NULL,
    data BLOB NOT NULL,
    PRIMARY KEY (pod_id, position)
);
"""


class LocalStore:
    """Single SQLite connection shared by the telemetry and POD queues.

    Every operation runs under one lock, so callers on the capture callback,
    the uploader thread and the API never interleave writes.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = Path(path or settings.local_store_path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(str(self.path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._conn.execute("PRAGMA journal_mode = WAL")
        self._conn.executescript(_SCHEMA)
        self._conn.commit()
        logger.debug(f"Local store opened at {self.path}")

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Serialized transaction; commits on success, rolls back on error."""
        with self._lock:
            with self._conn:
                yield self._conn

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> "LocalStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


@lru_cache(maxsize=1)
def get_local_store() -> LocalStore:
    """Process-wide store at ``settings.local_store_path``."""
    return LocalStore(settings.local_store_path)
