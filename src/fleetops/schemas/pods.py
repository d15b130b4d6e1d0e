"""Proof-of-delivery sync schemas."""

from __future__ import annotations

from pydantic import BaseModel


class PendingPODResponse(BaseModel):
    pending: int


class PODSyncResponse(BaseModel):
    attempted: int
    synced: int
    failed: int
    remaining: int
    offline: bool
