"""Telemetry queue schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel


class DeadLetterModel(BaseModel):
    id: str
    retry_count: int
    reason: str
    abandoned_at: str
    sample: dict


class QueueInfoResponse(BaseModel):
    size: int
    in_flight: int
    dead_letters: int
    recent_dead_letters: Optional[List[DeadLetterModel]] = None
