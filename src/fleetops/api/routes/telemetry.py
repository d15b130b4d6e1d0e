"""Telemetry queue inspection endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, status

from ...schemas.telemetry import DeadLetterModel, QueueInfoResponse
from ...services.telemetry.queue import get_upload_queue

router = APIRouter(prefix="/telemetry", tags=["telemetry"])


@router.get("/queue", response_model=QueueInfoResponse, status_code=status.HTTP_200_OK)
def queue_info(
    include_dead_letters: bool = Query(default=False, description="Include the most recent abandoned samples"),
    limit: int = Query(default=50, ge=1, le=500),
) -> QueueInfoResponse:
    try:
        queue = get_upload_queue()
        recent = None
        if include_dead_letters:
            recent = [DeadLetterModel(**row) for row in queue.dead_letters(limit)]
        return QueueInfoResponse(
            size=queue.size(),
            in_flight=queue.in_flight_count(),
            dead_letters=queue.dead_letter_count(),
            recent_dead_letters=recent,
        )
    except Exception as exc:
        logging.exception(f"Error reading telemetry queue: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to read telemetry queue: {str(exc)}"
        ) from exc
