"""Offline proof-of-delivery endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...schemas.pods import PendingPODResponse, PODSyncResponse
from ...services.pod.service import get_pod_service

router = APIRouter(prefix="/pods", tags=["pods"])


@router.get("/pending", response_model=PendingPODResponse, status_code=status.HTTP_200_OK)
def pending() -> PendingPODResponse:
    return PendingPODResponse(pending=get_pod_service().pending_count())


@router.post("/sync", response_model=PODSyncResponse, status_code=status.HTTP_200_OK)
def sync() -> PODSyncResponse:
    try:
        report = get_pod_service().sync_pending()
    except Exception as exc:
        logging.exception(f"Error syncing offline PODs: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to sync offline PODs: {str(exc)}"
        ) from exc
    return PODSyncResponse(
        attempted=report.attempted,
        synced=report.synced,
        failed=report.failed,
        remaining=report.remaining,
        offline=report.offline,
    )
