"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


def _get_provider_checks() -> dict:
    """Lazy import to avoid startup failures."""
    from ...services.routing.geocoding import check_health as geocoding_health_check
    from ...services.routing.routes_client import check_health as routes_health_check
    from ...services.telemetry.client import check_health as backend_health_check

    return {
        "geocoding": geocoding_health_check,
        "routes": routes_health_check,
        "fleet_backend": backend_health_check,
    }


@router.get("/health/providers", status_code=status.HTTP_200_OK)
def health_providers() -> dict:
    """Report which external providers are configured or reachable."""
    from ...db.supabase import get_supabase_client

    results: dict[str, dict] = {}
    for name, check in _get_provider_checks().items():
        try:
            results[name] = {"healthy": bool(check())}
        except Exception as e:
            results[name] = {"healthy": False, "error": str(e)}
    results["supabase"] = {"healthy": get_supabase_client() is not None}
    return {"providers": results}
