"""Exception types shared across the telemetry, routing and POD services."""

from __future__ import annotations


class FleetOpsError(Exception):
    """Base class for all fleetops errors."""


class PermissionDenied(FleetOpsError):
    """Foreground location permission was refused. Terminal, never retried."""


class NoDriverSession(FleetOpsError):
    """No authenticated driver session is available."""


class TransientNetworkFailure(FleetOpsError):
    """A remote call failed in a way that may succeed on a later attempt."""


class ProviderError(FleetOpsError):
    """Geocoding or route-optimization provider returned an unusable answer."""


class ValidationFailure(FleetOpsError, ValueError):
    """Input failed validation (e.g. malformed coordinates)."""
