"""Route group exports."""

from . import health, pods, routes, telemetry

__all__ = ["health", "routes", "telemetry", "pods"]
