"""Field operations backend: location telemetry, route optimization and offline POD sync."""

__version__ = "0.1.0"
