"""Field-location telemetry pipeline."""

from .capture import LocationCaptureService
from .client import TelemetryClient
from .queue import PersistentUploadQueue, get_upload_queue
from .runtime import TrackingRuntime
from .throttle import LeadingEdgeThrottle
from .uploader import TelemetryUploader, UploadReport

__all__ = [
    "LeadingEdgeThrottle",
    "LocationCaptureService",
    "PersistentUploadQueue",
    "TelemetryClient",
    "TelemetryUploader",
    "TrackingRuntime",
    "UploadReport",
    "get_upload_queue",
]
