"""Offline-tolerant proof-of-delivery capture."""

from .backend import PODBackend, SupabasePODBackend
from .service import PODSaveResult, ProofOfDeliveryService, SyncReport, get_pod_service
from .store import OfflinePODQueue

__all__ = [
    "OfflinePODQueue",
    "PODBackend",
    "PODSaveResult",
    "ProofOfDeliveryService",
    "SupabasePODBackend",
    "SyncReport",
    "get_pod_service",
]
