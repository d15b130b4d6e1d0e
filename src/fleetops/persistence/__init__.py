"""Local persistence: SQLite store and run output files."""

from .filesystem import FileStorage
from .local_store import LocalStore, get_local_store

__all__ = ["FileStorage", "LocalStore", "get_local_store"]
