"""
Store adapters for the ingestion engine.

The engine depends only on the VitalsStore protocol; the in-memory backend
serves tests and demos, the SQLite backend is the persistent one.
"""

from .base import VitalsStore
from .memory import InMemoryVitalsStore
from .sqlite import SQLiteVitalsStore

__all__ = [
    "VitalsStore",
    "InMemoryVitalsStore",
    "SQLiteVitalsStore",
]
