"""
Storage Services Package

Provides the abstract persistence interfaces and the local implementations.
The state document lives in a JSON file on the device; tests use memory.
"""

from khata.services.storage.interface import (
    AuditStorageInterface,
    StateStorageInterface,
    StorageError,
    StorageReadError,
    StorageWriteError,
)
from khata.services.storage.local import (
    InMemoryAuditStorage,
    InMemoryStorage,
    JsonFileStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "StateStorageInterface",
    # Exceptions
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    # Implementations
    "InMemoryAuditStorage",
    "InMemoryStorage",
    "JsonFileStorage",
]
