"""Services package."""

from khata.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    InMemoryStorage,
    JsonFileStorage,
    StateStorageInterface,
    StorageError,
    StorageReadError,
    StorageWriteError,
)

__all__ = [
    "AuditStorageInterface",
    "InMemoryAuditStorage",
    "InMemoryStorage",
    "JsonFileStorage",
    "StateStorageInterface",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
]
