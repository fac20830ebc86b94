"""
Abstract Storage Interface

DESIGN DECISION: The state document lives in ONE key-value slot.
The store only ever needs to read the whole slot or rewrite the whole slot,
so the interface is exactly that. This allows us to:
1. Use a local JSON file on the device
2. Use in-memory storage for testing
3. Keep the mutation rules decoupled from where the bytes go

Audit events have their own append-only interface.
"""

from abc import ABC, abstractmethod
from typing import Optional

from khata.models.audit import AuditEvent


class StateStorageInterface(ABC):
    """
    Abstract interface for the persisted state slot.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    def read(self) -> Optional[str]:
        """
        Read the raw persisted document.

        Returns:
            The document text, or None if nothing was ever written

        Raises:
            StorageReadError: If the slot exists but cannot be read
        """
        pass

    @abstractmethod
    def write(self, text: str) -> None:
        """
        Replace the persisted document.

        The write must be atomic: after it returns the new text is durable,
        and a failed write leaves the previous text in place.

        Raises:
            StorageWriteError: If the write fails
        """
        pass

    @abstractmethod
    def exists(self) -> bool:
        """Whether a document has ever been written."""
        pass

    @property
    def description(self) -> str:
        """Human-readable location, used in logs."""
        return type(self).__name__


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageReadError(StorageError):
    """The persisted slot exists but could not be read."""
    pass


class StorageWriteError(StorageError):
    """The document could not be written."""
    pass
