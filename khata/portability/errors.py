"""Portability errors. Raised before the store is touched."""

from typing import Optional

from khata.models.validation import ValidationIssue


class PortabilityError(Exception):
    """Base exception for backup, restore and sync-code failures."""
    pass


class InvalidBackupError(PortabilityError):
    """The restore document is not a usable state document."""

    def __init__(self, message: str, issues: Optional[list[ValidationIssue]] = None):
        self.issues = issues or []
        super().__init__(message)


class InvalidSyncCodeError(PortabilityError):
    """The pasted code does not decode to a usable state document."""

    def __init__(self, message: str, issues: Optional[list[ValidationIssue]] = None):
        self.issues = issues or []
        super().__init__(message)
