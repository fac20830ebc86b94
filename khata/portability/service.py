"""
Portability Service

Backup export, restore and sync codes against a live StateStore.

DESIGN DECISION: Imports are all-or-nothing. The incoming document is
decoded and validated completely first; only a fully valid document is
handed to `store.replace`, which swaps the whole state at once. Any
failure leaves the current state exactly as it was. Restores replace,
they never merge.
"""

from datetime import date
from pathlib import Path
from typing import Optional

from khata.audit import AuditLogger
from khata.config import StorageSettings, get_settings
from khata.models.audit import AuditEventType
from khata.models.state import AppState
from khata.models.validation import ValidationIssue
from khata.portability.codec import (
    backup_file_name,
    decode_sync_code,
    export_backup,
    generate_sync_code,
    parse_backup,
)
from khata.portability.errors import InvalidBackupError, InvalidSyncCodeError
from khata.services.storage import JsonFileStorage, StorageReadError
from khata.store import StateStore
from khata.validation import StateValidator


class PortabilityService:
    """Moves the whole state document in and out of the store."""

    def __init__(
        self,
        store: StateStore,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[StateValidator] = None,
        settings: Optional[StorageSettings] = None,
    ):
        self._store = store
        self._audit = audit_logger or AuditLogger()
        self._validator = validator or StateValidator()
        self._settings = settings or get_settings().storage

    # =========================================================================
    # EXPORT
    # =========================================================================

    def export_backup(self) -> str:
        text = export_backup(self._store.state)
        self._audit.log_change(
            AuditEventType.BACKUP_EXPORTED, "state", None,
            {"bytes": len(text.encode("utf-8"))},
        )
        return text

    def backup_file_name(self, today: Optional[date] = None) -> str:
        return backup_file_name(today, prefix=self._settings.backup_prefix)

    def write_backup(
        self,
        directory: str | Path,
        today: Optional[date] = None,
    ) -> Path:
        """Write a dated backup file into directory and return its path."""
        path = Path(directory) / self.backup_file_name(today)
        JsonFileStorage(path).write(self.export_backup())
        return path

    def generate_sync_code(self) -> str:
        code = generate_sync_code(self._store.state)
        self._audit.log_change(
            AuditEventType.SYNC_CODE_GENERATED, "state", None,
            {"length": len(code)},
        )
        return code

    # =========================================================================
    # IMPORT
    # =========================================================================

    def _apply(self, new_state: AppState, event_type: AuditEventType) -> AppState:
        applied = self._store.replace(new_state)
        self._audit.log_import_applied(
            event_type, len(applied.profiles), len(applied.transactions),
        )
        return applied

    def restore(self, text: str) -> AppState:
        """
        Replace the current state with a backup document.

        Raises:
            InvalidBackupError: the document was rejected, state unchanged
        """
        try:
            new_state = parse_backup(text, self._validator)
        except InvalidBackupError as e:
            self._audit.log_import_rejected(
                AuditEventType.RESTORE_REJECTED,
                [issue.to_dict() for issue in e.issues],
            )
            raise
        return self._apply(new_state, AuditEventType.RESTORE_APPLIED)

    def restore_file(self, path: str | Path) -> AppState:
        """Restore from a backup file on disk."""
        try:
            text = JsonFileStorage(path).read()
        except StorageReadError as e:
            raise self._reject_file("unreadable", f"Backup file is unreadable: {path}") from e
        if text is None:
            raise self._reject_file("missing", f"Backup file not found: {path}")
        return self.restore(text)

    def _reject_file(self, issue_type: str, message: str) -> InvalidBackupError:
        issue = ValidationIssue(field="$", issue_type=issue_type, message=message)
        self._audit.log_import_rejected(
            AuditEventType.RESTORE_REJECTED, [issue.to_dict()],
        )
        return InvalidBackupError(message, [issue])

    def import_sync_code(self, code: str) -> AppState:
        """
        Replace the current state with the document inside a sync code.

        Raises:
            InvalidSyncCodeError: the code was rejected, state unchanged
        """
        try:
            new_state = decode_sync_code(code, self._validator)
        except InvalidSyncCodeError as e:
            self._audit.log_import_rejected(
                AuditEventType.SYNC_CODE_REJECTED,
                [issue.to_dict() for issue in e.issues],
            )
            raise
        return self._apply(new_state, AuditEventType.SYNC_CODE_IMPORTED)
