"""
Audit Models for Khoroch Khata

Every accepted mutation and every rejected import/login is recorded as an
audit event. Events go to the structured local log and, when configured,
to an append-only sink the settings page can show.

DESIGN DECISION: Audit events never carry secrets. Passwords, sync codes
and document bodies are described, never copied.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Persistence
    STATE_LOADED = "state_loaded"
    STATE_RECOVERED = "state_recovered"

    # Profiles
    PROFILE_CREATED = "profile_created"
    PROFILE_UPDATED = "profile_updated"
    PROFILE_DELETED = "profile_deleted"
    PROFILE_SWITCHED = "profile_switched"
    BUDGET_SET = "budget_set"

    # Transactions
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"

    # Reminders
    REMINDER_ADDED = "reminder_added"
    REMINDER_TOGGLED = "reminder_toggled"
    REMINDER_DELETED = "reminder_deleted"
    REMINDER_FIRED = "reminder_fired"

    # Categories & settings
    CATEGORY_CHANGED = "category_changed"
    SETTINGS_UPDATED = "settings_updated"

    # Portability
    BACKUP_EXPORTED = "backup_exported"
    RESTORE_APPLIED = "restore_applied"
    RESTORE_REJECTED = "restore_rejected"
    SYNC_CODE_GENERATED = "sync_code_generated"
    SYNC_CODE_IMPORTED = "sync_code_imported"
    SYNC_CODE_REJECTED = "sync_code_rejected"

    # Auth
    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"
    SIGNUP_COMPLETED = "signup_completed"
    PASSWORD_RESET = "password_reset"

    # Advisory
    ADVISORY_REQUESTED = "advisory_requested"
    ADVISORY_FAILED = "advisory_failed"

    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """A single audit event."""

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the event occurred (device local time)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'profile', 'transaction', 'state')"
    )
    entity_id: Optional[str] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entity_changed(AuditEventType.TRANSACTION_ADDED, "transaction", tid)
        event = AuditEventBuilder.import_rejected(AuditEventType.RESTORE_REJECTED, issues)
    """

    @staticmethod
    def state_loaded(source: str, profiles: int, transactions: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_LOADED,
            entity_type="state",
            description=f"State loaded from {source}",
            details={"profiles": profiles, "transactions": transactions},
        )

    @staticmethod
    def state_recovered(reason: str, dropped_keys: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_RECOVERED,
            severity=AuditSeverity.WARNING,
            entity_type="state",
            description="Persisted state was malformed; defaults were used",
            error_message=reason,
            details={"dropped_keys": dropped_keys},
        )

    @staticmethod
    def entity_changed(
        event_type: AuditEventType,
        entity_type: str,
        entity_id: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} {event_type.value.split('_')[-1]}",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def import_applied(
        event_type: AuditEventType,
        profiles: int,
        transactions: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="state",
            description="Imported document replaced the current state",
            details={"profiles": profiles, "transactions": transactions},
            is_user_action=True,
        )

    @staticmethod
    def import_rejected(
        event_type: AuditEventType,
        issues: list[dict],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.WARNING,
            entity_type="state",
            description=f"Import rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def login_failed(reason: str) -> AuditEvent:
        # The email is deliberately not recorded
        return AuditEvent(
            event_type=AuditEventType.LOGIN_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="auth",
            description=f"Login failed: {reason}",
            details={"reason": reason},
            is_user_action=True,
        )

    @staticmethod
    def advisory_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADVISORY_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="advisory",
            description="Advisory service error",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
        )
