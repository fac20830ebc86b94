"""
Audit Logger

DESIGN DECISION: Every accepted mutation and every rejected import or login
is logged. This provides:
1. Traceability of what changed the state document
2. Debugging capability when a persisted document turns out malformed
3. A history the user can see on the settings page

The audit logger:
- Is synchronous, like the mutation path it observes
- Gracefully handles failures (doesn't crash the app if the sink fails)
"""

import logging
from typing import Optional

import structlog

from khata.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from khata.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(ensure_ascii=False)
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def get_logger(name: Optional[str] = None):
    """Module-level structured logger."""
    return structlog.get_logger(name)


def configure_logging(debug: bool = False) -> None:
    """Route stdlib logging (and therefore structlog) to stderr."""
    logging.basicConfig(
        format="%(message)s",
        level=logging.DEBUG if debug else logging.INFO,
    )


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An optional append-only sink (for the in-app activity view)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Sink for audit events.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("khata.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Appends to the sink if available.

        Returns True if the sink accepted it (or no sink configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_change(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Log an accepted user change to the state document."""
        self.log(AuditEventBuilder.entity_changed(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details,
        ))

    def log_state_loaded(self, source: str, profiles: int, transactions: int) -> None:
        self.log(AuditEventBuilder.state_loaded(source, profiles, transactions))

    def log_state_recovered(self, reason: str, dropped_keys: list[str]) -> None:
        self.log(AuditEventBuilder.state_recovered(reason, dropped_keys))

    def log_import_applied(
        self,
        event_type: AuditEventType,
        profiles: int,
        transactions: int,
    ) -> None:
        self.log(AuditEventBuilder.import_applied(event_type, profiles, transactions))

    def log_import_rejected(self, event_type: AuditEventType, issues: list[dict]) -> None:
        self.log(AuditEventBuilder.import_rejected(event_type, issues))

    def log_login_failed(self, reason: str) -> None:
        self.log(AuditEventBuilder.login_failed(reason))

    def log_advisory_failed(self, error_message: str) -> None:
        self.log(AuditEventBuilder.advisory_failed(error_message))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
        ))
