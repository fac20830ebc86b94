"""
Data Models Package

This package contains all Pydantic models used in Khoroch Khata.
The state document and everything imported into it must conform to these schemas.
"""

from khata.models.state import (
    QUICK_PAYMENT_CATEGORIES,
    Amount,
    AppState,
    Category,
    CategorySet,
    CurrencyConfig,
    CurrencyPosition,
    DateFilterType,
    DateRange,
    NotificationSettings,
    NotificationSounds,
    PaymentMethod,
    Profile,
    Reminder,
    SoundKind,
    Theme,
    Transaction,
    TransactionType,
    default_categories,
    default_state,
    generate_id,
)
from khata.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from khata.models.validation import ValidationIssue, ValidationResult

__all__ = [
    # State models
    "QUICK_PAYMENT_CATEGORIES",
    "Amount",
    "AppState",
    "Category",
    "CategorySet",
    "CurrencyConfig",
    "CurrencyPosition",
    "DateFilterType",
    "DateRange",
    "NotificationSettings",
    "NotificationSounds",
    "PaymentMethod",
    "Profile",
    "Reminder",
    "SoundKind",
    "Theme",
    "Transaction",
    "TransactionType",
    "default_categories",
    "default_state",
    "generate_id",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
]
