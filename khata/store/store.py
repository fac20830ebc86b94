"""
State Store

The single authoritative state document and its only mutation entry point.

DESIGN DECISION: Every change goes through `mutate(fn)`:
1. fn receives a deep copy of the current document
2. The result is re-validated as a whole (invariants included)
3. The full document is persisted
4. Only then does the store swap to the new document

If any step raises, the store keeps the previous document. After `mutate`
returns, the new document is durable.

There is exactly one writer. The store does no locking; callers are
expected to run mutations one after another, as the UI does.
"""

import base64
import json
import re
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Optional

from khata.audit import AuditLogger
from khata.config import AppSettings, get_settings
from khata.models.audit import AuditEventType
from khata.models.state import (
    AppState,
    Category,
    CurrencyConfig,
    CurrencyPosition,
    PaymentMethod,
    Profile,
    Reminder,
    SoundKind,
    Theme,
    Transaction,
    TransactionType,
    default_state,
)
from khata.services.storage import StateStorageInterface, StorageReadError
from khata.store.errors import (
    CategoryExistsError,
    CategoryNotFoundError,
    InvalidSettingError,
    ProfileNotFoundError,
    ReminderNotFoundError,
    TransactionNotFoundError,
)
from khata.validation import StateValidator


Mutation = Callable[[AppState], Optional[AppState]]

_PROFILE_FIELDS = frozenset({"name", "avatar", "image", "color"})
_TRANSACTION_FIELDS = frozenset(
    {"type", "category", "amount", "date", "note", "payment_method"}
)
_NOTIFICATION_FLAGS = frozenset(
    {"enable_daily_summary", "enable_budget_alerts", "enable_reminders"}
)
_RGB_PATTERN = re.compile(r"^\s*\d{1,3}\s*,\s*\d{1,3}\s*,\s*\d{1,3}\s*$")


def _flag_name(key: str) -> str:
    """Accept both enableReminders and enable_reminders."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def _data_url_size(data_url: str) -> int:
    """Decoded byte size of a base64 data URL (or of raw text otherwise)."""
    header, sep, payload = data_url.partition(",")
    if sep and header.endswith(";base64"):
        try:
            return len(base64.b64decode(payload, validate=False))
        except ValueError:
            return len(payload)
    return len(data_url.encode("utf-8"))


class StateStore:
    """
    Container for the state document.

    The `state` property is a snapshot: treat it as read-only. Mutations
    produce a new document, so snapshots handed out earlier never change.
    """

    def __init__(
        self,
        storage: StateStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[StateValidator] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._storage = storage
        self._audit = audit_logger or AuditLogger()
        self._validator = validator or StateValidator()
        self._settings = settings or get_settings().app
        self._state = default_state()

    @property
    def state(self) -> AppState:
        return self._state

    @property
    def storage(self) -> StateStorageInterface:
        return self._storage

    # =========================================================================
    # LOAD / PERSIST
    # =========================================================================

    def load(self) -> AppState:
        """
        Read the persisted document.

        Never raises for bad content. An absent, unreadable or non-JSON
        document gives the default state. A JSON object keeps every
        top-level key that validates; the rest fall back to defaults.
        """
        try:
            text = self._storage.read()
        except StorageReadError as e:
            self._audit.log_state_recovered(str(e), ["$"])
            self._state = default_state()
            return self._state

        if text is None:
            self._state = default_state()
            self._audit.log_state_loaded("defaults", 0, 0)
            return self._state

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            self._audit.log_state_recovered(f"Not valid JSON: {e}", ["$"])
            self._state = default_state()
            return self._state

        state, issues = self._validator.recover(data)
        if issues:
            dropped = sorted({issue.field.split(".")[0] for issue in issues})
            self._audit.log_state_recovered(
                "; ".join(f"{i.field}: {i.message}" for i in issues[:5]),
                dropped,
            )

        self._state = state
        self._audit.log_state_loaded(
            self._storage.description,
            len(state.profiles),
            len(state.transactions),
        )
        return self._state

    def _persist(self, state: AppState) -> None:
        self._storage.write(state.to_json())

    def mutate(self, fn: Mutation) -> AppState:
        """
        Apply fn to a deep copy of the document, validate, persist, swap.

        fn may edit the copy in place (returning None) or return a new
        AppState. Exceptions from fn propagate and leave the store as it was.
        """
        draft = self._state.model_copy(deep=True)
        result = fn(draft)
        candidate = draft if result is None else result

        new_state = AppState.model_validate(candidate.model_dump())
        self._persist(new_state)
        self._state = new_state
        return new_state

    def replace(self, new_state: AppState) -> AppState:
        """Wholesale replacement, used by restore and sync-code import."""
        return self.mutate(lambda _: new_state)

    # =========================================================================
    # PROFILES
    # =========================================================================

    @property
    def active_profile(self) -> Optional[Profile]:
        return self._state.active_profile

    def _require_active_id(self) -> str:
        if not self._state.active_profile_id:
            raise ProfileNotFoundError("No active profile")
        return self._state.active_profile_id

    def add_profile(
        self,
        name: str,
        avatar: Optional[str] = "😊",
        image: Optional[str] = None,
        color: Optional[str] = None,
        email: Optional[str] = None,
        password: Optional[str] = None,
    ) -> Profile:
        """Create a profile and make it the active one."""
        profile = Profile(
            name=name.strip(),
            avatar=avatar,
            image=image,
            color=color or self._state.accent_color,
            email=email.strip() if email else None,
            password=password,
        )

        def apply(state: AppState) -> None:
            state.profiles.append(profile)
            state.active_profile_id = profile.id

        self.mutate(apply)
        self._audit.log_change(
            AuditEventType.PROFILE_CREATED, "profile", profile.id,
        )
        return profile

    def update_profile(self, profile_id: str, **changes: Any) -> Profile:
        """Update display fields (name, avatar, image, color) of a profile."""
        unknown = set(changes) - _PROFILE_FIELDS
        if unknown:
            raise InvalidSettingError(f"Cannot update profile fields: {sorted(unknown)}")
        if self._state.get_profile(profile_id) is None:
            raise ProfileNotFoundError(profile_id)

        def apply(state: AppState) -> None:
            profile = state.get_profile(profile_id)
            for key, value in changes.items():
                setattr(profile, key, value)

        new_state = self.mutate(apply)
        self._audit.log_change(
            AuditEventType.PROFILE_UPDATED, "profile", profile_id,
            {"fields": sorted(changes)},
        )
        return new_state.get_profile(profile_id)

    def delete_profile(self, profile_id: str) -> None:
        """
        Remove a profile together with its transactions and reminders.

        If it was active, the first remaining profile becomes active.
        """
        if self._state.get_profile(profile_id) is None:
            raise ProfileNotFoundError(profile_id)

        def apply(state: AppState) -> None:
            state.profiles = [p for p in state.profiles if p.id != profile_id]
            state.transactions = [
                t for t in state.transactions if t.profile_id != profile_id
            ]
            state.reminders = [
                r for r in state.reminders if r.profile_id != profile_id
            ]
            if state.active_profile_id == profile_id:
                state.active_profile_id = (
                    state.profiles[0].id if state.profiles else ""
                )

        self.mutate(apply)
        self._audit.log_change(
            AuditEventType.PROFILE_DELETED, "profile", profile_id,
        )

    def switch_profile(self, profile_id: str) -> Profile:
        if self._state.get_profile(profile_id) is None:
            raise ProfileNotFoundError(profile_id)

        def apply(state: AppState) -> None:
            state.active_profile_id = profile_id

        new_state = self.mutate(apply)
        self._audit.log_change(
            AuditEventType.PROFILE_SWITCHED, "profile", profile_id,
        )
        return new_state.active_profile

    def set_budget(self, category: str, amount: Decimal | int | float | str) -> None:
        """
        Set the monthly limit for a category on the active profile.

        A zero limit removes the budget.
        """
        active_id = self._require_active_id()
        limit = Decimal(str(amount))
        if limit < 0:
            raise InvalidSettingError("Budget limit cannot be negative")

        def apply(state: AppState) -> None:
            profile = state.get_profile(active_id)
            if limit == 0:
                profile.budgets.pop(category, None)
            else:
                profile.budgets[category] = limit

        self.mutate(apply)
        self._audit.log_change(
            AuditEventType.BUDGET_SET, "profile", active_id,
            {"category": category, "limit": str(limit)},
        )

    def reset_password(self, email: str, new_password: str) -> Profile:
        """
        Overwrite the credential of the profile registered under email.

        new_password is stored as given; the auth gate hashes it first.
        """
        match = self._state.find_profile_by_email(email)
        if match is None:
            raise ProfileNotFoundError(f"No profile registered for {email}")

        def apply(state: AppState) -> None:
            state.get_profile(match.id).password = new_password

        new_state = self.mutate(apply)
        self._audit.log_change(
            AuditEventType.PASSWORD_RESET, "profile", match.id,
        )
        return new_state.get_profile(match.id)

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def add_transaction(
        self,
        type: TransactionType,
        category: str,
        amount: Decimal | int | float | str,
        date: date,
        note: str = "",
        payment_method: PaymentMethod = PaymentMethod.CASH,
    ) -> Transaction:
        """Record a transaction for the active profile. Newest first."""
        transaction = Transaction(
            profile_id=self._require_active_id(),
            type=type,
            category=category,
            amount=Decimal(str(amount)),
            date=date,
            note=note,
            payment_method=payment_method,
        )

        def apply(state: AppState) -> None:
            state.transactions.insert(0, transaction)

        self.mutate(apply)
        self._audit.log_change(
            AuditEventType.TRANSACTION_ADDED, "transaction", transaction.id,
            {"type": transaction.type.value, "category": category},
        )
        return transaction

    def update_transaction(self, transaction_id: str, **changes: Any) -> Transaction:
        """Replace fields of a transaction. id and profile are preserved."""
        unknown = set(changes) - _TRANSACTION_FIELDS
        if unknown:
            raise InvalidSettingError(f"Cannot update transaction fields: {sorted(unknown)}")
        if not any(t.id == transaction_id for t in self._state.transactions):
            raise TransactionNotFoundError(transaction_id)

        def apply(state: AppState) -> None:
            for index, existing in enumerate(state.transactions):
                if existing.id == transaction_id:
                    data = existing.model_dump()
                    data.update(changes)
                    state.transactions[index] = Transaction.model_validate(data)
                    break

        new_state = self.mutate(apply)
        self._audit.log_change(
            AuditEventType.TRANSACTION_UPDATED, "transaction", transaction_id,
            {"fields": sorted(changes)},
        )
        return next(t for t in new_state.transactions if t.id == transaction_id)

    def delete_transaction(self, transaction_id: str) -> None:
        if not any(t.id == transaction_id for t in self._state.transactions):
            raise TransactionNotFoundError(transaction_id)

        def apply(state: AppState) -> None:
            state.transactions = [
                t for t in state.transactions if t.id != transaction_id
            ]

        self.mutate(apply)
        self._audit.log_change(
            AuditEventType.TRANSACTION_DELETED, "transaction", transaction_id,
        )

    # =========================================================================
    # REMINDERS
    # =========================================================================

    def add_reminder(
        self,
        task: str,
        date: date,
        remind_time: Optional[str] = None,
    ) -> Reminder:
        reminder = Reminder(
            profile_id=self._require_active_id(),
            task=task,
            date=date,
            remind_time=remind_time or None,
        )

        def apply(state: AppState) -> None:
            state.reminders.append(reminder)

        self.mutate(apply)
        self._audit.log_change(
            AuditEventType.REMINDER_ADDED, "reminder", reminder.id,
        )
        return reminder

    def toggle_reminder(self, reminder_id: str) -> Reminder:
        if not any(r.id == reminder_id for r in self._state.reminders):
            raise ReminderNotFoundError(reminder_id)

        def apply(state: AppState) -> None:
            for reminder in state.reminders:
                if reminder.id == reminder_id:
                    reminder.is_completed = not reminder.is_completed

        new_state = self.mutate(apply)
        toggled = next(r for r in new_state.reminders if r.id == reminder_id)
        self._audit.log_change(
            AuditEventType.REMINDER_TOGGLED, "reminder", reminder_id,
            {"is_completed": toggled.is_completed},
        )
        return toggled

    def delete_reminder(self, reminder_id: str) -> None:
        if not any(r.id == reminder_id for r in self._state.reminders):
            raise ReminderNotFoundError(reminder_id)

        def apply(state: AppState) -> None:
            state.reminders = [r for r in state.reminders if r.id != reminder_id]

        self.mutate(apply)
        self._audit.log_change(
            AuditEventType.REMINDER_DELETED, "reminder", reminder_id,
        )

    # =========================================================================
    # CATEGORIES
    # =========================================================================
    # Categories are matched to transactions by name only. None of these
    # operations touch existing transactions.

    def _find_category(
        self,
        kind: TransactionType,
        name: str,
    ) -> Optional[Category]:
        return next(
            (c for c in self._state.categories.for_type(kind) if c.name == name),
            None,
        )

    def _name_taken(
        self,
        kind: TransactionType,
        name: str,
        ignore: Optional[str] = None,
    ) -> bool:
        wanted = name.strip().lower()
        return any(
            c.name.strip().lower() == wanted
            for c in self._state.categories.for_type(kind)
            if c.name != ignore
        )

    def add_category(
        self,
        kind: TransactionType,
        name: str,
        icon: str = "fa-tag",
    ) -> Category:
        name = name.strip()
        if not name:
            raise InvalidSettingError("Category name is required")
        if self._name_taken(kind, name):
            raise CategoryExistsError(name)

        category = Category(name=name, icon=icon)

        def apply(state: AppState) -> None:
            state.categories.for_type(kind).append(category)

        self.mutate(apply)
        self._audit.log_change(
            AuditEventType.CATEGORY_CHANGED, "category", name,
            {"action": "added", "type": kind.value},
        )
        return category

    def update_category(
        self,
        kind: TransactionType,
        old_name: str,
        name: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> Category:
        """Rename and/or re-icon a category."""
        if self._find_category(kind, old_name) is None:
            raise CategoryNotFoundError(old_name)

        new_name = old_name if name is None else name.strip()
        if not new_name:
            raise InvalidSettingError("Category name is required")
        if self._name_taken(kind, new_name, ignore=old_name):
            raise CategoryExistsError(new_name)

        def apply(state: AppState) -> None:
            for category in state.categories.for_type(kind):
                if category.name == old_name:
                    category.name = new_name
                    if icon is not None:
                        category.icon = icon

        self.mutate(apply)
        self._audit.log_change(
            AuditEventType.CATEGORY_CHANGED, "category", new_name,
            {"action": "updated", "type": kind.value, "old_name": old_name},
        )
        return self._find_category(kind, new_name)

    def delete_category(self, kind: TransactionType, name: str) -> None:
        if self._find_category(kind, name) is None:
            raise CategoryNotFoundError(name)

        def apply(state: AppState) -> None:
            categories = state.categories.for_type(kind)
            categories[:] = [c for c in categories if c.name != name]

        self.mutate(apply)
        self._audit.log_change(
            AuditEventType.CATEGORY_CHANGED, "category", name,
            {"action": "deleted", "type": kind.value},
        )

    # =========================================================================
    # SETTINGS
    # =========================================================================

    def _settings_changed(self, details: dict) -> None:
        self._audit.log_change(
            AuditEventType.SETTINGS_UPDATED, "settings", None, details,
        )

    def set_currency(
        self,
        symbol: str,
        position: Optional[CurrencyPosition] = None,
    ) -> CurrencyConfig:
        if not symbol or not symbol.strip():
            raise InvalidSettingError("Currency symbol is required")
        currency = CurrencyConfig(
            symbol=symbol.strip(),
            position=position or self._state.currency.position,
        )

        def apply(state: AppState) -> None:
            state.currency = currency

        self.mutate(apply)
        self._settings_changed({"currency": currency.symbol})
        return currency

    def set_theme(self, theme: Theme) -> None:
        def apply(state: AppState) -> None:
            state.theme = theme

        self.mutate(apply)
        self._settings_changed({"theme": theme.value})

    def toggle_theme(self) -> Theme:
        theme = Theme.LIGHT if self._state.theme == Theme.DARK else Theme.DARK
        self.set_theme(theme)
        return theme

    def set_accent_color(self, color: str) -> None:
        """Accent is an 'r, g, b' triple."""
        if not _RGB_PATTERN.match(color) or any(
            int(part) > 255 for part in color.split(",")
        ):
            raise InvalidSettingError(f"Invalid accent color: {color}")

        def apply(state: AppState) -> None:
            state.accent_color = color

        self.mutate(apply)
        self._settings_changed({"accent_color": color})

    def set_notification_settings(self, **flags: bool) -> None:
        """Set any of enable_daily_summary, enable_budget_alerts, enable_reminders."""
        normalized = {_flag_name(k): bool(v) for k, v in flags.items()}
        unknown = set(normalized) - _NOTIFICATION_FLAGS
        if unknown:
            raise InvalidSettingError(f"Unknown notification settings: {sorted(unknown)}")

        def apply(state: AppState) -> None:
            for key, value in normalized.items():
                setattr(state.notification_settings, key, value)

        self.mutate(apply)
        self._settings_changed({"notifications": normalized})

    def toggle_notification_preference(self, key: str) -> bool:
        name = _flag_name(key)
        if name not in _NOTIFICATION_FLAGS:
            raise InvalidSettingError(f"Unknown notification setting: {key}")
        value = not getattr(self._state.notification_settings, name)
        self.set_notification_settings(**{name: value})
        return value

    def set_notification_sound(
        self,
        kind: SoundKind,
        data_url: Optional[str],
    ) -> None:
        """Store a custom sound as a data URL, or clear it with None."""
        if data_url is not None:
            size = _data_url_size(data_url)
            if size > self._settings.max_sound_size_bytes:
                raise InvalidSettingError(
                    f"Sound file too large ({size} bytes, "
                    f"limit {self._settings.max_sound_size_bytes})"
                )

        def apply(state: AppState) -> None:
            setattr(state.notification_settings.sounds, kind.value, data_url)

        self.mutate(apply)
        self._settings_changed({"sound": kind.value, "cleared": data_url is None})
