"""
Main Orchestrator for Khoroch Khata

This module ties together all the components and defines the flows the
screens use:
1. Dashboard (active profile + date range -> totals, breakdown, budgets)
2. Transaction entry (note typing -> smart lookup -> save)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Only the store writes the state document
- Every view is computed from the current snapshot, never cached
- Every accepted change is audited (inside the store)

The UI (app/main.py) only renders what these flows return.
"""

from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional

import structlog
from pydantic import BaseModel, Field

from khata.agents import AdvisoryService
from khata.audit import AuditLogger
from khata.auth import AuthGate
from khata.config import get_settings
from khata.derive import (
    BudgetProgress,
    CategoryTotal,
    Totals,
    budget_progress,
    category_breakdown,
    compute_totals,
    current_month_expenses,
    filter_by_profile_and_range,
)
from khata.models.state import (
    DateRange,
    Reminder,
    Transaction,
    TransactionType,
)
from khata.portability import PortabilityService
from khata.reminders import ReminderScheduler
from khata.services.storage import (
    InMemoryAuditStorage,
    InMemoryStorage,
    JsonFileStorage,
    StateStorageInterface,
)
from khata.store import StateStore
from khata.suggest import SmartLookup


logger = structlog.get_logger(__name__)


class DashboardSummary(BaseModel):
    """Everything the dashboard renders for one profile and range."""

    transactions: list[Transaction] = Field(default_factory=list)
    totals: Totals = Field(default_factory=Totals)
    breakdown: list[CategoryTotal] = Field(default_factory=list)
    budgets: list[BudgetProgress] = Field(default_factory=list)


class DashboardFlow:
    """Read-only views of the active profile."""

    def __init__(self, store: StateStore):
        self._store = store

    def transactions(
        self,
        date_range: DateRange,
        today: Optional[date] = None,
    ) -> list[Transaction]:
        state = self._store.state
        return filter_by_profile_and_range(
            state.transactions, state.active_profile_id, date_range, today,
        )

    def summarize(
        self,
        date_range: DateRange,
        today: Optional[date] = None,
    ) -> DashboardSummary:
        """
        Totals and breakdown follow the selected range; budget progress
        always uses the current calendar month.
        """
        state = self._store.state
        profile = state.active_profile
        if profile is None:
            return DashboardSummary()

        in_range = self.transactions(date_range, today)
        month = current_month_expenses(state.transactions, profile.id, today)
        return DashboardSummary(
            transactions=in_range,
            totals=compute_totals(in_range),
            breakdown=category_breakdown(in_range),
            budgets=budget_progress(profile, month),
        )


class TransactionFlow:
    """
    Transaction entry with smart lookup.

    Flow:
    1. start_entry -> SmartLookup bound to the active profile's history
    2. UI feeds note changes into the lookup
    3. save_entry -> store.add_transaction (or update when editing)
    """

    def __init__(self, store: StateStore):
        self._store = store

    def start_entry(
        self,
        type: TransactionType = TransactionType.EXPENSE,
        category: str = "",
    ) -> SmartLookup:
        state = self._store.state
        history = state.profile_transactions(state.active_profile_id)
        return SmartLookup(history, state.categories, type=type, category=category)

    def quick_payment(self, category: str) -> SmartLookup:
        """Entry form pre-filled with one of the dashboard shortcut categories."""
        return self.start_entry(TransactionType.EXPENSE, category=category)

    def save_entry(
        self,
        lookup: SmartLookup,
        amount: Decimal | int | float | str,
        on: date,
        transaction_id: Optional[str] = None,
    ) -> Transaction:
        """Persist the form. Requires a category."""
        if not lookup.category:
            raise ValueError("A category is required")

        if transaction_id is None:
            return self._store.add_transaction(
                type=lookup.type,
                category=lookup.category,
                amount=amount,
                date=on,
                note=lookup.note,
                payment_method=lookup.payment_method,
            )
        return self._store.update_transaction(
            transaction_id,
            type=lookup.type,
            category=lookup.category,
            amount=Decimal(str(amount)),
            date=on,
            note=lookup.note,
            payment_method=lookup.payment_method,
        )


def log_notifier(reminder: Reminder, sound: Optional[str]) -> None:
    """Default reminder notifier: a log line. The UI swaps in its own."""
    logger.info(
        "reminder_due",
        reminder_id=reminder.id,
        task=reminder.task,
        custom_sound=sound is not None,
    )


class KhataComponents:
    """
    Everything the app needs, wired to one store.

    The store, storage and services are shared. Login state is not: each
    UI session asks for its own gate with `new_auth_gate()`.
    """

    def __init__(
        self,
        storage: StateStorageInterface,
        audit_logger: AuditLogger,
        store: StateStore,
        portability: PortabilityService,
        advisory: AdvisoryService,
        reminders: ReminderScheduler,
    ):
        self.storage = storage
        self.audit_logger = audit_logger
        self.store = store
        self.portability = portability
        self.advisory = advisory
        self.reminders = reminders
        self.dashboard = DashboardFlow(store)
        self.transactions = TransactionFlow(store)

    def new_auth_gate(self) -> AuthGate:
        return AuthGate(self.store, self.portability, self.audit_logger)

    def sweep_reminders(
        self,
        gate: AuthGate,
        now: Optional[datetime] = None,
    ) -> list[Reminder]:
        """One reminder sweep. Nothing fires while the session is logged out."""
        if not gate.is_logged_in:
            return []
        return self.reminders.check(now)


def create_app_components(
    data_dir: Optional[str | Path] = None,
    in_memory: bool = False,
) -> KhataComponents:
    """
    Factory function to create all application components.

    Args:
        data_dir: Directory of the state document. Defaults to the
                  configured KHATA_STORAGE_DATA_DIR.
        in_memory: Keep the state in memory only (tests, demos).

    Returns:
        KhataComponents with the store already loaded
    """
    settings = get_settings()
    audit_logger = AuditLogger(InMemoryAuditStorage())

    if in_memory:
        storage: StateStorageInterface = InMemoryStorage()
    else:
        storage_settings = settings.storage
        path = (
            Path(data_dir) / storage_settings.state_file_name
            if data_dir else storage_settings.state_path
        )
        directory = path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            storage = JsonFileStorage(path)
        except OSError as e:
            # Data directory not writable - continue in memory
            audit_logger.log_error(
                "storage_unavailable", str(e), {"directory": str(directory)},
            )
            storage = InMemoryStorage()

    store = StateStore(storage, audit_logger)
    store.load()

    portability = PortabilityService(store, audit_logger)

    return KhataComponents(
        storage=storage,
        audit_logger=audit_logger,
        store=store,
        portability=portability,
        advisory=AdvisoryService(audit_logger=audit_logger),
        reminders=ReminderScheduler(store, log_notifier, audit_logger=audit_logger),
    )
