"""
Shared fixtures.

Every test runs against an in-memory store and a fixed "today" so date
windows are deterministic. No test touches the network.
"""

from datetime import date
from decimal import Decimal

import pytest

from khata.audit import AuditLogger
from khata.config import AppSettings
from khata.models import TransactionType
from khata.services.storage import InMemoryAuditStorage, InMemoryStorage
from khata.store import StateStore


# A Wednesday; the week started on Sunday 2024-05-12
TODAY = date(2024, 5, 15)


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings()


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def store(storage, audit_logger, app_settings) -> StateStore:
    store = StateStore(storage, audit_logger, settings=app_settings)
    store.load()
    return store


@pytest.fixture
def profile_store(store) -> StateStore:
    """Store with one active profile."""
    store.add_profile("রহিম", email="rahim@example.com")
    return store


@pytest.fixture
def add_expense(profile_store):
    """Shortcut: add an expense to the active profile."""
    def _add(category, amount, on, note=""):
        return profile_store.add_transaction(
            type=TransactionType.EXPENSE,
            category=category,
            amount=Decimal(str(amount)),
            date=on,
            note=note,
        )
    return _add
