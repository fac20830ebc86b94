"""
State Store Package

The single mutable state document, its persistence and its mutation API.
"""

from khata.store.errors import (
    CategoryExistsError,
    CategoryNotFoundError,
    InvalidSettingError,
    ProfileNotFoundError,
    ReminderNotFoundError,
    StoreError,
    TransactionNotFoundError,
)
from khata.store.store import StateStore

__all__ = [
    "StateStore",
    # Exceptions
    "StoreError",
    "CategoryExistsError",
    "CategoryNotFoundError",
    "InvalidSettingError",
    "ProfileNotFoundError",
    "ReminderNotFoundError",
    "TransactionNotFoundError",
]
