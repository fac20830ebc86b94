"""
State Store Errors

Every store error is raised BEFORE the document is touched, so catching
one means the state is exactly what it was before the call.
"""


class StoreError(Exception):
    """Base exception for rejected store operations."""
    pass


class ProfileNotFoundError(StoreError):
    """No profile with the given id (or no active profile at all)."""
    pass


class TransactionNotFoundError(StoreError):
    pass


class ReminderNotFoundError(StoreError):
    pass


class CategoryExistsError(StoreError):
    """A category with the same name (case-insensitive) already exists."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Category already exists: {name}")


class CategoryNotFoundError(StoreError):
    pass


class InvalidSettingError(StoreError):
    """A settings or field update was outside what the store accepts."""
    pass
