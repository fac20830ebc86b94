"""
Profile & Auth Gate Package

The login / signup / recovery flow and the credential helpers it uses.
"""

from khata.auth.credentials import (
    check_password_length,
    hash_password,
    is_valid_email,
    verify_password,
)
from khata.auth.errors import AuthError, AuthFailure
from khata.auth.gate import AuthGate, AuthMode

__all__ = [
    "AuthGate",
    "AuthMode",
    # Exceptions
    "AuthError",
    "AuthFailure",
    # Credentials
    "check_password_length",
    "hash_password",
    "is_valid_email",
    "verify_password",
]
