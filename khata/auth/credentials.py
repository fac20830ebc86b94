"""
Credential handling for the profile gate.

DESIGN DECISION: The gate is a convenience lock on a shared device, not
real security; the whole document is readable by anyone holding the
device or a backup. Passwords are still stored as salted PBKDF2-SHA256
hashes so a backup file does not leak them as plaintext.

Documents written by older versions hold plaintext passwords. Those are
still accepted by verify_password and upgraded on the next login.
"""

import hashlib
import hmac
import secrets
from typing import Optional


ALGORITHM = "pbkdf2_sha256"
DEFAULT_ITERATIONS = 260_000


def hash_password(
    password: str,
    salt: Optional[str] = None,
    iterations: int = DEFAULT_ITERATIONS,
) -> str:
    """Returns 'pbkdf2_sha256$<iterations>$<salt>$<hex digest>'."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations,
    )
    return f"{ALGORITHM}${iterations}${salt}${digest.hex()}"


def is_hashed(stored: Optional[str]) -> bool:
    return bool(stored) and stored.startswith(f"{ALGORITHM}$")


def verify_password(password: str, stored: Optional[str]) -> bool:
    """Check a password against a stored hash or a legacy plaintext value."""
    if not stored:
        return False

    if not is_hashed(stored):
        return hmac.compare_digest(password.encode("utf-8"), stored.encode("utf-8"))

    try:
        _, iterations, salt, _digest = stored.split("$")
        expected = hash_password(password, salt=salt, iterations=int(iterations))
    except ValueError:
        return False
    return hmac.compare_digest(expected, stored)


def is_valid_email(email: str) -> bool:
    # Deliberately loose: the gate only needs something email-shaped
    return "@" in (email or "").strip()


def check_password_length(password: str, min_length: int = 6) -> bool:
    return len(password or "") >= min_length
