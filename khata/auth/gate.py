"""
Profile & Auth Gate

The screen flow in front of the app, modelled as a small state machine.

    logged_out --choose--> login | signup | recovery
    login     --submit_login--> logged_in
    signup    step 1 credentials -> 2 name -> 3 avatar -> 4 currency -> logged_in
    recovery  step 1 email -> 2 new password -> login (with success message)

DESIGN DECISION: A rejected submission raises AuthError AND records it in
`last_error`, leaving mode and step unchanged so the form stays editable.
Every successful submission clears `last_error`.

The gate is the only component besides the UI dispatcher that writes to
the store: it creates the signup profile, switches the active profile on
login, and overwrites credentials on recovery.
"""

from enum import Enum
from typing import Optional

from khata.audit import AuditLogger
from khata.auth.credentials import (
    check_password_length,
    hash_password,
    is_hashed,
    is_valid_email,
    verify_password,
)
from khata.auth.errors import AuthError, AuthFailure
from khata.config import AppSettings, get_settings
from khata.models.audit import AuditEventType
from khata.models.state import AppState, Profile
from khata.portability import PortabilityService
from khata.store import StateStore


SYNC_SUCCESS_MESSAGE = "সফলভাবে আপনার সব একাউন্টের ডাটা সিঙ্ক হয়েছে!"
RESET_SUCCESS_MESSAGE = "পাসওয়ার্ড পরিবর্তন হয়েছে। এখন লগইন করুন।"

SIGNUP_LAST_STEP = 4
DEFAULT_AVATAR = "😊"


class AuthMode(str, Enum):
    LOGGED_OUT = "logged_out"
    LOGIN = "login"
    SIGNUP = "signup"
    RECOVERY = "recovery"
    LOGGED_IN = "logged_in"


class AuthGate:
    """Drives the login / signup / recovery screens."""

    def __init__(
        self,
        store: StateStore,
        portability: Optional[PortabilityService] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._store = store
        self._audit = audit_logger or AuditLogger()
        self._portability = portability or PortabilityService(store, self._audit)
        self._settings = settings or get_settings().app

        self.mode = AuthMode.LOGGED_OUT
        self.step = 1
        self.last_error: Optional[AuthError] = None
        self.success_message: Optional[str] = None
        self.profile_id: Optional[str] = None

        # Signup draft
        self._email: Optional[str] = None
        self._password_hash: Optional[str] = None
        self._name: Optional[str] = None
        self._avatar: Optional[str] = DEFAULT_AVATAR
        self._image: Optional[str] = None

        # Recovery draft
        self._recovery_email: Optional[str] = None

    @property
    def is_logged_in(self) -> bool:
        return self.mode == AuthMode.LOGGED_IN

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _fail(self, reason: AuthFailure) -> AuthError:
        error = AuthError(reason, min_length=self._settings.min_password_length)
        self.last_error = error
        return error

    def _ok(self) -> None:
        self.last_error = None

    def _require_mode(self, mode: AuthMode) -> None:
        if self.mode != mode:
            raise self._fail(AuthFailure.WRONG_MODE)

    def _require_step(self, step: int) -> None:
        if self.step != step:
            raise self._fail(AuthFailure.WRONG_MODE)

    def _check_email(self, email: str) -> str:
        if not is_valid_email(email):
            raise self._fail(AuthFailure.INVALID_EMAIL)
        return email.strip()

    def _check_password(self, password: str) -> None:
        if not check_password_length(password, self._settings.min_password_length):
            raise self._fail(AuthFailure.PASSWORD_TOO_SHORT)

    def _find_by_email(self, email: str) -> Optional[Profile]:
        return self._store.state.find_profile_by_email(email)

    def _reset_drafts(self) -> None:
        self._email = None
        self._password_hash = None
        self._name = None
        self._avatar = DEFAULT_AVATAR
        self._image = None
        self._recovery_email = None

    # =========================================================================
    # NAVIGATION
    # =========================================================================

    def choose(self, mode: AuthMode) -> None:
        """Pick login, signup or recovery from the logged-out screen."""
        if mode in (AuthMode.LOGGED_OUT, AuthMode.LOGGED_IN) or self.is_logged_in:
            raise self._fail(AuthFailure.WRONG_MODE)
        self._reset_drafts()
        self.mode = mode
        self.step = 1
        self.success_message = None
        self._ok()

    def back(self) -> None:
        """One step back, or out to the logged-out screen from step 1."""
        if self.is_logged_in:
            raise self._fail(AuthFailure.WRONG_MODE)
        if self.step > 1:
            self.step -= 1
        else:
            self._reset_drafts()
            self.mode = AuthMode.LOGGED_OUT
        self._ok()

    def logout(self) -> None:
        self._reset_drafts()
        self.mode = AuthMode.LOGGED_OUT
        self.step = 1
        self.profile_id = None
        self.success_message = None
        self._ok()

    def _enter(self, profile_id: str) -> None:
        self._reset_drafts()
        self.mode = AuthMode.LOGGED_IN
        self.step = 1
        self.profile_id = profile_id
        self.success_message = None
        self._ok()

    # =========================================================================
    # LOGIN
    # =========================================================================

    def submit_login(self, email: str, password: str) -> Profile:
        self._require_mode(AuthMode.LOGIN)
        self._check_email(email)

        profile = self._find_by_email(email)
        if profile is None:
            self._audit.log_login_failed(AuthFailure.UNKNOWN_EMAIL.value)
            raise self._fail(AuthFailure.UNKNOWN_EMAIL)

        if not verify_password(password, profile.password):
            self._audit.log_login_failed(AuthFailure.WRONG_PASSWORD.value)
            raise self._fail(AuthFailure.WRONG_PASSWORD)

        if not is_hashed(profile.password):
            # Plaintext from an old backup; store it hashed from now on
            self._store.reset_password(profile.email, hash_password(password))

        self._store.switch_profile(profile.id)
        self._audit.log_change(
            AuditEventType.LOGIN_SUCCEEDED, "profile", profile.id,
        )
        self._enter(profile.id)
        return self._store.state.get_profile(profile.id)

    # =========================================================================
    # SIGNUP
    # =========================================================================

    def submit_signup(self, email: str, password: str) -> None:
        """Step 1: credentials."""
        self._require_mode(AuthMode.SIGNUP)
        self._require_step(1)
        email = self._check_email(email)
        if self._find_by_email(email) is not None:
            raise self._fail(AuthFailure.EMAIL_TAKEN)
        self._check_password(password)

        self._email = email
        self._password_hash = hash_password(password)
        self.step = 2
        self._ok()

    def submit_name(self, name: str) -> None:
        """Step 2: display name."""
        self._require_mode(AuthMode.SIGNUP)
        self._require_step(2)
        if not name or not name.strip():
            raise self._fail(AuthFailure.NAME_REQUIRED)

        self._name = name.strip()
        self.step = 3
        self._ok()

    def submit_avatar(self, avatar: Optional[str], image: Optional[str] = None) -> None:
        """Step 3: emoji avatar, or an uploaded picture as a data URL."""
        self._require_mode(AuthMode.SIGNUP)
        self._require_step(3)

        self._avatar = avatar or DEFAULT_AVATAR
        self._image = image
        self.step = 4
        self._ok()

    def submit_currency(self, symbol: str) -> Profile:
        """Step 4: currency. Creates the profile and logs in."""
        self._require_mode(AuthMode.SIGNUP)
        self._require_step(SIGNUP_LAST_STEP)

        # Someone may have restored a backup with this email meanwhile
        if self._find_by_email(self._email) is not None:
            raise self._fail(AuthFailure.EMAIL_TAKEN)

        profile = self._store.add_profile(
            name=self._name,
            avatar=self._avatar,
            image=self._image,
            email=self._email,
            password=self._password_hash,
        )
        self._store.set_currency(symbol)
        self._audit.log_change(
            AuditEventType.SIGNUP_COMPLETED, "profile", profile.id,
        )
        self._enter(profile.id)
        return profile

    # =========================================================================
    # RECOVERY
    # =========================================================================

    def submit_recovery_email(self, email: str) -> None:
        self._require_mode(AuthMode.RECOVERY)
        self._require_step(1)
        self._check_email(email)
        profile = self._find_by_email(email)
        if profile is None:
            raise self._fail(AuthFailure.UNKNOWN_EMAIL)

        self._recovery_email = profile.email
        self.step = 2
        self._ok()

    def submit_new_password(self, password: str, confirm: str) -> None:
        """Overwrite the credential, then return to the login screen."""
        self._require_mode(AuthMode.RECOVERY)
        self._require_step(2)
        self._check_password(password)
        if password != confirm:
            raise self._fail(AuthFailure.PASSWORDS_MISMATCH)

        self._store.reset_password(self._recovery_email, hash_password(password))
        self._reset_drafts()
        self.mode = AuthMode.LOGIN
        self.step = 1
        self.success_message = RESET_SUCCESS_MESSAGE
        self._ok()

    # =========================================================================
    # SYNC CODE
    # =========================================================================

    def import_sync_code(self, code: str) -> AppState:
        """
        Pull another device's state in from the logged-out screen.

        Raises InvalidSyncCodeError (state unchanged) for a bad code.
        The user still logs in afterwards.
        """
        if self.is_logged_in:
            raise self._fail(AuthFailure.WRONG_MODE)
        state = self._portability.import_sync_code(code)
        self.success_message = SYNC_SUCCESS_MESSAGE
        self._ok()
        return state
