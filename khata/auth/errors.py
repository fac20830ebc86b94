"""Auth gate errors. Every failure names a reason the form can show."""

from enum import Enum


class AuthFailure(str, Enum):
    UNKNOWN_EMAIL = "unknown_email"
    WRONG_PASSWORD = "wrong_password"
    PASSWORD_TOO_SHORT = "password_too_short"
    PASSWORDS_MISMATCH = "passwords_mismatch"
    INVALID_EMAIL = "invalid_email"
    EMAIL_TAKEN = "email_taken"
    NAME_REQUIRED = "name_required"
    WRONG_MODE = "wrong_mode"


FAILURE_MESSAGES = {
    AuthFailure.UNKNOWN_EMAIL: "এই ইমেইল দিয়ে কোনো একাউন্ট পাওয়া যায়নি।",
    AuthFailure.WRONG_PASSWORD: "ভুল পাসওয়ার্ড! আবার চেষ্টা করুন।",
    AuthFailure.PASSWORD_TOO_SHORT: "পাসওয়ার্ড কমপক্ষে {min_length} অক্ষরের হতে হবে।",
    AuthFailure.PASSWORDS_MISMATCH: "পাসওয়ার্ড দুটি মিলছে না।",
    AuthFailure.INVALID_EMAIL: "সঠিক ইমেইল দিন।",
    AuthFailure.EMAIL_TAKEN: "এই ইমেইল দিয়ে আগেই একাউন্ট খোলা হয়েছে।",
    AuthFailure.NAME_REQUIRED: "আপনার নাম লিখুন।",
    AuthFailure.WRONG_MODE: "এই ধাপে এই কাজটি করা যাবে না।",
}


class AuthError(Exception):
    """A rejected gate submission. The gate stays where it was."""

    def __init__(self, reason: AuthFailure, min_length: int = 6):
        self.reason = reason
        self.message = FAILURE_MESSAGES[reason].format(min_length=min_length)
        super().__init__(self.message)
