"""
State Document Models for Khoroch Khata

The whole application state is ONE document (AppState). It is the unit of
persistence, backup export and sync-code transport.

These models are designed to:
1. Enforce the document shape at runtime (imports are untrusted)
2. Serialize to exactly the JSON shape the app has always persisted
   (camelCase keys, YYYY-MM-DD dates, plain numbers for amounts)
3. Read older documents that lack newer optional fields

DESIGN DECISION: Transactions store their category BY NAME, not by
reference. Renaming or deleting a category never touches existing
transactions. This loose coupling is intentional.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


def generate_id() -> str:
    """Fresh opaque identifier for profiles, transactions and reminders."""
    return str(uuid4())


def _amount_to_number(value: Decimal) -> int | float | str:
    """
    Amounts are written as plain JSON numbers.

    A fraction a float cannot hold exactly is written as its decimal string,
    which reads back as the same Decimal.
    """
    if value == value.to_integral_value():
        return int(value)
    as_float = float(value)
    if Decimal(repr(as_float)) == value:
        return as_float
    return str(value)


Amount = Annotated[
    Decimal,
    Field(ge=0),
    PlainSerializer(_amount_to_number, return_type=int | float | str, when_used="json"),
]


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction."""
    INCOME = "income"
    EXPENSE = "expense"


class PaymentMethod(str, Enum):
    """How the money moved."""
    CASH = "Cash"
    BKASH = "bKash"
    NAGAD = "Nagad"
    BANK = "Bank"


class CurrencyPosition(str, Enum):
    """Where the currency symbol goes relative to the number."""
    PREFIX = "prefix"
    SUFFIX = "suffix"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


class DateFilterType(str, Enum):
    """Preset date windows for the dashboard and transaction list."""
    TODAY = "today"
    THIS_WEEK = "this_week"
    THIS_MONTH = "this_month"
    LAST_MONTH = "last_month"
    ALL = "all"
    CUSTOM = "custom"


class SoundKind(str, Enum):
    REMINDER = "reminder"
    BUDGET = "budget"
    SYSTEM = "system"


# =============================================================================
# BASE
# =============================================================================

class KhataModel(BaseModel):
    """
    Base for every model inside the state document.

    Python attributes are snake_case; the document keys are camelCase.
    Either spelling is accepted on input.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# =============================================================================
# ENTITIES
# =============================================================================

class Profile(KhataModel):
    """
    An independent financial identity sharing the device-local store.

    The password is a credential string owned by the auth gate
    (see khata.auth.credentials). Older documents hold it in plaintext.
    """

    id: str = Field(default_factory=generate_id)
    name: str = Field(..., min_length=1, max_length=100)
    avatar: Optional[str] = Field(default=None, description="Emoji avatar")
    image: Optional[str] = Field(
        default=None,
        description="Encoded bitmap (data URL) replacing the avatar"
    )
    email: Optional[str] = None
    password: Optional[str] = None
    color: str = Field(default="99, 102, 241")
    budgets: dict[str, Amount] = Field(
        default_factory=dict,
        description="Category name -> monthly limit"
    )

    @field_validator("budgets", mode="before")
    @classmethod
    def none_budgets_to_empty(cls, v):
        # Older documents may carry an explicit null
        return {} if v is None else v


class Transaction(KhataModel):
    """A single income or expense entry owned by one profile."""

    id: str = Field(default_factory=generate_id)
    profile_id: str
    type: TransactionType
    category: str
    amount: Amount
    date: date
    note: str = ""
    payment_method: PaymentMethod = PaymentMethod.CASH

    @field_validator("note", mode="before")
    @classmethod
    def none_note_to_empty(cls, v):
        return "" if v is None else v


class Reminder(KhataModel):
    """A dated to-do with an optional time of day."""

    id: str = Field(default_factory=generate_id)
    profile_id: str
    task: str = Field(..., min_length=1)
    date: date
    remind_time: Optional[str] = Field(
        default=None,
        pattern=r"^([01]\d|2[0-3]):[0-5]\d$",
        description="HH:mm"
    )
    is_completed: bool = False

    @field_validator("remind_time", mode="before")
    @classmethod
    def blank_time_to_none(cls, v):
        # A cleared time input is saved as ""
        if isinstance(v, str) and not v.strip():
            return None
        return v


class Category(KhataModel):
    """A named category with a display icon token."""

    name: str = Field(..., min_length=1)
    icon: str = "fa-tag"


class CategorySet(KhataModel):
    """The two independent category collections."""

    income: list[Category] = Field(default_factory=list)
    expense: list[Category] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_names(self) -> "CategorySet":
        """Names are unique within their type."""
        for kind in TransactionType:
            names = [c.name for c in self.for_type(kind)]
            if len(names) != len(set(names)):
                raise ValueError(f"Duplicate {kind.value} category names")
        return self

    def for_type(self, kind: TransactionType) -> list[Category]:
        return self.income if kind == TransactionType.INCOME else self.expense

    def names(self, kind: TransactionType) -> list[str]:
        return [c.name for c in self.for_type(kind)]


class CurrencyConfig(KhataModel):
    """Single global formatting rule for amounts."""

    symbol: str = Field(default="৳", min_length=1)
    position: CurrencyPosition = CurrencyPosition.PREFIX


class NotificationSounds(KhataModel):
    """Custom sounds as encoded audio references (data URLs)."""

    reminder: Optional[str] = None
    budget: Optional[str] = None
    system: Optional[str] = None


class NotificationSettings(KhataModel):
    enable_daily_summary: bool = True
    enable_budget_alerts: bool = True
    enable_reminders: bool = True
    sounds: NotificationSounds = Field(default_factory=NotificationSounds)


class DateRange(KhataModel):
    """A preset window, or a custom window with optional bounds."""

    type: DateFilterType = DateFilterType.THIS_MONTH
    start: Optional[date] = None
    end: Optional[date] = None


# =============================================================================
# ROOT AGGREGATE
# =============================================================================

DEFAULT_ACCENT_COLOR = "99, 102, 241"


def default_categories() -> CategorySet:
    """The category sets a fresh install starts with."""
    return CategorySet(
        expense=[
            Category(name="খাদ্য", icon="fa-utensils"),
            Category(name="পরিবহন", icon="fa-bus"),
            Category(name="বাজার", icon="fa-shopping-cart"),
            Category(name="বিল", icon="fa-file-invoice-dollar"),
            Category(name="ডিপিএস পেমেন্ট", icon="fa-piggy-bank"),
            Category(name="লোন পেমেন্ট", icon="fa-hand-holding-dollar"),
            Category(name="বিনোদন", icon="fa-gamepad"),
            Category(name="শিক্ষা", icon="fa-graduation-cap"),
            Category(name="স্বাস্থ্য", icon="fa-heartbeat"),
            Category(name="অন্যান্য", icon="fa-ellipsis"),
        ],
        income=[
            Category(name="বেতন", icon="fa-briefcase"),
            Category(name="বোনাস", icon="fa-gift"),
            Category(name="উপহার", icon="fa-hand-holding-heart"),
            Category(name="বিনিয়োগ", icon="fa-chart-line"),
            Category(name="অন্যান্য", icon="fa-plus-circle"),
        ],
    )


# Shortcut categories offered as one-click payments on the dashboard
QUICK_PAYMENT_CATEGORIES = ("ডিপিএস পেমেন্ট", "লোন পেমেন্ট", "বিল", "বাজার")


class AppState(KhataModel):
    """
    The single authoritative state document.

    INVARIANT: active_profile_id references an existing profile whenever
    profiles is non-empty; it is "" when there are no profiles.
    """

    profiles: list[Profile] = Field(default_factory=list)
    active_profile_id: str = ""
    transactions: list[Transaction] = Field(default_factory=list)
    reminders: list[Reminder] = Field(default_factory=list)
    notification_settings: NotificationSettings = Field(
        default_factory=NotificationSettings
    )
    categories: CategorySet = Field(default_factory=default_categories)
    theme: Theme = Theme.DARK
    accent_color: str = DEFAULT_ACCENT_COLOR
    currency: CurrencyConfig = Field(default_factory=CurrencyConfig)

    @model_validator(mode="after")
    def validate_profiles(self) -> "AppState":
        """
        Unique profile ids and a valid active profile.

        Emails are not checked here: older documents may hold the same
        address in different letter case. New signups are checked by the
        auth gate instead.
        """
        ids = [p.id for p in self.profiles]
        if len(ids) != len(set(ids)):
            raise ValueError("Profile ids must be unique")

        if not self.profiles:
            self.active_profile_id = ""
        elif self.active_profile_id not in ids:
            self.active_profile_id = self.profiles[0].id
        return self

    def get_profile(self, profile_id: str) -> Optional[Profile]:
        return next((p for p in self.profiles if p.id == profile_id), None)

    def find_profile_by_email(self, email: str) -> Optional[Profile]:
        """Exact address first, then a case-insensitive match."""
        wanted = (email or "").strip()
        if not wanted:
            return None
        registered = [p for p in self.profiles if p.email]
        exact = next((p for p in registered if p.email.strip() == wanted), None)
        if exact is not None:
            return exact
        return next(
            (p for p in registered if p.email.strip().lower() == wanted.lower()),
            None,
        )

    @property
    def active_profile(self) -> Optional[Profile]:
        return self.get_profile(self.active_profile_id)

    def profile_transactions(self, profile_id: str) -> list[Transaction]:
        return [t for t in self.transactions if t.profile_id == profile_id]

    def profile_reminders(self, profile_id: str) -> list[Reminder]:
        return [r for r in self.reminders if r.profile_id == profile_id]

    def to_json(self, indent: Optional[int] = None) -> str:
        """
        Serialize to the persisted document shape.

        camelCase keys, unset optionals omitted, non-ASCII kept as is.
        """
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=indent)


def default_state() -> AppState:
    """The well-defined document used when nothing readable is persisted."""
    return AppState()
