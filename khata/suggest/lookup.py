"""
Smart Categorization

Suggests a category (and sometimes a whole entry) while the user types the
note of a new transaction.

DESIGN DECISION: Two independent passes, both limited to the transaction
type currently selected in the form:

1. HISTORICAL MATCH: the first past transaction (stored order) whose note
   contains the typed text. Offered as a one-click "apply" that copies its
   amount, category, type and payment method.
2. KEYWORD MATCH: the first category in KEYWORD_MAP whose keywords appear
   in the typed text, if that category exists in the user's set.

Both are case-insensitive substring checks. First match wins; there is no
scoring and no randomness, so the same history and note always give the
same suggestion.

The heuristic is advisory. A category the user picked by hand is never
replaced by a keyword match.
"""

import time
from decimal import Decimal
from typing import Callable, Iterable, Optional

from khata.config import get_settings
from khata.models.state import (
    CategorySet,
    PaymentMethod,
    Transaction,
    TransactionType,
)
from khata.suggest.keywords import KEYWORD_MAP


Clock = Callable[[], float]


def find_historical_match(
    transactions: Iterable[Transaction],
    note: str,
    type: TransactionType,
) -> Optional[Transaction]:
    """First transaction of this type whose note contains the typed text."""
    needle = note.strip().lower()
    if not needle:
        return None
    return next(
        (
            t for t in transactions
            if t.type == type and t.note and needle in t.note.lower()
        ),
        None,
    )


def match_keyword_category(
    note: str,
    type: TransactionType,
    categories: CategorySet,
) -> Optional[str]:
    """
    First category in the keyword table hit by the note.

    A hit on a category the user has deleted is skipped and the search
    moves on to the next category.
    """
    text = note.strip().lower()
    if not text:
        return None

    existing = set(categories.names(type))
    for category, keywords in KEYWORD_MAP.get(type, {}).items():
        if category not in existing:
            continue
        if any(keyword.lower() in text for keyword in keywords):
            return category
    return None


class SmartLookup:
    """
    Suggestion state for one open transaction form.

    Holds the in-progress form fields plus the two suggestion states.
    `clock` returns seconds (monotonic); tests inject a fake one.
    """

    def __init__(
        self,
        transactions: list[Transaction],
        categories: CategorySet,
        type: TransactionType = TransactionType.EXPENSE,
        category: str = "",
        hint_seconds: Optional[float] = None,
        clock: Clock = time.monotonic,
    ):
        self._transactions = transactions
        self._categories = categories
        self._clock = clock
        self._hint_seconds = (
            get_settings().app.lookup_hint_seconds
            if hint_seconds is None else hint_seconds
        )

        # Form fields
        self.type = type
        self.category = category
        self.amount: Optional[Decimal] = None
        self.payment_method = PaymentMethod.CASH
        self.note = ""

        # Suggestion state
        self.historical_match: Optional[Transaction] = None
        self._hint_until: Optional[float] = None
        self._category_chosen = bool(category)

    @property
    def show_hint(self) -> bool:
        """True while the 'suggested' badge should be visible."""
        return self._hint_until is not None and self._clock() < self._hint_until

    def choose_category(self, name: str) -> None:
        """A category picked by hand; keyword matches leave it alone."""
        self.category = name
        self._category_chosen = bool(name)
        self._hint_until = None

    def set_type(self, type: TransactionType) -> None:
        """Switching type clears the category, which belongs to the old type."""
        if type == self.type:
            return
        self.type = type
        self.category = ""
        self._category_chosen = False
        self._hint_until = None
        self.on_note_changed(self.note)

    def on_note_changed(self, note: str) -> None:
        self.note = note

        if not note.strip():
            self.historical_match = None
            self._hint_until = None
            return

        self.historical_match = find_historical_match(
            self._transactions, note, self.type,
        )

        if self._category_chosen:
            return

        suggested = match_keyword_category(note, self.type, self._categories)
        if suggested and suggested != self.category:
            self.category = suggested
            self._hint_until = self._clock() + self._hint_seconds

    def apply_historical_match(self) -> bool:
        """Copy the matched entry into the form. Returns False if none."""
        match = self.historical_match
        if match is None:
            return False

        self.amount = match.amount
        self.category = match.category
        self.type = match.type
        self.payment_method = match.payment_method
        self._category_chosen = True
        self.historical_match = None
        return True
