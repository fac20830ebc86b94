"""
Derivation Engine

Pure functions from transactions to the numbers the dashboard shows.

DESIGN DECISION: Nothing here reads the clock or the store. Callers pass
`today` and the transaction list explicitly, so the same inputs always give
the same outputs and tests can pin any date.

All sums stay Decimal; rounding happens only when formatting for display.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from khata.models.state import (
    DateFilterType,
    DateRange,
    Profile,
    Transaction,
    TransactionType,
)


# Friday and Saturday, as Python weekday indices
DEFAULT_WEEKEND_DAYS = frozenset({4, 5})

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


# =============================================================================
# RESULT MODELS
# =============================================================================

class Totals(BaseModel):
    """Income, expense and their difference."""

    income: Decimal = _ZERO
    expense: Decimal = _ZERO
    balance: Decimal = _ZERO


class CategoryTotal(BaseModel):
    category: str
    total: Decimal


class BudgetProgress(BaseModel):
    """Current-month spend against a monthly limit."""

    category: str
    limit: Decimal
    spent: Decimal
    percent: Decimal = Field(
        ...,
        ge=0,
        le=100,
        description="spent / limit * 100, clamped to 100"
    )

    @property
    def is_exceeded(self) -> bool:
        return self.spent > self.limit


class SpendingAnalysis(BaseModel):
    """Aggregate handed to the advisory collaborator."""

    category_totals: dict[str, Decimal] = Field(default_factory=dict)
    weekend_spending: Decimal = _ZERO
    weekday_spending: Decimal = _ZERO
    daily_average: Decimal = _ZERO
    top_category: Optional[str] = None
    top_category_total: Decimal = _ZERO
    total_expenses: Decimal = _ZERO


# =============================================================================
# DATE RANGES
# =============================================================================

def week_start(today: date) -> date:
    """Most recent Sunday at or before today."""
    return today - timedelta(days=(today.weekday() + 1) % 7)


def month_start(today: date) -> date:
    return today.replace(day=1)


def previous_month_bounds(today: date) -> tuple[date, date]:
    last_day = month_start(today) - timedelta(days=1)
    return last_day.replace(day=1), last_day


def resolve_range(
    date_range: DateRange,
    today: date,
) -> tuple[Optional[date], Optional[date]]:
    """
    Turn a preset or custom range into inclusive (start, end) bounds.

    None means open on that side.
    """
    kind = date_range.type

    if kind == DateFilterType.TODAY:
        return today, None
    if kind == DateFilterType.THIS_WEEK:
        return week_start(today), None
    if kind == DateFilterType.THIS_MONTH:
        return month_start(today), None
    if kind == DateFilterType.LAST_MONTH:
        return previous_month_bounds(today)
    if kind == DateFilterType.CUSTOM:
        return date_range.start, date_range.end
    return None, None


def in_bounds(value: date, start: Optional[date], end: Optional[date]) -> bool:
    if start is not None and value < start:
        return False
    if end is not None and value > end:
        return False
    return True


def filter_by_profile_and_range(
    transactions: Iterable[Transaction],
    profile_id: str,
    date_range: DateRange,
    today: Optional[date] = None,
) -> list[Transaction]:
    """Transactions of one profile dated inside the range, in stored order."""
    start, end = resolve_range(date_range, today or date.today())
    return [
        t for t in transactions
        if t.profile_id == profile_id and in_bounds(t.date, start, end)
    ]


# =============================================================================
# AGGREGATES
# =============================================================================

def compute_totals(transactions: Iterable[Transaction]) -> Totals:
    income = _ZERO
    expense = _ZERO
    for t in transactions:
        if t.type == TransactionType.INCOME:
            income += t.amount
        else:
            expense += t.amount
    return Totals(income=income, expense=expense, balance=income - expense)


def _expense_totals(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    """Expense sum per category, keyed in first-seen order."""
    totals: dict[str, Decimal] = {}
    for t in transactions:
        if t.type == TransactionType.EXPENSE:
            totals[t.category] = totals.get(t.category, _ZERO) + t.amount
    return totals


def category_breakdown(transactions: Iterable[Transaction]) -> list[CategoryTotal]:
    """
    Expenses grouped by category, largest first.

    sorted() is stable, so equal totals keep first-seen order.
    """
    totals = _expense_totals(transactions)
    ordered = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [CategoryTotal(category=name, total=total) for name, total in ordered]


def current_month_expenses(
    transactions: Iterable[Transaction],
    profile_id: str,
    today: Optional[date] = None,
) -> list[Transaction]:
    """Expenses of one profile in the calendar month containing today."""
    first = month_start(today or date.today())
    return [
        t for t in transactions
        if t.profile_id == profile_id
        and t.type == TransactionType.EXPENSE
        and t.date.year == first.year
        and t.date.month == first.month
    ]


def budget_progress(
    profile: Profile,
    month_expenses: Iterable[Transaction],
) -> list[BudgetProgress]:
    """
    Progress for every category with a positive limit.

    month_expenses must already be restricted to the current month
    (see current_month_expenses); income rows are ignored.
    """
    spent_by_category = _expense_totals(month_expenses)

    progress = []
    for category, limit in profile.budgets.items():
        if limit <= 0:
            continue
        spent = spent_by_category.get(category, _ZERO)
        percent = min(spent / limit * _HUNDRED, _HUNDRED)
        progress.append(BudgetProgress(
            category=category,
            limit=limit,
            spent=spent,
            percent=percent,
        ))
    return progress


def analyze_spending(
    transactions: list[Transaction],
    weekend_days: Optional[Iterable[int]] = None,
) -> Optional[SpendingAnalysis]:
    """
    Spending pattern summary for the advisory request.

    Returns None for an empty list. Only expenses are aggregated.
    The daily average divides by the number of distinct expense dates
    (1 when there are none).
    """
    if not transactions:
        return None

    weekend = frozenset(weekend_days) if weekend_days is not None else DEFAULT_WEEKEND_DAYS
    expenses = [t for t in transactions if t.type == TransactionType.EXPENSE]

    category_totals = _expense_totals(expenses)

    weekend_spending = _ZERO
    weekday_spending = _ZERO
    for t in expenses:
        if t.date.weekday() in weekend:
            weekend_spending += t.amount
        else:
            weekday_spending += t.amount

    total = weekend_spending + weekday_spending
    unique_dates = len({t.date for t in expenses}) or 1

    top_category = None
    top_total = _ZERO
    for name, amount in category_totals.items():
        # Strictly greater keeps the first category on ties
        if top_category is None or amount > top_total:
            top_category, top_total = name, amount

    return SpendingAnalysis(
        category_totals=category_totals,
        weekend_spending=weekend_spending,
        weekday_spending=weekday_spending,
        daily_average=total / unique_dates,
        top_category=top_category,
        top_category_total=top_total,
        total_expenses=total,
    )
