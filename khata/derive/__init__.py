"""
Derivation Engine Package

Pure functions computing the views of the state document: date-filtered
transaction sets, totals, category aggregates, budget progress, the
spending analysis and display formatting.
"""

from khata.derive.engine import (
    DEFAULT_WEEKEND_DAYS,
    BudgetProgress,
    CategoryTotal,
    SpendingAnalysis,
    Totals,
    analyze_spending,
    budget_progress,
    category_breakdown,
    compute_totals,
    current_month_expenses,
    filter_by_profile_and_range,
    month_start,
    previous_month_bounds,
    resolve_range,
    week_start,
)
from khata.derive.views import (
    available_categories,
    category_icon,
    filter_transactions,
    format_amount,
    format_date,
    format_number,
    payment_icon,
    share_summary,
    sort_by_date,
    sorted_reminders,
    to_bengali_digits,
    transactions_to_csv,
)

__all__ = [
    # Result models
    "BudgetProgress",
    "CategoryTotal",
    "SpendingAnalysis",
    "Totals",
    # Ranges
    "DEFAULT_WEEKEND_DAYS",
    "filter_by_profile_and_range",
    "month_start",
    "previous_month_bounds",
    "resolve_range",
    "week_start",
    # Aggregates
    "analyze_spending",
    "budget_progress",
    "category_breakdown",
    "compute_totals",
    "current_month_expenses",
    # Views
    "available_categories",
    "category_icon",
    "filter_transactions",
    "payment_icon",
    "share_summary",
    "sort_by_date",
    "sorted_reminders",
    "transactions_to_csv",
    # Formatting
    "format_amount",
    "format_date",
    "format_number",
    "to_bengali_digits",
]
