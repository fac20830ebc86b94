"""
List Views and Display Formatting

Filtering and ordering for the transaction and reminder lists, the CSV
export, and Bengali number/date formatting. All pure.
"""

import csv
import io
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from khata.derive.engine import in_bounds
from khata.models.state import (
    Category,
    CategorySet,
    CurrencyConfig,
    CurrencyPosition,
    PaymentMethod,
    Reminder,
    Transaction,
    TransactionType,
)


_BENGALI_DIGITS = str.maketrans("0123456789", "০১২৩৪৫৬৭৮৯")

CSV_HEADERS = ("তারিখ", "বিবরণ", "ক্যাটাগরি", "টাইপ", "পেমেন্ট")

PAYMENT_ICONS = {
    PaymentMethod.BKASH: "fa-mobile-screen-button",
    PaymentMethod.NAGAD: "fa-mobile-button",
    PaymentMethod.BANK: "fa-building-columns",
    PaymentMethod.CASH: "fa-money-bill-wave",
}


# =============================================================================
# FORMATTING
# =============================================================================

def to_bengali_digits(text: str) -> str:
    return text.translate(_BENGALI_DIGITS)


def _group_south_asian(digits: str) -> str:
    """12345678 -> 1,23,45,678"""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_number(value: Decimal | int | float) -> str:
    """Bengali digits, lakh/crore grouping, at most three decimals."""
    amount = Decimal(str(value)).quantize(Decimal("0.001"), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    integer, _, fraction = f"{abs(amount):f}".partition(".")
    fraction = fraction.rstrip("0")
    text = sign + _group_south_asian(integer)
    if fraction:
        text += "." + fraction
    return to_bengali_digits(text)


def format_amount(value: Decimal | int | float, currency: CurrencyConfig) -> str:
    """Number with the currency symbol on the configured side."""
    formatted = format_number(value)
    if currency.position == CurrencyPosition.PREFIX:
        return f"{currency.symbol} {formatted}"
    return f"{formatted} {currency.symbol}"


def format_date(value: date) -> str:
    """d/m/yyyy in Bengali digits."""
    return to_bengali_digits(f"{value.day}/{value.month}/{value.year}")


# =============================================================================
# TRANSACTION LIST
# =============================================================================

def filter_transactions(
    transactions: Iterable[Transaction],
    type: Optional[TransactionType] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> list[Transaction]:
    """
    Transaction list filter.

    None (or empty) for any criterion means "all". The search term matches
    the note or the category name, case-insensitively.
    """
    needle = search.lower() if search else ""

    result = []
    for t in transactions:
        if type is not None and t.type != type:
            continue
        if category and t.category != category:
            continue
        if needle and needle not in t.note.lower() and needle not in t.category.lower():
            continue
        if not in_bounds(t.date, start, end):
            continue
        result.append(t)
    return result


def sort_by_date(
    transactions: Iterable[Transaction],
    newest_first: bool = True,
) -> list[Transaction]:
    """Stable sort by date; same-day rows keep stored order."""
    return sorted(transactions, key=lambda t: t.date, reverse=newest_first)


def available_categories(
    categories: CategorySet,
    type: Optional[TransactionType] = None,
) -> list[Category]:
    """Categories offered by the list filter: one type, or income then expense."""
    if type is None:
        return [*categories.income, *categories.expense]
    return list(categories.for_type(type))


def category_icon(
    categories: CategorySet,
    name: str,
    type: TransactionType,
) -> str:
    match = next((c for c in categories.for_type(type) if c.name == name), None)
    return match.icon if match else "fa-tag"


def payment_icon(method: PaymentMethod) -> str:
    return PAYMENT_ICONS.get(method, "fa-money-bill-wave")


def transactions_to_csv(
    transactions: Iterable[Transaction],
    currency: CurrencyConfig,
) -> str:
    """
    CSV report of the given rows.

    Starts with a UTF-8 byte order mark so spreadsheet apps detect the
    encoding of the Bengali text.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow([*CSV_HEADERS, f"পরিমাণ ({currency.symbol})"])
    for t in transactions:
        writer.writerow([
            format_date(t.date),
            t.note,
            t.category,
            t.type.value,
            t.payment_method.value,
            f"{t.amount:f}",
        ])
    return "\ufeff" + buffer.getvalue()


def share_summary(transaction: Transaction, currency: CurrencyConfig) -> str:
    """Plain-text card for sharing one transaction."""
    kind = "আয়" if transaction.type == TransactionType.INCOME else "ব্যয়"
    return (
        "📌 লেনদেন বিবরণ:\n"
        f"🔹 টাইপ: {kind}\n"
        f"📂 ক্যাটাগরি: {transaction.category}\n"
        f"💰 পরিমাণ: {format_amount(transaction.amount, currency)}\n"
        f"💳 পেমেন্ট: {transaction.payment_method.value}\n"
        f"📅 তারিখ: {format_date(transaction.date)}\n"
        "(খরচ খাতা)"
    )


# =============================================================================
# REMINDERS
# =============================================================================

def sorted_reminders(reminders: Iterable[Reminder]) -> list[Reminder]:
    """By date, then time of day; reminders without a time come first."""
    return sorted(reminders, key=lambda r: (r.date, r.remind_time or ""))
