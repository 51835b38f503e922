"""Recurring-billing calendar calculations.

Pure functions over subscription terms: renewal projection, monthly cost
normalization, status classification and month-by-month spend history.
Nothing here touches the database or the wall clock; ``today`` is always
passed in by the caller.
"""

import math
from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Iterable, Optional


class Frequency(str, Enum):
    WEEKLY = "Weekly"
    BI_WEEKLY = "Bi-Weekly"
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"
    BI_ANNUAL = "Bi-Annual"
    ANNUAL = "Annual"
    CUSTOM = "Custom"


class SubscriptionStatus(str, Enum):
    ACTIVE = "Active"
    EXPIRING_SOON = "Expiring Soon"


class InvalidCostError(ValueError):
    """Raised for negative or non-finite subscription costs."""


EXPIRING_SOON_DAYS = 7
DEFAULT_CUSTOM_INTERVAL_DAYS = 30
DAYS_PER_MONTH = Decimal("30.44")
CENT = Decimal("0.01")

_DAY_STEPS = {
    Frequency.WEEKLY: 7,
    Frequency.BI_WEEKLY: 14,
}

_MONTH_STEPS = {
    Frequency.MONTHLY: 1,
    Frequency.QUARTERLY: 3,
    Frequency.BI_ANNUAL: 6,
}

_MONTHLY_MULTIPLIERS = {
    Frequency.WEEKLY: Decimal("4.33"),
    Frequency.BI_WEEKLY: Decimal("2.17"),
    Frequency.MONTHLY: Decimal("1"),
}

_MONTHLY_DIVISORS = {
    Frequency.QUARTERLY: Decimal("3"),
    Frequency.BI_ANNUAL: Decimal("6"),
    Frequency.ANNUAL: Decimal("12"),
}


@dataclass(frozen=True)
class MonthBucket:
    """Simulated spend for one calendar month."""

    year: int
    month: int
    total: Decimal

    @property
    def label(self) -> str:
        return date(self.year, self.month, 1).strftime("%b %y")


# =============================================================================
# Date and frequency utilities
# =============================================================================


def parse_frequency(value) -> Optional[Frequency]:
    """Return the matching Frequency, or None for unknown values."""
    if isinstance(value, Frequency):
        return value
    try:
        return Frequency(value)
    except ValueError:
        return None


def as_date(value: date | datetime) -> date:
    """Drop any time-of-day component."""
    if isinstance(value, datetime):
        return value.date()
    return value


def add_months(d: date, months: int) -> date:
    """Add calendar months, spilling surplus days into the following month.

    ``2024-01-31 + 1 month`` has no Feb 31st, so the two extra days carry
    over and the result is ``2024-03-02``.
    """
    month_index = d.year * 12 + (d.month - 1) + months
    year, month = divmod(month_index, 12)
    return date(year, month + 1, 1) + timedelta(days=d.day - 1)


def add_years(d: date, years: int) -> date:
    """Add calendar years with the same overflow rule (Feb 29 -> Mar 1)."""
    return add_months(d, years * 12)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """Get the first and last day of a month."""
    _, last_day = monthrange(year, month)
    return date(year, month, 1), date(year, month, last_day)


def _custom_interval(custom_frequency_days: Optional[int]) -> int:
    if custom_frequency_days:
        days = int(custom_frequency_days)
        if days > 0:
            return days
    return DEFAULT_CUSTOM_INTERVAL_DAYS


def step(
    current: date,
    frequency,
    custom_frequency_days: Optional[int] = None,
) -> date:
    """Advance a billing date by exactly one frequency period."""
    current = as_date(current)
    freq = parse_frequency(frequency)

    if freq in _DAY_STEPS:
        return current + timedelta(days=_DAY_STEPS[freq])
    if freq in _MONTH_STEPS:
        return add_months(current, _MONTH_STEPS[freq])
    if freq == Frequency.ANNUAL:
        return add_years(current, 1)
    if freq == Frequency.CUSTOM:
        return current + timedelta(days=_custom_interval(custom_frequency_days))
    # Unknown frequencies bill monthly
    return add_months(current, 1)


# =============================================================================
# Renewal projection
# =============================================================================


def next_renewal(
    start_date: date,
    frequency,
    today: date | datetime,
    custom_frequency_days: Optional[int] = None,
) -> date:
    """First billing date on or after ``today``.

    A start date that is already today or later is itself the first renewal.
    """
    today = as_date(today)
    renewal = as_date(start_date)
    while renewal < today:
        renewal = step(renewal, frequency, custom_frequency_days)
    return renewal


def upcoming_renewals(subscriptions: Iterable, today: date | datetime, days_ahead: int = 30) -> list:
    """Subscriptions whose renewal date falls within the next ``days_ahead`` days."""
    today = as_date(today)
    horizon = today + timedelta(days=days_ahead)
    upcoming = [
        sub for sub in subscriptions
        if sub.renewal_date is not None and today <= as_date(sub.renewal_date) <= horizon
    ]
    return sorted(upcoming, key=lambda sub: as_date(sub.renewal_date))


# =============================================================================
# Monthly normalization
# =============================================================================


def to_decimal_cost(cost) -> Decimal:
    """Coerce a cost to Decimal, rejecting negative and non-finite values."""
    if isinstance(cost, Decimal):
        value = cost
    else:
        try:
            value = Decimal(str(cost))
        except InvalidOperation as exc:
            raise InvalidCostError(f"Invalid cost: {cost!r}") from exc

    if not value.is_finite():
        raise InvalidCostError(f"Cost must be a finite number, got {cost!r}")
    if value < 0:
        raise InvalidCostError(f"Cost cannot be negative, got {cost!r}")
    return value


def to_monthly_cost(
    cost,
    frequency,
    custom_frequency_days: Optional[int] = None,
) -> Decimal:
    """Convert a per-period cost to its monthly equivalent (unrounded)."""
    amount = to_decimal_cost(cost)
    freq = parse_frequency(frequency)

    if freq in _MONTHLY_MULTIPLIERS:
        return amount * _MONTHLY_MULTIPLIERS[freq]
    if freq in _MONTHLY_DIVISORS:
        return amount / _MONTHLY_DIVISORS[freq]
    if freq == Frequency.CUSTOM and custom_frequency_days and int(custom_frequency_days) > 0:
        return amount * (DAYS_PER_MONTH / Decimal(int(custom_frequency_days)))
    return amount


def round_currency(amount: Decimal) -> Decimal:
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


# =============================================================================
# Status classification
# =============================================================================


def days_until(renewal_date: date | datetime, today: date | datetime) -> int:
    """Whole days from ``today`` until ``renewal_date``, rounded up."""
    if isinstance(renewal_date, datetime) and isinstance(today, datetime):
        seconds = (renewal_date - today).total_seconds()
        return math.ceil(seconds / 86400)
    return (as_date(renewal_date) - as_date(today)).days


def classify_status(renewal_date: date | datetime, today: date | datetime) -> SubscriptionStatus:
    """Short-horizon display status for a renewal date.

    Past renewal dates stay Active; there is no overdue state.
    """
    remaining = days_until(renewal_date, today)
    if 0 <= remaining <= EXPIRING_SOON_DAYS:
        return SubscriptionStatus.EXPIRING_SOON
    return SubscriptionStatus.ACTIVE


# =============================================================================
# Spend history
# =============================================================================


def count_occurrences(
    start_date: date,
    frequency,
    window_start: date,
    window_end: date,
    custom_frequency_days: Optional[int] = None,
) -> int:
    """Count billing dates from ``start_date`` onwards inside the inclusive window."""
    current = as_date(start_date)
    count = 0
    while current <= window_end:
        if current >= window_start:
            count += 1
        current = step(current, frequency, custom_frequency_days)
    return count


def _month_axis(first: date, last: date) -> list[tuple[int, int]]:
    axis = []
    year, month = first.year, first.month
    while (year, month) <= (last.year, last.month):
        axis.append((year, month))
        month += 1
        if month > 12:
            month = 1
            year += 1
    return axis


def project_history(subscriptions: Iterable, today: date | datetime) -> list[MonthBucket]:
    """Reconstruct monthly spend from each subscription's start date to today.

    Every month between the earliest start and the current month appears,
    including months with no charges.
    """
    subscriptions = list(subscriptions)
    if not subscriptions:
        return []

    today = as_date(today)
    earliest_start = min(as_date(sub.start_date) for sub in subscriptions)
    axis = _month_axis(earliest_start, today)
    totals = {key: Decimal("0") for key in axis}

    for sub in subscriptions:
        start = as_date(sub.start_date)
        cost = to_decimal_cost(sub.cost)
        for year, month in axis:
            month_start, month_end = month_bounds(year, month)
            if start > month_end:
                continue
            occurrences = count_occurrences(
                start, sub.frequency, month_start, month_end, sub.custom_frequency_days
            )
            totals[(year, month)] += occurrences * cost

    return [
        MonthBucket(year=year, month=month, total=round_currency(totals[(year, month)]))
        for year, month in axis
    ]


def month_spend(subscriptions: Iterable, today: date | datetime) -> Decimal:
    """Simulated charges falling inside ``today``'s calendar month."""
    today = as_date(today)
    month_start, month_end = month_bounds(today.year, today.month)
    total = Decimal("0")
    for sub in subscriptions:
        start = as_date(sub.start_date)
        if start > month_end:
            continue
        occurrences = count_occurrences(
            start, sub.frequency, month_start, month_end, sub.custom_frequency_days
        )
        total += occurrences * to_decimal_cost(sub.cost)
    return round_currency(total)
