import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from subtracker.schemas.budget import BudgetCheckResponse, BudgetStatusResponse
from subtracker.services.billing_calendar import (
    SubscriptionStatus,
    classify_status,
    round_currency,
    to_monthly_cost,
)

logger = logging.getLogger(__name__)


def _money(amount: Decimal) -> float:
    return float(round_currency(amount))


def current_monthly_total(subscriptions: Iterable) -> Decimal:
    """Sum of the monthly-equivalent cost of every subscription."""
    return sum(
        (to_monthly_cost(sub.cost, sub.frequency, sub.custom_frequency_days) for sub in subscriptions),
        Decimal("0"),
    )


def active_monthly_total(subscriptions: Iterable, today: date) -> Decimal:
    """Monthly-equivalent cost of the subscriptions that are Active as of today.

    Subscriptions about to renew (Expiring Soon) are left out of the budget.
    """
    return current_monthly_total(
        sub for sub in subscriptions
        if classify_status(sub.renewal_date, today) == SubscriptionStatus.ACTIVE
    )


def check_budget_limit(
    budget_limit: Optional[Decimal],
    subscriptions: Iterable,
    today: date,
    cost: Decimal,
    frequency,
    custom_frequency_days: Optional[int] = None,
) -> BudgetCheckResponse:
    """Check whether adding a subscription would push spend over the budget."""
    if not budget_limit:
        return BudgetCheckResponse(exceeds_limit=False, message="No budget limit set")

    limit = Decimal(budget_limit)
    current_total = active_monthly_total(subscriptions, today)
    new_total = current_total + to_monthly_cost(cost, frequency, custom_frequency_days)

    if new_total > limit:
        logger.info(f"Budget limit {limit} exceeded: new monthly total would be {new_total}")
        return BudgetCheckResponse(
            exceeds_limit=True,
            message=f"Adding this subscription will exceed your budget limit of ${limit:.2f}/month",
            current_total=_money(current_total),
            new_total=_money(new_total),
            budget_limit=_money(limit),
        )

    return BudgetCheckResponse(
        exceeds_limit=False,
        current_total=_money(current_total),
        new_total=_money(new_total),
        budget_limit=_money(limit),
    )


def get_budget_status(
    budget_limit: Optional[Decimal], subscriptions: Iterable, today: date
) -> BudgetStatusResponse:
    """Current monthly spend against the budget, if one is set."""
    current_total = active_monthly_total(subscriptions, today)

    if not budget_limit:
        return BudgetStatusResponse(current_total=_money(current_total))

    limit = Decimal(budget_limit)
    return BudgetStatusResponse(
        current_total=_money(current_total),
        budget_limit=_money(limit),
        remaining=_money(limit - current_total),
        percent_used=round(float(current_total / limit * 100), 1),
    )
