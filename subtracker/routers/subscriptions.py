import logging
from datetime import date
from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import asc
from sqlalchemy.orm import Session

from subtracker.config import settings
from subtracker.db import get_db
from subtracker.dependencies import get_current_user, get_today
from subtracker.models.subscription import Subscription
from subtracker.models.user import User
from subtracker.schemas.subscription import (
    BudgetWarningResponse,
    DashboardStatsResponse,
    HistoryPoint,
    NextRenewal,
    SubscriptionCreate,
    SubscriptionResponse,
    SubscriptionUpdate,
    UpcomingSubscription,
    UpcomingSubscriptionListResponse,
)
from subtracker.services.billing_calendar import (
    Frequency,
    SubscriptionStatus,
    classify_status,
    days_until,
    month_spend,
    next_renewal,
    project_history,
    round_currency,
    upcoming_renewals,
)
from subtracker.services.budget import check_budget_limit, current_monthly_total

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])

RENEWAL_FIELDS = {"start_date", "frequency", "custom_frequency_days"}
NULLABLE_FIELDS = {"custom_frequency_days", "logo", "card_issuer"}


def _user_subscriptions(db: Session, user_id: int) -> list[Subscription]:
    return (
        db.query(Subscription)
        .filter(Subscription.user_id == user_id)
        .order_by(asc(Subscription.renewal_date))
        .all()
    )


def _get_owned_subscription(db: Session, subscription_id: int, user_id: int) -> Subscription:
    subscription = (
        db.query(Subscription)
        .filter(
            Subscription.id == subscription_id,
            Subscription.user_id == user_id,
        )
        .first()
    )
    if not subscription:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Subscription not found",
        )
    return subscription


def _with_current_status(subscription: Subscription, today: date) -> SubscriptionResponse:
    item = SubscriptionResponse.model_validate(subscription)
    item.status = classify_status(subscription.renewal_date, today).value
    return item


@router.post(
    "",
    response_model=Union[SubscriptionResponse, BudgetWarningResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_subscription(
    subscription_data: SubscriptionCreate,
    response: Response,
    force: bool = Query(default=False, description="Create even if the budget would be exceeded"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    today: date = Depends(get_today),
):
    """Create a new subscription for the authenticated user.

    If the subscription would push monthly spend over the user's budget,
    nothing is created and a budget warning is returned instead, unless
    ``force`` is set.
    """
    if not force:
        budget_check = check_budget_limit(
            current_user.monthly_budget,
            _user_subscriptions(db, current_user.id),
            today,
            subscription_data.cost,
            subscription_data.frequency,
            subscription_data.custom_frequency_days,
        )
        if budget_check.exceeds_limit:
            response.status_code = status.HTTP_200_OK
            return BudgetWarningResponse(
                message=budget_check.message,
                current_total=budget_check.current_total,
                new_total=budget_check.new_total,
                budget_limit=budget_check.budget_limit,
            )

    renewal_date = next_renewal(
        subscription_data.start_date,
        subscription_data.frequency,
        today,
        subscription_data.custom_frequency_days,
    )
    subscription = Subscription(
        user_id=current_user.id,
        name=subscription_data.name,
        cost=subscription_data.cost,
        frequency=subscription_data.frequency.value,
        custom_frequency_days=subscription_data.custom_frequency_days,
        start_date=subscription_data.start_date,
        renewal_date=renewal_date,
        status=classify_status(renewal_date, today).value,
        logo=subscription_data.logo or subscription_data.name[0].upper(),
        card_issuer=subscription_data.card_issuer,
    )
    db.add(subscription)
    db.commit()
    db.refresh(subscription)
    logger.info(f"Created subscription {subscription.id} for user {current_user.id}, renews {renewal_date}")
    return subscription


@router.get("", response_model=list[SubscriptionResponse])
async def list_subscriptions(
    search: Optional[str] = Query(
        default=None,
        min_length=1,
        max_length=100,
        description="Case-insensitive partial match on subscription name",
    ),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    today: date = Depends(get_today),
):
    """List the user's subscriptions ordered by renewal date, with current status."""
    query = db.query(Subscription).filter(Subscription.user_id == current_user.id)

    if search:
        query = query.filter(Subscription.name.ilike(f"%{search}%"))

    subscriptions = query.order_by(asc(Subscription.renewal_date)).all()
    return [_with_current_status(sub, today) for sub in subscriptions]


@router.get("/stats", response_model=DashboardStatsResponse)
async def get_dashboard_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    today: date = Depends(get_today),
):
    """Get this month's spend, status counts and the next renewal."""
    subscriptions = _user_subscriptions(db, current_user.id)

    statuses = [classify_status(sub.renewal_date, today) for sub in subscriptions]
    upcoming = [sub for sub in subscriptions if sub.renewal_date >= today]
    upcoming.sort(key=lambda sub: sub.renewal_date)

    next_up = None
    if upcoming:
        next_up = NextRenewal(renewal_date=upcoming[0].renewal_date, name=upcoming[0].name)

    return DashboardStatsResponse(
        total_monthly_cost=float(month_spend(subscriptions, today)),
        monthly_equivalent_cost=float(round_currency(current_monthly_total(subscriptions))),
        active_subscriptions=statuses.count(SubscriptionStatus.ACTIVE),
        expiring_soon=statuses.count(SubscriptionStatus.EXPIRING_SOON),
        next_renewal=next_up,
    )


# Plain def: the history walk is CPU-bound and runs in the threadpool
@router.get("/history", response_model=list[HistoryPoint])
def get_spending_history(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    today: date = Depends(get_today),
):
    """Get month-by-month spend reconstructed from each subscription's start date."""
    subscriptions = _user_subscriptions(db, current_user.id)
    return [
        HistoryPoint(name=bucket.label, cost=float(bucket.total))
        for bucket in project_history(subscriptions, today)
    ]


@router.get("/upcoming", response_model=UpcomingSubscriptionListResponse)
async def get_upcoming_subscriptions(
    days: int = Query(
        default=settings.upcoming_renewal_days, ge=1, le=365, description="Days to look ahead"
    ),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    today: date = Depends(get_today),
):
    """Get subscriptions renewing within the specified number of days."""
    subscriptions = upcoming_renewals(_user_subscriptions(db, current_user.id), today, days)

    items = [
        UpcomingSubscription(
            id=sub.id,
            name=sub.name,
            cost=sub.cost,
            renewal_date=sub.renewal_date,
            days_until_renewal=days_until(sub.renewal_date, today),
        )
        for sub in subscriptions
    ]
    return UpcomingSubscriptionListResponse(items=items, total_count=len(items))


@router.get("/{subscription_id}", response_model=SubscriptionResponse)
async def get_subscription(
    subscription_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    today: date = Depends(get_today),
):
    """Get a single subscription by ID."""
    subscription = _get_owned_subscription(db, subscription_id, current_user.id)
    return _with_current_status(subscription, today)


@router.put("/{subscription_id}", response_model=SubscriptionResponse)
async def update_subscription(
    subscription_id: int,
    subscription_data: SubscriptionUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    today: date = Depends(get_today),
):
    """Update a subscription.

    Changing the start date, frequency or custom interval recomputes the
    renewal date and status.
    """
    subscription = _get_owned_subscription(db, subscription_id, current_user.id)

    update_data = {
        field: value.value if hasattr(value, "value") else value  # Handle enums
        for field, value in subscription_data.model_dump(exclude_unset=True).items()
        if value is not None or field in NULLABLE_FIELDS
    }

    frequency = update_data.get("frequency", subscription.frequency)
    custom_days = update_data.get("custom_frequency_days", subscription.custom_frequency_days)
    if frequency == Frequency.CUSTOM.value and not custom_days:
        raise HTTPException(
            status_code=422,
            detail="custom_frequency_days is required for Custom frequency",
        )

    for field, value in update_data.items():
        setattr(subscription, field, value)

    if RENEWAL_FIELDS & update_data.keys():
        subscription.renewal_date = next_renewal(
            subscription.start_date,
            subscription.frequency,
            today,
            subscription.custom_frequency_days,
        )
        subscription.status = classify_status(subscription.renewal_date, today).value

    db.commit()
    db.refresh(subscription)
    logger.info(f"Updated subscription {subscription.id}")
    return _with_current_status(subscription, today)


@router.delete("/{subscription_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_subscription(
    subscription_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Delete a subscription."""
    subscription = _get_owned_subscription(db, subscription_id, current_user.id)
    db.delete(subscription)
    db.commit()
    logger.info(f"Deleted subscription {subscription_id}")
    return None
