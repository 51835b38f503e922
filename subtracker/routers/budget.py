from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from subtracker.db import get_db
from subtracker.dependencies import get_current_user, get_today
from subtracker.models.subscription import Subscription
from subtracker.models.user import User
from subtracker.schemas.budget import (
    BudgetCheckRequest,
    BudgetCheckResponse,
    BudgetStatusResponse,
    BudgetUpdate,
)
from subtracker.services.budget import check_budget_limit, get_budget_status

router = APIRouter(prefix="/budget", tags=["budget"])


def _user_subscriptions(db: Session, user_id: int) -> list[Subscription]:
    return db.query(Subscription).filter(Subscription.user_id == user_id).all()


@router.get("", response_model=BudgetStatusResponse)
async def get_budget(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    today: date = Depends(get_today),
):
    """Get monthly spend of active subscriptions against the user's budget."""
    return get_budget_status(
        current_user.monthly_budget, _user_subscriptions(db, current_user.id), today
    )


@router.put("", response_model=BudgetStatusResponse)
async def update_budget(
    budget: BudgetUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    today: date = Depends(get_today),
):
    """Set or clear the user's monthly budget."""
    current_user.monthly_budget = budget.monthly_budget
    db.commit()
    db.refresh(current_user)
    return get_budget_status(
        current_user.monthly_budget, _user_subscriptions(db, current_user.id), today
    )


@router.post("/check", response_model=BudgetCheckResponse)
async def check_budget(
    request: BudgetCheckRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    today: date = Depends(get_today),
):
    """Check whether a prospective subscription fits within the budget."""
    return check_budget_limit(
        current_user.monthly_budget,
        _user_subscriptions(db, current_user.id),
        today,
        request.cost,
        request.frequency,
        request.custom_frequency_days,
    )
