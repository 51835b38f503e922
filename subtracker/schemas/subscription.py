from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from subtracker.services.billing_calendar import Frequency, SubscriptionStatus

# Spend history is simulated from the start date, so it needs a floor
EARLIEST_START_DATE = date(1970, 1, 1)


def _validate_start_date(v: date | None) -> date | None:
    if v is not None and v < EARLIEST_START_DATE:
        raise ValueError(f"start_date cannot be before {EARLIEST_START_DATE.isoformat()}")
    return v


class SubscriptionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    cost: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    frequency: Frequency
    start_date: date
    custom_frequency_days: Optional[int] = Field(None, ge=1, le=3650)
    logo: Optional[str] = Field(None, max_length=10)
    card_issuer: Optional[str] = Field(None, max_length=50)

    @field_validator("start_date")
    @classmethod
    def validate_start_date(cls, v: date) -> date:
        return _validate_start_date(v)

    @model_validator(mode="after")
    def validate_custom_frequency(self) -> "SubscriptionCreate":
        if self.frequency == Frequency.CUSTOM and self.custom_frequency_days is None:
            raise ValueError("custom_frequency_days is required for Custom frequency")
        return self


class SubscriptionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    cost: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    frequency: Optional[Frequency] = None
    start_date: Optional[date] = None
    custom_frequency_days: Optional[int] = Field(None, ge=1, le=3650)
    logo: Optional[str] = Field(None, max_length=10)
    card_issuer: Optional[str] = Field(None, max_length=50)

    @field_validator("start_date")
    @classmethod
    def validate_start_date(cls, v: date | None) -> date | None:
        return _validate_start_date(v)


class SubscriptionResponse(BaseModel):
    id: int
    user_id: int
    name: str
    cost: float
    frequency: str
    custom_frequency_days: Optional[int] = None
    start_date: date
    renewal_date: date
    status: str = SubscriptionStatus.ACTIVE.value
    logo: Optional[str] = None
    card_issuer: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BudgetWarningResponse(BaseModel):
    """Returned instead of a new subscription when it would break the budget."""

    warning: bool = True
    message: str
    current_total: float
    new_total: float
    budget_limit: float


# Dashboard schemas
class NextRenewal(BaseModel):
    renewal_date: date
    name: str


class DashboardStatsResponse(BaseModel):
    """Headline numbers for the dashboard."""

    total_monthly_cost: float  # charges simulated for the current month
    monthly_equivalent_cost: float
    active_subscriptions: int
    expiring_soon: int
    next_renewal: Optional[NextRenewal] = None


class HistoryPoint(BaseModel):
    """A single bar in the spend history chart."""

    name: str  # "Jan 24"
    cost: float


class UpcomingSubscription(BaseModel):
    id: int
    name: str
    cost: float
    renewal_date: date
    days_until_renewal: int

    class Config:
        from_attributes = True


class UpcomingSubscriptionListResponse(BaseModel):
    items: list[UpcomingSubscription]
    total_count: int
