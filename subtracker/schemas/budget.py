from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from subtracker.services.billing_calendar import Frequency


class BudgetUpdate(BaseModel):
    monthly_budget: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)


class BudgetCheckRequest(BaseModel):
    cost: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    frequency: Frequency
    custom_frequency_days: Optional[int] = Field(None, ge=1, le=3650)


class BudgetCheckResponse(BaseModel):
    exceeds_limit: bool
    message: Optional[str] = None
    current_total: Optional[float] = None
    new_total: Optional[float] = None
    budget_limit: Optional[float] = None


class BudgetStatusResponse(BaseModel):
    current_total: float
    budget_limit: Optional[float] = None
    remaining: Optional[float] = None
    percent_used: Optional[float] = None  # None when no budget is set
