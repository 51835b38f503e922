from subtracker.schemas.budget import (
    BudgetCheckRequest,
    BudgetCheckResponse,
    BudgetStatusResponse,
    BudgetUpdate,
)
from subtracker.schemas.subscription import (
    SubscriptionCreate,
    SubscriptionResponse,
    SubscriptionUpdate,
)
from subtracker.schemas.user import AuthResponse, LoginRequest, UserCreate, UserResponse

__all__ = [
    "UserCreate",
    "UserResponse",
    "AuthResponse",
    "LoginRequest",
    "SubscriptionCreate",
    "SubscriptionResponse",
    "SubscriptionUpdate",
    "BudgetCheckRequest",
    "BudgetCheckResponse",
    "BudgetStatusResponse",
    "BudgetUpdate",
]
