from subtracker.models.subscription import Subscription
from subtracker.models.user import User

__all__ = ["Subscription", "User"]
