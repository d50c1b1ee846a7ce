"""SQLAlchemy models."""

from eat.models.cooking_history import CookingHistory
from eat.models.inventory import InventoryItem
from eat.models.user import User

__all__ = [
    "User",
    "InventoryItem",
    "CookingHistory",
]
