"""Pydantic schemas for API requests and responses."""

from eat.schemas.auth import AuthResponse, UserLogin, UserRegister, UserResponse
from eat.schemas.inventory import (
    InventoryAdjustRequest,
    InventoryAdjustResponse,
    InventoryItemCreate,
    InventoryItemResponse,
)

__all__ = [
    "UserRegister",
    "UserLogin",
    "AuthResponse",
    "UserResponse",
    "InventoryItemCreate",
    "InventoryItemResponse",
    "InventoryAdjustRequest",
    "InventoryAdjustResponse",
]
