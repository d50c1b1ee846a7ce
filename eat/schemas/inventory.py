"""Inventory schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class InventoryItemCreate(BaseModel):
    """Add an item to the inventory (manual entry or a confirmed receipt line)."""

    name: str = Field(..., min_length=1, max_length=255)
    quantity: float = Field(1, gt=0)
    unit: str | None = Field(None, max_length=50)
    price: float = Field(0, ge=0)


class InventoryItemResponse(BaseModel):
    """Inventory item response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    quantity: float
    unit: str | None
    price: float
    created_at: datetime


class InventoryAdjustRequest(BaseModel):
    """Manual +/- change to an item's quantity."""

    delta: float


class InventoryAdjustResponse(BaseModel):
    """Result of a manual adjustment; ``item`` is null when the item was removed."""

    deleted: bool
    item: InventoryItemResponse | None = None
