"""Cooking schemas: ingredient matching, deduction planning, logging and undo.

Request and response bodies use camelCase keys. The deduction records stored
on a cooking history entry keep their snake_case keys.
"""

from datetime import datetime
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from eat.schemas.inventory import InventoryItemResponse

Confidence = Literal["high", "medium", "low", "manual"]


def _coerce_id(value):
    # Clients may send numeric ids; ids are opaque strings here.
    if isinstance(value, int | float) and not isinstance(value, bool):
        return str(value)
    return value


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Matching ---


class InventorySnapshot(CamelModel):
    """An inventory record as sent by the client for matching."""

    id: str
    name: str = Field(..., min_length=1, validation_alias=AliasChoices("name", "item"))
    quantity: float = Field(..., ge=0)
    unit: str | None = None

    normalize_id = field_validator("id", mode="before")(_coerce_id)


class IngredientMatch(CamelModel):
    """A recipe ingredient resolved to an inventory item."""

    recipe_ingredient: str
    matched_inventory_id: str | None = None
    matched_inventory_name: str | None = None
    current_quantity: float | None = None
    unit: str | None = None
    suggested_deduction: float = Field(1, ge=0)
    confidence: Confidence = "medium"

    normalize_id = field_validator("matched_inventory_id", mode="before")(_coerce_id)


class MatchResult(CamelModel):
    """Matches and leftovers for one recipe; every ingredient lands in exactly one list."""

    matches: list[IngredientMatch] = []
    unmatched: list[str] = []


class PrepareCookingRequest(CamelModel):
    recipe_title: str = Field(..., min_length=1)
    recipe_ingredients: list[str]
    user_inventory: list[InventorySnapshot]


class PrepareCookingResponse(MatchResult):
    success: bool = True
    used_ai: bool = Field(..., alias="usedAI")


class ManualMappingRequest(MatchResult):
    """Promote ``ingredient`` to a match on one of the caller's inventory items."""

    ingredient: str = Field(..., min_length=1)
    inventory_item_id: str = Field(..., min_length=1)

    normalize_id = field_validator("inventory_item_id", mode="before")(_coerce_id)


class ManualMappingResponse(MatchResult):
    success: bool = True


# --- Planning ---


class Deduction(CamelModel):
    """A finalized quantity reduction for one inventory item."""

    inventory_item_id: str = Field(..., min_length=1)
    item_name: str
    quantity_before: float = Field(..., ge=0)
    quantity_to_deduct: float

    normalize_id = field_validator("inventory_item_id", mode="before")(_coerce_id)


class DeductionPlanRequest(CamelModel):
    matches: list[IngredientMatch]
    amounts: dict[str, float] = {}


class DeductionPreview(CamelModel):
    inventory_item_id: str
    item_name: str
    current_quantity: float
    quantity_to_deduct: float
    quantity_after: float
    will_be_removed: bool


class DeductionPlanResponse(CamelModel):
    success: bool = True
    items: list[DeductionPreview]
    deductions: list[Deduction]
    items_to_remove: list[str]


# --- Logging ---


class RecipeSnapshot(CamelModel):
    title: str = Field(..., min_length=1, max_length=500)
    url: str = Field(..., min_length=1)
    source: str | None = None
    image: str | None = None


class LogCookingRequest(CamelModel):
    recipe: RecipeSnapshot
    deductions: list[Deduction] = Field(..., min_length=1)
    notes: str | None = Field(None, max_length=2000)


class LogCookingResponse(CamelModel):
    success: bool = True
    cooking_history_id: str
    updated_inventory: list[InventoryItemResponse]
    items_deleted: int
    warnings: list[str] = []


# --- Undo ---


class UndoCookingRequest(CamelModel):
    cooking_history_id: str = Field(..., min_length=1)

    normalize_id = field_validator("cooking_history_id", mode="before")(_coerce_id)


class UndoCookingResponse(CamelModel):
    success: bool = True
    message: str
    updated_inventory: list[InventoryItemResponse]
    warnings: list[str] = []


# --- History ---


class DeductionRecord(BaseModel):
    """One applied deduction as stored on the history entry."""

    inventory_item_id: str
    item_name: str
    quantity_before: float
    quantity_deducted: float
    quantity_after: float


class CookingHistoryEntryResponse(CamelModel):
    id: str
    recipe_title: str
    recipe_url: str
    recipe_source: str
    recipe_image: str | None
    cooked_at: datetime
    ingredients_deducted: list[DeductionRecord]
    can_undo: bool
    notes: str | None


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class CookingHistoryResponse(CamelModel):
    success: bool = True
    history: list[CookingHistoryEntryResponse]
    pagination: Pagination
