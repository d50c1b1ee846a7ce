"""Cooking API endpoints: match a recipe, plan and log deductions, undo."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from eat.api.dependencies import get_cooking_service, get_current_user, get_ingredient_matcher
from eat.api.inventory import get_user_inventory_item
from eat.database import get_db
from eat.models.user import User
from eat.schemas.cooking import (
    CookingHistoryEntryResponse,
    CookingHistoryResponse,
    DeductionPlanRequest,
    DeductionPlanResponse,
    LogCookingRequest,
    LogCookingResponse,
    ManualMappingRequest,
    ManualMappingResponse,
    Pagination,
    PrepareCookingRequest,
    PrepareCookingResponse,
    UndoCookingRequest,
    UndoCookingResponse,
)
from eat.schemas.inventory import InventoryItemResponse
from eat.services.cooking_service import CookingService
from eat.services.deduction_planner import DeductionPlanner
from eat.services.ingredient_matcher import IngredientMatcher, apply_manual_mapping
from eat.services.realtime import InventoryEventType, publish_inventory_event

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/cooking", tags=["cooking"])


@router.post("/prepare", response_model=PrepareCookingResponse)
async def prepare_cooking(
    request: PrepareCookingRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    matcher: Annotated[IngredientMatcher, Depends(get_ingredient_matcher)],
):
    """Match recipe ingredients against the user's inventory.

    Uses the LLM when it is available and falls back to substring matching
    otherwise; ``usedAI`` tells the client which one answered.
    """
    result, used_ai = await matcher.match(
        request.recipe_title,
        request.recipe_ingredients,
        request.user_inventory,
    )
    return PrepareCookingResponse(matches=result.matches, unmatched=result.unmatched, used_ai=used_ai)


@router.post("/map", response_model=ManualMappingResponse)
def map_ingredient(
    request: ManualMappingRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Manually map an ingredient to one of the user's inventory items."""
    item = get_user_inventory_item(db, request.inventory_item_id, current_user)
    result = apply_manual_mapping(request, request.ingredient, item)
    return ManualMappingResponse(matches=result.matches, unmatched=result.unmatched)


@router.post("/plan", response_model=DeductionPlanResponse)
def plan_deductions(
    request: DeductionPlanRequest,
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Preview deductions, clamping any requested amounts to the available stock."""
    planner = DeductionPlanner.from_matches(request.matches)
    for inventory_item_id, amount in request.amounts.items():
        planner.set_amount(inventory_item_id, amount)

    preview = planner.preview()
    return DeductionPlanResponse(
        items=preview,
        deductions=planner.to_deductions(),
        items_to_remove=[line.item_name for line in preview if line.will_be_removed],
    )


@router.post("/log", response_model=LogCookingResponse)
def log_cooking(
    request: LogCookingRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    cooking_service: Annotated[CookingService, Depends(get_cooking_service)],
):
    """Deduct ingredients from the inventory and record the cook."""
    result = cooking_service.log_cooking(
        current_user.id,
        request.recipe,
        request.deductions,
        notes=request.notes,
    )

    publish_inventory_event(
        current_user.id,
        InventoryEventType.COOKING_LOGGED,
        {"cooking_history_id": result.history.id, "items_deleted": result.items_deleted},
    )
    return LogCookingResponse(
        cooking_history_id=result.history.id,
        updated_inventory=[InventoryItemResponse.model_validate(i) for i in result.updated_inventory],
        items_deleted=result.items_deleted,
        warnings=result.warnings,
    )


@router.post("/undo", response_model=UndoCookingResponse)
def undo_cooking(
    request: UndoCookingRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    cooking_service: Annotated[CookingService, Depends(get_cooking_service)],
):
    """Reverse a cook logged within the undo window."""
    result = cooking_service.undo_cooking(current_user.id, request.cooking_history_id)

    publish_inventory_event(
        current_user.id,
        InventoryEventType.COOKING_UNDONE,
        {"cooking_history_id": result.history.id},
    )
    return UndoCookingResponse(
        message="Cooking undone successfully",
        updated_inventory=[InventoryItemResponse.model_validate(i) for i in result.updated_inventory],
        warnings=result.warnings,
    )


@router.get("/history", response_model=CookingHistoryResponse)
def get_cooking_history(
    current_user: Annotated[User, Depends(get_current_user)],
    cooking_service: Annotated[CookingService, Depends(get_cooking_service)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
):
    """List cooks that have not been undone, newest first."""
    entries, total, total_pages = cooking_service.list_history(current_user.id, page, limit)

    return CookingHistoryResponse(
        history=[
            CookingHistoryEntryResponse(
                id=entry.id,
                recipe_title=entry.recipe_title,
                recipe_url=entry.recipe_url,
                recipe_source=entry.recipe_source,
                recipe_image=entry.recipe_image,
                cooked_at=entry.cooked_at,
                ingredients_deducted=entry.ingredients_deducted or [],
                can_undo=can_undo,
                notes=entry.notes,
            )
            for entry, can_undo in entries
        ],
        pagination=Pagination(page=page, limit=limit, total=total, total_pages=total_pages),
    )
