"""Inventory API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from eat.api.dependencies import get_cooking_service, get_current_user
from eat.database import get_db
from eat.exceptions import NotFoundError
from eat.models.inventory import InventoryItem
from eat.models.user import User
from eat.schemas.inventory import (
    InventoryAdjustRequest,
    InventoryAdjustResponse,
    InventoryItemCreate,
    InventoryItemResponse,
)
from eat.services.cooking_service import CookingService
from eat.services.realtime import InventoryEventType, publish_inventory_event

router = APIRouter(prefix="/api/v1/inventory", tags=["inventory"])


def get_user_inventory_item(db: Session, item_id: str, user: User) -> InventoryItem:
    """Get an inventory item owned by the user."""
    item = (
        db.query(InventoryItem)
        .filter(InventoryItem.id == item_id, InventoryItem.user_id == user.id)
        .first()
    )
    if not item:
        raise NotFoundError("Inventory item not found")
    return item


@router.get("", response_model=list[InventoryItemResponse])
def list_inventory(
    current_user: Annotated[User, Depends(get_current_user)],
    cooking_service: Annotated[CookingService, Depends(get_cooking_service)],
):
    """List the user's inventory, newest first."""
    return cooking_service.list_inventory(current_user.id)


@router.post("", response_model=InventoryItemResponse, status_code=status.HTTP_201_CREATED)
def create_inventory_item(
    item_data: InventoryItemCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Add an item to the inventory."""
    item = InventoryItem(
        user_id=current_user.id,
        name=item_data.name.strip(),
        quantity=item_data.quantity,
        unit=item_data.unit,
        price=item_data.price,
    )
    db.add(item)
    db.commit()
    db.refresh(item)

    publish_inventory_event(current_user.id, InventoryEventType.ITEM_CREATED, {"item_id": item.id})
    return item


@router.get("/{item_id}", response_model=InventoryItemResponse)
def get_inventory_item(
    item_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Get a specific inventory item."""
    return get_user_inventory_item(db, item_id, current_user)


@router.post("/{item_id}/adjust", response_model=InventoryAdjustResponse)
def adjust_inventory_item(
    item_id: str,
    request: InventoryAdjustRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Change an item's quantity by ``delta``. Items that reach zero are removed."""
    item = get_user_inventory_item(db, item_id, current_user)
    new_quantity = item.quantity + request.delta

    if new_quantity <= 0:
        db.delete(item)
        db.commit()
        publish_inventory_event(
            current_user.id, InventoryEventType.ITEM_DELETED, {"item_id": item_id}
        )
        return InventoryAdjustResponse(deleted=True)

    item.quantity = new_quantity
    db.commit()
    db.refresh(item)
    publish_inventory_event(
        current_user.id,
        InventoryEventType.ITEM_UPDATED,
        {"item_id": item_id, "quantity": new_quantity},
    )
    return InventoryAdjustResponse(deleted=False, item=InventoryItemResponse.model_validate(item))


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_inventory_item(
    item_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Remove an item from the inventory."""
    item = get_user_inventory_item(db, item_id, current_user)
    db.delete(item)
    db.commit()
    publish_inventory_event(current_user.id, InventoryEventType.ITEM_DELETED, {"item_id": item_id})
