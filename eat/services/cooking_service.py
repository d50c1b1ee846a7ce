"""Cooking ledger: apply recipe deductions to the inventory and undo them.

A cook writes every quantity change plus one ``CookingHistory`` row in a
single transaction. The history row keeps enough detail to reverse the cook
for ``undo_window_hours`` after it happened.
"""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from eat.config import get_settings
from eat.exceptions import NotFoundError, PersistenceError, UndoRejectedError
from eat.models.cooking_history import CookingHistory
from eat.models.inventory import InventoryItem
from eat.schemas.cooking import Deduction, RecipeSnapshot

logger = logging.getLogger(__name__)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; they are stored as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@dataclass
class ItemOutcome:
    """What happened to one inventory item during a best-effort step."""

    inventory_item_id: str
    item_name: str
    action: str  # "restored" | "recreated" | "deleted" | "failed"
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class CookingLogResult:
    history: CookingHistory
    updated_inventory: list[InventoryItem]
    items_deleted: int
    outcomes: list[ItemOutcome] = field(default_factory=list)

    @property
    def warnings(self) -> list[str]:
        return [outcome.error for outcome in self.outcomes if outcome.error]


@dataclass
class UndoResult:
    history: CookingHistory
    updated_inventory: list[InventoryItem]
    outcomes: list[ItemOutcome] = field(default_factory=list)

    @property
    def warnings(self) -> list[str]:
        return [outcome.error for outcome in self.outcomes if outcome.error]


class CookingService:
    """Ledger writer and undo engine for cooking events."""

    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    @property
    def undo_window(self) -> timedelta:
        return timedelta(hours=self.settings.undo_window_hours)

    def list_inventory(self, user_id: int) -> list[InventoryItem]:
        """The user's inventory, newest first."""
        return (
            self.db.query(InventoryItem)
            .filter(InventoryItem.user_id == user_id)
            .order_by(InventoryItem.created_at.desc(), InventoryItem.id)
            .all()
        )

    # --- Ledger writer ---

    def log_cooking(
        self,
        user_id: int,
        recipe: RecipeSnapshot,
        deductions: Sequence[Deduction],
        notes: str | None = None,
        now: datetime | None = None,
    ) -> CookingLogResult:
        """Apply deductions and record the cook.

        Items that reach zero are deleted in one batch; a failed batch delete
        is reported as a warning and does not stop the history entry from
        being written. A failed quantity update aborts everything.
        """
        now = now or datetime.now(UTC)
        ingredients_deducted: list[dict[str, Any]] = []
        items_to_delete: list[str] = []
        names_by_id: dict[str, str] = {}

        for deduction in deductions:
            if deduction.quantity_to_deduct <= 0:
                continue

            quantity_after = max(0.0, deduction.quantity_before - deduction.quantity_to_deduct)
            if quantity_after == 0:
                self._ensure_owned(user_id, deduction)
                if deduction.inventory_item_id not in names_by_id:
                    items_to_delete.append(deduction.inventory_item_id)
                    names_by_id[deduction.inventory_item_id] = deduction.item_name
            else:
                self._update_quantity(user_id, deduction, quantity_after)

            ingredients_deducted.append(
                {
                    "inventory_item_id": deduction.inventory_item_id,
                    "item_name": deduction.item_name,
                    "quantity_before": deduction.quantity_before,
                    "quantity_deducted": deduction.quantity_before - quantity_after,
                    "quantity_after": quantity_after,
                }
            )

        outcomes: list[ItemOutcome] = []
        items_deleted = 0
        if items_to_delete:
            items_deleted, outcomes = self._delete_depleted(user_id, items_to_delete, names_by_id)

        history = CookingHistory(
            user_id=user_id,
            recipe_title=recipe.title,
            recipe_url=recipe.url,
            recipe_source=recipe.source or "Unknown",
            recipe_image=recipe.image or None,
            notes=notes,
            cooked_at=now,
            ingredients_deducted=ingredients_deducted,
            can_undo=True,
            undone_at=None,
        )
        self.db.add(history)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to save cooking history: {e}")
            raise PersistenceError("Failed to save cooking history") from e
        self.db.refresh(history)

        logger.info(
            f"Logged cooking '{recipe.title}' for user {user_id}: "
            f"{len(ingredients_deducted)} deductions, {items_deleted} items removed"
        )
        return CookingLogResult(
            history=history,
            updated_inventory=self.list_inventory(user_id),
            items_deleted=items_deleted,
            outcomes=outcomes,
        )

    def _update_quantity(self, user_id: int, deduction: Deduction, quantity_after: float) -> None:
        try:
            updated = (
                self.db.query(InventoryItem)
                .filter(
                    InventoryItem.id == deduction.inventory_item_id,
                    InventoryItem.user_id == user_id,
                )
                .update({InventoryItem.quantity: quantity_after}, synchronize_session=False)
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update inventory item {deduction.inventory_item_id}: {e}")
            raise PersistenceError(f"Failed to update {deduction.item_name} in inventory") from e

        if updated == 0:
            self.db.rollback()
            logger.error(
                f"Inventory item {deduction.inventory_item_id} not found for user {user_id}"
            )
            raise PersistenceError(f"Failed to update {deduction.item_name} in inventory")

    def _ensure_owned(self, user_id: int, deduction: Deduction) -> None:
        """Depleted items are deleted later in one batch; check they exist up front."""
        try:
            owned = (
                self.db.query(InventoryItem.id)
                .filter(
                    InventoryItem.id == deduction.inventory_item_id,
                    InventoryItem.user_id == user_id,
                )
                .first()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to look up inventory item {deduction.inventory_item_id}: {e}")
            raise PersistenceError(f"Failed to update {deduction.item_name} in inventory") from e

        if owned is None:
            self.db.rollback()
            logger.error(
                f"Inventory item {deduction.inventory_item_id} not found for user {user_id}"
            )
            raise PersistenceError(f"Failed to update {deduction.item_name} in inventory")

    def _delete_depleted(
        self,
        user_id: int,
        item_ids: list[str],
        names_by_id: dict[str, str],
    ) -> tuple[int, list[ItemOutcome]]:
        try:
            with self.db.begin_nested():
                deleted = (
                    self.db.query(InventoryItem)
                    .filter(InventoryItem.id.in_(item_ids), InventoryItem.user_id == user_id)
                    .delete(synchronize_session=False)
                )
        except SQLAlchemyError as e:
            logger.error(f"Failed to delete depleted inventory items: {e}")
            return 0, [
                ItemOutcome(
                    inventory_item_id=item_id,
                    item_name=names_by_id[item_id],
                    action="failed",
                    error=f"Could not remove depleted item {names_by_id[item_id]}",
                )
                for item_id in item_ids
            ]

        return deleted, [
            ItemOutcome(inventory_item_id=item_id, item_name=names_by_id[item_id], action="deleted")
            for item_id in item_ids
        ]

    # --- Undo engine ---

    def get_entry(self, user_id: int, cooking_history_id: str) -> CookingHistory:
        entry = (
            self.db.query(CookingHistory)
            .filter(
                CookingHistory.id == cooking_history_id,
                CookingHistory.user_id == user_id,
            )
            .first()
        )
        if not entry:
            raise NotFoundError("Cooking history entry not found")
        return entry

    def is_undoable(self, entry: CookingHistory, now: datetime | None = None) -> bool:
        """Undone entries and entries older than the window are never undoable."""
        now = now or datetime.now(UTC)
        if entry.undone_at is not None or not entry.can_undo:
            return False
        return now - as_utc(entry.cooked_at) < self.undo_window

    def undo_cooking(
        self,
        user_id: int,
        cooking_history_id: str,
        now: datetime | None = None,
    ) -> UndoResult:
        """Give back every deducted quantity and close the history entry.

        Rows that still exist are incremented by the deducted amount, so manual
        edits made since the cook are kept. Rows that were deleted at zero are
        recreated under their old id with price 0. A row that can't be
        recreated is skipped with a warning; the entry is closed regardless.
        """
        now = now or datetime.now(UTC)
        entry = self.get_entry(user_id, cooking_history_id)

        if entry.undone_at is not None:
            raise UndoRejectedError("This cooking entry has already been undone")
        if not self.is_undoable(entry, now):
            raise UndoRejectedError(
                "This cooking entry can no longer be undone "
                f"({self.settings.undo_window_hours}-hour limit exceeded)"
            )

        outcomes = [
            self._restore_item(user_id, record) for record in entry.ingredients_deducted or []
        ]

        entry.undone_at = now
        entry.can_undo = False
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to mark cooking {entry.id} as undone: {e}")
            raise PersistenceError("Failed to undo cooking") from e
        self.db.refresh(entry)

        logger.info(f"Undid cooking {entry.id} for user {user_id}")
        return UndoResult(
            history=entry,
            updated_inventory=self.list_inventory(user_id),
            outcomes=outcomes,
        )

    def _restore_item(self, user_id: int, record: dict[str, Any]) -> ItemOutcome:
        item_id = str(record["inventory_item_id"])
        item_name = record.get("item_name") or "Unknown item"
        quantity = float(record.get("quantity_deducted") or 0)

        existing = (
            self.db.query(InventoryItem)
            .filter(InventoryItem.id == item_id, InventoryItem.user_id == user_id)
            .first()
        )
        if existing:
            try:
                existing.quantity = existing.quantity + quantity
                self.db.flush()
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Failed to restore inventory item {item_id}: {e}")
                raise PersistenceError(f"Failed to restore {item_name} in inventory") from e
            return ItemOutcome(inventory_item_id=item_id, item_name=item_name, action="restored")

        if quantity <= 0:
            return ItemOutcome(inventory_item_id=item_id, item_name=item_name, action="restored")

        try:
            with self.db.begin_nested():
                self.db.add(
                    InventoryItem(
                        id=item_id,
                        user_id=user_id,
                        name=item_name,
                        quantity=quantity,
                        price=0,
                    )
                )
        except SQLAlchemyError as e:
            logger.error(f"Failed to recreate inventory item {item_id}: {e}")
            return ItemOutcome(
                inventory_item_id=item_id,
                item_name=item_name,
                action="failed",
                error=f"Could not recreate {item_name} in inventory",
            )
        return ItemOutcome(inventory_item_id=item_id, item_name=item_name, action="recreated")

    # --- History ---

    def list_history(
        self,
        user_id: int,
        page: int = 1,
        limit: int = 10,
        now: datetime | None = None,
    ) -> tuple[list[tuple[CookingHistory, bool]], int, int]:
        """Active (not undone) entries, newest first.

        Returns ``(entries, total, total_pages)`` where each entry is paired
        with whether it can still be undone.
        """
        now = now or datetime.now(UTC)
        query = self.db.query(CookingHistory).filter(
            CookingHistory.user_id == user_id,
            CookingHistory.undone_at.is_(None),
        )
        total = query.count()
        entries = (
            query.order_by(CookingHistory.cooked_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        total_pages = math.ceil(total / limit) if limit else 0
        return [(entry, self.is_undoable(entry, now)) for entry in entries], total, total_pages
