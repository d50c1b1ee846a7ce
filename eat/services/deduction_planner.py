"""Deduction planning: per-item amounts the user can tweak before cooking."""

from collections.abc import Iterable
from dataclasses import dataclass

from eat.exceptions import NotFoundError
from eat.schemas.cooking import Deduction, DeductionPreview, IngredientMatch


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(value, upper))


@dataclass
class PlannedDeduction:
    inventory_item_id: str
    item_name: str
    current_quantity: float
    amount: float

    @property
    def quantity_after(self) -> float:
        return max(0.0, self.current_quantity - self.amount)

    @property
    def will_be_removed(self) -> bool:
        return self.amount > 0 and self.amount >= self.current_quantity


class DeductionPlanner:
    """Holds one deduction amount per matched inventory item.

    Amounts always stay within ``[0, current_quantity]``; out-of-range input
    is clamped rather than rejected. When several ingredients map to the same
    item, the first match seeds the amount.
    """

    def __init__(self) -> None:
        self._items: dict[str, PlannedDeduction] = {}

    @classmethod
    def from_matches(cls, matches: Iterable[IngredientMatch]) -> "DeductionPlanner":
        planner = cls()
        for match in matches:
            if match.matched_inventory_id is None or match.current_quantity is None:
                continue
            if match.matched_inventory_id in planner._items:
                continue
            current = max(match.current_quantity, 0.0)
            planner._items[match.matched_inventory_id] = PlannedDeduction(
                inventory_item_id=match.matched_inventory_id,
                item_name=match.matched_inventory_name or match.recipe_ingredient,
                current_quantity=current,
                amount=clamp(match.suggested_deduction, 0.0, current),
            )
        return planner

    def __contains__(self, inventory_item_id: str) -> bool:
        return inventory_item_id in self._items

    def amount(self, inventory_item_id: str) -> float:
        return self._get(inventory_item_id).amount

    def set_amount(self, inventory_item_id: str, value: float) -> float:
        """Set the amount to deduct, clamped to the available stock. Returns the stored value."""
        planned = self._get(inventory_item_id)
        planned.amount = clamp(value, 0.0, planned.current_quantity)
        return planned.amount

    def will_be_removed(self, inventory_item_id: str) -> bool:
        return self._get(inventory_item_id).will_be_removed

    def preview(self) -> list[DeductionPreview]:
        return [
            DeductionPreview(
                inventory_item_id=planned.inventory_item_id,
                item_name=planned.item_name,
                current_quantity=planned.current_quantity,
                quantity_to_deduct=planned.amount,
                quantity_after=planned.quantity_after,
                will_be_removed=planned.will_be_removed,
            )
            for planned in self._items.values()
        ]

    def to_deductions(self) -> list[Deduction]:
        """Finalized deductions, leaving out items set to zero."""
        return [
            Deduction(
                inventory_item_id=planned.inventory_item_id,
                item_name=planned.item_name,
                quantity_before=planned.current_quantity,
                quantity_to_deduct=planned.amount,
            )
            for planned in self._items.values()
            if planned.amount > 0
        ]

    def _get(self, inventory_item_id: str) -> PlannedDeduction:
        try:
            return self._items[inventory_item_id]
        except KeyError:
            raise NotFoundError(f"No matched inventory item '{inventory_item_id}'") from None
