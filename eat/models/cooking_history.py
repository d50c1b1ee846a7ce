"""Cooking history model: the ledger that makes a cook reversible."""

from datetime import UTC, datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from eat.database import Base
from eat.models.inventory import generate_id


class CookingHistory(Base):
    """One cook action and the inventory deductions it applied.

    ``ingredients_deducted`` is a list of
    ``{inventory_item_id, item_name, quantity_before, quantity_deducted, quantity_after}``
    records and is the only input used to reverse the cook. The row is written
    once and mutated at most once more, when it is undone.
    """

    __tablename__ = "cooking_history"

    id = Column(String(64), primary_key=True, default=generate_id)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Recipe snapshot (the recipe itself may not be stored anywhere)
    recipe_title = Column(String(500), nullable=False)
    recipe_url = Column(Text, nullable=False)
    recipe_source = Column(String(255), nullable=False, default="Unknown")
    recipe_image = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    cooked_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC), index=True
    )
    ingredients_deducted = Column(JSON, nullable=False, default=list)

    can_undo = Column(Boolean, nullable=False, default=True)
    undone_at = Column(DateTime(timezone=True), nullable=True)
