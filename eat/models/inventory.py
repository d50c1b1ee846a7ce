"""Inventory item model for quantity-tracked groceries."""

import uuid

from sqlalchemy import CheckConstraint, Column, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from eat.database import Base
from eat.models.mixins import TimestampMixin


def generate_id() -> str:
    return str(uuid.uuid4())


class InventoryItem(Base, TimestampMixin):
    """A grocery item the user has at home, with a tracked quantity.

    Rows are deleted rather than kept at zero quantity. The id is a plain
    string so that undoing a cook can recreate a deleted row under its
    original id.
    """

    __tablename__ = "inventory_items"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
        CheckConstraint("price >= 0", name="ck_inventory_price_non_negative"),
    )

    id = Column(String(64), primary_key=True, default=generate_id)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    quantity = Column(Float, nullable=False, default=1)
    unit = Column(String(50), nullable=True)  # "lb", "oz", "cups"... null for plain counts
    price = Column(Float, nullable=False, default=0)

    # Relationships
    user = relationship("User", backref="inventory_items")
