"""Cooking ledger and undo engine tests against the service directly."""

from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from eat.exceptions import PersistenceError, UndoRejectedError
from eat.models.cooking_history import CookingHistory
from eat.models.inventory import InventoryItem
from eat.models.user import User
from eat.schemas.cooking import Deduction, RecipeSnapshot
from eat.services.cooking_service import CookingService

COOKED_AT = datetime(2026, 3, 1, 18, 30, tzinfo=UTC)
RECIPE = RecipeSnapshot(title="Shakshuka", url="https://example.com/shakshuka")


@pytest.fixture
def user(db):
    user = User(email="cook@example.com", password_hash="hash")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def other_user(db):
    user = User(email="neighbour@example.com", password_hash="hash")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def service(db):
    return CookingService(db)


def deduct(item: InventoryItem, amount: float) -> Deduction:
    return Deduction(
        inventory_item_id=item.id,
        item_name=item.name,
        quantity_before=item.quantity,
        quantity_to_deduct=amount,
    )


def test_log_records_effective_amounts(service, user, make_item):
    eggs = make_item(user.id, "Eggs", 3)
    tomatoes = make_item(user.id, "Tomatoes", 6)

    result = service.log_cooking(
        user.id, RECIPE, [deduct(eggs, 5), deduct(tomatoes, 4)], now=COOKED_AT
    )

    assert result.items_deleted == 1
    assert [(i.name, i.quantity) for i in result.updated_inventory] == [("Tomatoes", 2)]
    eggs_record, tomato_record = result.history.ingredients_deducted
    assert eggs_record["quantity_deducted"] == 3
    assert eggs_record["quantity_after"] == 0
    assert tomato_record["quantity_deducted"] == 4
    assert tomato_record["quantity_after"] == 2
    assert result.history.recipe_source == "Unknown"


def test_failed_batch_delete_is_a_warning(service, user, make_item, db):
    """Depleted items that can't be removed don't stop the history entry."""
    milk = make_item(user.id, "Milk", 2)
    flour = make_item(user.id, "Flour", 5)

    with patch(
        "sqlalchemy.orm.Query.delete",
        side_effect=OperationalError("DELETE", {}, Exception("database is locked")),
    ):
        result = service.log_cooking(user.id, RECIPE, [deduct(milk, 2), deduct(flour, 1)])

    assert result.items_deleted == 0
    assert result.warnings == ["Could not remove depleted item Milk"]
    assert db.query(CookingHistory).count() == 1
    inventory = {i.name: i.quantity for i in result.updated_inventory}
    assert inventory == {"Milk": 2, "Flour": 4}


def test_depleting_unknown_item_writes_nothing(service, user, make_item, db):
    """An unknown id is rejected even when the cook would have deleted it."""
    flour = make_item(user.id, "Flour", 5)
    ghost = Deduction(
        inventory_item_id="ghost",
        item_name="Saffron",
        quantity_before=50,
        quantity_to_deduct=50,
    )

    with pytest.raises(PersistenceError, match="Failed to update Saffron in inventory"):
        service.log_cooking(user.id, RECIPE, [deduct(flour, 1), ghost])

    assert db.query(CookingHistory).count() == 0
    assert db.get(InventoryItem, flour.id).quantity == 5


def test_depleting_other_users_item_is_rejected(service, user, other_user, make_item, db):
    bread = make_item(other_user.id, "Bread", 2)

    with pytest.raises(PersistenceError, match="Failed to update Bread in inventory"):
        service.log_cooking(user.id, RECIPE, [deduct(bread, 2)])

    assert db.get(InventoryItem, bread.id) is not None
    assert db.query(CookingHistory).count() == 0


def test_repeated_depleted_item_is_deleted_once(service, user, make_item):
    milk = make_item(user.id, "Milk", 2)

    with patch(
        "sqlalchemy.orm.Query.delete",
        side_effect=OperationalError("DELETE", {}, Exception("database is locked")),
    ):
        result = service.log_cooking(user.id, RECIPE, [deduct(milk, 2), deduct(milk, 3)])

    assert len(result.outcomes) == 1
    assert result.warnings == ["Could not remove depleted item Milk"]


def test_failed_history_commit_raises(service, user, make_item, db):
    flour = make_item(user.id, "Flour", 5)

    with (
        patch.object(db, "commit", side_effect=OperationalError("INSERT", {}, Exception("disk full"))),
        pytest.raises(PersistenceError, match="Failed to save cooking history"),
    ):
        service.log_cooking(user.id, RECIPE, [deduct(flour, 1)])

    assert db.query(CookingHistory).count() == 0
    assert db.get(InventoryItem, flour.id).quantity == 5


@pytest.mark.parametrize(
    ("age", "undoable"),
    [
        (timedelta(0), True),
        (timedelta(hours=23, minutes=59), True),
        (timedelta(hours=24), False),
        (timedelta(hours=24, minutes=1), False),
        (timedelta(days=3), False),
    ],
)
def test_undo_window(service, user, make_item, age, undoable):
    item = make_item(user.id, "Chickpeas", 4)
    entry = service.log_cooking(user.id, RECIPE, [deduct(item, 1)], now=COOKED_AT).history

    assert service.is_undoable(entry, COOKED_AT + age) is undoable
    if undoable:
        service.undo_cooking(user.id, entry.id, now=COOKED_AT + age)
    else:
        with pytest.raises(UndoRejectedError, match="24-hour limit exceeded"):
            service.undo_cooking(user.id, entry.id, now=COOKED_AT + age)


def test_undo_closes_entry(service, user, make_item):
    item = make_item(user.id, "Peppers", 3)
    entry = service.log_cooking(user.id, RECIPE, [deduct(item, 2)], now=COOKED_AT).history
    undo_time = COOKED_AT + timedelta(hours=1)

    result = service.undo_cooking(user.id, entry.id, now=undo_time)

    assert result.warnings == []
    assert [o.action for o in result.outcomes] == ["restored"]
    assert result.history.can_undo is False
    assert result.history.undone_at is not None
    assert not service.is_undoable(result.history, undo_time)
    with pytest.raises(UndoRejectedError, match="already been undone"):
        service.undo_cooking(user.id, entry.id, now=undo_time)


def test_failed_recreate_is_a_warning(service, user, other_user, make_item, db):
    """A deleted item whose id has been taken is skipped; the entry still closes."""
    milk = make_item(user.id, "Milk", 2)
    milk_id = milk.id
    entry = service.log_cooking(user.id, RECIPE, [deduct(milk, 2)], now=COOKED_AT).history
    make_item(other_user.id, "Oat Milk", 1, id=milk_id)

    result = service.undo_cooking(user.id, entry.id, now=COOKED_AT + timedelta(minutes=5))

    assert result.warnings == ["Could not recreate Milk in inventory"]
    assert result.outcomes[0].action == "failed"
    assert result.updated_inventory == []
    db.refresh(result.history)
    assert result.history.can_undo is False
    assert result.history.undone_at is not None


def test_undo_recreates_missing_item(service, user, make_item, db):
    butter = make_item(user.id, "Butter", 1, price=3.25, unit="block")
    butter_id = butter.id
    entry = service.log_cooking(user.id, RECIPE, [deduct(butter, 1)], now=COOKED_AT).history
    assert db.get(InventoryItem, butter_id) is None

    result = service.undo_cooking(user.id, entry.id, now=COOKED_AT + timedelta(hours=2))

    assert [o.action for o in result.outcomes] == ["recreated"]
    recreated = db.get(InventoryItem, butter_id)
    assert recreated.name == "Butter"
    assert recreated.quantity == 1
    assert recreated.price == 0
    assert recreated.user_id == user.id


def test_history_excludes_undone_and_pages(service, user, make_item):
    item = make_item(user.id, "Rice", 50)
    entries = [
        service.log_cooking(
            user.id, RECIPE, [deduct(item, 1)], now=COOKED_AT + timedelta(hours=hour)
        ).history
        for hour in range(4)
    ]
    now = COOKED_AT + timedelta(hours=24, minutes=30)
    service.undo_cooking(user.id, entries[3].id, now=COOKED_AT + timedelta(hours=4))

    page, total, total_pages = service.list_history(user.id, page=1, limit=2, now=now)

    assert total == 3
    assert total_pages == 2
    assert [entry.id for entry, _ in page] == [entries[2].id, entries[1].id]
    assert [can_undo for _, can_undo in page] == [True, True]

    page, _, _ = service.list_history(user.id, page=2, limit=2, now=now)
    assert [(entry.id, can_undo) for entry, can_undo in page] == [(entries[0].id, False)]
