from datetime import datetime, timedelta, timezone

import pytest

from app.core.errors import NotFoundError, ValidationError
from app.models.budget import BudgetInDB
from app.models.goal import GoalInDB
from app.models.transaction import TransactionInDB
from app.models.user import UserInDB
from app.utils.analyzer import FinanceAnalyzer


def make_transaction(user_id="u1", **overrides):
    fields = {"user_id": user_id, "type": "expense", "amount": 10.0, "category": "Food", "division": "Personal"}
    fields.update(overrides)
    return TransactionInDB(**fields).model_dump()


def test_user_lookup_by_email_is_case_insensitive(store):
    user = UserInDB(name="Ana", email="Ana@Example.com", password_hash="hash").model_dump()
    store.put_user(user)

    found = store.get_user_by_email("ANA@example.com")
    assert found["user_id"] == user["user_id"]
    assert found["email"] == "ana@example.com"
    assert store.get_user_by_email("nobody@example.com") is None


def test_transactions_are_scoped_to_owner(store):
    mine = store.put_transaction(make_transaction("u1"))
    store.put_transaction(make_transaction("u2"))

    assert [t["transaction_id"] for t in store.list_transactions("u1")] == [mine["transaction_id"]]
    assert store.get_transaction("u2", mine["transaction_id"]) is None
    assert store.update_transaction("u2", mine["transaction_id"], {"amount": 1.0}) is None
    assert store.delete_transaction("u2", mine["transaction_id"]) is False
    assert store.get_transaction("u1", mine["transaction_id"])["amount"] == 10


def test_list_transactions_filters_and_orders(store):
    now = datetime(2025, 11, 20, tzinfo=timezone.utc)
    old = store.put_transaction(make_transaction(date=now - timedelta(days=10), category="Rent"))
    recent = store.put_transaction(make_transaction(date=now - timedelta(days=2)))
    salary = store.put_transaction(make_transaction(type="income", category="Salary", date=now))

    ids = [t["transaction_id"] for t in store.list_transactions("u1")]
    assert ids == [salary["transaction_id"], recent["transaction_id"], old["transaction_id"]]

    assert [t["transaction_id"] for t in store.list_transactions("u1", category="Rent")] == [old["transaction_id"]]
    assert [t["transaction_id"] for t in store.list_transactions("u1", tx_type="income")] == [
        salary["transaction_id"]
    ]
    window = store.list_transactions("u1", start=now - timedelta(days=7), end=now - timedelta(days=1))
    assert [t["transaction_id"] for t in window] == [recent["transaction_id"]]


def test_amounts_round_trip_as_numbers(store):
    saved = store.put_transaction(make_transaction(amount=19.99))
    assert store.get_transaction("u1", saved["transaction_id"])["amount"] == 19.99


def test_only_one_active_budget_per_category(store):
    first = store.create_budget(BudgetInDB(user_id="u1", category="Food", amount=300.0).model_dump())
    with pytest.raises(ValidationError, match="Budget already exists for this category"):
        store.create_budget(BudgetInDB(user_id="u1", category="Food", amount=500.0).model_dump())

    # Other users and other categories are unaffected
    store.create_budget(BudgetInDB(user_id="u2", category="Food", amount=100.0).model_dump())
    store.create_budget(BudgetInDB(user_id="u1", category="Rent", amount=900.0).model_dump())

    store.update_budget(first, {"is_active": False})
    second = store.create_budget(BudgetInDB(user_id="u1", category="Food", amount=500.0).model_dump())

    budgets = store.list_budgets("u1")
    assert {first["budget_id"], second["budget_id"]} <= {b["budget_id"] for b in budgets}
    assert all(not b["budget_id"].startswith("ACTIVE#") for b in budgets)
    assert len(budgets) == 3


def test_reactivating_a_budget_respects_the_guard(store):
    first = store.create_budget(BudgetInDB(user_id="u1", category="Food", amount=300.0).model_dump())
    first = store.update_budget(first, {"is_active": False})
    store.create_budget(BudgetInDB(user_id="u1", category="Food", amount=500.0).model_dump())

    with pytest.raises(ValidationError):
        store.update_budget(first, {"is_active": True})
    assert store.get_budget("u1", first["budget_id"])["is_active"] is False


def test_moving_a_budget_to_another_category_moves_the_guard(store):
    budget = store.create_budget(BudgetInDB(user_id="u1", category="Food", amount=300.0).model_dump())
    moved = store.update_budget(budget, {"category": "Fuel"})
    assert moved["category"] == "Fuel"

    # Food is free again, Fuel is taken
    store.create_budget(BudgetInDB(user_id="u1", category="Food", amount=100.0).model_dump())
    with pytest.raises(ValidationError):
        store.create_budget(BudgetInDB(user_id="u1", category="Fuel", amount=100.0).model_dump())


def test_stale_budget_update_is_not_reported_as_a_duplicate(store):
    budget = store.create_budget(BudgetInDB(user_id="u1", category="Food", amount=300.0).model_dump())
    store.update_budget(budget, {"is_active": False})

    # Written against the copy read while the budget was still active
    with pytest.raises(NotFoundError):
        store.update_budget(budget, {"category": "Fuel"})
    assert store.get_budget("u1", budget["budget_id"])["category"] == "Food"
    store.create_budget(BudgetInDB(user_id="u1", category="Fuel", amount=100.0).model_dump())


def test_updating_a_deleted_budget_reports_not_found(store):
    budget = store.create_budget(BudgetInDB(user_id="u1", category="Food", amount=300.0).model_dump())
    store.delete_budget("u1", budget["budget_id"])

    with pytest.raises(NotFoundError):
        store.update_budget(budget, {"category": "Fuel"})
    assert store.get_budget("u1", budget["budget_id"]) is None


def test_deleting_an_active_budget_releases_the_category(store):
    budget = store.create_budget(BudgetInDB(user_id="u1", category="Food", amount=300.0).model_dump())
    assert store.delete_budget("u1", budget["budget_id"]) is True
    assert store.delete_budget("u1", budget["budget_id"]) is False
    store.create_budget(BudgetInDB(user_id="u1", category="Food", amount=300.0).model_dump())


def test_guard_items_are_not_addressable_as_budgets(store):
    store.create_budget(BudgetInDB(user_id="u1", category="Food", amount=300.0).model_dump())
    assert store.get_budget("u1", "ACTIVE#Food") is None


def test_add_to_goal_increments_atomically(store):
    goal = store.put_goal(GoalInDB(user_id="u1", name="Bike", target_amount=500.0).model_dump())
    store.add_to_goal("u1", goal["goal_id"], 200)
    updated = store.add_to_goal("u1", goal["goal_id"], 50.5)
    assert updated["current_amount"] == 250.5
    assert store.add_to_goal("u2", goal["goal_id"], 10) is None


def test_add_to_goal_sets_completion_in_the_same_write(store):
    goal = store.put_goal(GoalInDB(user_id="u1", name="Bike", target_amount=300.0).model_dump())
    reached = FinanceAnalyzer().goal_reached

    partial = store.add_to_goal("u1", goal["goal_id"], 120.5, reached=reached)
    assert partial["is_completed"] is False

    done = store.add_to_goal("u1", goal["goal_id"], 179.5, reached=reached)
    assert done["current_amount"] == 300
    assert done["is_completed"] is True
    assert store.get_goal("u1", goal["goal_id"])["is_completed"] is True


def test_add_to_goal_retries_after_a_concurrent_change(store, monkeypatch):
    goal = store.put_goal(GoalInDB(user_id="u1", name="Bike", target_amount=300.0).model_dump())
    real_get_item = store.goals_table.get_item
    reads = []

    def get_item_then_interfere(**kwargs):
        response = real_get_item(**kwargs)
        if not reads:
            store.update_goal("u1", goal["goal_id"], {"current_amount": 100.0})
        reads.append(kwargs)
        return response

    monkeypatch.setattr(store.goals_table, "get_item", get_item_then_interfere)
    updated = store.add_to_goal("u1", goal["goal_id"], 250.0, reached=FinanceAnalyzer().goal_reached)

    assert len(reads) == 2
    assert updated["current_amount"] == 350
    assert updated["is_completed"] is True
