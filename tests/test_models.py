import pytest
from pydantic import ValidationError

from app.models.budget import BudgetCreate, BudgetUpdate
from app.models.goal import GoalContribution, GoalCreate
from app.models.transaction import TransactionCreate, TransactionUpdate
from app.models.user import UserCreate


def valid_transaction(**overrides):
    payload = {"type": "expense", "amount": 12.5, "category": "Food", "division": "Personal"}
    payload.update(overrides)
    return payload


def test_transaction_accepts_camel_case_payload():
    tx = TransactionCreate.model_validate(valid_transaction(description="  lunch  ", date="2025-11-01"))
    assert tx.description == "lunch"
    assert tx.date.year == 2025


@pytest.mark.parametrize("field", ["type", "amount", "category", "division"])
def test_transaction_requires_core_fields(field):
    payload = valid_transaction()
    del payload[field]
    with pytest.raises(ValidationError):
        TransactionCreate.model_validate(payload)


def test_transaction_rejects_negative_amount():
    with pytest.raises(ValidationError):
        TransactionCreate.model_validate(valid_transaction(amount=-1))


def test_transaction_category_must_match_type():
    with pytest.raises(ValidationError, match="not a valid income category"):
        TransactionCreate.model_validate(valid_transaction(type="income", category="Food"))
    assert TransactionCreate.model_validate(valid_transaction(type="income", category="Salary"))


def test_transaction_rejects_unknown_division():
    with pytest.raises(ValidationError):
        TransactionCreate.model_validate(valid_transaction(division="Family"))


def test_transaction_description_limit():
    assert TransactionCreate.model_validate(valid_transaction(description="x" * 200))
    with pytest.raises(ValidationError):
        TransactionCreate.model_validate(valid_transaction(description="x" * 201))


def test_transaction_update_tracks_supplied_fields():
    update = TransactionUpdate.model_validate({"amount": 5})
    assert update.model_dump(exclude_unset=True) == {"amount": 5.0}


def test_budget_validation():
    budget = BudgetCreate.model_validate({"category": "Rent", "amount": 900})
    assert budget.period == "monthly"
    with pytest.raises(ValidationError):
        BudgetCreate.model_validate({"category": "Salary", "amount": 900})
    with pytest.raises(ValidationError):
        BudgetCreate.model_validate({"category": "Rent"})
    with pytest.raises(ValidationError):
        BudgetCreate.model_validate({"category": "Rent", "amount": 10, "period": "weekly"})
    assert BudgetUpdate.model_validate({"isActive": False}).is_active is False


def test_goal_validation():
    goal = GoalCreate.model_validate({"name": "Laptop", "targetAmount": 1500})
    assert goal.current_amount == 0
    with pytest.raises(ValidationError):
        GoalCreate.model_validate({"name": "Laptop"})
    with pytest.raises(ValidationError):
        GoalContribution.model_validate({"amount": "lots"})


def test_signup_requires_six_character_password():
    with pytest.raises(ValidationError):
        UserCreate(name="Ana", email="ana@example.com", password="12345")
    with pytest.raises(ValidationError):
        UserCreate(name="Ana", email="not-an-email", password="123456")
