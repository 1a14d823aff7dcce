import logging
from typing import List

from fastapi import APIRouter, Depends, status

from app.core.errors import NotFoundError, ValidationError
from app.db.dynamo import DynamoStore
from app.models.budget import BudgetCreate, BudgetInDB, BudgetPublic, BudgetUpdate, BudgetWithSpending
from app.routers.deps import finance_analyzer, get_current_user_id, get_store
from app.utils.dates import utcnow

router = APIRouter()
logger = logging.getLogger(__name__)


def to_public(record: dict) -> BudgetPublic:
    return BudgetPublic.model_validate({**record, "id": record["budget_id"], "owner_id": record["user_id"]})


@router.get("", response_model=List[BudgetWithSpending])
def list_budgets(user_id: str = Depends(get_current_user_id), store: DynamoStore = Depends(get_store)):
    """
    All budgets with spent / remaining / percentage for the current period
    window (calendar month or calendar year to date).
    """
    budgets = store.list_budgets(user_id)
    if not budgets:
        return []

    now = utcnow()
    earliest = min(finance_analyzer.budget_window_start(b.get("period", "monthly"), now) for b in budgets)
    expenses = store.list_transactions(user_id, tx_type="expense", start=earliest)

    return [
        BudgetWithSpending(
            **to_public(budget).model_dump(),
            **finance_analyzer.budget_spending(budget, expenses, now),
        )
        for budget in budgets
    ]


@router.post("", response_model=BudgetPublic, status_code=status.HTTP_201_CREATED)
def create_budget(
    budget: BudgetCreate,
    user_id: str = Depends(get_current_user_id),
    store: DynamoStore = Depends(get_store),
):
    now = utcnow()
    budget_db = BudgetInDB(
        user_id=user_id,
        category=budget.category,
        amount=budget.amount,
        period=budget.period,
        start_date=budget.start_date or now,
        created_at=now,
        updated_at=now,
    )
    # Raises ValidationError while another active budget holds the category
    saved = store.create_budget(budget_db.model_dump())
    logger.info("Budget %s (%s) created for user %s", saved["budget_id"], saved["category"], user_id)
    return to_public(saved)


@router.put("/{budget_id}", response_model=BudgetPublic)
def update_budget(
    budget_id: str,
    budget_update: BudgetUpdate,
    user_id: str = Depends(get_current_user_id),
    store: DynamoStore = Depends(get_store),
):
    current = store.get_budget(user_id, budget_id)
    if not current:
        raise NotFoundError("Budget not found")

    updates = {k: v for k, v in budget_update.model_dump(exclude_unset=True).items() if v is not None}
    if not updates:
        raise ValidationError("No fields to update")
    updates["updated_at"] = utcnow()

    updated = store.update_budget(current, updates)
    if not updated:
        raise NotFoundError("Budget not found")
    return to_public(updated)


@router.delete("/{budget_id}")
def delete_budget(
    budget_id: str,
    user_id: str = Depends(get_current_user_id),
    store: DynamoStore = Depends(get_store),
):
    if not store.delete_budget(user_id, budget_id):
        raise NotFoundError("Budget not found")
    return {"message": "Budget deleted successfully"}
