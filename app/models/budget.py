from datetime import datetime
from typing import Annotated, Literal, Optional
from uuid import uuid4

from pydantic import AfterValidator, Field

from app.models.base import CamelModel
from app.models.transaction import EXPENSE_CATEGORIES
from app.utils.dates import utcnow

BudgetPeriod = Literal["monthly", "yearly"]


def _expense_category(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in EXPENSE_CATEGORIES:
        raise ValueError(f"'{value}' is not a valid expense category")
    return value


ExpenseCategory = Annotated[Optional[str], AfterValidator(_expense_category)]


class BudgetCreate(CamelModel):
    category: Annotated[str, AfterValidator(_expense_category)]
    amount: float = Field(ge=0)
    period: BudgetPeriod = "monthly"
    start_date: Optional[datetime] = None


class BudgetUpdate(CamelModel):
    category: ExpenseCategory = None
    amount: Optional[float] = Field(default=None, ge=0)
    period: Optional[BudgetPeriod] = None
    is_active: Optional[bool] = None


class BudgetInDB(CamelModel):
    user_id: str
    budget_id: str = Field(default_factory=lambda: str(uuid4()))
    category: str
    amount: float
    period: BudgetPeriod = "monthly"
    start_date: datetime = Field(default_factory=utcnow)
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class BudgetPublic(CamelModel):
    id: str
    owner_id: str
    category: str
    amount: float
    period: BudgetPeriod
    start_date: datetime
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None


class BudgetWithSpending(BudgetPublic):
    spent: float = 0
    remaining: float = 0
    percentage: float = 0
