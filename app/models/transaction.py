from datetime import datetime
from typing import Annotated, Literal, Optional
from uuid import uuid4

from pydantic import BeforeValidator, Field, model_validator

from app.models.base import CamelModel
from app.utils.dates import utcnow

INCOME_CATEGORIES = ("Salary", "Freelance", "Investment", "Other Income")
EXPENSE_CATEGORIES = (
    "Food",
    "Fuel",
    "Rent",
    "Medical",
    "Loan",
    "Shopping",
    "Entertainment",
    "Utilities",
    "Education",
    "Travel",
    "Other Expense",
)
CATEGORIES_BY_TYPE = {"income": INCOME_CATEGORIES, "expense": EXPENSE_CATEGORIES}
MAX_DESCRIPTION_LENGTH = 200

TransactionType = Literal["income", "expense"]
Division = Literal["Personal", "Office"]


def check_category(tx_type: str, category: str) -> str:
    allowed = CATEGORIES_BY_TYPE.get(tx_type, ())
    if category not in allowed:
        raise ValueError(f"'{category}' is not a valid {tx_type} category")
    return category


def _clean_description(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    return value.strip()


Description = Annotated[Optional[str], BeforeValidator(_clean_description)]


class TransactionCreate(CamelModel):
    type: TransactionType
    amount: float = Field(ge=0)
    category: str
    division: Division
    description: Description = Field(default="", max_length=MAX_DESCRIPTION_LENGTH)
    date: Optional[datetime] = None

    @model_validator(mode="after")
    def category_matches_type(self):
        check_category(self.type, self.category)
        return self


class TransactionUpdate(CamelModel):
    type: Optional[TransactionType] = None
    amount: Optional[float] = Field(default=None, ge=0)
    category: Optional[str] = None
    division: Optional[Division] = None
    description: Description = Field(default=None, max_length=MAX_DESCRIPTION_LENGTH)
    date: Optional[datetime] = None


class TransactionInDB(CamelModel):
    user_id: str
    transaction_id: str = Field(default_factory=lambda: str(uuid4()))
    type: TransactionType
    amount: float
    category: str
    division: Division
    description: str = ""
    date: datetime = Field(default_factory=utcnow)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class TransactionPublic(CamelModel):
    id: str
    owner_id: str
    type: TransactionType
    amount: float
    category: str
    division: Division
    description: str = ""
    date: datetime
    created_at: datetime
    updated_at: Optional[datetime] = None
    editable: bool = False


class TransactionStats(CamelModel):
    total_income: float
    total_expense: float
    balance: float


class CategoryValue(CamelModel):
    name: str
    value: float


class DailyIncomeExpense(CamelModel):
    date: str
    income: float
    expense: float


class AnalyticsResponse(CamelModel):
    category_breakdown: list[CategoryValue]
    income_expense_data: list[DailyIncomeExpense]
