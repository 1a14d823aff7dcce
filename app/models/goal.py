from datetime import datetime
from typing import Optional
from uuid import uuid4

from pydantic import Field

from app.models.base import CamelModel
from app.utils.dates import utcnow


class GoalCreate(CamelModel):
    name: str = Field(min_length=1)
    target_amount: float = Field(ge=0)
    current_amount: float = Field(default=0, ge=0)
    deadline: Optional[datetime] = None


class GoalUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    target_amount: Optional[float] = Field(default=None, ge=0)
    current_amount: Optional[float] = Field(default=None, ge=0)
    deadline: Optional[datetime] = None
    is_completed: Optional[bool] = None


class GoalContribution(CamelModel):
    amount: float = Field(allow_inf_nan=False)


class GoalInDB(CamelModel):
    user_id: str
    goal_id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    target_amount: float
    current_amount: float = 0
    deadline: Optional[datetime] = None
    is_completed: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class GoalPublic(CamelModel):
    id: str
    owner_id: str
    name: str
    target_amount: float
    current_amount: float
    deadline: Optional[datetime] = None
    is_completed: bool
    created_at: datetime
    updated_at: Optional[datetime] = None


class GoalWithProgress(GoalPublic):
    progress: float = 0
    remaining: float = 0
