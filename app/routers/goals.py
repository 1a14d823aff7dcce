import logging
from typing import List

from fastapi import APIRouter, Depends, status

from app.core.errors import NotFoundError, ValidationError
from app.db.dynamo import DynamoStore
from app.models.goal import GoalContribution, GoalCreate, GoalInDB, GoalPublic, GoalUpdate, GoalWithProgress
from app.routers.deps import finance_analyzer, get_current_user_id, get_store
from app.utils.dates import utcnow

router = APIRouter()
logger = logging.getLogger(__name__)


def to_public(record: dict) -> GoalPublic:
    return GoalPublic.model_validate({**record, "id": record["goal_id"], "owner_id": record["user_id"]})


@router.get("", response_model=List[GoalWithProgress])
def list_goals(user_id: str = Depends(get_current_user_id), store: DynamoStore = Depends(get_store)):
    return [
        GoalWithProgress(**to_public(goal).model_dump(), **finance_analyzer.goal_progress(goal))
        for goal in store.list_goals(user_id)
    ]


@router.post("", response_model=GoalPublic, status_code=status.HTTP_201_CREATED)
def create_goal(
    goal: GoalCreate,
    user_id: str = Depends(get_current_user_id),
    store: DynamoStore = Depends(get_store),
):
    now = utcnow()
    goal_db = GoalInDB(
        user_id=user_id,
        name=goal.name.strip(),
        target_amount=goal.target_amount,
        current_amount=goal.current_amount,
        deadline=goal.deadline,
        created_at=now,
        updated_at=now,
    )
    saved = store.put_goal(goal_db.model_dump())
    logger.info("Goal %s created for user %s", saved["goal_id"], user_id)
    return to_public(saved)


@router.put("/{goal_id}", response_model=GoalPublic)
def update_goal(
    goal_id: str,
    goal_update: GoalUpdate,
    user_id: str = Depends(get_current_user_id),
    store: DynamoStore = Depends(get_store),
):
    """
    Direct edits never recompute ``isCompleted``; only the add operation
    or an explicit ``isCompleted`` value changes it.
    """
    updates = {k: v for k, v in goal_update.model_dump(exclude_unset=True).items() if v is not None}
    if not updates:
        raise ValidationError("No fields to update")
    updates["updated_at"] = utcnow()

    updated = store.update_goal(user_id, goal_id, updates)
    if not updated:
        raise NotFoundError("Goal not found")
    return to_public(updated)


@router.post("/{goal_id}/add", response_model=GoalPublic)
def add_to_goal(
    goal_id: str,
    contribution: GoalContribution,
    user_id: str = Depends(get_current_user_id),
    store: DynamoStore = Depends(get_store),
):
    goal = store.add_to_goal(user_id, goal_id, contribution.amount, reached=finance_analyzer.goal_reached)
    if not goal:
        raise NotFoundError("Goal not found")
    return to_public(goal)


@router.delete("/{goal_id}")
def delete_goal(
    goal_id: str,
    user_id: str = Depends(get_current_user_id),
    store: DynamoStore = Depends(get_store),
):
    if not store.delete_goal(user_id, goal_id):
        raise NotFoundError("Goal not found")
    return {"message": "Goal deleted successfully"}
