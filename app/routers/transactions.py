import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from app.core.errors import NotFoundError, ValidationError
from app.db.dynamo import DynamoStore
from app.models.transaction import (
    AnalyticsResponse,
    Division,
    TransactionCreate,
    TransactionInDB,
    TransactionPublic,
    TransactionStats,
    TransactionType,
    TransactionUpdate,
    check_category,
)
from app.routers.deps import finance_analyzer, get_current_user_id, get_store
from app.utils.dates import parse_bound, utcnow
from app.utils.edit_window import ensure_editable, is_editable

router = APIRouter()
logger = logging.getLogger(__name__)


def to_public(record: dict, now: Optional[datetime] = None) -> TransactionPublic:
    return TransactionPublic.model_validate(
        {
            **record,
            "id": record["transaction_id"],
            "owner_id": record["user_id"],
            "editable": is_editable(record["created_at"], now),
        }
    )


def _date_bounds(start_date: Optional[str], end_date: Optional[str]):
    try:
        return parse_bound(start_date), parse_bound(end_date, end=True)
    except ValueError:
        raise ValidationError("startDate and endDate must be ISO dates")


@router.get("", response_model=List[TransactionPublic])
def list_transactions(
    category: Optional[str] = None,
    division: Optional[Division] = None,
    tx_type: Optional[TransactionType] = Query(None, alias="type"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    user_id: str = Depends(get_current_user_id),
    store: DynamoStore = Depends(get_store),
):
    start, end = _date_bounds(start_date, end_date)
    records = store.list_transactions(
        user_id, category=category, division=division, tx_type=tx_type, start=start, end=end
    )
    now = utcnow()
    return [to_public(record, now) for record in records]


@router.post("", response_model=TransactionPublic, status_code=status.HTTP_201_CREATED)
def create_transaction(
    transaction: TransactionCreate,
    user_id: str = Depends(get_current_user_id),
    store: DynamoStore = Depends(get_store),
):
    now = utcnow()
    transaction_db = TransactionInDB(
        user_id=user_id,
        type=transaction.type,
        amount=transaction.amount,
        category=transaction.category,
        division=transaction.division,
        description=transaction.description or "",
        date=transaction.date or now,
        created_at=now,
        updated_at=now,
    )
    saved = store.put_transaction(transaction_db.model_dump())
    logger.info("Transaction %s created for user %s", saved["transaction_id"], user_id)
    return to_public(saved, now)


@router.get("/stats", response_model=TransactionStats)
def get_stats(user_id: str = Depends(get_current_user_id), store: DynamoStore = Depends(get_store)):
    return finance_analyzer.dashboard_stats(store.list_transactions(user_id))


@router.get("/analytics", response_model=AnalyticsResponse)
def get_analytics(
    period: Optional[str] = None,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    user_id: str = Depends(get_current_user_id),
    store: DynamoStore = Depends(get_store),
):
    """
    period: weekly | monthly | yearly | custom. ``custom`` (or no period)
    uses startDate/endDate.
    """
    try:
        start, end = finance_analyzer.analytics_window(period, start_date, end_date)
    except ValueError as e:
        raise ValidationError(str(e))

    transactions = store.list_transactions(user_id, start=start, end=end)
    return finance_analyzer.analytics(transactions)


@router.put("/{transaction_id}", response_model=TransactionPublic)
def update_transaction(
    transaction_id: str,
    transaction_update: TransactionUpdate,
    user_id: str = Depends(get_current_user_id),
    store: DynamoStore = Depends(get_store),
):
    current = store.get_transaction(user_id, transaction_id)
    if not current:
        raise NotFoundError("Transaction not found")
    ensure_editable(current)

    updates = {k: v for k, v in transaction_update.model_dump(exclude_unset=True).items() if v is not None}
    if "description" in transaction_update.model_fields_set:
        updates["description"] = transaction_update.description or ""
    if not updates:
        raise ValidationError("No fields to update")

    try:
        check_category(updates.get("type", current["type"]), updates.get("category", current["category"]))
    except ValueError as e:
        raise ValidationError(str(e))

    updates["updated_at"] = utcnow()
    updated = store.update_transaction(user_id, transaction_id, updates)
    if not updated:
        raise NotFoundError("Transaction not found")
    return to_public(updated)


@router.delete("/{transaction_id}")
def delete_transaction(
    transaction_id: str,
    user_id: str = Depends(get_current_user_id),
    store: DynamoStore = Depends(get_store),
):
    if not store.delete_transaction(user_id, transaction_id):
        raise NotFoundError("Transaction not found")
    logger.info("Transaction %s removed for user %s", transaction_id, user_id)
    return {"message": "Transaction removed"}
