"""
Edit window for transactions.

A transaction is editable for a fixed number of hours after it was
recorded and locked from then on. Only updates are gated; deletes are not.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from app.core.config import settings
from app.core.errors import AuthorizationError
from app.utils.dates import as_utc, utcnow


def edit_deadline(created_at, window_hours: Optional[int] = None) -> datetime:
    hours = settings.EDIT_WINDOW_HOURS if window_hours is None else window_hours
    return as_utc(created_at) + timedelta(hours=hours)


def is_editable(created_at, now: Optional[datetime] = None, window_hours: Optional[int] = None) -> bool:
    now = as_utc(now) if now else utcnow()
    return now <= edit_deadline(created_at, window_hours)


def ensure_editable(transaction: Dict[str, Any], now: Optional[datetime] = None) -> None:
    if not is_editable(transaction["created_at"], now):
        raise AuthorizationError(f"Cannot edit transaction after {settings.EDIT_WINDOW_HOURS} hours")
