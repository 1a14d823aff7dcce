from typing import Optional

from fastapi import Header, Request

from app.core.errors import AuthenticationError
from app.core.security import decode_access_token
from app.db.dynamo import DynamoStore
from app.utils.analyzer import FinanceAnalyzer

finance_analyzer = FinanceAnalyzer()


def get_store(request: Request) -> DynamoStore:
    return request.app.state.store


def get_current_user_id(authorization: Optional[str] = Header(None)) -> str:
    """Extract the owner's user_id from the bearer token"""
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError("Not authorized, no token")

    token = authorization[len("Bearer "):].strip()
    payload = decode_access_token(token)
    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Not authorized, token failed")
    return user_id
