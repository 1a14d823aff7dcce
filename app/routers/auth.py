import logging

from fastapi import APIRouter, Depends, status

from app.core.errors import AuthenticationError, NotFoundError, ValidationError
from app.core.security import create_access_token, get_password_hash, verify_password
from app.db.dynamo import DynamoStore
from app.models.user import (
    MIN_PASSWORD_LENGTH,
    AuthResponse,
    ProfileResponse,
    ProfileUpdate,
    UserCreate,
    UserInDB,
    UserLogin,
    UserPublic,
)
from app.routers.deps import get_current_user_id, get_store

router = APIRouter()
logger = logging.getLogger(__name__)


def _auth_response(user: dict) -> AuthResponse:
    return AuthResponse(
        id=user["user_id"],
        name=user["name"],
        email=user["email"],
        token=create_access_token(data={"sub": user["user_id"]}),
    )


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def signup(user: UserCreate, store: DynamoStore = Depends(get_store)):
    # Check if user already exists
    if store.get_user_by_email(user.email):
        raise ValidationError("User already exists")

    user_db = UserInDB(
        name=user.name,
        email=user.email,
        password_hash=get_password_hash(user.password),
    )
    saved = store.put_user(user_db.model_dump())
    logger.info("New user registered: %s", saved["user_id"])
    return _auth_response(saved)


@router.post("/login", response_model=AuthResponse)
def login(login_data: UserLogin, store: DynamoStore = Depends(get_store)):
    logger.info("Login attempt for email: %s", login_data.email)
    user = store.get_user_by_email(login_data.email)

    if not user or not verify_password(login_data.password, user.get("password_hash", "")):
        logger.warning("Invalid credentials for email: %s", login_data.email)
        raise AuthenticationError("Invalid credentials")

    logger.info("Login successful for user: %s", user["user_id"])
    return _auth_response(user)


@router.get("/me", response_model=UserPublic)
def get_me(user_id: str = Depends(get_current_user_id), store: DynamoStore = Depends(get_store)):
    """Get current user profile"""
    user = store.get_user_by_id(user_id)
    if not user:
        raise NotFoundError("User not found")
    return UserPublic(id=user["user_id"], name=user["name"], email=user["email"])


@router.put("/profile", response_model=ProfileResponse)
def update_profile(
    update: ProfileUpdate,
    user_id: str = Depends(get_current_user_id),
    store: DynamoStore = Depends(get_store),
):
    """
    Update name and/or email, and change the password when ``newPassword``
    is given. Every check runs before anything is written.
    """
    user = store.get_user_by_id(user_id)
    if not user:
        raise NotFoundError("User not found")

    changes = {}
    if update.new_password:
        if not update.current_password:
            raise ValidationError("Current password is required to change password")
        if not verify_password(update.current_password, user.get("password_hash", "")):
            raise AuthenticationError("Current password is incorrect")
        if len(update.new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"New password must be at least {MIN_PASSWORD_LENGTH} characters")
        changes["password_hash"] = get_password_hash(update.new_password)

    if update.name and update.name.strip():
        changes["name"] = update.name.strip()

    if update.email and update.email.lower() != user["email"]:
        existing = store.get_user_by_email(update.email)
        if existing and existing["user_id"] != user_id:
            raise ValidationError("Email already in use")
        changes["email"] = update.email

    if changes:
        user = store.update_user(user_id, changes)
        logger.info("Profile updated for user %s (%s)", user_id, ", ".join(sorted(changes)))

    return ProfileResponse(id=user["user_id"], name=user["name"], email=user["email"])
