from datetime import datetime
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.models.base import CamelModel
from app.utils.dates import utcnow

MIN_PASSWORD_LENGTH = 6


class UserCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class ProfileUpdate(CamelModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class UserInDB(BaseModel):
    user_id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    email: EmailStr
    password_hash: str
    created_at: datetime = Field(default_factory=utcnow)


class UserPublic(CamelModel):
    id: str
    name: str
    email: EmailStr


class AuthResponse(UserPublic):
    token: str


class ProfileResponse(UserPublic):
    message: str = "Profile updated successfully"
