import re
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from app.schemas.base import DocumentModel

USERNAME_PATTERN = re.compile(r"^[a-z0-9_.]{1,30}$")


def normalize_username(value: str) -> str:
    value = value.strip().lower()
    if not USERNAME_PATTERN.match(value):
        raise ValueError("username: 1-30 символов, латиница, цифры, '_' и '.'")
    return value


class UserCreate(DocumentModel):
    email: EmailStr
    display_name: str = Field(min_length=1, max_length=50)
    username: str
    bio: str = Field("", max_length=160)
    avatar: str = ""

    @field_validator("username")
    @classmethod
    def check_username(cls, value: str) -> str:
        return normalize_username(value)

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return value.lower()


class UserUpdate(DocumentModel):
    email: Optional[EmailStr] = None
    display_name: Optional[str] = Field(None, min_length=1, max_length=50)
    username: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=160)
    avatar: Optional[str] = None

    @field_validator("username")
    @classmethod
    def check_username(cls, value: Optional[str]) -> Optional[str]:
        return normalize_username(value) if value is not None else None

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: Optional[str]) -> Optional[str]:
        return value.lower() if value is not None else None


class User(DocumentModel):
    id: str
    email: str
    display_name: str
    username: str
    bio: str = ""
    avatar: str = ""
    created_at: str
    updated_at: str
