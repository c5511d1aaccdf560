"""
API request and response models for the authsession REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Wire format: camelCase keys (accessToken, createdAt), wrapped in the
{"status": ..., "data": ...} envelope. Errors use {"status": "error",
"message": ...}.

Validation messages are raised as PydanticCustomError so the text the client
sees is exactly ours ("Invalid email format"), not pydantic's wording.
"""

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from auth.models import UserProfile

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 8
# bcrypt only looks at the first 72 bytes; bcrypt>=5 rejects longer input.
MAX_PASSWORD_BYTES = 72

# Error types whose message is already client-ready. Anything else gets the
# field name prefixed when the validation handler joins messages.
CUSTOM_ERROR_TYPES = frozenset({"invalid_email", "password_too_short", "password_too_long", "password_required"})


def _check_email(value: str) -> str:
    if not EMAIL_PATTERN.match(value):
        raise PydanticCustomError("invalid_email", "Invalid email format")
    return value


def _check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise PydanticCustomError("password_too_long", "Password must be at most 72 bytes")
    return value


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register."""

    email: str
    password: str
    name: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _check_email(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value) < MIN_PASSWORD_LENGTH:
            raise PydanticCustomError("password_too_short", "Password must be at least 8 characters")
        return _check_password_bytes(value)


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    email: str
    password: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _check_email(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        if not value:
            raise PydanticCustomError("password_required", "Password is required")
        return value


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class UserResponse(_CamelModel):
    """Sanitized user. There is no password or refreshToken field to leak."""

    id: str
    email: str
    name: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "UserResponse":
        return cls(
            id=profile.id,
            email=profile.email,
            name=profile.name,
            created_at=profile.created_at,
            updated_at=profile.updated_at,
        )


class AuthData(_CamelModel):
    user: UserResponse
    access_token: str


class AccessTokenData(_CamelModel):
    access_token: str


class UserData(_CamelModel):
    user: UserResponse


class AuthResponse(_CamelModel):
    """Response body for register and login."""

    status: str = "success"
    data: AuthData


class RefreshResponse(_CamelModel):
    status: str = "success"
    data: AccessTokenData


class ProfileResponse(_CamelModel):
    status: str = "success"
    data: UserData


class EmptyResponse(_CamelModel):
    status: str = "success"
    data: None = None


class ErrorResponse(BaseModel):
    """Error envelope returned on 4xx/5xx responses.

    stack is only populated outside production.
    """

    model_config = ConfigDict(frozen=True)

    status: str = "error"
    message: str
    stack: Optional[str] = None

    def body(self) -> dict:
        return self.model_dump(exclude_none=True)


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    timestamp: str
