"""
API request and response models for Threadline REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

UserResponse is built only from auth.models.PublicUser, so no response model
has a field that could carry a password digest or a token collection.
"""

from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from auth.models import PublicUser
from auth.passwords import MAX_PASSWORD_BYTES, password_fits


def _password_within_bcrypt_limit(value: str) -> str:
    if not password_fits(value):
        raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded")
    return value


# bcrypt reads at most 72 bytes, so the byte limit binds before the character one.
Password = Annotated[str, Field(min_length=1, max_length=255), AfterValidator(_password_within_bcrypt_limit)]


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class CredentialsRequest(BaseModel):
    """Request body for POST /api/v1/users and POST /api/v1/users/login.

    Passwords are not whitespace-stripped: a trailing space is part of the
    secret. Usernames are case-sensitive.
    """

    username: str = Field(min_length=1, max_length=255)
    password: Password


class ProfileUpdate(BaseModel):
    """Request body for PUT /api/v1/users. Omitted fields are left unchanged."""

    model_config = ConfigDict(extra="forbid")

    username: Optional[str] = Field(default=None, min_length=1, max_length=255)
    password: Optional[Password] = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public view of an account."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    created_at: str = ""

    @classmethod
    def from_public(cls, user: PublicUser) -> "UserResponse":
        return cls(id=user.id, username=user.username, created_at=user.created_at or "")


class SessionResponse(BaseModel):
    """Response for registration and login: the account plus its new bearer token."""

    model_config = ConfigDict(frozen=True)

    user: UserResponse
    token: str
    token_type: str = "bearer"


class SessionStatusResponse(BaseModel):
    """Response for GET /api/v1/session. user is null for anonymous callers."""

    model_config = ConfigDict(frozen=True)

    authenticated: bool
    user: Optional[UserResponse] = None


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
