"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container). Stores and services do the work;
the one exception is to_public(), the projection every user record passes
through before it leaves the auth core.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


@dataclass
class User:
    """An account record as held by the identity store.

    tokens is the session registry for this user: a token is only honoured
    while it appears here, regardless of its signature. Order is issue order.

    hashed_password and tokens are excluded from repr so a stray log line or
    traceback never prints them.
    """

    username: str
    id: int | None = None
    hashed_password: str | None = field(default=None, repr=False)
    tokens: list[str] = field(default_factory=list, repr=False)
    created_at: str | None = None


@dataclass(frozen=True)
class PublicUser:
    """The only user shape released outside the auth core."""

    id: int
    username: str
    created_at: str | None = None


def to_public(user: User) -> PublicUser:
    """Strip the password digest and token collection from a User."""
    return PublicUser(id=user.id, username=user.username, created_at=user.created_at)


class AuthMode(str, Enum):
    required = "required"  # rejection ends the request with 401
    optional = "optional"  # rejection continues the request as anonymous


class AuthState(str, Enum):
    authenticated = "authenticated"
    rejected = "rejected"


class RejectionReason(str, Enum):
    missing_credential = "MISSING_CREDENTIAL"
    invalid_token = "INVALID_TOKEN"
    unknown_user = "UNKNOWN_USER"
    revoked_token = "REVOKED_TOKEN"


@dataclass(frozen=True)
class AuthResult:
    """Outcome of one Authenticator.authenticate() call.

    AUTHENTICATED results carry the sanitized user and the verified token;
    REJECTED results carry only the reason.
    """

    state: AuthState
    reason: RejectionReason | None = None
    user: PublicUser | None = None
    token: str | None = None

    @property
    def authenticated(self) -> bool:
        return self.state is AuthState.authenticated

    @classmethod
    def reject(cls, reason: RejectionReason) -> AuthResult:
        return cls(state=AuthState.rejected, reason=reason)
