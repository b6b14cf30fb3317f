"""
auth/tokens.py -- Session Token Issuer: signed bearer tokens bound to a user id.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry user_id, a random jti and, when
       an expiry is configured, exp. The jti makes every issued token unique,
       so two logins in the same second still get distinct, independently
       revocable sessions.

  Stateless check only: verify() proves the token was minted here and has
       not expired. It cannot express "logged out" -- the Authenticator must
       also find the token in the SessionRegistry before trusting it.

  Failure is a value: verify() returns None on any malformed, tampered or
       expired token. Callers turn None into a rejection, never a crash.

  SECRET_KEY: injected through the constructor. The issuer never reads
       configuration or environment itself and never logs the key.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

logger = logging.getLogger("threadline.auth")

_ALGORITHM = "HS256"


class TokenIssuer:
    """Mints and verifies HS256 session tokens.

    Args:
        secret_key:     HMAC signing key (>= 32 chars, validated by Settings).
        expire_seconds: Token lifetime. 0 means no exp claim; the token lives
                        until it is revoked from the registry.
    """

    def __init__(self, secret_key: str, expire_seconds: int = 0) -> None:
        if not secret_key:
            raise ValueError("TokenIssuer requires a non-empty secret key.")
        self._secret_key = secret_key
        self.expire_seconds = expire_seconds

    def __repr__(self) -> str:
        return f"TokenIssuer(expire_seconds={self.expire_seconds})"

    def issue(self, user_id: int) -> str:
        """Encode a signed token for user_id."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "user_id": user_id,
            "iat": now,
            "jti": secrets.token_urlsafe(16),
        }
        if self.expire_seconds > 0:
            payload["exp"] = now + timedelta(seconds=self.expire_seconds)
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def verify(self, token: str) -> int | None:
        """Return the embedded user id, or None if the token is not valid."""
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[_ALGORITHM])
        except JWTError:
            return None
        user_id = payload.get("user_id")
        # bool is an int subclass; a forged {"user_id": true} must not map to user 1
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            return None
        if payload.get("sub") != str(user_id):
            return None
        return user_id
