"""
auth/authenticator.py -- Per-request credential validation.

Each request moves UNVERIFIED -> AUTHENTICATED or REJECTED through five
strictly ordered steps:

  1. Extract the bearer token from the Authorization header.
       absent / wrong scheme           -> MISSING_CREDENTIAL
  2. TokenIssuer.verify(token).
       bad signature / expired / junk  -> INVALID_TOKEN   (no store access)
  3. Load the user named by the token.
       no such user                    -> UNKNOWN_USER
  4. SessionRegistry.contains(user_id, token).
       not present                     -> REVOKED_TOKEN
  5. AUTHENTICATED with the sanitized user and the token.

One type, two modes. resolve() is the single entry point for both call
sites; the mode only decides what a rejection means:
  AuthMode.required -> raise UnauthorizedError (401)
  AuthMode.optional -> return None and let the request continue anonymous

Store failures are not rejections. They propagate as StoreError in either
mode so an outage is reported as a server error rather than disguised as
"please log in".

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging

from auth.errors import UnauthorizedError, UserNotFoundError
from auth.models import AuthMode, AuthResult, AuthState, RejectionReason, to_public
from auth.registry import SessionRegistry
from auth.store import UserStore
from auth.tokens import TokenIssuer

logger = logging.getLogger("threadline.auth")

_BEARER = "bearer"


def extract_bearer(authorization: str | None) -> str | None:
    """Return the token from an 'Authorization: Bearer <token>' value, or None.

    The scheme is matched case-insensitively. Any other scheme, a bare
    'Bearer' or an empty token counts as no credential.
    """
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != _BEARER:
        return None
    token = token.strip()
    return token or None


class Authenticator:
    """Validate bearer credentials against the issuer, the store and the registry."""

    def __init__(self, store: UserStore, issuer: TokenIssuer, registry: SessionRegistry) -> None:
        self.store = store
        self.issuer = issuer
        self.registry = registry

    def authenticate(self, authorization: str | None) -> AuthResult:
        """Run steps 1-5 and return the outcome. Only StoreError escapes."""
        token = extract_bearer(authorization)
        if token is None:
            return AuthResult.reject(RejectionReason.missing_credential)

        user_id = self.issuer.verify(token)
        if user_id is None:
            return AuthResult.reject(RejectionReason.invalid_token)

        user = self.store.get_by_id(user_id)
        if user is None:
            return AuthResult.reject(RejectionReason.unknown_user)

        try:
            live = self.registry.contains(user_id, token)
        except UserNotFoundError:
            # Deleted between step 3 and step 4.
            return AuthResult.reject(RejectionReason.unknown_user)
        if not live:
            return AuthResult.reject(RejectionReason.revoked_token)

        return AuthResult(state=AuthState.authenticated, user=to_public(user), token=token)

    def resolve(self, authorization: str | None, mode: AuthMode = AuthMode.required) -> AuthResult | None:
        """Authenticate and apply the mode.

        Returns the AUTHENTICATED result. On rejection, raises
        UnauthorizedError in required mode and returns None in optional mode.
        """
        result = self.authenticate(authorization)
        if result.authenticated:
            return result
        if mode is AuthMode.optional:
            if result.reason is not RejectionReason.missing_credential:
                logger.info("Credential rejected (%s); continuing anonymous", result.reason.value)
            return None
        logger.info("Credential rejected (%s)", result.reason.value)
        raise UnauthorizedError(result.reason)
