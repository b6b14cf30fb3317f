"""
auth/dependencies.py -- FastAPI Depends() helpers for session authentication.

Both helpers call the same Authenticator.resolve() entry point and differ
only in the AuthMode they pass:

  require_session()  -- 401 on any rejection (UnauthorizedError)
  optional_session() -- None on any rejection; the route runs anonymous

The helpers are plain def functions, so FastAPI runs them in its thread
pool and the store lookups never block the event loop.

Layer rule: no imports from api/ or core/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.authenticator import Authenticator
from auth.models import AuthMode, AuthResult
from auth.service import AccountService


def get_authenticator(request: Request) -> Authenticator:
    return request.app.state.authenticator


def get_account_service(request: Request) -> AccountService:
    return request.app.state.accounts


def require_session(request: Request) -> AuthResult:
    """Require a live session. Raises UnauthorizedError if the request has none.

    Use as a FastAPI dependency:
        @router.post("/users/logout")
        def route(session: AuthResult = Depends(require_session)): ...
    """
    return get_authenticator(request).resolve(request.headers.get("Authorization"), AuthMode.required)


def optional_session(request: Request) -> AuthResult | None:
    """Return the live session, or None if the request is anonymous or rejected."""
    return get_authenticator(request).resolve(request.headers.get("Authorization"), AuthMode.optional)
