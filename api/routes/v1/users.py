"""
api/routes/v1/users.py -- Account and session REST endpoints.

Routes:
  POST   /api/v1/users               -- register; 201 with user + token
  POST   /api/v1/users/login         -- password login; new token, other sessions kept
  POST   /api/v1/users/logout        -- revoke the presenting session
  POST   /api/v1/users/logout-all    -- revoke every session of the user
  GET    /api/v1/users/me            -- current user (requires auth)
  PUT    /api/v1/users               -- change username and/or password (requires auth)
  DELETE /api/v1/users               -- delete own account (requires auth)
  GET    /api/v1/users               -- list public user records
  GET    /api/v1/users/{id}          -- one public user record
  GET    /api/v1/session             -- who am I, anonymous allowed (optional auth)

Security:
  Login and registration are rate-limited per IP (LOGIN_RATE_LIMIT).
  AccountService.login() provides timing equalization -- use it, never inline.
  Cache-Control: no-store on every response that carries a token.
  Every user in a response is built from PublicUser; digests and token lists
  cannot reach a response body.

Handlers are plain def functions: FastAPI runs them in its thread pool, so
bcrypt and store calls suspend only the calling request.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_rate_limit
from api.models import (
    CredentialsRequest,
    ProfileUpdate,
    SessionResponse,
    SessionStatusResponse,
    UserResponse,
)
from auth.dependencies import get_account_service, optional_session, require_session
from auth.models import AuthResult, PublicUser
from auth.service import AccountService

# Auth policy:
# - POST   /users, /users/login:            public -- credential-accepting, rate limited
# - GET    /users, /users/{id}:             public -- public projection only
# - GET    /session:                        optional (optional_session)
# - everything else:                        requires auth (require_session)
router = APIRouter()


def _session_response(user: PublicUser, token: str, status_code: int) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content=SessionResponse(user=UserResponse.from_public(user), token=token).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


# The limiter wraps the function FastAPI registers, so it sits below the route decorator.
@router.post("/users", response_model=SessionResponse, status_code=201)
@limiter.limit(login_rate_limit)
def register(
    request: Request,
    body: CredentialsRequest,
    accounts: AccountService = Depends(get_account_service),
) -> JSONResponse:
    """Create an account and return it with its first session token.

    409 conflict if the username is taken; the existing account is untouched.
    """
    user, token = accounts.register(body.username, body.password)
    return _session_response(user, token, status_code=201)


@router.post("/users/login", response_model=SessionResponse)
@limiter.limit(login_rate_limit)
def login(
    request: Request,
    body: CredentialsRequest,
    accounts: AccountService = Depends(get_account_service),
) -> JSONResponse:
    """Authenticate with username and password and open an additional session.

    Returns the same "bad_credentials" error for an unknown username and a
    wrong password to avoid leaking which usernames exist.
    """
    user, token = accounts.login(body.username, body.password)
    return _session_response(user, token, status_code=200)


@router.get("/users", response_model=list[UserResponse])
def list_users(accounts: AccountService = Depends(get_account_service)) -> list[UserResponse]:
    return [UserResponse.from_public(u) for u in accounts.list_users()]


@router.get("/session", response_model=SessionStatusResponse)
def session_status(session: AuthResult | None = Depends(optional_session)) -> SessionStatusResponse:
    """Report whether the caller holds a live session. Never 401."""
    if session is None:
        return SessionStatusResponse(authenticated=False)
    return SessionStatusResponse(authenticated=True, user=UserResponse.from_public(session.user))


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.post("/users/logout", response_model=UserResponse)
def logout(
    session: AuthResult = Depends(require_session),
    accounts: AccountService = Depends(get_account_service),
) -> UserResponse:
    """Revoke the token that authenticated this request. Other sessions stay live."""
    return UserResponse.from_public(accounts.logout(session))


@router.post("/users/logout-all", response_model=UserResponse)
def logout_all(
    session: AuthResult = Depends(require_session),
    accounts: AccountService = Depends(get_account_service),
) -> UserResponse:
    """Revoke every session of the current user, including this one."""
    return UserResponse.from_public(accounts.logout_all(session))


@router.get("/users/me", response_model=UserResponse)
def me(session: AuthResult = Depends(require_session)) -> UserResponse:
    """Return the currently authenticated user."""
    return UserResponse.from_public(session.user)


@router.put("/users", response_model=UserResponse)
def update_profile(
    body: ProfileUpdate,
    session: AuthResult = Depends(require_session),
    accounts: AccountService = Depends(get_account_service),
) -> UserResponse:
    """Change username and/or password. 409 if the new username is taken."""
    return UserResponse.from_public(accounts.update_profile(session, username=body.username, password=body.password))


@router.delete("/users", response_model=UserResponse)
def delete_account(
    session: AuthResult = Depends(require_session),
    accounts: AccountService = Depends(get_account_service),
) -> UserResponse:
    """Delete the current user's account. Every token it held stops working."""
    return UserResponse.from_public(accounts.delete_account(session))


# Declared after /users/me so "me" is never parsed as an id.
@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(user_id: int, accounts: AccountService = Depends(get_account_service)) -> UserResponse:
    return UserResponse.from_public(accounts.get_user(user_id))
