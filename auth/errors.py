"""
auth/errors.py -- Error taxonomy for the auth core.

Every failure the core reports is one of five kinds. Each exception carries
the machine-readable code and HTTP status the API layer renders, so route
handlers raise and never build error responses themselves:

  VALIDATION_ERROR  FieldValidationError           400
  CONFLICT          ConflictError                  409
  UNAUTHORIZED      UnauthorizedError              401
                    InvalidCredentialsError        401
  NOT_FOUND         NotFoundError                  404
                    UserNotFoundError              404
  STORE_ERROR       StoreError                     500

UnauthorizedError keeps the RejectionReason for logging, but its message is
the same for every reason so a caller cannot tell a revoked token from a
forged one.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from auth.models import RejectionReason


class AuthError(Exception):
    """Base class for every failure the auth core reports."""

    kind = "AUTH_ERROR"
    code = "internal_error"
    status_code = 500
    message = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class FieldValidationError(AuthError):
    kind = "VALIDATION_ERROR"
    code = "validation_error"
    status_code = 400
    message = "Request validation failed."


class ConflictError(AuthError):
    kind = "CONFLICT"
    code = "conflict"
    status_code = 409
    message = "Username is already taken."


class UnauthorizedError(AuthError):
    kind = "UNAUTHORIZED"
    code = "unauthorized"
    status_code = 401
    message = "Please authenticate."

    def __init__(self, reason: RejectionReason | None = None) -> None:
        self.reason = reason
        super().__init__()


class InvalidCredentialsError(UnauthorizedError):
    """Login failed. Raised for unknown usernames and wrong passwords alike."""

    code = "bad_credentials"
    message = "Username or password was incorrect."


class NotFoundError(AuthError):
    kind = "NOT_FOUND"
    code = "not_found"
    status_code = 404
    message = "Could not find user with that id."


class UserNotFoundError(NotFoundError):
    """USER_NOT_FOUND: a registry or store operation named a user that does not exist."""

    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        super().__init__()


class StoreError(AuthError):
    """The identity store failed. Details stay in the chained exception and the log."""

    kind = "STORE_ERROR"
