"""
auth/service.py -- Account operations built on the hasher, issuer and registry.

Every method returns PublicUser values. The digest and token collection
never leave this module.

Validation runs before the store is touched: empty usernames or passwords
raise FieldValidationError without a query. The HTTP layer validates the
same rules with Pydantic; these checks hold for every other caller (the
admin CLI, tests, future transports).

Login timing equalization: an unknown username still costs one bcrypt
verification (CredentialHasher.burn), so response time does not reveal
which usernames exist. Unknown username and wrong password raise the same
InvalidCredentialsError.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging

from auth.errors import FieldValidationError, InvalidCredentialsError, NotFoundError
from auth.models import AuthResult, PublicUser, to_public
from auth.passwords import MAX_PASSWORD_BYTES, CredentialHasher, password_fits
from auth.registry import SessionRegistry
from auth.store import UserStore
from auth.tokens import TokenIssuer

logger = logging.getLogger("threadline.auth")

MAX_USERNAME_LENGTH = 255


def _check_username(username: str | None) -> str:
    if not username:
        raise FieldValidationError("Username is required.")
    if len(username) > MAX_USERNAME_LENGTH:
        raise FieldValidationError(f"Username must be at most {MAX_USERNAME_LENGTH} characters.")
    return username


def _check_password(password: str | None) -> str:
    if not password:
        raise FieldValidationError("Password is required.")
    if not password_fits(password):
        raise FieldValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded.")
    return password


class AccountService:
    """Registration, login, logout and profile management."""

    def __init__(
        self,
        store: UserStore,
        hasher: CredentialHasher,
        issuer: TokenIssuer,
        registry: SessionRegistry,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.issuer = issuer
        self.registry = registry

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def register(self, username: str, password: str) -> tuple[PublicUser, str]:
        """Create an account and open its first session.

        Raises FieldValidationError for empty fields and ConflictError if the
        username is taken. A conflicting registration leaves the existing
        account untouched.
        """
        username = _check_username(username)
        password = _check_password(password)
        user = self.store.create_user(username, self.hasher.hash(password))
        logger.info("Registered user_id=%d", user.id)
        return self._open_session(user.id)

    def login(self, username: str, password: str) -> tuple[PublicUser, str]:
        """Verify credentials and open a new session alongside any existing ones."""
        username = _check_username(username)
        password = _check_password(password)
        user = self.store.get_by_username(username)
        if user is None:
            # Do NOT return before running bcrypt.
            self.hasher.burn(password)
            raise InvalidCredentialsError()
        if not self.hasher.verify(password, user.hashed_password):
            raise InvalidCredentialsError()
        return self._open_session(user.id)

    def logout(self, session: AuthResult) -> PublicUser:
        """Revoke the session that made this request."""
        return to_public(self.registry.remove_token(session.user.id, session.token))

    def logout_all(self, session: AuthResult) -> PublicUser:
        """Revoke every session of the requesting user, including this one."""
        return to_public(self.registry.clear_tokens(session.user.id))

    def _open_session(self, user_id: int) -> tuple[PublicUser, str]:
        token = self.issuer.issue(user_id)
        user = self.registry.add_token(user_id, token)
        return to_public(user), token

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def update_profile(
        self,
        session: AuthResult,
        username: str | None = None,
        password: str | None = None,
    ) -> PublicUser:
        """Replace username and/or password. Existing sessions stay valid.

        Raises FieldValidationError if neither field is given or a given field
        is empty, ConflictError if the username belongs to another account.
        """
        if username is None and password is None:
            raise FieldValidationError("No fields to update.")
        if username is not None:
            _check_username(username)
        hashed = self.hasher.hash(_check_password(password)) if password is not None else None
        user = self.store.update_user(session.user.id, username=username, hashed_password=hashed)
        if user is None:
            raise NotFoundError()
        logger.info("Profile updated for user_id=%d", user.id)
        return to_public(user)

    def delete_account(self, session: AuthResult) -> PublicUser:
        """Delete the requesting user's account and all of its sessions."""
        user = self.store.delete_user(session.user.id)
        if user is None:
            raise NotFoundError()
        logger.info("Deleted user_id=%d", user.id)
        return to_public(user)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_user(self, user_id: int) -> PublicUser:
        user = self.store.get_by_id(user_id)
        if user is None:
            raise NotFoundError()
        return to_public(user)

    def list_users(self) -> list[PublicUser]:
        return [to_public(u) for u in self.store.list_users()]
