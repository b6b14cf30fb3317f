"""
auth/registry.py -- Session Registry: the per-user list of live tokens.

A token is honoured only while it is present here. Signature checks alone
cannot express logout; removing the token from the registry does.

Every method names a user id. A user that does not exist raises
UserNotFoundError -- it is never treated as an empty registry.

Concurrency: the mutations delegate to UserStore primitives that are each a
single atomic statement or transaction, so simultaneous logins, logouts and
logout-alls for one user serialize in the database and no update is lost.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging

from auth.errors import UserNotFoundError
from auth.models import User
from auth.store import UserStore

logger = logging.getLogger("threadline.auth")


class SessionRegistry:
    """Add, revoke and check session tokens for a user."""

    def __init__(self, store: UserStore) -> None:
        self.store = store

    def add_token(self, user_id: int, token: str) -> User:
        """Append token to the user's sessions and return the updated user."""
        if not self.store.append_token(user_id, token):
            raise UserNotFoundError(user_id)
        logger.info("Session opened for user_id=%d", user_id)
        return self._reload(user_id)

    def remove_token(self, user_id: int, token: str) -> User:
        """Revoke one session. Revoking a token that is not present is a no-op."""
        if not self.store.remove_token(user_id, token):
            raise UserNotFoundError(user_id)
        logger.info("Session closed for user_id=%d", user_id)
        return self._reload(user_id)

    def clear_tokens(self, user_id: int) -> User:
        """Revoke every session for the user."""
        if not self.store.clear_tokens(user_id):
            raise UserNotFoundError(user_id)
        logger.info("All sessions closed for user_id=%d", user_id)
        return self._reload(user_id)

    def contains(self, user_id: int, token: str) -> bool:
        """Return True if token is a live session for user_id."""
        if self.store.has_token(user_id, token):
            return True
        # Only pay for the existence check on a miss.
        if not self.store.exists(user_id):
            raise UserNotFoundError(user_id)
        return False

    def sessions(self, user_id: int) -> int:
        """Return the number of live sessions for user_id."""
        if not self.store.exists(user_id):
            raise UserNotFoundError(user_id)
        return self.store.count_tokens(user_id)

    def _reload(self, user_id: int) -> User:
        # The user can be deleted between the mutation and this read.
        user = self.store.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user
