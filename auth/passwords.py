"""
auth/passwords.py -- Credential Hasher: bcrypt password hashing and verification.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

bcrypt only reads the first 72 bytes of a password and bcrypt 5 refuses
anything longer. Callers validate against MAX_PASSWORD_BYTES (UTF-8) before
hashing; hash() raises ValueError for a longer password.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import bcrypt

_DUMMY_PASSWORD = "threadline_timing_dummy"

MAX_PASSWORD_BYTES = 72


def password_fits(plain: str) -> bool:
    """Return True if plain is within bcrypt's input limit once UTF-8 encoded."""
    return len(plain.encode("utf-8")) <= MAX_PASSWORD_BYTES


class CredentialHasher:
    """Salted one-way password digests with a tunable work factor.

    Usage:
        hasher = CredentialHasher(rounds=12)
        digest = hasher.hash("pw123")
        hasher.verify("pw123", digest)   # True
    """

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds
        # Computed once so burn() costs exactly one verification. Always call
        # burn() when a login names an unknown user -- returning early would
        # let response time reveal which usernames exist.
        self._dummy_hash = self.hash(_DUMMY_PASSWORD)

    def hash(self, plain: str) -> str:
        """Return a bcrypt digest of plain with a fresh random salt."""
        return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str | None) -> bool:
        """Return True if plain matches the digest. Malformed digests return False."""
        if not hashed:
            return False
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
        except Exception:
            return False

    def burn(self, plain: str) -> None:
        """Spend one verification's worth of CPU against the dummy digest."""
        self.verify(plain, self._dummy_hash)
