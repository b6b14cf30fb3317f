"""Unit tests for auth/passwords.py -- the Credential Hasher.

Covers:
- hash/verify round trip and wrong-password rejection
- random salt: same plaintext, different digests
- configured work factor is embedded in the digest
- malformed digests return False instead of raising
- the 72-byte input limit is measured on the UTF-8 encoding
"""

import pytest

from auth.passwords import MAX_PASSWORD_BYTES, CredentialHasher, password_fits


def test_verify_accepts_original_password(hasher: CredentialHasher) -> None:
    digest = hasher.hash("pw123")
    assert hasher.verify("pw123", digest) is True


def test_verify_rejects_wrong_password(hasher: CredentialHasher) -> None:
    digest = hasher.hash("pw123")
    assert hasher.verify("pw124", digest) is False
    assert hasher.verify("PW123", digest) is False
    assert hasher.verify("", digest) is False


def test_same_password_gets_distinct_digests(hasher: CredentialHasher) -> None:
    first = hasher.hash("pw123")
    second = hasher.hash("pw123")
    assert first != second
    assert hasher.verify("pw123", first)
    assert hasher.verify("pw123", second)


def test_digest_is_not_plaintext(hasher: CredentialHasher) -> None:
    digest = hasher.hash("pw123")
    assert "pw123" not in digest
    assert digest.startswith("$2")


def test_work_factor_is_embedded() -> None:
    digest = CredentialHasher(rounds=5).hash("pw123")
    assert digest.split("$")[2] == "05"


@pytest.mark.parametrize("bad_digest", ["", None, "not-a-hash", "$2b$04$short", "$1$md5style$abc"])
def test_malformed_digest_returns_false(hasher: CredentialHasher, bad_digest) -> None:
    assert hasher.verify("pw123", bad_digest) is False


def test_burn_never_raises(hasher: CredentialHasher) -> None:
    assert hasher.burn("anything") is None


@pytest.mark.parametrize(
    "plain,fits",
    [
        ("p" * MAX_PASSWORD_BYTES, True),
        ("p" * (MAX_PASSWORD_BYTES + 1), False),
        ("é" * 36, True),
        ("é" * 37, False),
    ],
)
def test_password_fits_counts_utf8_bytes(plain: str, fits: bool) -> None:
    assert password_fits(plain) is fits
