"""Small helpers shared by test modules (fixtures live in conftest.py)."""


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def flip_signature_char(token: str) -> str:
    """Return token with one character in the middle of its signature changed.

    The middle character is used because every bit of it is significant;
    the last base64url character of a signature may carry padding bits.
    """
    header, payload, signature = token.split(".")
    i = len(signature) // 2
    replacement = "A" if signature[i] != "A" else "B"
    return f"{header}.{payload}.{signature[:i]}{replacement}{signature[i + 1:]}"
