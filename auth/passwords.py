"""
auth/passwords.py -- Salted PBKDF2-HMAC-SHA256 password hashing.

Encoded form: "<iterations>:<base64 salt>:<base64 digest>", e.g.
"10000:q1Z...=:Hc3...=". The iteration count is stored with every hash and
verification always uses the stored count, so hashes written with an older
ITERATIONS value keep verifying after the constant is raised.

verify_password() is attacker-facing: it returns False for every malformed
input and never raises, so a garbage hash and a wrong password look the same
to the caller. Digests are compared with hmac.compare_digest.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import secrets

ITERATIONS = 10_000
SALT_SIZE = 32
HASH_SIZE = 32
_DELIMITER = ":"


def _derive(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations, dklen=HASH_SIZE)


def hash_password(password: str) -> str:
    """Return an encoded PBKDF2 hash of password with a fresh random salt.

    Raises:
        ValueError: If password is empty or cannot be encoded as UTF-8.
    """
    if not password:
        raise ValueError("Password cannot be empty")
    salt = secrets.token_bytes(SALT_SIZE)
    try:
        digest = _derive(password, salt, ITERATIONS)
    except UnicodeEncodeError as exc:
        raise ValueError("Password is not valid Unicode text") from exc
    return _DELIMITER.join(
        (
            str(ITERATIONS),
            base64.b64encode(salt).decode("ascii"),
            base64.b64encode(digest).decode("ascii"),
        )
    )


def verify_password(password: str, encoded: str) -> bool:
    """Return True if password matches the encoded hash."""
    if not isinstance(password, str) or not isinstance(encoded, str):
        return False
    if not password or not encoded:
        return False

    parts = encoded.split(_DELIMITER)
    if len(parts) != 3:
        return False
    iterations_field, salt_field, digest_field = parts
    if not (iterations_field.isascii() and iterations_field.isdigit()):
        return False
    iterations = int(iterations_field)
    if iterations < 1:
        return False

    try:
        salt = base64.b64decode(salt_field, validate=True)
        stored = base64.b64decode(digest_field, validate=True)
    except (binascii.Error, ValueError):
        return False
    if not salt or not stored:
        return False

    try:
        computed = _derive(password, salt, iterations)
    except UnicodeEncodeError:
        return False
    return hmac.compare_digest(stored, computed)
