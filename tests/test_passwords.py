"""Unit tests for auth/passwords.py -- PBKDF2 hashing and verification.

Covers:
- hash/verify round trip, wrong password rejection
- fresh salt per call
- encoded format (iterations:salt_b64:digest_b64, 32-byte salt and digest)
- stored iteration count is honoured (older hashes keep verifying)
- malformed hashes make verify_password() return False, never raise
"""

import base64
import hashlib

import pytest

from auth.passwords import HASH_SIZE, ITERATIONS, SALT_SIZE, hash_password, verify_password


class TestHashPassword:
    def test_round_trip(self) -> None:
        for password in ("admin123", "correct horse battery staple", "pässwörd-ünïcode", " "):
            assert verify_password(password, hash_password(password))

    def test_wrong_password_rejected(self) -> None:
        encoded = hash_password("admin123")
        assert not verify_password("admin124", encoded)
        assert not verify_password("Admin123", encoded)

    def test_fresh_salt_each_call(self) -> None:
        first = hash_password("same-password")
        second = hash_password("same-password")
        assert first != second
        assert first.split(":")[1] != second.split(":")[1]

    def test_encoded_format(self) -> None:
        iterations, salt, digest = hash_password("admin123").split(":")
        assert iterations == str(ITERATIONS) == "10000"
        assert len(base64.b64decode(salt)) == SALT_SIZE == 32
        assert len(base64.b64decode(digest)) == HASH_SIZE == 32

    def test_empty_password_raises(self) -> None:
        with pytest.raises(ValueError):
            hash_password("")


class TestVerifyPassword:
    def test_uses_stored_iteration_count(self) -> None:
        """A hash written with a different iteration count still verifies."""
        salt = bytes(range(32))
        digest = hashlib.pbkdf2_hmac("sha256", b"legacy-pass", salt, 1000, dklen=32)
        encoded = f"1000:{base64.b64encode(salt).decode()}:{base64.b64encode(digest).decode()}"
        assert verify_password("legacy-pass", encoded)
        assert not verify_password("legacy-pass", encoded.replace("1000:", "10000:", 1))

    @pytest.mark.parametrize(
        "encoded",
        [
            "",
            "not-a-hash",
            "10000:onlytwo",
            "10000:a:b:c",
            "abc:AAAA:AAAA",
            "-1:AAAA:AAAA",
            "0:AAAA:AAAA",
            " 10000:AAAA:AAAA",
            "10000:!!!not-base64!!!:AAAA",
            "10000:AAAA:%%%",
            "10000::AAAA",
            "10000:AAAA:",
            "１０:AAAA:AAAA",
        ],
    )
    def test_malformed_hash_returns_false(self, encoded: str) -> None:
        assert verify_password("admin123", encoded) is False

    def test_empty_password_returns_false(self) -> None:
        assert verify_password("", hash_password("admin123")) is False

    def test_non_string_input_returns_false(self) -> None:
        assert verify_password(None, hash_password("admin123")) is False  # type: ignore[arg-type]
        assert verify_password("admin123", None) is False  # type: ignore[arg-type]

    def test_truncated_digest_returns_false(self) -> None:
        iterations, salt, digest = hash_password("admin123").split(":")
        short = base64.b64encode(base64.b64decode(digest)[:16]).decode()
        assert verify_password("admin123", f"{iterations}:{salt}:{short}") is False

    def test_unencodable_password_returns_false(self) -> None:
        # A lone surrogate survives JSON decoding but has no UTF-8 encoding.
        assert verify_password("\ud800", hash_password("admin123")) is False


def test_hash_unencodable_password_raises() -> None:
    with pytest.raises(ValueError):
        hash_password("pass\udfffword")
