"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Services in auth/ do
the work; api/models.py owns the HTTP shape.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class Credential:
    """A user record as seen by the credential validator.

    password_hash is an EncodedHash string (iterations:salt_b64:digest_b64)
    produced by auth.passwords.hash_password().
    """

    username: str
    password_hash: str
    role: str = "User"


class SecretSource(str, Enum):
    environment = "environment"
    secret_manager = "secret_manager"
    local_store = "local_store"
    configuration = "configuration"
    development = "development"


@dataclass(frozen=True)
class SigningSecret:
    """The HMAC key used to sign and verify session tokens.

    repr=False on value keeps the key out of logs and tracebacks.
    """

    value: str = field(repr=False)
    source: SecretSource

    def as_bytes(self) -> bytes:
        return self.value.encode("utf-8")


@dataclass(frozen=True)
class TokenClaims:
    """Decoded, verified session token claims."""

    subject: str
    name: str
    role: str
    issued_at: int
    token_id: str
    expires_at: int


@dataclass(frozen=True)
class IssuedToken:
    """Token envelope returned by a successful login or SSO login."""

    access_token: str
    expires_in: int
    username: str
    role: str
    token_type: str = "Bearer"


@dataclass(frozen=True)
class ExternalIdentity:
    """Normalized identity extracted from a verified Google ID token."""

    email: str
    name: str
    picture_url: str
    subject_id: str


class FailureKind(str, Enum):
    bad_credentials = "bad_credentials"
    invalid_token = "invalid_token"
    invalid_sso_token = "invalid_sso_token"


@dataclass(frozen=True)
class AuthenticationFailure:
    """An expected rejection. Returned, never raised.

    message is safe to show to the client; internal detail goes to the log.
    """

    kind: FailureKind
    message: str
