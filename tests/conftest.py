"""
tests/conftest.py -- Shared fixtures for the Incident Mapping API tests.

This module provides:
  - rsa_signing_key / other_rsa_key: RSA key pairs + JWKs for forging
    Google-style ID tokens (see helpers.make_google_token)
  - api_client: TestClient running the real app and the real lifespan

Environment variables must be set before any api/ import: the limiter and
CORS middleware read get_settings() at import time, and the lifespan resolves
the signing secret from JWT_SECRET_KEY.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from typing import Any

# CRITICAL: set before importing api/ so get_settings() sees test values.
os.environ["JWT_SECRET_KEY"] = "test-signing-secret-0123456789-abcdefghijklmnop"
os.environ["LOGIN_RATE_LIMIT"] = "1000/minute"
os.environ["GOOGLE_CLIENT_ID"] = "test-client.apps.googleusercontent.com"
os.environ["DEBUG"] = "false"
for _name in ("USER_STORE_URL", "JWT__EXPIRY_MINUTES", "JWT__ISSUER", "JWT__AUDIENCE"):
    os.environ.pop(_name, None)

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.testclient import TestClient
from jose import jwk

from core.config import get_settings

get_settings.cache_clear()


def _generate_rsa_key() -> tuple[bytes, dict[str, Any]]:
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    public_pem = private_key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    public_jwk = jwk.construct(public_pem, algorithm="RS256").to_dict()
    return private_pem, public_jwk


@pytest.fixture(scope="session")
def rsa_signing_key() -> tuple[bytes, dict[str, Any]]:
    """(private_pem, public_jwk) with kid "test-key-1"."""
    private_pem, public_jwk = _generate_rsa_key()
    public_jwk["kid"] = "test-key-1"
    public_jwk["use"] = "sig"
    return private_pem, public_jwk


@pytest.fixture(scope="session")
def other_rsa_key() -> tuple[bytes, dict[str, Any]]:
    """A second, unrelated key pair -- for signature mismatch tests."""
    return _generate_rsa_key()


@pytest.fixture(scope="module")
def api_client() -> Generator[TestClient, None, None]:
    """TestClient over the real app and the real lifespan.

    The lifespan resolves the secret from JWT_SECRET_KEY (set above) and uses
    the in-memory placeholder directory because USER_STORE_URL is unset. No
    network call happens unless a test triggers an SSO login.
    """
    from api.main import app

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client
