"""
tests/helpers.py -- Plain helper functions shared by test modules.

Fixtures live in conftest.py; importable helpers live here so test modules
never import conftest directly.
"""

from __future__ import annotations

import base64
import time
from typing import Any

from jose import jwt

from auth.secret_resolver import SecretResolver
from auth.tokens import TokenService
from core.config import JwtSettings, Settings

TEST_SECRET = "unit-test-signing-secret-abcdefghijklmnopqrstuvwxyz"
GOOGLE_CLIENT_ID = "test-client.apps.googleusercontent.com"


def make_settings(**overrides: Any) -> Settings:
    """Settings with every secret source empty unless overridden.

    Init kwargs take precedence over environment variables, so the
    JWT_SECRET_KEY set in conftest.py does not leak into unit tests.
    """
    values: dict[str, Any] = {
        "_env_file": None,
        "debug": False,
        "jwt_secret_key": "",
        "jwt": JwtSettings(),
        "google_client_id": "",
        "user_store_url": "",
    }
    values.update(overrides)
    return Settings(**values)


def make_token_service(secret: str = TEST_SECRET, **jwt_overrides: Any) -> TokenService:
    jwt_settings = JwtSettings(**jwt_overrides)
    settings = make_settings(jwt_secret_key=secret, jwt=jwt_settings)
    return TokenService(SecretResolver(settings), jwt_settings)


def flip_signature(token: str) -> str:
    """Change the first character of the JWS signature segment.

    The first base64url character carries six full bits of the first
    signature byte, so the decoded signature is guaranteed to differ.
    """
    header, payload, signature = token.split(".")
    replacement = "A" if signature[0] != "A" else "B"
    return ".".join((header, payload, replacement + signature[1:]))


def b64(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def google_claims(**overrides: Any) -> dict[str, Any]:
    now = int(time.time())
    claims: dict[str, Any] = {
        "iss": "https://accounts.google.com",
        "aud": GOOGLE_CLIENT_ID,
        "sub": "110169484474386276334",
        "email": "jane.doe@incidents.test",
        "email_verified": True,
        "name": "Jane Doe",
        "picture": "https://lh3.googleusercontent.com/a/photo.jpg",
        "iat": now,
        "exp": now + 3600,
    }
    claims.update(overrides)
    return claims


def make_google_token(private_pem: bytes, kid: str = "test-key-1", **claim_overrides: Any) -> str:
    return jwt.encode(google_claims(**claim_overrides), private_pem, algorithm="RS256", headers={"kid": kid})
