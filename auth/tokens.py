"""
auth/tokens.py -- Session token issuance and validation (JWT, HS256).

Security design decisions:
  JWT: python-jose with HS256, signed with the secret from
       auth.secret_resolver.SecretResolver. Issuer and validator share one
       resolver instance, so both always use the identical key.

  Claim names (stable -- the login envelope, the /me endpoint and the SSO
  flow all look claims up by these names):
       sub   name-identifier (the username or SSO email)
       name  display name (same value as sub)
       role  role, e.g. "Admin" / "User"
       iat   issued-at, integer seconds since epoch
       jti   unique token id (uuid4), distinct even for identical sub/role/iat
       exp   expiry, integer seconds since epoch
       iss   / aud  checked against JWT__ISSUER / JWT__AUDIENCE

  Validation: signature, iss, aud and exp are all enforced with zero leeway.
       validate() returns an AuthenticationFailure on any failure -- the
       dependency layer turns that into a 401. It never raises for a bad token.

  Expiry: JWT__EXPIRY_MINUTES unset -> 60. An explicit value that is not a
       positive integer raises ConfigurationError at issue time instead of
       being silently replaced by the default.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, Union

from jose import JWTError, jwt

from auth.models import AuthenticationFailure, FailureKind, TokenClaims
from auth.secret_resolver import SecretResolver
from core.config import JwtSettings
from core.errors import ConfigurationError

logger = logging.getLogger("incidentmap.auth.tokens")

ALGORITHM = "HS256"
DEFAULT_EXPIRY_MINUTES = 60

CLAIM_SUBJECT = "sub"
CLAIM_NAME = "name"
CLAIM_ROLE = "role"
CLAIM_ISSUED_AT = "iat"
CLAIM_TOKEN_ID = "jti"
CLAIM_EXPIRES_AT = "exp"

_DECODE_OPTIONS = {
    "leeway": 0,
    "require_exp": True,
    "require_iat": True,
    "require_sub": True,
    "require_jti": True,
    "require_iss": True,
    "require_aud": True,
}

_INVALID_TOKEN = AuthenticationFailure(FailureKind.invalid_token, "Invalid or expired token.")


def parse_expiry_minutes(raw: Optional[str]) -> int:
    """Return the configured token lifetime in minutes.

    Raises:
        ConfigurationError: If raw is set but is not a positive integer.
    """
    if raw is None or not raw.strip():
        return DEFAULT_EXPIRY_MINUTES
    value = raw.strip()
    if not (value.isascii() and value.isdigit()) or int(value) <= 0:
        logger.error("JWT__EXPIRY_MINUTES is not a valid positive integer: %r", raw)
        raise ConfigurationError("JWT expiry configuration is invalid.")
    return int(value)


class TokenService:
    """Issue and validate session tokens.

    Usage:
        tokens = TokenService(resolver, settings.jwt)
        raw = tokens.issue("admin", "Admin")
        claims = tokens.validate(raw)   # TokenClaims or AuthenticationFailure
    """

    def __init__(self, resolver: SecretResolver, jwt_settings: JwtSettings) -> None:
        self._resolver = resolver
        self._settings = jwt_settings

    def expires_in_seconds(self) -> int:
        return parse_expiry_minutes(self._settings.expiry_minutes) * 60

    def issue(self, subject: str, role: str) -> str:
        """Return a signed JWT for subject with role.

        Raises:
            ConfigurationError: Missing/short/placeholder secret or invalid expiry.
        """
        secret = self._resolver.resolve()
        expiry_minutes = parse_expiry_minutes(self._settings.expiry_minutes)

        issued_at = int(datetime.now(timezone.utc).timestamp())
        claims = {
            CLAIM_SUBJECT: subject,
            CLAIM_NAME: subject,
            CLAIM_ROLE: role,
            CLAIM_ISSUED_AT: issued_at,
            CLAIM_TOKEN_ID: str(uuid.uuid4()),
            CLAIM_EXPIRES_AT: issued_at + expiry_minutes * 60,
            "iss": self._settings.issuer,
            "aud": self._settings.audience,
        }
        token = jwt.encode(claims, secret.value, algorithm=ALGORITHM)
        logger.info("Token generated for user: %s", subject)
        return token

    def validate(self, token: str) -> Union[TokenClaims, AuthenticationFailure]:
        """Verify token and return its claims, or an AuthenticationFailure."""
        if not token:
            return _INVALID_TOKEN
        try:
            secret = self._resolver.resolve()
        except ConfigurationError:
            logger.exception("Cannot validate tokens: signing secret unavailable")
            return _INVALID_TOKEN

        try:
            payload = jwt.decode(
                token,
                secret.value,
                algorithms=[ALGORITHM],
                audience=self._settings.audience,
                issuer=self._settings.issuer,
                options=_DECODE_OPTIONS,
            )
        except JWTError as exc:
            logger.info("Rejected token: %s", exc)
            return _INVALID_TOKEN

        role = payload.get(CLAIM_ROLE)
        if not isinstance(role, str) or not role:
            logger.info("Rejected token without a role claim")
            return _INVALID_TOKEN

        return TokenClaims(
            subject=payload[CLAIM_SUBJECT],
            name=str(payload.get(CLAIM_NAME, payload[CLAIM_SUBJECT])),
            role=role,
            issued_at=int(payload[CLAIM_ISSUED_AT]),
            token_id=str(payload[CLAIM_TOKEN_ID]),
            expires_at=int(payload[CLAIM_EXPIRES_AT]),
        )
