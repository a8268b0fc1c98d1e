"""
auth/google.py -- Google ID token verification for SSO login.

The browser signs in with Google and posts the resulting ID token. We verify
it ourselves with python-jose against Google's published JWKS:

  - the header must name an RS256 key (kid) present in the JWKS;
  - the signature must verify with that key;
  - aud must equal GOOGLE_CLIENT_ID;
  - iss must be accounts.google.com (with or without https://);
  - exp must be in the future (zero leeway);
  - the email must be present and verified. An unverified email could be a
    victim's address added by an attacker.

verify() returns None on every failure and logs the reason. It never raises
to the caller -- the SSO handler turns None into a 401, which keeps an
invalid token distinct from a server error.

JWKS is cached for an hour. An unknown kid triggers one refresh, because
Google rotates keys. A JWKS fetch failure fails closed (None).

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

import requests
from jose import JWTError, jwt

from auth.models import ExternalIdentity
from core.errors import TransientRemoteError

logger = logging.getLogger("incidentmap.auth.google")

GOOGLE_CERTS_URL = "https://www.googleapis.com/oauth2/v3/certs"
GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")
_ALGORITHM = "RS256"


class GoogleKeySet:
    """Cached view of Google's signing keys, indexed by kid."""

    def __init__(
        self,
        url: str = GOOGLE_CERTS_URL,
        timeout: float = 5.0,
        cache_ttl: int = 3600,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self.cache_ttl = cache_ttl
        self._session = session or requests.Session()
        self._session.max_redirects = 3
        self._keys: dict[str, dict[str, Any]] = {}
        self._fetched_at: float = 0.0

    def get_key(self, kid: str) -> Optional[dict[str, Any]]:
        """Return the JWK for kid, or None if Google does not publish it.

        Raises:
            TransientRemoteError: If the JWKS cannot be fetched.
        """
        if not self._keys or time.monotonic() - self._fetched_at > self.cache_ttl:
            self._refresh()
        elif kid not in self._keys:
            self._refresh()
        return self._keys.get(kid)

    def _refresh(self) -> None:
        try:
            resp = self._session.get(self.url, timeout=self.timeout)
            resp.raise_for_status()
            keys = resp.json()["keys"]
        except requests.RequestException as exc:
            raise TransientRemoteError(f"Google JWKS fetch failed: {exc}") from exc
        except (KeyError, TypeError, ValueError) as exc:
            raise TransientRemoteError("Google JWKS response has no keys") from exc
        self._keys = {k["kid"]: k for k in keys if isinstance(k, dict) and "kid" in k}
        self._fetched_at = time.monotonic()
        logger.info("Google JWKS refreshed (%d keys)", len(self._keys))


class GoogleIdentityVerifier:
    """Verify Google ID tokens for one OAuth client id.

    Usage:
        verifier = GoogleIdentityVerifier(settings.google_client_id)
        identity = verifier.verify(id_token)   # ExternalIdentity or None
    """

    def __init__(self, client_id: str, key_set: Optional[GoogleKeySet] = None) -> None:
        self.client_id = client_id
        self._key_set = key_set or GoogleKeySet()
        if not client_id:
            logger.warning("GOOGLE_CLIENT_ID is not configured. Google SSO will not work.")

    def verify(self, id_token: str) -> Optional[ExternalIdentity]:
        if not self.client_id:
            logger.error("Google SSO attempted but GOOGLE_CLIENT_ID is not configured")
            return None
        if not id_token:
            return None

        try:
            header = jwt.get_unverified_header(id_token)
        except JWTError as exc:
            logger.warning("Malformed Google ID token: %s", exc)
            return None
        kid = header.get("kid")
        if header.get("alg") != _ALGORITHM or not isinstance(kid, str) or not kid:
            logger.warning("Google ID token has unexpected header (alg=%s)", header.get("alg"))
            return None

        try:
            key = self._key_set.get_key(kid)
        except TransientRemoteError as exc:
            logger.warning("Cannot verify Google ID token: %s", exc)
            return None
        if key is None:
            logger.warning("Google ID token signed with unknown key id %s", kid)
            return None

        try:
            claims = jwt.decode(
                id_token,
                key,
                algorithms=[_ALGORITHM],
                audience=self.client_id,
                issuer=GOOGLE_ISSUERS,
                options={"verify_at_hash": False, "require_exp": True, "require_sub": True, "leeway": 0},
            )
        except JWTError as exc:
            logger.warning("Invalid Google ID token: %s", exc)
            return None

        email = claims.get("email")
        if not email or claims.get("email_verified") not in (True, "true"):
            logger.warning("Google ID token rejected: email missing or not verified")
            return None

        logger.info("Google ID token verified for user: %s", email)
        return ExternalIdentity(
            email=email,
            name=claims.get("name", ""),
            picture_url=claims.get("picture", ""),
            subject_id=claims["sub"],
        )
