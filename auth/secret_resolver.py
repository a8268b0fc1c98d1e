"""
auth/secret_resolver.py -- Signing-secret resolution with strict precedence.

Sources, first usable candidate wins:
  1. JWT_SECRET_KEY environment variable.
  2. Google Cloud Secret Manager, secret "jwt-signing-key". The value is kept
     in the resolver's config overlay under "jwt:signing_key" -- the key the
     local store below is read with.
  3. Local secrets store (JSON file), development mode only.
  4. JWT__SECRET_KEY from general configuration (warned outside development).
  5. Development mode only: a key derived from the hostname, stable across
     restarts on the same machine.

A candidate is skipped when it is empty or contains a placeholder marker
(case-insensitive). The winning candidate must be at least 32 characters --
a short key is a ConfigurationError, never a silent fall-through. If nothing
qualifies outside development mode, resolve() raises ConfigurationError and
the lifespan refuses to start.

The first successful result is memoized. Failures are not, so a resolver whose
remote source was briefly unavailable can be retried.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import json
import logging
import socket
from collections.abc import Iterator
from pathlib import Path
from typing import Optional

import requests

from auth.models import SecretSource, SigningSecret
from core.config import Settings
from core.errors import ConfigurationError, TransientRemoteError

logger = logging.getLogger("incidentmap.auth.secrets")

MIN_SECRET_LENGTH = 32
PLACEHOLDER_MARKERS = ("placeholder", "change-me", "example", "your-super-secret")
SIGNING_KEY_SECRET_NAME = "jwt-signing-key"

SECRET_MANAGER_URL = "https://secretmanager.googleapis.com/v1/projects/{project}/secrets/{name}/versions/latest:access"
METADATA_TOKEN_URL = "http://metadata.google.internal/computeMetadata/v1/instance/service-accounts/default/token"

_DEV_KEY_TEMPLATE = "IncidentMapping-Dev-{hostname}-LocalDevelopment"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def is_placeholder(value: str) -> bool:
    """Return True if value contains any known placeholder marker."""
    lowered = value.lower()
    return any(marker in lowered for marker in PLACEHOLDER_MARKERS)


def secret_name_to_config_key(secret_name: str) -> str:
    """Map a Secret Manager name to a config key: "jwt-signing-key" -> "jwt:signing_key"."""
    section, _, rest = secret_name.lower().partition("-")
    return f"{section}:{rest.replace('-', '_')}" if rest else section


SIGNING_KEY_CONFIG_KEY = secret_name_to_config_key(SIGNING_KEY_SECRET_NAME)


def development_key(hostname: Optional[str] = None) -> str:
    """Return base64(sha256(...hostname...)) -- 44 characters, stable per machine."""
    source = _DEV_KEY_TEMPLATE.format(hostname=hostname or socket.gethostname())
    return base64.b64encode(hashlib.sha256(source.encode("utf-8")).digest()).decode("ascii")


# ---------------------------------------------------------------------------
# Remote source: Google Cloud Secret Manager (REST)
# ---------------------------------------------------------------------------


class SecretManagerClient:
    """Minimal Secret Manager reader over the v1 REST API.

    Authentication uses GCP_ACCESS_TOKEN when configured, otherwise the GCE
    metadata server (Cloud Run, GKE, Compute Engine). Every call is bounded by
    timeout seconds.
    """

    def __init__(
        self,
        project_id: str,
        access_token: str = "",
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.project_id = project_id
        self.timeout = timeout
        self._access_token = access_token
        self._session = session or requests.Session()
        self._session.max_redirects = 3

    def access(self, secret_name: str) -> Optional[str]:
        """Return the latest version of secret_name, or None if it does not exist.

        Raises:
            TransientRemoteError: On transport failure, timeout, an error status
                other than 404, or an unparseable response.
        """
        url = SECRET_MANAGER_URL.format(project=self.project_id, name=secret_name)
        headers = {"Accept": "application/json", "Authorization": f"Bearer {self._bearer_token()}"}
        try:
            resp = self._session.get(url, headers=headers, timeout=self.timeout)
            if resp.status_code == 404:
                return None
            resp.raise_for_status()
            data = resp.json()["payload"]["data"]
            return base64.b64decode(data, validate=True).decode("utf-8").rstrip("\r\n")
        except requests.RequestException as exc:
            raise TransientRemoteError(f"Secret Manager request for {secret_name!r} failed: {exc}") from exc
        except (KeyError, TypeError, ValueError, binascii.Error) as exc:
            raise TransientRemoteError(f"Secret Manager returned an unexpected payload for {secret_name!r}") from exc

    def _bearer_token(self) -> str:
        if self._access_token:
            return self._access_token
        try:
            resp = self._session.get(
                METADATA_TOKEN_URL,
                headers={"Metadata-Flavor": "Google"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            return resp.json()["access_token"]
        except requests.RequestException as exc:
            raise TransientRemoteError(f"GCE metadata token request failed: {exc}") from exc
        except (KeyError, TypeError, ValueError) as exc:
            raise TransientRemoteError("GCE metadata server returned no access_token") from exc


# ---------------------------------------------------------------------------
# Local development store
# ---------------------------------------------------------------------------


class LocalSecretsStore:
    """Development-only secrets kept in a JSON file outside the repository.

    Nested objects are flattened to "section:key", so
        {"jwt": {"signing_key": "..."}}
    answers get("jwt:signing_key"). The file is read on first use.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path).expanduser()
        self._values: Optional[dict[str, str]] = None

    def get(self, key: str) -> Optional[str]:
        if self._values is None:
            self._values = self._load()
        return self._values.get(key)

    def _load(self) -> dict[str, str]:
        if not self.path.is_file():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Local secrets file %s is unreadable: %s", self.path, exc)
            return {}
        if not isinstance(raw, dict):
            logger.warning("Local secrets file %s must contain a JSON object", self.path)
            return {}
        return _flatten(raw)


def _flatten(raw: dict, prefix: str = "") -> dict[str, str]:
    flat: dict[str, str] = {}
    for key, value in raw.items():
        full_key = f"{prefix}:{key}".lower() if prefix else str(key).lower()
        if isinstance(value, dict):
            flat.update(_flatten(value, full_key))
        elif isinstance(value, str):
            flat[full_key] = value
    return flat


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class SecretResolver:
    """Resolve the signing secret once and hand the same value to every caller.

    Usage:
        resolver = SecretResolver.from_settings(get_settings())
        secret = resolver.resolve()   # ConfigurationError if nothing usable
    """

    def __init__(
        self,
        settings: Settings,
        secret_manager: Optional[SecretManagerClient] = None,
        local_store: Optional[LocalSecretsStore] = None,
        hostname: Optional[str] = None,
    ) -> None:
        self._settings = settings
        self._secret_manager = secret_manager
        self._local_store = local_store
        self._hostname = hostname
        # Values loaded from Secret Manager, keyed like configuration.
        self._config_overlay: dict[str, str] = {}
        self._resolved: Optional[SigningSecret] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "SecretResolver":
        secret_manager = None
        if settings.gcp_project_id:
            secret_manager = SecretManagerClient(
                settings.gcp_project_id,
                access_token=settings.gcp_access_token,
                timeout=settings.secret_manager_timeout,
            )
        local_store = LocalSecretsStore(settings.local_secrets_file) if settings.debug else None
        return cls(settings, secret_manager=secret_manager, local_store=local_store)

    def resolve(self) -> SigningSecret:
        """Return the active signing secret.

        Raises:
            ConfigurationError: If the winning candidate is shorter than 32
                characters, or if no source yields a usable secret outside
                development mode.
        """
        if self._resolved is not None:
            return self._resolved

        for source, value in self._candidates():
            if not value:
                continue
            if is_placeholder(value):
                logger.warning("Ignoring placeholder signing secret from %s", source.value)
                continue
            if len(value) < MIN_SECRET_LENGTH:
                logger.error("Signing secret from %s is shorter than %d characters", source.value, MIN_SECRET_LENGTH)
                raise ConfigurationError(
                    f"JWT signing secret from {source.value} must be at least {MIN_SECRET_LENGTH} characters."
                )
            if source is SecretSource.configuration and not self._settings.debug:
                logger.warning("Signing secret read from general configuration (JWT__SECRET_KEY); use JWT_SECRET_KEY")
            if source is SecretSource.development:
                logger.warning(
                    "WARNING: Using a hostname-derived development signing secret. "
                    "Set JWT_SECRET_KEY or the local secrets file for a persistent key."
                )
            self._resolved = SigningSecret(value=value, source=source)
            logger.info("Signing secret resolved from %s", source.value)
            return self._resolved

        raise ConfigurationError(
            "JWT signing secret not found. Set the JWT_SECRET_KEY environment variable, "
            f"create the '{SIGNING_KEY_SECRET_NAME}' secret in Google Cloud Secret Manager, "
            "or run with DEBUG=true and a local secrets file."
        )

    def _candidates(self) -> Iterator[tuple[SecretSource, Optional[str]]]:
        # Generator: later sources (including the remote call) are only
        # consulted when earlier ones did not win.
        yield SecretSource.environment, self._settings.jwt_secret_key
        yield SecretSource.secret_manager, self._remote_value(SIGNING_KEY_SECRET_NAME)
        if self._settings.debug and self._local_store is not None:
            yield SecretSource.local_store, self._local_store.get(SIGNING_KEY_CONFIG_KEY)
        yield SecretSource.configuration, self._settings.jwt.secret_key
        if self._settings.debug:
            yield SecretSource.development, development_key(self._hostname)

    def _remote_value(self, secret_name: str) -> Optional[str]:
        config_key = secret_name_to_config_key(secret_name)
        if config_key in self._config_overlay:
            return self._config_overlay[config_key]
        if self._secret_manager is None:
            return None
        try:
            value = self._secret_manager.access(secret_name)
        except TransientRemoteError as exc:
            logger.warning("Secret Manager unavailable, falling through: %s", exc)
            return None
        if value is None:
            logger.warning("Secret %r not found in Secret Manager project %s", secret_name, self._secret_manager.project_id)
            return None
        self._config_overlay[config_key] = value
        return value
