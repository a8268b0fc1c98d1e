"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the service happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. jwt_secret_key -> JWT_SECRET_KEY). Nested JWT settings use a double
      underscore (jwt.issuer -> JWT__ISSUER).

Signing secret:
  Settings only *carries* the candidate values. Precedence, placeholder
  rejection and the minimum-length rule live in auth/secret_resolver.py so the same
  contract is used by the token issuer and the token validator. Settings()
  therefore never fails because of a missing secret; the lifespan resolves the
  secret eagerly and refuses to start instead.

  JWT_SECRET_KEY      -- dedicated variable, highest precedence.
  JWT__SECRET_KEY     -- general configuration, lowest precedence. Discouraged
                         outside development.

Expiry:
  JWT__EXPIRY_MINUTES is kept as the raw string. Unset means 60 minutes; any
  explicit value that is not a positive integer is a ConfigurationError raised
  when a token is issued (auth/tokens.py parse_expiry_minutes).

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("incidentmap.config")

DEFAULT_LOCAL_SECRETS_FILE = Path.home() / ".incident-mapping" / "secrets.json"


class JwtSettings(BaseModel):
    """Token issuance and validation parameters (JWT__* variables)."""

    issuer: str = "IncidentMapping"
    audience: str = "IncidentMappingClients"
    # Raw value on purpose -- see module docstring.
    expiry_minutes: Optional[str] = None
    secret_key: str = ""


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    # Development mode: enables the local secrets store and the
    # hostname-derived fallback signing key.
    debug: bool = False

    # ------------------------------------------------------------------
    # Signing secret sources
    # ------------------------------------------------------------------

    jwt_secret_key: str = ""
    jwt: JwtSettings = JwtSettings()

    # Google Cloud Secret Manager (optional -- empty project disables it)
    gcp_project_id: str = Field(
        default="",
        validation_alias=AliasChoices("GCP_PROJECT_ID", "GOOGLE_CLOUD_PROJECT"),
    )
    gcp_access_token: str = ""
    secret_manager_timeout: float = 5.0

    local_secrets_file: Path = DEFAULT_LOCAL_SECRETS_FILE

    # ------------------------------------------------------------------
    # Google SSO
    # ------------------------------------------------------------------

    google_client_id: str = ""
    google_jwks_timeout: float = 5.0

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    # Empty string selects the in-memory placeholder directory.
    user_store_url: str = ""

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"
    cors_origins: str = "http://localhost:4200"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def warn_unused_gcp_token(self) -> "Settings":
        """A GCP access token without a project leaves Secret Manager disabled."""
        if self.gcp_access_token and not self.gcp_project_id:
            logger.warning("GCP_ACCESS_TOKEN is set but GCP_PROJECT_ID is not. Secret Manager lookup is disabled.")
        return self

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
