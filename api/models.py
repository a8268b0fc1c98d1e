"""
API request and response models for the Incident Mapping REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.
"""

from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from auth.models import IssuedToken, TokenClaims

USERNAME_PATTERN = r"^[a-zA-Z0-9._@-]+$"


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    username: Annotated[
        str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50, pattern=USERNAME_PATTERN)
    ]
    # Not stripped: whitespace is significant in a password.
    password: str = Field(min_length=1, max_length=128, json_schema_extra={"format": "password"})


class GoogleSsoRequest(BaseModel):
    """Request body for POST /api/v1/auth/google.

    id_token is the Google ID token the browser received after the user
    signed in with Google.
    """

    id_token: str = Field(min_length=1, max_length=4096)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class LoginResponse(BaseModel):
    """Bearer token envelope returned by both login endpoints."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "Bearer"
    expires_in: int = Field(description="Token lifetime in seconds.")
    username: str
    role: str

    @classmethod
    def from_issued(cls, issued: IssuedToken) -> "LoginResponse":
        return cls(
            access_token=issued.access_token,
            token_type=issued.token_type,
            expires_in=issued.expires_in,
            username=issued.username,
            role=issued.role,
        )


class MeResponse(BaseModel):
    """Claims of the token presented on GET /api/v1/auth/me."""

    model_config = ConfigDict(frozen=True)

    username: str
    name: str
    role: str
    token_id: str
    issued_at: int
    expires_at: int

    @classmethod
    def from_claims(cls, claims: TokenClaims) -> "MeResponse":
        return cls(
            username=claims.subject,
            name=claims.name,
            role=claims.role,
            token_id=claims.token_id,
            issued_at=claims.issued_at,
            expires_at=claims.expires_at,
        )


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
