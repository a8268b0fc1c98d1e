"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  POST /api/v1/auth/login   -- username/password login; returns a bearer token
  POST /api/v1/auth/google  -- Google SSO login; returns a bearer token
  GET  /api/v1/auth/me      -- claims of the presented token (requires auth)

Security:
  Both login routes are rate-limited per client IP (LOGIN_RATE_LIMIT).
  Wrong username and wrong password return the same "bad_credentials" error
  so the response does not reveal which one was wrong.
  Cache-Control: no-store on every login response.
  ConfigurationError is not caught here; the app-level handler turns it into
  a 500 so a broken deployment is never reported as a bad password.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import LOGIN_RATE_LIMIT, limiter
from api.models import ErrorDetail, ErrorResponse, GoogleSsoRequest, LoginRequest, LoginResponse, MeResponse
from auth.dependencies import get_current_claims
from auth.models import AuthenticationFailure, TokenClaims
from auth.service import AuthService, LoginResult

logger = logging.getLogger("incidentmap.api.auth")

# Auth policy:
# - POST /api/v1/auth/login:   public
# - POST /api/v1/auth/google:  public
# - GET  /api/v1/auth/me:      requires auth (get_current_claims)
router = APIRouter()


def _login_response(result: LoginResult) -> JSONResponse:
    if isinstance(result, AuthenticationFailure):
        resp = JSONResponse(
            status_code=401,
            content=ErrorResponse(error=ErrorDetail(code=result.kind.value, message=result.message)).model_dump(
                exclude_none=True
            ),
            headers={"WWW-Authenticate": "Bearer"},
        )
    else:
        resp = JSONResponse(status_code=200, content=LoginResponse.from_issued(result).model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


@limiter.limit(LOGIN_RATE_LIMIT)
@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password and return a bearer token."""
    auth_service: AuthService = request.app.state.auth_service
    result = auth_service.login(body.username, body.password)
    if isinstance(result, AuthenticationFailure):
        logger.warning("Failed login attempt for user %s", body.username)
    return _login_response(result)


@limiter.limit(LOGIN_RATE_LIMIT)
@router.post("/auth/google", response_model=LoginResponse)
def google_login(request: Request, body: GoogleSsoRequest) -> JSONResponse:
    """Exchange a verified Google ID token for a bearer token."""
    auth_service: AuthService = request.app.state.auth_service
    return _login_response(auth_service.login_with_google(body.id_token))


@router.get("/auth/me", response_model=MeResponse)
def me(claims: TokenClaims = Depends(get_current_claims)) -> MeResponse:
    """Return the identity carried by the presented token."""
    return MeResponse.from_claims(claims)
