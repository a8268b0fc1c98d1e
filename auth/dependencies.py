"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Only one auth method exists: an "Authorization: Bearer <token>" header
carrying a session token issued by auth.tokens.TokenService.

try_get_current_claims() is the soft variant (returns None on failure).
get_current_claims() wraps it and raises HTTP 401 if unauthenticated.

Layer rule: auth/dependencies.py may import from fastapi because it is part
of the FastAPI dependency injection system. It does not import from api/.
"""

from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, Request

from auth.models import AuthenticationFailure, TokenClaims
from auth.tokens import TokenService


def _bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def try_get_current_claims(request: Request) -> Optional[TokenClaims]:
    """Return verified claims for the request's bearer token, or None. Never raises."""
    token = _bearer_token(request)
    if token is None:
        return None
    tokens: TokenService = request.app.state.token_service
    result = tokens.validate(token)
    if isinstance(result, AuthenticationFailure):
        return None
    return result


def get_current_claims(request: Request) -> TokenClaims:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(claims: TokenClaims = Depends(get_current_claims)): ...
    """
    claims = try_get_current_claims(request)
    if claims is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return claims
