"""
auth/service.py -- Login and Google SSO login handlers.

Both flows end in TokenService.issue(). Expected rejections are returned as
AuthenticationFailure values; ConfigurationError is NOT caught here -- a
misconfigured signing secret is a server fault, not a bad login, and the API
exception handler reports it as a 500.
"""

from __future__ import annotations

import logging
from typing import Union

from auth.credentials import CredentialValidator
from auth.google import GoogleIdentityVerifier
from auth.models import AuthenticationFailure, FailureKind, IssuedToken
from auth.store import SSO_ROLE, UserDirectory
from auth.tokens import TokenService

logger = logging.getLogger("incidentmap.auth.service")

LoginResult = Union[IssuedToken, AuthenticationFailure]


class AuthService:
    def __init__(
        self,
        directory: UserDirectory,
        tokens: TokenService,
        google: GoogleIdentityVerifier,
    ) -> None:
        self.directory = directory
        self.tokens = tokens
        self.google = google
        self._validator = CredentialValidator(directory)

    def login(self, username: str, password: str) -> LoginResult:
        """Validate username/password and issue a session token."""
        if not self._validator.validate_credentials(username, password):
            return AuthenticationFailure(FailureKind.bad_credentials, "Invalid username or password.")

        role = self.directory.role_for(username)
        token = self.tokens.issue(username, role)
        logger.info("User %s logged in", username)
        return IssuedToken(
            access_token=token,
            expires_in=self.tokens.expires_in_seconds(),
            username=username,
            role=role,
        )

    def login_with_google(self, id_token: str) -> LoginResult:
        """Verify a Google ID token and issue a session token for its email."""
        identity = self.google.verify(id_token) if id_token else None
        if identity is None:
            logger.warning("Invalid or expired Google ID token")
            return AuthenticationFailure(FailureKind.invalid_sso_token, "Invalid Google ID token.")

        # TODO: look the SSO user up in the directory once it stores SSO accounts.
        role = SSO_ROLE
        token = self.tokens.issue(identity.email, role)
        logger.info("User %s authenticated via Google SSO", identity.email)
        return IssuedToken(
            access_token=token,
            expires_in=self.tokens.expires_in_seconds(),
            username=identity.email,
            role=role,
        )
