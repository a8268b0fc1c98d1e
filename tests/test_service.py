"""Unit tests for auth/service.py -- login and Google SSO login handlers."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from auth.google import GoogleIdentityVerifier
from auth.models import AuthenticationFailure, ExternalIdentity, FailureKind, IssuedToken, TokenClaims
from auth.service import AuthService
from auth.store import InMemoryUserDirectory
from core.errors import ConfigurationError
from helpers import make_token_service

JANE = ExternalIdentity(
    email="jane.doe@incidents.test",
    name="Jane Doe",
    picture_url="",
    subject_id="110169484474386276334",
)


def _service(identity=None, **jwt_overrides) -> AuthService:
    google = MagicMock(spec=GoogleIdentityVerifier)
    google.verify.return_value = identity
    return AuthService(InMemoryUserDirectory(), make_token_service(**jwt_overrides), google)


class TestLogin:
    def test_admin_login(self) -> None:
        service = _service()
        result = service.login("admin", "admin123")
        assert isinstance(result, IssuedToken)
        assert result.username == "admin"
        assert result.role == "Admin"
        assert result.token_type == "Bearer"
        assert result.expires_in == 3600

        claims = service.tokens.validate(result.access_token)
        assert isinstance(claims, TokenClaims)
        assert claims.subject == "admin"
        assert claims.role == "Admin"

    def test_user_login(self) -> None:
        result = _service().login("user", "user123")
        assert isinstance(result, IssuedToken)
        assert result.role == "User"

    @pytest.mark.parametrize("username,password", [("admin", "wrong"), ("nobody", "admin123"), ("", "")])
    def test_bad_credentials(self, username: str, password: str) -> None:
        result = _service().login(username, password)
        assert result == AuthenticationFailure(FailureKind.bad_credentials, "Invalid username or password.")

    def test_configuration_error_propagates(self) -> None:
        with pytest.raises(ConfigurationError):
            _service(expiry_minutes="abc").login("admin", "admin123")


class TestGoogleLogin:
    def test_verified_identity_gets_user_role(self) -> None:
        service = _service(JANE)
        result = service.login_with_google("google-id-token")
        assert isinstance(result, IssuedToken)
        assert result.username == "jane.doe@incidents.test"
        assert result.role == "User"
        service.google.verify.assert_called_once_with("google-id-token")

        claims = service.tokens.validate(result.access_token)
        assert isinstance(claims, TokenClaims)
        assert claims.subject == "jane.doe@incidents.test"

    def test_rejected_token(self) -> None:
        result = _service(None).login_with_google("forged")
        assert isinstance(result, AuthenticationFailure)
        assert result.kind is FailureKind.invalid_sso_token

    def test_empty_token_skips_verification(self) -> None:
        service = _service(JANE)
        result = service.login_with_google("")
        assert isinstance(result, AuthenticationFailure)
        service.google.verify.assert_not_called()

    def test_configuration_error_propagates(self) -> None:
        with pytest.raises(ConfigurationError):
            _service(JANE, expiry_minutes="0").login_with_google("google-id-token")
