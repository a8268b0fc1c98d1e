"""
auth/credentials.py -- Username/password validation against a UserDirectory.

Role assignment is deliberately not here: callers ask directory.role_for()
after a successful validation.

Timing equalization: an unknown username is verified against _DUMMY_HASH so
the PBKDF2 work is the same whether or not the user exists, and response time
does not reveal valid usernames.
"""

from __future__ import annotations

import logging

from auth.passwords import hash_password, verify_password
from auth.store import UserDirectory

logger = logging.getLogger("incidentmap.auth.credentials")

# Computed once at import so the first login is not measurably slower.
_DUMMY_HASH: str = hash_password("incidentmap_timing_dummy")


class CredentialValidator:
    def __init__(self, directory: UserDirectory) -> None:
        self.directory = directory

    def validate_credentials(self, username: str, password: str) -> bool:
        """Return True only if username exists and password matches.

        Fails closed: any unexpected error (e.g. the store is down) is logged
        and reported as an invalid login, with no detail for the caller.
        """
        try:
            credential = self.directory.get_credential(username)
            if credential is None:
                verify_password(password, _DUMMY_HASH)
                logger.warning("Login attempt with unknown username: %s", username)
                return False
            if not verify_password(password, credential.password_hash):
                logger.warning("Login attempt with invalid password for user: %s", username)
                return False
            return True
        except Exception:
            logger.exception("Error validating credentials for user: %s", username)
            return False
