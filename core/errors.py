"""
core/errors.py -- Exception types shared across layers.

Only the *exceptional* outcomes are exceptions. Expected rejections (wrong
password, bad or expired token, invalid SSO token) are returned as
auth.models.AuthenticationFailure values instead.
"""


class ConfigurationError(RuntimeError):
    """The service is misconfigured and must not continue.

    Raised for a missing, weak or placeholder signing secret and for an
    invalid token expiry setting. Fatal at startup; a 500 at request time.
    """


class TransientRemoteError(Exception):
    """A remote dependency (Secret Manager, Google JWKS) failed or timed out.

    Callers fall through to the next source or fail closed.
    """
