"""
Authentication error types.

Every error carries a short, machine-readable ``code``. Callback failures are
turned into ``/#/login?error=<code>`` redirects and identity-check failures
into 401 bodies, so nothing here should ever reach the client as a traceback.
"""

from typing import Optional


class AuthError(Exception):
    """Base exception for gateway authentication errors"""

    code = "auth_failed"

    def __init__(self, message: str = "", code: Optional[str] = None):
        super().__init__(message or self.__class__.__name__)
        if code:
            self.code = code


class CsrfMismatch(AuthError):
    """The callback ``state`` is missing or does not match the state cookie."""

    code = "state_mismatch"


class ProviderError(AuthError):
    """GitHub reported an OAuth error (on the callback or the code exchange)."""


class ProviderUnavailable(AuthError):
    """GitHub could not be reached, timed out, or returned an unusable body."""


class ProfileFetchFailure(AuthError):
    """The user profile endpoint returned a non-success response."""


class SessionDecodeError(AuthError):
    """A session token is malformed, tampered with, expired or revoked."""

    code = "invalid_session"


class Unauthenticated(AuthError):
    """No session cookie was presented."""

    code = "unauthorized"


__all__ = [
    "AuthError",
    "CsrfMismatch",
    "ProviderError",
    "ProviderUnavailable",
    "ProfileFetchFailure",
    "SessionDecodeError",
    "Unauthenticated",
]
