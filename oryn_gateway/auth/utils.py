"""
Authentication utilities for CSRF state handling and cookie management.

This module handles:
- Generating and validating the OAuth ``state`` value
- Reducing provider error strings to short, safe error codes
- Setting and clearing the gateway's HttpOnly cookies
"""

import hmac
import re
import secrets
from typing import Optional
from urllib.parse import urlencode

from starlette.responses import Response

from oryn_gateway.auth.errors import CsrfMismatch
from oryn_gateway.config import Settings


# Error codes surfaced to the browser must look like OAuth error codes.
_ERROR_CODE_PATTERN = re.compile(r"^[a-z0-9_]{1,64}$")

GENERIC_ERROR_CODE = "auth_failed"


# =============================================================================
# CSRF State
# =============================================================================

def generate_state() -> str:
    """Generate cryptographically secure state token (256-bit)."""
    return secrets.token_urlsafe(32)


def validate_state(received_state: Optional[str], expected_state: Optional[str]) -> bool:
    """
    Validate OAuth state parameter.

    Both values must be present and equal; absence on either side is a
    failure, not a pass.

    Args:
        received_state: State from callback
        expected_state: State from the oauth_state cookie

    Returns:
        True if states match
    """
    if not received_state or not expected_state:
        return False
    return hmac.compare_digest(
        received_state.encode("utf-8"),
        expected_state.encode("utf-8"),
    )


def require_state(received_state: Optional[str], expected_state: Optional[str]) -> None:
    """
    Raise unless the callback state matches the state cookie.

    Raises:
        CsrfMismatch: If either value is missing or they differ
    """
    if not validate_state(received_state, expected_state):
        raise CsrfMismatch(
            "OAuth state mismatch "
            f"(state_present={bool(received_state)}, cookie_present={bool(expected_state)})"
        )


# =============================================================================
# Error Codes
# =============================================================================

def sanitize_error_code(code: Optional[str]) -> str:
    """
    Reduce a provider-supplied error to a short machine-readable code.

    Anything that does not look like an OAuth error code (``access_denied``,
    ``bad_verification_code``...) is replaced with ``auth_failed``.
    """
    if not code:
        return GENERIC_ERROR_CODE
    code = code.strip().lower()
    if not _ERROR_CODE_PATTERN.match(code):
        return GENERIC_ERROR_CODE
    return code


def build_login_redirect(settings: Settings, error_code: str) -> str:
    """Front-end login URL carrying ``?error=<code>``."""
    return f"{settings.LOGIN_URL}?{urlencode({'error': error_code})}"


# =============================================================================
# Cookies
# =============================================================================

def set_state_cookie(response: Response, settings: Settings, state: str) -> None:
    response.set_cookie(
        key=settings.STATE_COOKIE_NAME,
        value=state,
        max_age=settings.STATE_MAX_AGE_SECONDS,
        path="/",
        secure=settings.COOKIE_SECURE,
        httponly=True,
        samesite="lax",
    )


def clear_state_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.STATE_COOKIE_NAME,
        path="/",
        secure=settings.COOKIE_SECURE,
        httponly=True,
        samesite="lax",
    )


def set_session_cookie(response: Response, settings: Settings, token: str) -> None:
    """Set the session cookie on response."""
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.SESSION_MAX_AGE_SECONDS,
        path="/",
        secure=settings.COOKIE_SECURE,
        httponly=True,
        samesite="lax",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    """Expire the session cookie (Max-Age=0)."""
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        secure=settings.COOKIE_SECURE,
        httponly=True,
        samesite="lax",
    )
