"""
Authentication routes for the GitHub login flow.

This module implements the OAuth 2.0 authorization code flow with GitHub:

    GET      /api/auth/github    redirect to GitHub with a fresh CSRF state
    GET      /api/auth/callback  validate state, exchange code, issue session
    GET      /api/auth/me        return the identity held in the session cookie
    GET|POST /api/auth/logout    expire the session cookie

The handlers keep no state between requests; everything they need travels in
the ``oauth_state`` and ``session`` cookies.
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse

from oryn_gateway.auth.errors import (
    AuthError,
    SessionDecodeError,
    Unauthenticated,
)
from oryn_gateway.auth.github import GitHubOAuthClient
from oryn_gateway.auth.session import SessionCodec
from oryn_gateway.auth.utils import (
    GENERIC_ERROR_CODE,
    build_login_redirect,
    clear_session_cookie,
    clear_state_cookie,
    generate_state,
    require_state,
    sanitize_error_code,
    set_session_cookie,
    set_state_cookie,
)
from oryn_gateway.config import Settings
from oryn_gateway.models import ErrorResponse, LogoutResponse, UserIdentity

logger = logging.getLogger(__name__)


# =============================================================================
# Router Setup
# =============================================================================

auth_router = APIRouter(
    prefix="/api/auth",
    tags=["authentication"],
)


# =============================================================================
# Dependencies
# =============================================================================

def get_gateway_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_github_client(request: Request) -> GitHubOAuthClient:
    return request.app.state.github_client


def get_session_codec(request: Request) -> SessionCodec:
    return request.app.state.session_codec


# =============================================================================
# Login Endpoint
# =============================================================================

@auth_router.get("/github", response_class=RedirectResponse, status_code=302)
async def login(
    settings: Settings = Depends(get_gateway_settings),
    github: GitHubOAuthClient = Depends(get_github_client),
):
    """
    Initiate login by redirecting to GitHub.

    Each call mints a new state value, so a state from an earlier attempt
    stops matching as soon as the browser stores the new cookie.
    """
    state = generate_state()

    response = RedirectResponse(url=github.authorization_url(state), status_code=302)
    set_state_cookie(response, settings, state)

    logger.info("Redirecting to GitHub for authorization")
    return response


# =============================================================================
# Callback Endpoint
# =============================================================================

@auth_router.get("/callback", response_class=RedirectResponse, status_code=302)
async def callback(
    request: Request,
    code: Optional[str] = Query(None, description="Authorization code from GitHub"),
    state: Optional[str] = Query(None, description="State parameter for CSRF protection"),
    error: Optional[str] = Query(None, description="Error code if authorization failed"),
    settings: Settings = Depends(get_gateway_settings),
    github: GitHubOAuthClient = Depends(get_github_client),
    codec: SessionCodec = Depends(get_session_codec),
):
    """
    Handle the OAuth callback from GitHub.

    Every outcome is a 302: to the dashboard on success, otherwise to the
    login view with a short ``error`` code. The state cookie is expired on
    every branch so it can only ever serve one callback.
    """
    # Provider-reported errors short-circuit before any cookie is inspected
    if error:
        error_code = sanitize_error_code(error)
        logger.warning("Authorization failed at provider: %s", error_code)
        return _login_redirect(settings, error_code)

    try:
        require_state(state, request.cookies.get(settings.STATE_COOKIE_NAME))
        if not code:
            raise AuthError("Callback missing authorization code")

        identity = await asyncio.wait_for(
            _complete_login(code, settings, github),
            timeout=settings.callback_deadline_seconds,
        )
    except asyncio.TimeoutError:
        logger.warning("Login did not complete within %.1fs", settings.callback_deadline_seconds)
        return _login_redirect(settings, GENERIC_ERROR_CODE)
    except AuthError as e:
        logger.warning("Rejected callback: %s (%s)", e, e.code)
        return _login_redirect(settings, e.code)

    response = RedirectResponse(url=settings.DASHBOARD_URL, status_code=302)
    set_session_cookie(response, settings, codec.encode(identity))
    clear_state_cookie(response, settings)

    logger.info("User %s (id=%s) logged in", identity.login, identity.id)
    return response


async def _complete_login(
    code: str,
    settings: Settings,
    github: GitHubOAuthClient,
) -> UserIdentity:
    """Exchange the code and read the profile; the access token dies here."""
    access_token = await github.exchange_code(code)
    profile = await github.fetch_profile(access_token)
    return UserIdentity.from_github_profile(profile, role=settings.DEFAULT_ROLE)


def _login_redirect(settings: Settings, error_code: str) -> RedirectResponse:
    response = RedirectResponse(url=build_login_redirect(settings, error_code), status_code=302)
    clear_state_cookie(response, settings)
    return response


# =============================================================================
# Identity Endpoint
# =============================================================================

@auth_router.get(
    "/me",
    response_model=UserIdentity,
    responses={401: {"model": ErrorResponse}},
)
async def me(
    request: Request,
    settings: Settings = Depends(get_gateway_settings),
    codec: SessionCodec = Depends(get_session_codec),
):
    """
    Return the identity carried by the session cookie.

    A cookie that fails verification is expired in the 401 response so the
    browser stops presenting it.
    """
    try:
        identity = _read_session(request, settings, codec)
    except Unauthenticated:
        return JSONResponse(
            status_code=401,
            content=ErrorResponse(error="Unauthorized").model_dump(exclude_none=True),
        )
    except SessionDecodeError:
        response = JSONResponse(
            status_code=401,
            content=ErrorResponse(error="Invalid session").model_dump(exclude_none=True),
        )
        clear_session_cookie(response, settings)
        return response

    return JSONResponse(
        content=identity.model_dump(),
        headers={"Cache-Control": "no-store"},
    )


def _read_session(request: Request, settings: Settings, codec: SessionCodec) -> UserIdentity:
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        raise Unauthenticated("No session cookie")
    return codec.decode(token)


# =============================================================================
# Logout Endpoint
# =============================================================================

@auth_router.api_route("/logout", methods=["GET", "POST"], response_model=LogoutResponse)
async def logout(
    request: Request,
    settings: Settings = Depends(get_gateway_settings),
    codec: SessionCodec = Depends(get_session_codec),
):
    """
    Expire the session cookie. Calling it without a session is not an error.
    """
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if token:
        codec.revoke(token)

    response = JSONResponse(content=LogoutResponse().model_dump())
    clear_session_cookie(response, settings)

    logger.info("Session cleared (had_session=%s)", bool(token))
    return response
