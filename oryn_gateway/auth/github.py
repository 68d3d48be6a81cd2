"""
GitHub OAuth client.

Implements the provider side of the authorization code flow: building the
authorize URL, exchanging the code for an access token, and reading the
``/user`` profile with that token.

Calls are single-shot. Authorization codes are single-use, so a failed
exchange is never retried; the user has to start a new login instead.
"""

import logging
from typing import Optional
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from oryn_gateway.auth.errors import ProfileFetchFailure, ProviderError, ProviderUnavailable
from oryn_gateway.auth.utils import sanitize_error_code
from oryn_gateway.config import Settings
from oryn_gateway.models import GitHubProfile, GitHubTokenResponse

logger = logging.getLogger(__name__)

GITHUB_API_VERSION = "2022-11-28"


class GitHubOAuthClient:
    """
    Outbound GitHub calls used by the callback handler.

    A new ``httpx.AsyncClient`` is opened per call; ``transport`` lets tests
    substitute ``httpx.MockTransport`` for the network.
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.settings.PROVIDER_TIMEOUT_SECONDS),
            follow_redirects=False,
            transport=self._transport,
        )

    # =========================================================================
    # Authorization URL
    # =========================================================================

    def authorization_url(self, state: str) -> str:
        """
        Build the GitHub authorize URL for login redirect.

        Args:
            state: CSRF state value also stored in the oauth_state cookie

        Returns:
            Absolute authorization URL
        """
        params = {
            "client_id": self.settings.GITHUB_CLIENT_ID,
            "redirect_uri": self.settings.GITHUB_REDIRECT_URI,
            "state": state,
            "scope": self.settings.GITHUB_SCOPE,
        }
        return f"{self.settings.GITHUB_AUTHORIZE_URL}?{urlencode(params)}"

    # =========================================================================
    # Token Exchange
    # =========================================================================

    async def exchange_code(self, code: str) -> str:
        """
        Exchange authorization code for an access token.

        Args:
            code: Authorization code from callback

        Returns:
            The access token

        Raises:
            ProviderError: GitHub answered with an OAuth ``error`` field
            ProviderUnavailable: Network failure, timeout or unusable response
        """
        payload = {
            "client_id": self.settings.GITHUB_CLIENT_ID,
            "client_secret": self.settings.GITHUB_CLIENT_SECRET.get_secret_value(),
            "code": code,
            "redirect_uri": self.settings.GITHUB_REDIRECT_URI,
        }
        headers = {
            "Accept": "application/json",
            "User-Agent": self.settings.GITHUB_USER_AGENT,
        }

        try:
            async with self._client() as client:
                response = await client.post(
                    self.settings.GITHUB_TOKEN_URL,
                    json=payload,
                    headers=headers,
                )
        except httpx.TimeoutException as e:
            logger.warning("Token exchange timed out")
            raise ProviderUnavailable("Token exchange timed out") from e
        except httpx.HTTPError as e:
            logger.warning("Token exchange transport error: %s", type(e).__name__)
            raise ProviderUnavailable("Unable to reach token endpoint") from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if not isinstance(data, dict):
            logger.warning("Token endpoint returned HTTP %s without a JSON object", response.status_code)
            raise ProviderUnavailable("Token endpoint returned an unexpected body")

        try:
            token = GitHubTokenResponse.model_validate(data)
        except ValidationError as e:
            raise ProviderUnavailable("Token endpoint returned an unexpected body") from e

        if token.error:
            code_ = sanitize_error_code(token.error)
            logger.warning("Token exchange rejected by provider: %s", code_)
            raise ProviderError("Token exchange rejected", code=code_)

        if not response.is_success:
            logger.warning("Token exchange failed with HTTP %s", response.status_code)
            raise ProviderUnavailable(f"Token exchange failed with HTTP {response.status_code}")

        if not token.access_token:
            logger.warning("Token response missing access_token")
            raise ProviderUnavailable("Token response missing access_token")

        return token.access_token

    # =========================================================================
    # Profile
    # =========================================================================

    async def fetch_profile(self, access_token: str) -> GitHubProfile:
        """
        Fetch the authenticated user's profile.

        Args:
            access_token: Bearer token from ``exchange_code``; not retained

        Returns:
            Parsed profile

        Raises:
            ProfileFetchFailure: On any non-success or malformed response
        """
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": self.settings.GITHUB_USER_AGENT,
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }

        try:
            async with self._client() as client:
                response = await client.get(self.settings.github_user_url, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("Profile fetch transport error: %s", type(e).__name__)
            raise ProfileFetchFailure("Unable to reach profile endpoint") from e

        if not response.is_success:
            logger.warning("Profile fetch failed with HTTP %s", response.status_code)
            raise ProfileFetchFailure(f"Profile fetch failed with HTTP {response.status_code}")

        try:
            return GitHubProfile.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.warning("Profile response failed validation")
            raise ProfileFetchFailure("Profile response was malformed") from e
