"""
GitHub OAuth Client Tests

Exercises GitHubOAuthClient directly against an httpx.MockTransport.
"""

from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from oryn_gateway.auth.errors import ProfileFetchFailure, ProviderError, ProviderUnavailable
from oryn_gateway.auth.github import GitHubOAuthClient
from oryn_gateway.tests.helpers import FakeGitHub, TEST_REDIRECT_URI, make_settings


@pytest.fixture
def github(settings, fake_github):
    return GitHubOAuthClient(settings, transport=fake_github.transport)


class TestAuthorizationURL:

    def test_contains_required_parameters(self, github, settings):
        url = urlparse(github.authorization_url("state-123"))
        query = parse_qs(url.query)

        assert f"{url.scheme}://{url.netloc}{url.path}" == settings.GITHUB_AUTHORIZE_URL
        assert query == {
            "client_id": ["Iv1.testclientid"],
            "redirect_uri": [TEST_REDIRECT_URI],
            "state": ["state-123"],
            "scope": ["read:user"],
        }

    def test_secret_is_never_in_url(self, github):
        assert "test-client-secret" not in github.authorization_url("s")

    def test_custom_scope(self, fake_github):
        client = GitHubOAuthClient(make_settings(GITHUB_SCOPE="read:user user:email"))
        query = parse_qs(urlparse(client.authorization_url("s")).query)
        assert query["scope"] == ["read:user user:email"]


class TestExchangeCode:

    @pytest.mark.asyncio
    async def test_returns_access_token(self, github):
        assert await github.exchange_code("abc") == "T"

    @pytest.mark.asyncio
    async def test_provider_error_carries_code(self, github, fake_github):
        fake_github.token_json = {"error": "bad_verification_code", "error_description": "expired"}

        with pytest.raises(ProviderError) as exc_info:
            await github.exchange_code("abc")

        assert exc_info.value.code == "bad_verification_code"

    @pytest.mark.asyncio
    async def test_unsafe_provider_error_is_generic(self, github, fake_github):
        fake_github.token_json = {"error": "Something Odd happened!"}

        with pytest.raises(ProviderError) as exc_info:
            await github.exchange_code("abc")

        assert exc_info.value.code == "auth_failed"

    @pytest.mark.asyncio
    async def test_non_json_body(self, settings):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>oops</html>"))
        github = GitHubOAuthClient(settings, transport=transport)

        with pytest.raises(ProviderUnavailable):
            await github.exchange_code("abc")

    @pytest.mark.asyncio
    async def test_json_array_body(self, github, fake_github):
        fake_github.token_json = ["not", "an", "object"]

        with pytest.raises(ProviderUnavailable):
            await github.exchange_code("abc")

    @pytest.mark.asyncio
    async def test_http_error_without_oauth_error(self, github, fake_github):
        fake_github.token_status = 500
        fake_github.token_json = {"message": "oops"}

        with pytest.raises(ProviderUnavailable) as exc_info:
            await github.exchange_code("abc")

        assert exc_info.value.code == "auth_failed"

    @pytest.mark.asyncio
    async def test_missing_access_token(self, github, fake_github):
        fake_github.token_json = {"token_type": "bearer"}

        with pytest.raises(ProviderUnavailable):
            await github.exchange_code("abc")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [httpx.ConnectTimeout("slow"), httpx.ReadTimeout("slow"), httpx.ConnectError("refused")],
    )
    async def test_transport_failures(self, github, fake_github, error):
        fake_github.token_error = error

        with pytest.raises(ProviderUnavailable):
            await github.exchange_code("abc")

        assert len(fake_github.token_requests) == 1

    @pytest.mark.asyncio
    async def test_redirects_are_not_followed(self, settings):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(302, headers={"Location": "http://169.254.169.254/"})

        github = GitHubOAuthClient(settings, transport=httpx.MockTransport(handler))

        with pytest.raises(ProviderUnavailable):
            await github.exchange_code("abc")

        assert len(calls) == 1


class TestFetchProfile:

    @pytest.mark.asyncio
    async def test_returns_profile(self, github, fake_github):
        fake_github.profile_json = {
            "id": 7,
            "login": "amy",
            "name": "Amy",
            "avatar_url": "u",
            "public_repos": 3,
        }

        profile = await github.fetch_profile("T")

        assert (profile.id, profile.login, profile.name, profile.avatar_url) == (7, "amy", "Amy", "u")

    @pytest.mark.asyncio
    async def test_request_headers(self, github, fake_github):
        await github.fetch_profile("T")

        request = fake_github.profile_requests[0]
        assert str(request.url) == "https://api.github.com/user"
        assert request.headers["authorization"] == "Bearer T"
        assert request.headers["accept"] == "application/vnd.github+json"
        assert request.headers["user-agent"] == "Oryn-Server"

    @pytest.mark.asyncio
    async def test_unauthorized(self, github, fake_github):
        fake_github.profile_status = 401

        with pytest.raises(ProfileFetchFailure):
            await github.fetch_profile("T")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"login": "amy"},
            {"id": "7", "login": "amy"},
            {"id": 7, "login": ""},
            {"id": 7},
            "plain string",
        ],
    )
    async def test_malformed_profile(self, github, fake_github, body):
        fake_github.profile_json = body

        with pytest.raises(ProfileFetchFailure):
            await github.fetch_profile("T")

    @pytest.mark.asyncio
    async def test_timeout(self, github, fake_github):
        fake_github.profile_error = httpx.ReadTimeout("slow")

        with pytest.raises(ProfileFetchFailure):
            await github.fetch_profile("T")


def test_fake_github_routes_unknown_paths():
    fake = FakeGitHub()
    response = fake.handler(httpx.Request("GET", "https://api.github.com/elsewhere"))
    assert response.status_code == 404
