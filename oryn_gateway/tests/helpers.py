"""
Test helpers shared across the gateway test modules.

GitHub is replaced by ``httpx.MockTransport`` so every outbound request the
gateway makes is recorded and can be asserted on (or asserted absent).
"""

from http.cookies import SimpleCookie
from typing import Any, Dict, List, Optional

import httpx

from oryn_gateway.config import Settings


TEST_SESSION_SECRET = "test-session-secret-0123456789abcdef-0123456789abcdef-0123456789"
TEST_REDIRECT_URI = "https://oryn.example.com/api/auth/callback"
TOKEN_PATH = "/login/oauth/access_token"
USER_PATH = "/user"


def make_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = {
        "GITHUB_CLIENT_ID": "Iv1.testclientid",
        "GITHUB_CLIENT_SECRET": "test-client-secret",
        "GITHUB_REDIRECT_URI": TEST_REDIRECT_URI,
        "SESSION_SECRET": TEST_SESSION_SECRET,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeGitHub:
    """
    Programmable stand-in for github.com and api.github.com.

    Set ``token_json`` / ``profile_json`` (and the matching status codes) to
    shape responses, or ``token_error`` / ``profile_error`` to an exception
    instance to simulate transport failures.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.token_status = 200
        self.token_json: Any = {"access_token": "T", "token_type": "bearer", "scope": "read:user"}
        self.token_error: Optional[Exception] = None
        self.profile_status = 200
        self.profile_json: Any = {"id": 7, "login": "amy", "name": None, "avatar_url": "u"}
        self.profile_error: Optional[Exception] = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == TOKEN_PATH:
            if self.token_error is not None:
                raise self.token_error
            return httpx.Response(self.token_status, json=self.token_json)
        if request.url.path == USER_PATH:
            if self.profile_error is not None:
                raise self.profile_error
            return httpx.Response(self.profile_status, json=self.profile_json)
        return httpx.Response(404, json={"message": "Not Found"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def token_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == TOKEN_PATH]

    @property
    def profile_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == USER_PATH]


def parse_set_cookies(response: httpx.Response) -> Dict[str, Any]:
    """Map cookie name to its Morsel for every Set-Cookie header."""
    cookies: Dict[str, Any] = {}
    for header in response.headers.get_list("set-cookie"):
        jar = SimpleCookie()
        jar.load(header)
        for name, morsel in jar.items():
            cookies[name] = morsel
    return cookies
