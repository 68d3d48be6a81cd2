"""
Shared fixtures for gateway tests.
"""

from typing import Any, Callable, Optional

import pytest
from fastapi.testclient import TestClient

from oryn_gateway.auth.github import GitHubOAuthClient
from oryn_gateway.config import Settings
from oryn_gateway.main import create_app
from oryn_gateway.tests.helpers import FakeGitHub, make_settings


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def app_factory(fake_github: FakeGitHub) -> Callable[..., Any]:
    """Build an app wired to the fake GitHub, optionally with setting overrides."""

    def _build(settings: Optional[Settings] = None):
        settings = settings or make_settings()
        app = create_app(settings)
        app.state.github_client = GitHubOAuthClient(settings, transport=fake_github.transport)
        return app

    return _build


@pytest.fixture
def app(app_factory, settings):
    return app_factory(settings)


@pytest.fixture
def client(app) -> TestClient:
    """HTTPS client so Secure cookies behave as in production; redirects are not followed."""
    return TestClient(app, base_url="https://testserver", follow_redirects=False)


@pytest.fixture
def codec(app):
    return app.state.session_codec
