"""Shared test fixtures for the OAuth relay."""

from collections.abc import Generator
from urllib.parse import parse_qs, urlsplit

import pytest
from fastapi.testclient import TestClient

from oauth_relay.settings import RelaySettings, get_settings

SECRET = "test-signing-secret-0123456789abcdef"
GITHUB_ID = "test-github-id"
GITLAB_ID = "test-gitlab-id"
GITLAB_BASE_URL = "https://gitlab.example.com"


def make_settings(**overrides: object) -> RelaySettings:
    values: dict[str, object] = {
        "SECRET": SECRET,
        "GITHUB_OAUTH_ID": GITHUB_ID,
        "GITHUB_OAUTH_SECRET": "test-github-secret",
        "GITLAB_OAUTH_ID": GITLAB_ID,
        "GITLAB_OAUTH_SECRET": "test-gitlab-secret",
        "GITLAB_BASE_URL": GITLAB_BASE_URL,
        "ALLOW_SITE_ID_LIST": "editor.example.com, http://docs.example.org:8080",
    }
    values.update(overrides)
    return RelaySettings(**values)  # type: ignore[arg-type]


def state_from_location(location: str) -> str:
    """Pull the ``state`` query parameter out of a redirect Location."""
    return parse_qs(urlsplit(location).query)["state"][0]


@pytest.fixture
def settings() -> RelaySettings:
    return make_settings()


@pytest.fixture
def client(settings: RelaySettings) -> Generator[TestClient]:
    """TestClient over https (the state cookie is Secure) with test settings injected."""
    from oauth_relay.main import app

    app.dependency_overrides[get_settings] = lambda: settings
    try:
        with TestClient(app, base_url="https://testserver", follow_redirects=False) as tc:
            yield tc
    finally:
        app.dependency_overrides.clear()
