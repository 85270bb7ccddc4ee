"""End-to-end tests for /auth, /callback and the sentinel route."""

import json
import re
from collections.abc import Generator
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest
import respx
from conftest import GITHUB_ID, GITLAB_BASE_URL, GITLAB_ID, SECRET, make_settings, state_from_location
from fastapi.testclient import TestClient

from oauth_relay.auth import signing
from oauth_relay.constants import GITHUB_TOKEN_URL, SENTINEL_BODY, STATE_COOKIE_NAME
from oauth_relay.settings import RelaySettings, get_settings

LOCAL_REFERER = "http://localhost:1313/admin/"
SITE_REFERER = "https://editor.example.com/admin/"


def _authorize(client: TestClient, provider: str = "github", site_id: str = "localhost", **params: str) -> str:
    """Run /auth and return the state from the provider redirect."""
    referer = LOCAL_REFERER if site_id == "localhost" else SITE_REFERER
    response = client.get(
        "/auth",
        params={"site_id": site_id, "provider": provider, **params},
        headers={"referer": referer},
    )
    assert response.status_code == 302, response.text
    return state_from_location(response.headers["location"])


def _script_var(body: str, name: str) -> object:
    match = re.search(rf"var {name} = (.*);\n", body)
    assert match is not None, name
    return json.loads(match.group(1))


def _cookie_deleted(response: httpx.Response) -> bool:
    header = response.headers.get("set-cookie", "")
    return header.startswith(f"{STATE_COOKIE_NAME}=") and "Max-Age=0" in header


@pytest.fixture
def client_for() -> Generator:
    """Build a TestClient around custom settings."""
    from oauth_relay.main import app

    clients: list[TestClient] = []

    def _make(settings: RelaySettings, **kwargs: bool) -> TestClient:
        app.dependency_overrides[get_settings] = lambda: settings
        tc = TestClient(app, base_url="https://testserver", follow_redirects=False, **kwargs)
        clients.append(tc)
        return tc

    yield _make
    for tc in clients:
        tc.close()
    app.dependency_overrides.clear()


class TestAuthorize:
    def test_redirects_to_github_with_state_cookie(self, client: TestClient) -> None:
        response = client.get(
            "/auth",
            params={"site_id": "localhost", "provider": "github", "scope": "repo user"},
            headers={"referer": LOCAL_REFERER},
        )
        assert response.status_code == 302
        location = urlsplit(response.headers["location"])
        params = parse_qs(location.query)
        assert f"{location.scheme}://{location.netloc}{location.path}" == "https://github.com/login/oauth/authorize"
        assert params["client_id"] == [GITHUB_ID]
        assert params["scope"] == ["repo user"]
        assert params["redirect_uri"] == ["https://testserver/callback"]

        state = params["state"][0]
        cookie = response.cookies[STATE_COOKIE_NAME]
        assert signing.unsign(SECRET, cookie) == state.encode()

        header = response.headers["set-cookie"]
        assert "HttpOnly" in header
        assert "Secure" in header
        assert "Path=/callback" in header

    def test_state_carries_resolved_origin(self, client: TestClient) -> None:
        state = _authorize(client)
        payload = json.loads(signing.b64url_decode(state.split(".")[0]))
        assert payload["provider"] == "github"
        assert payload["verifiedOrigin"] == "http://localhost:1313"

    def test_gitlab_redirect_uses_instance(self, client: TestClient) -> None:
        response = client.get(
            "/auth",
            params={"site_id": "editor.example.com", "provider": "gitlab", "scope": "api"},
            headers={"referer": SITE_REFERER},
        )
        assert response.status_code == 302
        location = response.headers["location"]
        assert location.startswith(f"{GITLAB_BASE_URL}/oauth/authorize?")
        assert parse_qs(urlsplit(location).query)["client_id"] == [GITLAB_ID]

    def test_public_base_url_sets_redirect_uri(self, client_for) -> None:  # type: ignore[no-untyped-def]
        client = client_for(make_settings(PUBLIC_BASE_URL="https://relay.example.com/"))
        response = client.get("/auth", params={"site_id": "localhost", "provider": "github"})
        params = parse_qs(urlsplit(response.headers["location"]).query)
        assert params["redirect_uri"] == ["https://relay.example.com/callback"]
        assert "scope" not in params

    @pytest.mark.parametrize(
        "params, referer, message",
        [
            ({"provider": "github"}, None, "Invalid site_id"),
            ({"site_id": "evil.example.com", "provider": "github"}, None, "Invalid site_id"),
            ({"site_id": "editor.example.com", "provider": "github"}, "https://evil.example.com/", "Invalid referer"),
            ({"site_id": "editor.example.com", "provider": "github"}, "http://editor.example.com/", "Invalid referer"),
            ({"site_id": "editor.example.com"}, None, "Invalid provider"),
            ({"site_id": "editor.example.com", "provider": "bitbucket"}, None, "Invalid provider"),
        ],
    )
    def test_rejected_requests(
        self, client: TestClient, params: dict[str, str], referer: str | None, message: str
    ) -> None:
        headers = {"referer": referer} if referer else {}
        response = client.get("/auth", params=params, headers=headers)
        assert response.status_code == 400
        assert response.text == message
        assert "set-cookie" not in response.headers

    def test_site_checked_before_provider(self, client: TestClient) -> None:
        response = client.get("/auth", params={"site_id": "evil.example.com", "provider": "bitbucket"})
        assert response.text == "Invalid site_id"

    def test_missing_secret_is_server_error(self, client_for) -> None:  # type: ignore[no-untyped-def]
        client = client_for(make_settings(SECRET=""))
        response = client.get("/auth", params={"site_id": "localhost", "provider": "github"})
        assert response.status_code == 500
        assert response.text == "Internal Server Error"
        assert "location" not in response.headers

    def test_missing_provider_credentials_is_server_error(self, client_for) -> None:  # type: ignore[no-untyped-def]
        client = client_for(make_settings(GITLAB_OAUTH_SECRET=""))
        response = client.get("/auth", params={"site_id": "localhost", "provider": "gitlab"})
        assert response.status_code == 500


class TestCallback:
    @respx.mock
    def test_full_flow_delivers_token(self, client: TestClient) -> None:
        token_route = respx.post(GITHUB_TOKEN_URL).mock(
            return_value=httpx.Response(200, json={"access_token": "tok_1", "token_type": "bearer"})
        )
        state = _authorize(client)

        response = client.get("/callback", params={"state": state, "code": "abc"})
        assert response.status_code == 200
        assert response.headers["cache-control"] == "no-store"
        assert _script_var(response.text, "payload") == {"token": "tok_1"}
        assert _script_var(response.text, "messagePrefix") == "authorization:github:success:"
        assert _script_var(response.text, "targetOrigin") == "http://localhost:1313"
        assert SECRET not in response.text
        assert _cookie_deleted(response)

        form = parse_qs(token_route.calls[0].request.content.decode())
        assert form["code"] == ["abc"]
        assert form["redirect_uri"] == ["https://testserver/callback"]

    @respx.mock
    def test_state_is_single_use(self, client: TestClient) -> None:
        respx.post(GITHUB_TOKEN_URL).mock(return_value=httpx.Response(200, json={"access_token": "tok_1"}))
        state = _authorize(client)
        assert client.get("/callback", params={"state": state, "code": "abc"}).status_code == 200

        replay = client.get("/callback", params={"state": state, "code": "abc"})
        assert replay.status_code == 400
        assert replay.text == "Invalid state"

    def test_state_from_other_authorization_rejected(self, client: TestClient) -> None:
        first = _authorize(client)
        _authorize(client)  # overwrites the cookie
        response = client.get("/callback", params={"state": first, "code": "abc"})
        assert response.status_code == 400
        assert response.text == "Invalid state"
        assert _cookie_deleted(response)

    def test_missing_cookie_rejected(self, client: TestClient) -> None:
        state = _authorize(client)
        client.cookies.clear()
        response = client.get("/callback", params={"state": state, "code": "abc"})
        assert response.status_code == 400
        assert response.text == "Invalid state"

    def test_missing_state_rejected(self, client: TestClient) -> None:
        _authorize(client)
        response = client.get("/callback", params={"code": "abc"})
        assert response.status_code == 400
        assert response.text == "Invalid state"
        assert _cookie_deleted(response)

    def test_missing_code_rejected(self, client: TestClient) -> None:
        state = _authorize(client)
        response = client.get("/callback", params={"state": state})
        assert response.status_code == 400
        assert response.text == "Invalid code"
        assert _cookie_deleted(response)

    def test_provider_error_reported_to_opener(self, client: TestClient) -> None:
        """A denied authorization comes back as an error handshake, not a token exchange."""
        state = _authorize(client)
        response = client.get(
            "/callback",
            params={"state": state, "error": "access_denied", "error_description": "The user denied access."},
        )
        assert response.status_code == 400
        assert _script_var(response.text, "messagePrefix") == "authorization:github:error:"
        assert _script_var(response.text, "payload") == {"message": "The user denied access."}
        assert _script_var(response.text, "targetOrigin") == "http://localhost:1313"
        assert _cookie_deleted(response)

    @respx.mock
    def test_rejected_code_reported_to_opener(self, client: TestClient) -> None:
        respx.post(GITHUB_TOKEN_URL).mock(
            return_value=httpx.Response(
                200, json={"error": "bad_verification_code", "error_description": "The code is incorrect."}
            )
        )
        state = _authorize(client)
        response = client.get("/callback", params={"state": state, "code": "stale"})
        assert response.status_code == 400
        assert _script_var(response.text, "payload") == {"message": "The code is incorrect."}
        assert _cookie_deleted(response)

    @respx.mock
    def test_network_error(self, client: TestClient) -> None:
        respx.post(GITHUB_TOKEN_URL).mock(side_effect=httpx.ConnectError("Connection refused"))
        state = _authorize(client)
        response = client.get("/callback", params={"state": state, "code": "abc"})
        assert response.status_code == 500
        assert response.text == "Network error"
        assert _cookie_deleted(response)

    @respx.mock
    def test_unexpected_provider_response(self, client: TestClient) -> None:
        respx.post(GITHUB_TOKEN_URL).mock(return_value=httpx.Response(503, text="Service Unavailable"))
        state = _authorize(client)
        response = client.get("/callback", params={"state": state, "code": "abc"})
        assert response.status_code == 500
        assert response.text == "Internal Server Error"

    @respx.mock
    def test_undecodable_provider_response(self, client: TestClient) -> None:
        respx.post(GITHUB_TOKEN_URL).mock(side_effect=httpx.DecodingError("invalid gzip stream"))
        state = _authorize(client)
        response = client.get("/callback", params={"state": state, "code": "abc"})
        assert response.status_code == 500
        assert response.text == "Internal Server Error"
        assert response.headers["build-version"]
        assert _cookie_deleted(response)

    @respx.mock
    def test_gitlab_flow(self, client: TestClient) -> None:
        respx.post(f"{GITLAB_BASE_URL}/oauth/token").mock(
            return_value=httpx.Response(200, json={"access_token": "glpat-1", "token_type": "Bearer"})
        )
        state = _authorize(client, provider="gitlab", site_id="editor.example.com")
        response = client.get("/callback", params={"state": state, "code": "abc"})
        assert response.status_code == 200
        assert _script_var(response.text, "signal") == "authorizing:gitlab"
        assert _script_var(response.text, "payload") == {"token": "glpat-1"}
        assert _script_var(response.text, "targetOrigin") == "https://editor.example.com"

    def test_state_signed_under_rotated_secret_rejected(self, client_for) -> None:  # type: ignore[no-untyped-def]
        client = client_for(make_settings())
        state = _authorize(client)
        client_for(make_settings(SECRET="rotated-secret-value"))
        response = client.get("/callback", params={"state": state, "code": "abc"})
        assert response.status_code == 400
        assert response.text == "Invalid state"


class TestSentinel:
    @pytest.mark.parametrize(
        "method", ["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "TRACE", "CONNECT", "PROPFIND", "BREW"]
    )
    def test_unknown_path(self, client: TestClient, method: str) -> None:
        response = client.request(method, "/anything/else")
        assert response.status_code == 418
        assert response.text == SENTINEL_BODY

    @pytest.mark.parametrize("path", ["/", "/docs", "/openapi.json", "/redoc"])
    def test_no_docs_routes(self, client: TestClient, path: str) -> None:
        assert client.get(path).status_code == 418

    @pytest.mark.parametrize("method", ["POST", "DELETE", "TRACE", "PROPFIND"])
    def test_wrong_method_on_known_path(self, client: TestClient, method: str) -> None:
        """/auth and /callback only serve GET; other methods get the sentinel, never a 405."""
        for path in ("/auth", "/callback"):
            response = client.request(method, path)
            assert response.status_code == 418
            assert response.text == SENTINEL_BODY

    def test_head_on_unknown_path(self, client: TestClient) -> None:
        assert client.head("/anything").status_code == 418


def test_unhandled_error_is_generic(client_for, monkeypatch: pytest.MonkeyPatch) -> None:  # type: ignore[no-untyped-def]
    def _boom(*args: object, **kwargs: object) -> None:
        raise RuntimeError("secret internals")

    monkeypatch.setattr("oauth_relay.auth.dependencies.parse_provider", _boom)
    client = client_for(make_settings(), raise_server_exceptions=False)
    response = client.get("/auth", params={"site_id": "localhost", "provider": "github"})
    assert response.status_code == 500
    assert response.text == "Internal Server Error"
    assert "secret internals" not in response.text
    assert response.headers["build-version"]
    assert "script-src-elem" in response.headers["content-security-policy"]
    assert response.headers["referrer-policy"] == "origin"
    assert response.headers["x-request-id"]


def test_unhandled_error_on_callback_clears_cookie(
    client_for,  # type: ignore[no-untyped-def]
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def _boom(*args: object, **kwargs: object) -> None:
        raise RuntimeError("secret internals")

    client = client_for(make_settings(), raise_server_exceptions=False)
    state = _authorize(client)
    monkeypatch.setattr("oauth_relay.auth.router.build_provider", _boom)
    response = client.get("/callback", params={"state": state, "code": "abc"})
    assert response.status_code == 500
    assert response.text == "Internal Server Error"
    assert response.headers["build-version"]
    assert _cookie_deleted(response)
