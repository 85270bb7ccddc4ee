"""Shared authorization-code flow for OAuth providers."""

from typing import Any, ClassVar
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from oauth_relay.constants import DEFAULT_REQUEST_TIMEOUT
from oauth_relay.exceptions import UnexpectedResponseError, UpstreamNetworkError, UpstreamProtocolError
from oauth_relay.providers.schemas import OAuthErrorResponse, TokenResponse


class OAuthProvider:
    """Builds authorization URLs and exchanges codes for access tokens.

    Subclasses set ``name`` and supply the two endpoint URLs; the flow itself
    (query building, token POST, error classification) is shared.
    """

    name: ClassVar[str]

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        *,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._request_timeout = request_timeout

    @property
    def authorize_url(self) -> str:
        raise NotImplementedError

    @property
    def token_url(self) -> str:
        raise NotImplementedError

    @property
    def redirect_uri(self) -> str:
        return self._redirect_uri

    def build_authorization_url(self, state: str, scopes: list[str]) -> str:
        """Return the provider URL the popup is redirected to."""
        params = {
            "response_type": "code",
            "client_id": self._client_id,
            "redirect_uri": self._redirect_uri,
            "state": state,
        }
        if scopes:
            params["scope"] = " ".join(scopes)
        return f"{self.authorize_url}?{urlencode(params)}"

    def _token_request_data(self, code: str) -> dict[str, str]:
        return {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self._redirect_uri,
            "client_id": self._client_id,
            "client_secret": self._client_secret,
        }

    async def exchange_code(self, code: str) -> str:
        """Exchange an authorization code for an access token.

        Raises:
            UpstreamProtocolError: The provider answered with an OAuth error.
            UpstreamNetworkError: The token endpoint could not be reached.
            UnexpectedResponseError: The answer was neither a token nor an OAuth error.
        """
        try:
            async with httpx.AsyncClient(timeout=self._request_timeout) as client:
                response = await client.post(
                    self.token_url,
                    data=self._token_request_data(code),
                    headers={"Accept": "application/json"},
                )
        except httpx.TransportError as exc:
            raise UpstreamNetworkError(self.name, f"token endpoint unreachable: {exc}") from exc
        except httpx.DecodingError as exc:
            raise UnexpectedResponseError(self.name, f"token response could not be decoded: {exc}") from exc

        body = self._json_body(response)
        if isinstance(body, dict) and "error" in body:
            try:
                error = OAuthErrorResponse.model_validate(body)
            except ValidationError as exc:
                raise UnexpectedResponseError(self.name, "malformed OAuth error response") from exc
            raise UpstreamProtocolError(self.name, error.error, error.error_description)
        if response.status_code >= 400:
            raise UnexpectedResponseError(self.name, f"token endpoint returned HTTP {response.status_code}")
        try:
            token = TokenResponse.model_validate(body)
        except ValidationError as exc:
            raise UnexpectedResponseError(self.name, "token response has no access_token") from exc
        return token.access_token

    def _json_body(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise UnexpectedResponseError(
                self.name, f"token endpoint returned non-JSON body (HTTP {response.status_code})"
            ) from exc
