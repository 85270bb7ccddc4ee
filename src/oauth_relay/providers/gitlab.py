"""GitLab OAuth application adapter (gitlab.com or self-hosted)."""

from oauth_relay.constants import (
    DEFAULT_GITLAB_BASE_URL,
    DEFAULT_REQUEST_TIMEOUT,
    GITLAB_AUTHORIZE_PATH,
    GITLAB_TOKEN_PATH,
)
from oauth_relay.providers.base import OAuthProvider


class GitLabProvider(OAuthProvider):
    """GitLab OAuth applications, rooted at a configurable instance URL."""

    name = "gitlab"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        *,
        base_url: str = DEFAULT_GITLAB_BASE_URL,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        super().__init__(client_id, client_secret, redirect_uri, request_timeout=request_timeout)
        self._base_url = (base_url or DEFAULT_GITLAB_BASE_URL).rstrip("/")

    @property
    def authorize_url(self) -> str:
        return f"{self._base_url}{GITLAB_AUTHORIZE_PATH}"

    @property
    def token_url(self) -> str:
        return f"{self._base_url}{GITLAB_TOKEN_PATH}"
