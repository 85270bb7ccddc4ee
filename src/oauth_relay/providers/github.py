"""GitHub OAuth app adapter."""

from oauth_relay.constants import GITHUB_AUTHORIZE_URL, GITHUB_TOKEN_URL
from oauth_relay.providers.base import OAuthProvider


class GitHubProvider(OAuthProvider):
    """github.com OAuth apps.

    GitHub answers token requests with HTTP 200 even for rejected codes; the
    ``error`` field in the JSON body is what distinguishes them.
    """

    name = "github"

    @property
    def authorize_url(self) -> str:
        return GITHUB_AUTHORIZE_URL

    @property
    def token_url(self) -> str:
        return GITHUB_TOKEN_URL
