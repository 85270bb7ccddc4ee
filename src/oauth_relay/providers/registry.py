"""Closed set of supported providers and construction of their adapters."""

import enum

from oauth_relay.exceptions import ConfigError, InvalidProviderError
from oauth_relay.providers.base import OAuthProvider
from oauth_relay.providers.github import GitHubProvider
from oauth_relay.providers.gitlab import GitLabProvider
from oauth_relay.settings import RelaySettings


class Provider(enum.StrEnum):
    """OAuth providers the relay can talk to."""

    GITHUB = "github"
    GITLAB = "gitlab"

    @classmethod
    def values(cls) -> frozenset[str]:
        return frozenset(member.value for member in cls)


def parse_provider(value: str | None) -> Provider:
    """Map the ``provider`` query parameter to a :class:`Provider`.

    Raises:
        InvalidProviderError: *value* is missing or unknown.
    """
    if not value or value not in Provider.values():
        raise InvalidProviderError(f"unsupported provider {value!r}")
    return Provider(value)


def build_provider(provider: Provider, settings: RelaySettings, redirect_uri: str) -> OAuthProvider:
    """Construct the adapter for *provider* from configured credentials.

    Raises:
        ConfigError: The provider's client id or secret is not configured.
    """
    if provider is Provider.GITHUB:
        client_id, client_secret = settings.GITHUB_OAUTH_ID, settings.GITHUB_OAUTH_SECRET
    else:
        client_id, client_secret = settings.GITLAB_OAUTH_ID, settings.GITLAB_OAUTH_SECRET
    if not client_id or not client_secret:
        raise ConfigError(f"{provider.upper()}_OAUTH_ID and {provider.upper()}_OAUTH_SECRET must be set")

    if provider is Provider.GITHUB:
        return GitHubProvider(client_id, client_secret, redirect_uri)
    return GitLabProvider(client_id, client_secret, redirect_uri, base_url=settings.GITLAB_BASE_URL)
