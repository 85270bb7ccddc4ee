"""OAuth provider adapters."""

from oauth_relay.providers.base import OAuthProvider
from oauth_relay.providers.registry import Provider, build_provider, parse_provider

__all__ = ["OAuthProvider", "Provider", "build_provider", "parse_provider"]
