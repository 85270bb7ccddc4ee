"""Relay settings loaded from environment variables."""

import functools

from pydantic_settings import BaseSettings

from oauth_relay.constants import APP_VERSION, DEFAULT_GITLAB_BASE_URL, DEFAULT_STATE_TTL_SECONDS


class RelaySettings(BaseSettings):
    """OAuth relay configuration."""

    # HMAC key for the state cookie
    SECRET: str = ""

    # Provider credentials
    GITHUB_OAUTH_ID: str = ""
    GITHUB_OAUTH_SECRET: str = ""
    GITLAB_OAUTH_ID: str = ""
    GITLAB_OAUTH_SECRET: str = ""
    GITLAB_BASE_URL: str = DEFAULT_GITLAB_BASE_URL  # self-hosted GitLab

    # Sites allowed to receive tokens (comma or whitespace separated hostnames or origins)
    ALLOW_SITE_ID_LIST: str = ""
    INCLUDE_DEV_SITE_IDS: bool = True  # implicit localhost / 127.0.0.1
    RELAX_LOCALHOST_ORIGIN: bool = True  # dev hosts take scheme and port from the Referer

    # Externally visible base URL for the provider redirect_uri; empty = derive from request
    PUBLIC_BASE_URL: str = ""

    STATE_TTL_SECONDS: int = DEFAULT_STATE_TTL_SECONDS

    BUILD_VERSION: str = APP_VERSION
    LOG_LEVEL: str = "INFO"

    model_config = {"env_prefix": ""}


@functools.lru_cache(maxsize=1)
def get_settings() -> RelaySettings:
    """Return cached relay settings singleton."""
    return RelaySettings()
