"""FastAPI dependencies forming the ``/auth`` validation pipeline.

Stages run in a fixed order and each either returns a value or raises a
:class:`~oauth_relay.exceptions.RelayError`:

1. state signing secret present (ConfigError otherwise);
2. ``site_id`` / ``Referer`` resolved to a trusted origin;
3. ``provider`` parsed into the closed provider set;
4. provider adapter built from configured credentials.

The trusted origin is known before any provider object exists.
"""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Query, Request

from oauth_relay.auth.origins import OriginResolver
from oauth_relay.auth.state import OAuthStateManager, StateContext
from oauth_relay.constants import Routes
from oauth_relay.providers import OAuthProvider, build_provider, parse_provider
from oauth_relay.settings import RelaySettings, get_settings


@dataclass(frozen=True, slots=True)
class AuthorizeContext:
    """Everything ``/auth`` needs once validation has passed."""

    state_manager: OAuthStateManager
    state_context: StateContext
    provider: OAuthProvider


def callback_url(request: Request, settings: RelaySettings) -> str:
    """The provider ``redirect_uri``: ``PUBLIC_BASE_URL`` if configured, else derived from the request."""
    if settings.PUBLIC_BASE_URL:
        return f"{settings.PUBLIC_BASE_URL.rstrip('/')}{Routes.CALLBACK}"
    return str(request.url_for("callback"))


def parse_scope(scope: str | None) -> list[str]:
    """Split a space-delimited scope string; empty or absent yields no scopes."""
    return (scope or "").split()


async def authorize_pipeline(
    request: Request,
    settings: Annotated[RelaySettings, Depends(get_settings)],
    site_id: Annotated[str | None, Query()] = None,
    provider: Annotated[str | None, Query()] = None,
) -> AuthorizeContext:
    """Run the ``/auth`` validation stages in order."""
    state_manager = OAuthStateManager.from_settings(settings)
    verified_origin = OriginResolver.from_settings(settings).resolve(site_id, request.headers.get("referer"))
    provider_name = parse_provider(provider)
    client = build_provider(provider_name, settings, callback_url(request, settings))
    return AuthorizeContext(
        state_manager=state_manager,
        state_context=StateContext(provider=provider_name, verified_origin=verified_origin),
        provider=client,
    )
