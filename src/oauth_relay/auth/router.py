"""OAuth relay HTTP endpoints (class-based router)."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import RedirectResponse

from oauth_relay.auth.dependencies import AuthorizeContext, authorize_pipeline, callback_url, parse_scope
from oauth_relay.auth.state import OAuthStateManager
from oauth_relay.constants import Routes
from oauth_relay.exceptions import InvalidCodeError, UpstreamProtocolError
from oauth_relay.handshake import HandshakeRenderer
from oauth_relay.providers import build_provider
from oauth_relay.settings import RelaySettings, get_settings

logger = logging.getLogger(__name__)


class AuthRouter:
    """Class-based router for the authorization redirect and the provider callback."""

    def __init__(self) -> None:
        self.router = APIRouter()
        self.router.add_api_route(
            Routes.AUTH,
            self.authorize,
            methods=["GET"],
            response_model=None,
            name="authorize",
        )
        self.router.add_api_route(
            Routes.CALLBACK,
            self.callback,
            methods=["GET"],
            response_model=None,
            name="callback",
        )

    async def authorize(
        self,
        ctx: Annotated[AuthorizeContext, Depends(authorize_pipeline)],
        scope: Annotated[str | None, Query()] = None,
    ) -> Response:
        """Mint state, store it in the callback cookie, redirect to the provider."""
        state = ctx.state_manager.generate(ctx.state_context)
        response = RedirectResponse(
            url=ctx.provider.build_authorization_url(state, parse_scope(scope)),
            status_code=302,
        )
        ctx.state_manager.set_cookie(response, state)
        logger.info(
            "Redirecting to provider authorization",
            extra={"provider": ctx.state_context.provider, "origin": ctx.state_context.verified_origin},
        )
        return response

    async def callback(
        self,
        request: Request,
        settings: Annotated[RelaySettings, Depends(get_settings)],
        state: Annotated[str | None, Query()] = None,
        code: Annotated[str | None, Query()] = None,
        error: Annotated[str | None, Query()] = None,
        error_description: Annotated[str | None, Query()] = None,
    ) -> Response:
        """Validate state, exchange the code, and render the handshake page.

        The state cookie is marked consumed before anything else, so every
        response from here on (success or error) deletes it.
        """
        stored_state = OAuthStateManager.consume_cookie(request)
        context = OAuthStateManager.from_settings(settings).validate(state, stored_state)
        # From here on errors can be reported to the opener through the handshake page.
        request.state.handshake_context = context

        if error:
            raise UpstreamProtocolError(context.provider, error, error_description)
        if not code:
            raise InvalidCodeError("callback carried no code")

        provider = build_provider(context.provider, settings, callback_url(request, settings))
        token = await provider.exchange_code(code)
        logger.info(
            "Delivering token to opener",
            extra={"provider": context.provider, "origin": context.verified_origin},
        )

        renderer: HandshakeRenderer = request.app.state.handshake
        response = renderer.success(request, context.provider, token, context.verified_origin)
        OAuthStateManager.clear_cookie(response)
        return response


_instance = AuthRouter()
router = _instance.router
