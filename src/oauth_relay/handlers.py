"""Exception handlers mapping relay errors to HTTP responses."""

import logging

from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse

from oauth_relay.auth.state import OAuthStateManager, StateContext
from oauth_relay.exceptions import RelayError, UpstreamError, UpstreamProtocolError
from oauth_relay.handshake import HandshakeRenderer

logger = logging.getLogger(__name__)


def _finalize(request: Request, response: Response) -> Response:
    """Delete the state cookie if this request read it."""
    if getattr(request.state, "state_cookie_consumed", False):
        OAuthStateManager.clear_cookie(response)
    return response


async def relay_error_handler(request: Request, exc: RelayError) -> Response:
    """Render a :class:`RelayError` with its status and public message.

    Provider-side OAuth errors on a validated callback go back to the opener
    as an ``error`` handshake; everything else is plain text.
    """
    log_context: dict[str, object] = {"error_type": type(exc).__name__, "status_code": exc.status_code}
    if isinstance(exc, UpstreamError):
        log_context["provider"] = exc.provider
    if exc.status_code >= 500:
        logger.error("Failed %s: %s", request.url.path, exc, extra=log_context)
    else:
        logger.warning("Rejected %s: %s", request.url.path, exc, extra=log_context)

    context: StateContext | None = getattr(request.state, "handshake_context", None)
    if isinstance(exc, UpstreamProtocolError) and context is not None:
        renderer: HandshakeRenderer = request.app.state.handshake
        response = renderer.error(
            request,
            context.provider,
            exc.public_message,
            context.verified_origin,
            status_code=exc.status_code,
        )
    else:
        response = PlainTextResponse(exc.public_message, status_code=exc.status_code)
    return _finalize(request, response)


async def unhandled_error_handler(request: Request, exc: Exception) -> Response:
    """Last resort: generic 500, never echoing the exception."""
    logger.error(
        "Unhandled error on %s",
        request.url.path,
        exc_info=exc,
        extra={"error_type": type(exc).__name__, "status_code": 500},
    )
    return _finalize(request, PlainTextResponse("Internal Server Error", status_code=500))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RelayError, relay_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)
