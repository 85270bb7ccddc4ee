"""Main FastAPI application for the OAuth relay."""

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from oauth_relay.auth.router import router as auth_router
from oauth_relay.constants import APP_DESCRIPTION, APP_TITLE, APP_VERSION, SENTINEL_BODY, SERVICE_NAME
from oauth_relay.handlers import register_exception_handlers
from oauth_relay.handshake import HandshakeRenderer
from oauth_relay.logging import configure_logging
from oauth_relay.middleware import RequestIDMiddleware, SecurityHeadersMiddleware
from oauth_relay.settings import get_settings


class RelayApp:
    """Application container: middleware, routers, templates and error handlers."""

    app: FastAPI

    def __init__(self) -> None:
        settings = get_settings()
        configure_logging(SERVICE_NAME, settings.LOG_LEVEL)
        # No docs or OpenAPI routes: every path except /auth and /callback is the 418 sentinel.
        self.app = FastAPI(
            title=APP_TITLE,
            description=APP_DESCRIPTION,
            version=APP_VERSION,
            docs_url=None,
            redoc_url=None,
            openapi_url=None,
        )
        self.app.state.handshake = HandshakeRenderer()
        self._setup_middleware()
        self._setup_routers()
        register_exception_handlers(self.app)

    def _setup_middleware(self) -> None:
        settings = get_settings()

        # Security headers + per-response script nonce
        self.app.add_middleware(SecurityHeadersMiddleware, build_version=settings.BUILD_VERSION)

        # Request-ID (outermost, generates or propagates X-Request-ID)
        self.app.add_middleware(RequestIDMiddleware)

    def _setup_routers(self) -> None:
        self.app.include_router(auth_router)
        # Plain Starlette route with no method list, so no method ever gets a 405.
        self.app.add_route("/{path:path}", sentinel, include_in_schema=False)


async def sentinel(request: Request) -> PlainTextResponse:
    """Not a general-purpose endpoint."""
    return PlainTextResponse(SENTINEL_BODY, status_code=418)


_application = RelayApp()
app: FastAPI = _application.app
