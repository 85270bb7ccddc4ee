"""Security and observability middleware for the relay."""

import re
import secrets
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from oauth_relay.handlers import unhandled_error_handler
from oauth_relay.logging import request_id_var

_REQUEST_ID_RE = re.compile(r"[A-Za-z0-9._-]{1,64}")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to every response.

    A fresh script nonce is placed on ``request.state.csp_nonce`` before the
    route runs, so the handshake page can tag its one inline script; the
    Content-Security-Policy then blocks every other script. No
    Cross-Origin-Opener-Policy is sent, since it would sever ``window.opener``.
    Unhandled exceptions become the generic 500 here, inside the middleware,
    so that response carries the same headers.
    """

    def __init__(self, app: ASGIApp, build_version: str) -> None:
        super().__init__(app)
        self.build_version = build_version

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        nonce = secrets.token_urlsafe(16)
        request.state.csp_nonce = nonce

        try:
            response = await call_next(request)
        except Exception as exc:
            response = await unhandled_error_handler(request, exc)
        response.headers["Content-Security-Policy"] = (
            f"default-src 'none'; script-src-elem 'nonce-{nonce}'; frame-ancestors 'none'; form-action 'none'"
        )
        response.headers["Referrer-Policy"] = "origin"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Build-Version"] = self.build_version
        return response


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id for log correlation.

    A caller-supplied ``X-Request-ID`` is reused only when it is a short
    token of URL-safe characters; anything else is replaced by a fresh id,
    since the value is copied into every log line and response header.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        incoming = request.headers.get("x-request-id", "")
        request_id = incoming if _REQUEST_ID_RE.fullmatch(incoming) else uuid.uuid4().hex
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers["X-Request-ID"] = request_id
        return response
