"""Handshake page delivering the OAuth result to the opener window.

Protocol, run by the page's script:

1. listen for ``authorizing:<provider>`` coming from ``window.opener``;
2. post that same signal to the opener, restricted to the trusted origin;
3. on the echoed signal (source is the opener, origin is the trusted
   origin) post ``authorization:<provider>:<status>:<JSON payload>`` to the
   trusted origin and stop listening.

The token never appears in a URL or in visible page text. Every dynamic
value reaches the script through Jinja's ``tojson`` filter, which escapes
``<``, ``>``, ``&`` and ``'`` so a hostile token or error message cannot
close the script element. ``*`` is used as the target only when no trusted
origin is known.
"""

from pathlib import Path
from typing import Any, Literal

from fastapi.templating import Jinja2Templates
from starlette.requests import Request
from starlette.responses import Response

from oauth_relay.constants import HANDSHAKE_TEMPLATE, MESSAGE_PREFIX, SIGNAL_PREFIX

TEMPLATES_DIR = Path(__file__).parent / "templates"

HandshakeStatus = Literal["success", "error"]


def handshake_signal(provider: str) -> str:
    return f"{SIGNAL_PREFIX}:{provider}"


def handshake_message_prefix(provider: str, status: HandshakeStatus) -> str:
    return f"{MESSAGE_PREFIX}:{provider}:{status}:"


class HandshakeRenderer:
    """Renders the popup page carrying a success or error payload."""

    def __init__(self, templates: Jinja2Templates | None = None) -> None:
        self._templates = templates or Jinja2Templates(directory=str(TEMPLATES_DIR))

    def render(
        self,
        request: Request,
        provider: str,
        status: HandshakeStatus,
        payload: dict[str, Any],
        target_origin: str | None,
        status_code: int = 200,
    ) -> Response:
        response = self._templates.TemplateResponse(
            request,
            HANDSHAKE_TEMPLATE,
            {
                "nonce": getattr(request.state, "csp_nonce", ""),
                "signal": handshake_signal(provider),
                "message_prefix": handshake_message_prefix(provider, status),
                "payload": payload,
                "target_origin": target_origin or "*",
            },
            status_code=status_code,
        )
        response.headers["Cache-Control"] = "no-store"
        return response

    def success(self, request: Request, provider: str, token: str, target_origin: str | None) -> Response:
        return self.render(request, provider, "success", {"token": token}, target_origin)

    def error(
        self,
        request: Request,
        provider: str,
        message: str | None,
        target_origin: str | None,
        status_code: int = 400,
    ) -> Response:
        return self.render(request, provider, "error", {"message": message}, target_origin, status_code)
