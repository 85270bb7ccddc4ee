"""OAuth state parameter management for CSRF protection.

The state value is self-describing::

    <base64url(JSON{"provider", "verifiedOrigin", "iat"})>.<base64url(nonce)>

so the callback recovers the provider and the trusted origin without any
server-side session store. The same value is stored in a signed, HttpOnly,
Secure cookie scoped to the callback path; the callback requires the query
``state`` to equal the cookie payload byte for byte and deletes the cookie on
every outcome. Cookie expiry plus read-then-delete make each state single-use
within its short lifetime; there is no server-side replay cache.
"""

import hmac
import json
import secrets
import time
from dataclasses import dataclass

from starlette.requests import Request
from starlette.responses import Response

from oauth_relay.auth import signing
from oauth_relay.constants import (
    DEFAULT_STATE_TTL_SECONDS,
    STATE_CLOCK_SKEW_SECONDS,
    STATE_COOKIE_NAME,
    STATE_NONCE_BYTES,
    Routes,
)
from oauth_relay.exceptions import ConfigError, InvalidStateError
from oauth_relay.providers import Provider
from oauth_relay.settings import RelaySettings


@dataclass(frozen=True, slots=True)
class StateContext:
    """What the callback needs to know about the authorization request it answers."""

    provider: Provider
    verified_origin: str


class OAuthStateManager:
    """Mints, stores and validates compound state values."""

    cookie_name = STATE_COOKIE_NAME
    cookie_path = Routes.CALLBACK

    def __init__(self, secret: str, ttl_seconds: int = DEFAULT_STATE_TTL_SECONDS) -> None:
        if not secret or not secret.strip():
            raise ConfigError("SECRET must be set to a non-empty value for state signing")
        self._secret = secret
        self._ttl_seconds = ttl_seconds

    @classmethod
    def from_settings(cls, settings: RelaySettings) -> "OAuthStateManager":
        return cls(secret=settings.SECRET, ttl_seconds=settings.STATE_TTL_SECONDS)

    # ------------------------------------------------------------------
    # Outbound: /auth
    # ------------------------------------------------------------------

    def generate(self, context: StateContext) -> str:
        """Encode *context* plus a fresh nonce into a state value."""
        payload = json.dumps(
            {
                "provider": context.provider.value,
                "verifiedOrigin": context.verified_origin,
                "iat": int(time.time()),
            },
            separators=(",", ":"),
            sort_keys=True,
        ).encode()
        nonce = secrets.token_bytes(STATE_NONCE_BYTES)
        return f"{signing.b64url_encode(payload)}.{signing.b64url_encode(nonce)}"

    def set_cookie(self, response: Response, state: str) -> None:
        """Store the signed *state* in the callback-scoped cookie."""
        response.set_cookie(
            key=self.cookie_name,
            value=signing.sign(self._secret, state.encode()).serialize(),
            max_age=self._ttl_seconds,
            path=self.cookie_path,
            secure=True,
            httponly=True,
            samesite="lax",
        )

    # ------------------------------------------------------------------
    # Inbound: /callback
    # ------------------------------------------------------------------

    @classmethod
    def consume_cookie(cls, request: Request) -> str | None:
        """Read the state cookie and mark it for deletion on whatever response follows."""
        request.state.state_cookie_consumed = True
        return request.cookies.get(cls.cookie_name)

    @classmethod
    def clear_cookie(cls, response: Response) -> None:
        response.delete_cookie(
            key=cls.cookie_name,
            path=cls.cookie_path,
            secure=True,
            httponly=True,
            samesite="lax",
        )

    def validate(self, state: str | None, cookie: str | None) -> StateContext:
        """Check *state* against the signed *cookie* and decode its context.

        Raises:
            InvalidStateError: on any absence, mismatch, bad signature,
                undecodable payload or expired state. The exception text
                names the failing check for logs; the public message does not.
        """
        if not state or not cookie:
            raise InvalidStateError("state or state cookie missing")

        stored = signing.unsign(self._secret, cookie)
        if stored is None:
            raise InvalidStateError("state cookie signature invalid")
        if not hmac.compare_digest(stored, state.encode()):
            raise InvalidStateError("state does not match cookie")

        context, issued_at = self._decode(state)
        age = time.time() - issued_at
        if age > self._ttl_seconds or age < -STATE_CLOCK_SKEW_SECONDS:
            raise InvalidStateError("state expired")
        return context

    @staticmethod
    def _decode(state: str) -> tuple[StateContext, int]:
        parts = state.split(".")
        if len(parts) != 2:
            raise InvalidStateError("state is not a two-part value")
        try:
            data = json.loads(signing.b64url_decode(parts[0]))
        except ValueError as exc:  # also covers JSONDecodeError and UnicodeDecodeError
            raise InvalidStateError("state payload is not JSON") from exc
        if not isinstance(data, dict):
            raise InvalidStateError("state payload is not an object")

        provider = data.get("provider")
        origin = data.get("verifiedOrigin")
        issued_at = data.get("iat")
        if not isinstance(provider, str) or provider not in Provider.values():
            raise InvalidStateError("state payload has no known provider")
        if not isinstance(origin, str) or not origin:
            raise InvalidStateError("state payload has no origin")
        if not isinstance(issued_at, int) or isinstance(issued_at, bool):
            raise InvalidStateError("state payload has no issue time")
        return StateContext(provider=Provider(provider), verified_origin=origin), issued_at
