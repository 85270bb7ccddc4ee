"""HMAC-SHA256 signed tokens.

Wire format::

    <base64url(payload)>.<base64url(signature)>

where ``signature = HMAC-SHA256(secret, payload)`` and both parts are
URL-safe base64 without padding. The same primitive serves as a standalone
CSRF token (random payload) and as the signature layer of the state cookie
(payload = the state value).

Verification never raises on attacker-supplied input: malformed tokens,
invalid base64 and bad signatures all come back as ``False`` / ``None``.
"""

import base64
import hashlib
import hmac
import re
import secrets
from dataclasses import dataclass

from oauth_relay.constants import DEFAULT_TOKEN_BYTES, MIN_TOKEN_BYTES

_SEPARATOR = "."
_B64URL_RE = re.compile(r"[A-Za-z0-9_-]*")


def b64url_encode(data: bytes) -> str:
    """URL-safe base64 without padding."""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def b64url_decode(data: str) -> bytes:
    """Strict inverse of :func:`b64url_encode`.

    Raises ``ValueError`` on characters outside the URL-safe alphabet
    (the stdlib decoder would silently drop them) or on impossible lengths.
    """
    if not _B64URL_RE.fullmatch(data):
        raise ValueError("invalid base64url data")
    return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))


def _hmac(secret: str | bytes, payload: bytes) -> bytes:
    key = secret.encode() if isinstance(secret, str) else secret
    return hmac.new(key, payload, hashlib.sha256).digest()


@dataclass(frozen=True, slots=True)
class SignedToken:
    """A payload together with its HMAC signature."""

    payload: bytes
    signature: bytes

    def serialize(self) -> str:
        return f"{b64url_encode(self.payload)}{_SEPARATOR}{b64url_encode(self.signature)}"

    @classmethod
    def parse(cls, token: str) -> "SignedToken":
        """Split and decode a serialized token. Raises ``ValueError`` if malformed."""
        parts = token.split(_SEPARATOR)
        if len(parts) != 2:
            raise ValueError("token must have exactly two parts")
        payload, signature = parts
        return cls(payload=b64url_decode(payload), signature=b64url_decode(signature))


def sign(secret: str | bytes, payload: bytes | None = None, length: int = DEFAULT_TOKEN_BYTES) -> SignedToken:
    """Sign *payload*, or ``length`` fresh random bytes when no payload is given."""
    if payload is None:
        if length < MIN_TOKEN_BYTES:
            raise ValueError(f"random payload length must be at least {MIN_TOKEN_BYTES} bytes")
        payload = secrets.token_bytes(length)
    return SignedToken(payload=payload, signature=_hmac(secret, payload))


def unsign(secret: str | bytes, token: str) -> bytes | None:
    """Return the payload of a valid serialized token, or ``None``."""
    try:
        parsed = SignedToken.parse(token)
    except ValueError:
        return None
    if not hmac.compare_digest(parsed.signature, _hmac(secret, parsed.payload)):
        return None
    return parsed.payload


def verify(secret: str | bytes, token: str) -> bool:
    """Check a serialized token's signature in constant time."""
    return unsign(secret, token) is not None


def generate_token(secret: str | bytes, length: int = DEFAULT_TOKEN_BYTES) -> str:
    """Mint a standalone random CSRF token."""
    return sign(secret, length=length).serialize()


def verify_token(secret: str | bytes, token: str) -> bool:
    """Verify a token produced by :func:`generate_token`."""
    return verify(secret, token)
