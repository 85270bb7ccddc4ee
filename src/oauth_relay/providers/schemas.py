"""Pydantic schemas for provider token-endpoint responses."""

from pydantic import BaseModel


class TokenResponse(BaseModel):
    """Successful answer from a provider's token endpoint."""

    access_token: str
    token_type: str | None = None
    scope: str | None = None


class OAuthErrorResponse(BaseModel):
    """OAuth error answer (RFC 6749 §5.2) from a provider's token endpoint."""

    error: str
    error_description: str | None = None
