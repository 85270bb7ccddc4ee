"""Domain exceptions for the relay.

Every exception carries the HTTP status it maps to and a ``public_message``
that is safe to send to the browser. The ``str()`` of an exception may hold
more detail and is only meant for logs.
"""


class RelayError(Exception):
    """Base exception for relay errors."""

    status_code = 500
    public_message = "Internal Server Error"


class ConfigError(RelayError):
    """Required configuration (secret, provider credentials) is missing or invalid."""


class ClientInputError(RelayError):
    """The request carried a bad or missing parameter."""

    status_code = 400
    public_message = "Bad Request"


class InvalidSiteIdError(ClientInputError):
    """``site_id`` is missing or not on the allow-list."""

    public_message = "Invalid site_id"


class InvalidRefererError(ClientInputError):
    """The ``Referer`` header does not belong to the requested site."""

    public_message = "Invalid referer"


class InvalidProviderError(ClientInputError):
    """``provider`` is missing or not a supported provider."""

    public_message = "Invalid provider"


class InvalidStateError(ClientInputError):
    """OAuth state validation failed (CSRF protection).

    The public message never says which check failed.
    """

    public_message = "Invalid state"


class InvalidCodeError(ClientInputError):
    """The callback carried no authorization code."""

    public_message = "Invalid code"


class UpstreamError(RelayError):
    """Base exception for failures talking to an OAuth provider."""

    def __init__(self, provider: str, detail: str) -> None:
        self.provider = provider
        self.detail = detail
        super().__init__(f"{provider}: {detail}")


class UpstreamProtocolError(UpstreamError):
    """The provider answered with an OAuth error (rejected code, user denied access)."""

    status_code = 400

    def __init__(self, provider: str, error: str, description: str | None = None) -> None:
        self.error = error
        self.description = description
        super().__init__(provider, f"{error}: {description}" if description else error)

    @property
    def public_message(self) -> str:  # type: ignore[override]
        return self.description or self.error


class UpstreamNetworkError(UpstreamError):
    """The provider could not be reached."""

    public_message = "Network error"


class UnexpectedResponseError(UpstreamError):
    """The provider answered with neither a token nor an OAuth error."""
