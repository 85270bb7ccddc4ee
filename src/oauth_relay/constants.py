"""Centralized constants for the OAuth relay service."""

# --- Service identity ---

SERVICE_NAME = "oauth-relay"

# --- Application metadata ---

APP_TITLE = "OAuth Relay"
APP_DESCRIPTION = "OAuth2 authorization-code relay for browser-embedded editors"
APP_VERSION = "0.1.0"


# --- Route configuration ---


class Routes:
    """Relay endpoint paths."""

    AUTH = "/auth"
    CALLBACK = "/callback"


# Body of the 418 answer for every path the relay does not serve
SENTINEL_BODY = "Ciallo～(∠·ω< )⌒★"

# --- Allow-list ---

DEV_SITE_IDS = ("localhost", "127.0.0.1")

# --- State cookie ---

STATE_COOKIE_NAME = "__Secure-oauth-relay-state"
DEFAULT_STATE_TTL_SECONDS = 180  # 3 minutes
STATE_CLOCK_SKEW_SECONDS = 30
STATE_NONCE_BYTES = 16

# --- Token codec ---

DEFAULT_TOKEN_BYTES = 32
MIN_TOKEN_BYTES = 16

# --- Providers ---

GITHUB_AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"

DEFAULT_GITLAB_BASE_URL = "https://gitlab.com"
GITLAB_AUTHORIZE_PATH = "/oauth/authorize"
GITLAB_TOKEN_PATH = "/oauth/token"

DEFAULT_REQUEST_TIMEOUT = 15.0

# --- Handshake ---

HANDSHAKE_TEMPLATE = "handshake.html"
SIGNAL_PREFIX = "authorizing"
MESSAGE_PREFIX = "authorization"
