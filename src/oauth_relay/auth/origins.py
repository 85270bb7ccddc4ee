"""Allow-list resolution of ``site_id`` to a trusted origin.

The allow-list is a comma/whitespace separated configuration string. Each
entry is either a bare hostname (``editor.example.com`` → trusted origin
``https://editor.example.com``) or a full origin URL
(``http://localhost:8080``). Entries are mapped hostname → canonical origin,
so the origin that later receives the token via ``postMessage`` always comes
from configuration, never from the request.

The implicit development hosts (``localhost``, ``127.0.0.1``) default to
``http://<host>``. With ``RELAX_LOCALHOST_ORIGIN`` they instead adopt the
scheme and port of a matching ``Referer``, since local dev servers rarely
run on the default port.
"""

import logging
import re
from collections.abc import Iterable, Mapping
from urllib.parse import urlsplit

from oauth_relay.constants import DEV_SITE_IDS
from oauth_relay.exceptions import InvalidRefererError, InvalidSiteIdError
from oauth_relay.settings import RelaySettings

logger = logging.getLogger(__name__)

_DELIMITERS = re.compile(r"[,\s]+")


def normalize_origin(value: str, default_scheme: str = "https") -> str | None:
    """Return ``scheme://host[:port]`` for a URL or bare host, or ``None`` if it has no usable origin.

    Host casing is lowered; default ports, userinfo, path, query and
    fragment are dropped.
    """
    value = (value or "").strip()
    if not value:
        return None
    if "://" not in value:
        value = f"{default_scheme}://{value}"
    try:
        parts = urlsplit(value)
        port = parts.port
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not parts.hostname:
        return None
    netloc = parts.hostname.lower()
    if ":" in netloc:
        netloc = f"[{netloc}]"
    if port is not None and port != {"http": 80, "https": 443}[parts.scheme]:
        netloc = f"{netloc}:{port}"
    return f"{parts.scheme}://{netloc}"


def _hostname(origin: str) -> str:
    return urlsplit(origin).hostname or ""


def parse_allow_list(raw: str) -> dict[str, str]:
    """Parse the configured allow-list into a hostname → origin mapping.

    Empty entries are dropped; unparseable ones are logged and skipped. When
    two entries share a hostname the first one wins.
    """
    allowed: dict[str, str] = {}
    for entry in _DELIMITERS.split(raw or ""):
        if not entry:
            continue
        origin = normalize_origin(entry)
        if origin is None:
            logger.warning("Ignoring unparseable allow-list entry %r", entry)
            continue
        allowed.setdefault(_hostname(origin), origin)
    return allowed


class OriginResolver:
    """Maps a caller-supplied ``site_id`` to the origin trusted to receive the token."""

    def __init__(
        self,
        allowed: Mapping[str, str],
        dev_hosts: Iterable[str] = (),
        relax_dev_origin: bool = False,
    ) -> None:
        self._allowed = dict(allowed)
        # Explicit entries take precedence over the implicit dev defaults.
        self._dev_hosts = frozenset(host for host in dev_hosts if host not in self._allowed)
        for host in self._dev_hosts:
            self._allowed[host] = f"http://{host}"
        self._relax_dev_origin = relax_dev_origin

    @classmethod
    def from_settings(cls, settings: RelaySettings) -> "OriginResolver":
        return cls(
            parse_allow_list(settings.ALLOW_SITE_ID_LIST),
            dev_hosts=DEV_SITE_IDS if settings.INCLUDE_DEV_SITE_IDS else (),
            relax_dev_origin=settings.RELAX_LOCALHOST_ORIGIN,
        )

    def resolve(self, site_id: str | None, referer: str | None = None) -> str:
        """Return the trusted origin for *site_id*.

        When a ``Referer`` is present it must belong to the same site, and
        for configured sites it must match the configured origin exactly
        (scheme and port included).

        Raises:
            InvalidSiteIdError: *site_id* is missing or not allow-listed.
            InvalidRefererError: the ``Referer`` belongs to another origin.
        """
        host = (site_id or "").strip().lower()
        origin = self._allowed.get(host) if host else None
        if origin is None:
            raise InvalidSiteIdError(f"site_id {site_id!r} is not allow-listed")

        if not referer:
            return origin

        referer_origin = normalize_origin(referer, default_scheme="")
        if referer_origin is None or _hostname(referer_origin) != host:
            raise InvalidRefererError(f"referer does not belong to site {host!r}")
        if host in self._dev_hosts and self._relax_dev_origin:
            return referer_origin
        if referer_origin != origin:
            raise InvalidRefererError(f"referer origin {referer_origin!r} does not match {origin!r}")
        return origin
