"""
Transport factories used by ConnectionOptions.

An HTTP factory builds the aiohttp.ClientSession used for REST calls and a
WebSocket factory opens the kernel channel on top of that session. The cookie
variants make the handshake look same-origin, which gateways using cookie
authentication require.
"""
import logging
from typing import Dict, Mapping, Sequence
from urllib.parse import urlsplit

import aiohttp

_logger = logging.getLogger("jupygate.transport")


def default_http_factory(headers: Mapping[str, str], timeout: float) -> aiohttp.ClientSession:
    """Create a plain client session carrying the given default headers."""
    return aiohttp.ClientSession(headers=dict(headers), timeout=aiohttp.ClientTimeout(total=timeout))


def default_ws_factory(http_session: aiohttp.ClientSession, url: str, protocols: Sequence[str] = ()):
    """Open a WebSocket on an existing client session. Returns an awaitable."""
    return http_session.ws_connect(url, protocols=tuple(protocols))


def same_origin_url(url: str) -> str:
    """
    Rewrite a WebSocket URL to the HTTP URL it would be served from.

    ``wss``/``https`` become ``https``; anything else becomes ``http``.
    """
    parsed = urlsplit(url)
    scheme = "https" if parsed.scheme in ("wss", "https") else "http"
    return parsed._replace(scheme=scheme).geturl()


def same_origin_headers(url: str, cookie: str) -> Dict[str, str]:
    """
    Headers for a WebSocket upgrade that should pass as same-origin.

    Args:
        url: The ws:// or wss:// channel URL
        cookie: The authentication cookie to attach

    Returns:
        Dict with Origin, Host and Cookie headers
    """
    parsed = urlsplit(same_origin_url(url))
    return {
        "Origin": f"{parsed.scheme}://{parsed.netloc}",
        "Host": parsed.netloc,
        "Cookie": cookie,
    }


def cookie_http_factory(cookie: str):
    """
    Build an HTTP factory that always sends ``cookie`` verbatim.

    The session gets a DummyCookieJar so cookie handling never strips or
    replaces the explicit Cookie header.
    """

    def factory(headers: Mapping[str, str], timeout: float) -> aiohttp.ClientSession:
        merged = dict(headers)
        merged["Cookie"] = cookie
        return aiohttp.ClientSession(
            headers=merged,
            timeout=aiohttp.ClientTimeout(total=timeout),
            cookie_jar=aiohttp.DummyCookieJar(),
        )

    return factory


def cookie_ws_factory(cookie: str):
    """Build a WebSocket factory that masquerades the handshake as same-origin."""

    def factory(http_session: aiohttp.ClientSession, url: str, protocols: Sequence[str] = ()):
        headers = same_origin_headers(url, cookie)
        _logger.debug(f"Opening cookie-authenticated channel with origin {headers['Origin']}")
        return http_session.ws_connect(url, protocols=tuple(protocols), headers=headers)

    return factory
