"""HTTP(S) access shared by the manifest client and the archive fetcher."""

from __future__ import annotations

import os
import ssl
from http.client import HTTPException
from urllib.request import Request, urlopen

import certifi

from app.version import get_bootstrapper_version
from services.bootstrap.constants import CA_BUNDLE_ENV, USER_AGENT_TEMPLATE

# Everything urllib and http.client raise for a failed or truncated exchange.
TRANSPORT_ERRORS = (OSError, ValueError, HTTPException)


def build_ssl_context() -> ssl.SSLContext:
    """Create a TLS context that trusts ``certifi``'s bundle or an explicit one."""

    ca_bundle = os.environ.get(CA_BUNDLE_ENV, "").strip()
    if ca_bundle:
        return ssl.create_default_context(cafile=ca_bundle)
    return ssl.create_default_context(cafile=certifi.where())


def open_url(url: str, *, timeout: float, accept: str = "*/*"):
    """Open ``url`` and return the response object.

    Transport level failures surface as one of :data:`TRANSPORT_ERRORS`,
    including ``URLError``, ``HTTPError``, socket timeouts and truncated bodies.
    """

    request = Request(
        url,
        headers={
            "User-Agent": USER_AGENT_TEMPLATE.format(version=get_bootstrapper_version()),
            "Accept": accept,
        },
    )
    return urlopen(request, timeout=timeout, context=build_ssl_context())  # nosec - scheme validated by callers


def advertised_length(response: object) -> int | None:
    """Return the ``Content-Length`` announced by ``response`` if it is usable."""

    headers = getattr(response, "headers", None)
    if headers is None:
        return None
    raw = headers.get("Content-Length")
    if raw is None:
        return None
    try:
        length = int(str(raw).strip())
    except ValueError:
        return None
    return length if length >= 0 else None


__all__ = ["TRANSPORT_ERRORS", "advertised_length", "build_ssl_context", "open_url"]
