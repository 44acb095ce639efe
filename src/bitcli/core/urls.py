from __future__ import annotations

from urllib.parse import urlsplit, urlunsplit

from bitcli.core.errors import InvalidUrl

_DEFAULT_PORTS = {"http": 80, "https": 443}


def normalize_url(raw: str) -> str:
    """
    Canonicalize an absolute http(s) URL for use as a cache key.

    Lowercases the scheme and host, drops the default port and turns an empty path
    into "/". Userinfo, query and fragment are kept verbatim.
    """
    candidate = raw.strip()
    if not candidate:
        raise InvalidUrl(raw, "empty URL")
    if any(ch.isspace() for ch in candidate):
        raise InvalidUrl(raw, "URL must not contain whitespace")

    try:
        parts = urlsplit(candidate)
        port = parts.port
    except ValueError as e:
        raise InvalidUrl(raw, str(e)) from e

    scheme = parts.scheme.lower()
    if scheme not in _DEFAULT_PORTS:
        raise InvalidUrl(raw, "expected an absolute http or https URL")

    host = parts.hostname
    if not host:
        raise InvalidUrl(raw, "missing host")
    if ":" in host:
        host = f"[{host}]"

    userinfo, sep, _ = parts.netloc.rpartition("@")
    netloc = f"{userinfo}{sep}{host}"
    if port is not None and port != _DEFAULT_PORTS[scheme]:
        netloc = f"{netloc}:{port}"

    return urlunsplit((scheme, netloc, parts.path or "/", parts.query, parts.fragment))
