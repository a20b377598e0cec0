"""URL resolution: scheme inference, base URL joining and query merging."""

from __future__ import annotations

import re
from typing import List, Mapping, Optional, Sequence, Tuple, Union
from urllib.parse import urlencode, urlsplit, urlunsplit

import httpx

from httx.errors import InvalidUrlError

QueryInput = Union[Mapping[str, Union[str, Sequence[str]]], Sequence[Tuple[str, str]], None]

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")
_HOST_PORT_RE = re.compile(r"^[^/?#:]+:\d+$")
_IPV4_RE = re.compile(r"^\d{1,3}(\.\d{1,3}){3}$")

ALLOWED_SCHEMES = ("http", "https")


def has_scheme(url: str) -> bool:
    return bool(_SCHEME_RE.match(url))


def _split_host(url: str) -> Tuple[str, str]:
    host = re.split(r"[/?#]", url, maxsplit=1)[0]
    return host, host.split(":", 1)[0]


def looks_like_host(url: str) -> bool:
    """True if ``url`` has a scheme or starts with something scheme inference accepts as a host."""
    if has_scheme(url) or url.startswith(":"):
        return True
    host, hostname = _split_host(url)
    if hostname == "localhost" or _HOST_PORT_RE.match(host):
        return True
    return bool(hostname) and ("." in hostname or bool(_IPV4_RE.match(hostname)))


def infer_scheme(url: str) -> str:
    """Give a bare host string a scheme.

    - ``:3000/api`` and ``:/api`` are localhost shortcuts -> ``http://localhost...``
    - ``localhost`` and ``host:port`` forms -> ``http://``
    - bare domains and IPs (``example.com/users``) -> ``https://``

    Anything else (e.g. ``not-a-url``) cannot be a host and is rejected.
    """
    if has_scheme(url):
        return url
    if url.startswith(":"):
        rest = url[1:]
        if rest.startswith("/") or not rest:
            return f"http://localhost{rest}"
        return f"http://localhost:{rest}"

    host, hostname = _split_host(url)
    if hostname == "localhost" or _HOST_PORT_RE.match(host):
        return f"http://{url}"
    if looks_like_host(url):
        return f"https://{url}"
    raise InvalidUrlError(url, "no scheme and not a host name")


def validate_url(url: str) -> str:
    """Return ``url`` if it is an absolute http(s) URL with a host, else raise ``InvalidUrlError``."""
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError, ValueError) as e:
        raise InvalidUrlError(url, str(e)) from None
    if parsed.scheme not in ALLOWED_SCHEMES:
        raise InvalidUrlError(url, f"unsupported scheme '{parsed.scheme}'")
    if not parsed.host:
        raise InvalidUrlError(url, "missing host")
    return url


def join_url(base: str, path: str) -> str:
    """Join with exactly one slash between ``base`` and ``path``."""
    if not path:
        return base
    if path[0] in "?#":
        return base + path
    return base.rstrip("/") + "/" + path.lstrip("/")


def query_pairs(query: QueryInput) -> List[Tuple[str, str]]:
    """Flatten a query mapping (or pair sequence) into ordered ``(key, value)`` pairs."""
    if not query:
        return []
    items = query.items() if isinstance(query, Mapping) else query
    pairs: List[Tuple[str, str]] = []
    for key, value in items:
        if isinstance(value, (list, tuple)):
            pairs.extend((key, str(v)) for v in value)
        else:
            pairs.append((key, str(value)))
    return pairs


def append_query(url: str, query: QueryInput) -> str:
    """Append query pairs after any existing ones. Existing pairs are never replaced."""
    pairs = query_pairs(query)
    if not pairs:
        return url
    scheme, netloc, path, existing, fragment = urlsplit(url)
    encoded = urlencode(pairs)
    merged = f"{existing}&{encoded}" if existing else encoded
    return urlunsplit((scheme, netloc, path, merged, fragment))


def resolve_url(url_or_path: str, base: Optional[str] = None, query: QueryInput = None) -> str:
    """Resolve ``url_or_path`` to an absolute URL string.

    An absolute URL ignores ``base``. A relative path is joined onto ``base``.
    ``query`` is appended to whatever query string is already present.
    """
    if has_scheme(url_or_path):
        url = url_or_path
    elif base:
        url = join_url(base if has_scheme(base) else infer_scheme(base), url_or_path)
    elif url_or_path and not url_or_path.startswith("/"):
        url = infer_scheme(url_or_path)
    else:
        raise InvalidUrlError(url_or_path or "<empty>", "relative URL without a base URL")

    return validate_url(append_query(url, query))
