"""URL helpers for citation titles and favicon locations."""

from typing import Optional
from urllib.parse import urlparse

# Subdomain aliases collapsed onto their parent site: (first label, second label)
_COLLAPSED_SUBDOMAINS = {
    ("markets", "businessinsider"),
}


def derive_domain(url: str) -> str:
    """Return a short display name for a URL, built from its last two host labels.

    Examples:
        ``"https://www.coindesk.com/markets/x"`` → ``"coindesk.com"``
        ``"https://www.markets.businessinsider.com/a"`` → ``"businessinsider.com"``
        ``"https://sub.example.co.uk/x"`` → ``"co.uk"`` (two-label heuristic;
        public-suffix domains are not special-cased)

    Args:
        url (str): Absolute URL.

    Returns:
        str: Display name, the bare hostname when it has fewer than two
        labels, or ``url`` unchanged when it cannot be parsed.
    """
    hostname = _hostname(url)
    if not hostname:
        return url

    parts = hostname[4:].split(".") if hostname.startswith("www.") else hostname.split(".")
    if len(parts) >= 2:
        if (parts[0], parts[1]) in _COLLAPSED_SUBDOMAINS:
            return f"{parts[1]}.{parts[-1]}"
        return f"{parts[-2]}.{parts[-1]}"
    return hostname


def favicon_url(url: str) -> str:
    """Return ``<origin>/favicon.ico`` for an absolute http(s) URL, or ``""``."""
    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
        port = parsed.port
    except (ValueError, AttributeError):
        return ""
    if parsed.scheme not in ("http", "https") or not hostname:
        return ""
    origin = f"{parsed.scheme}://{hostname}"
    if port:
        origin = f"{origin}:{port}"
    return f"{origin}/favicon.ico"


def ensure_scheme(url: str) -> str:
    """Prefix ``https://`` onto schemeless or protocol-relative URLs."""
    if url.startswith(("http://", "https://")):
        return url
    if url.startswith("//"):
        return f"https:{url}"
    return f"https://{url}"


def is_absolute_url(url: str) -> bool:
    """True for ``http(s)://host...`` URLs."""
    return bool(_hostname(url)) and url.startswith(("http://", "https://"))


def _hostname(url: str) -> Optional[str]:
    try:
        return urlparse(url).hostname
    except (ValueError, AttributeError):
        return None
