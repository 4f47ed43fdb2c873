"""Best-effort favicon lookup for citations.

Each citation URL maps to ``<origin>/favicon.ico``. With probing enabled the
candidate is confirmed with an HTTP HEAD request; lookups run concurrently on
a thread pool so N citations cost roughly one request's latency. A failed
lookup yields ``""`` for that citation only.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

import requests

from market_digest.core.domains import favicon_url
from market_digest.core.logger import logger


class FaviconResolver:
    """Resolves favicon URLs for a batch of page URLs.

    Args:
        probe: Confirm each candidate with a HEAD request before using it.
        max_workers: Thread pool size for probing.
        timeout: Per-request timeout in seconds.
        session: Optional ``requests.Session`` to reuse connections.
    """

    def __init__(
        self,
        probe: bool = False,
        max_workers: int = 8,
        timeout: float = 3.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.probe = probe
        self.max_workers = max(1, max_workers)
        self.timeout = timeout
        self.session = session

    def resolve(self, url: str) -> str:
        """Return the favicon URL for one page URL, or ``""``."""
        candidate = favicon_url(url)
        if not candidate or not self.probe:
            return candidate
        try:
            http = self.session or requests
            resp = http.head(candidate, timeout=self.timeout, allow_redirects=True)
        except requests.RequestException as exc:
            logger.debug(f"FaviconResolver: probe failed for {candidate}: {exc}")
            return ""
        if resp.status_code >= 400:
            logger.debug(f"FaviconResolver: HTTP {resp.status_code} for {candidate}")
            return ""
        return candidate

    def resolve_many(self, urls: Sequence[str]) -> List[str]:
        """Resolve a batch of URLs, preserving order.

        Lookups are dispatched together when probing; without probing the
        computation is pure and runs inline.
        """
        if not self.probe or len(urls) <= 1:
            return [self._safe_resolve(url) for url in urls]

        workers = min(self.max_workers, len(urls))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="favicon") as executor:
            futures = [executor.submit(self._safe_resolve, url) for url in urls]
            return [future.result() for future in futures]

    def _safe_resolve(self, url: str) -> str:
        try:
            return self.resolve(url)
        except Exception as exc:
            logger.warning(f"FaviconResolver: lookup raised for {url!r}: {exc}")
            return ""
