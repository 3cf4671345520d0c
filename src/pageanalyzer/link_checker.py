"""
Concurrent link accessibility checks.

Each link gets a HEAD request, falling back to GET when HEAD fails or returns
a status outside [200, 400). Redirects are never followed: a 3xx answer to
HEAD counts as accessible, a 3xx answer to the GET fallback does not.
Checks never raise; any failure makes the link inaccessible.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, Iterable, Optional
from urllib.parse import urlparse

import requests

from pageanalyzer.cancellation import CancelToken
from pageanalyzer.config import AnalyzerConfig

logger = logging.getLogger(__name__)

CHECKABLE_SCHEMES = ("http", "https")


def is_checkable(url: str) -> bool:
    try:
        return urlparse(url).scheme in CHECKABLE_SCHEMES
    except ValueError:
        return False


class LinkChecker:
    """Checks links over a shared ``requests.Session``."""

    def __init__(self, session: requests.Session, config: AnalyzerConfig):
        self.session = session
        self.config = config

    def _status(self, method: str, url: str, token: CancelToken) -> Optional[int]:
        """Status code of a single request, None on transport error or cancellation."""
        if token.cancelled:
            return None
        timeout = token.bound(self.config.timeout)
        if timeout <= 0:
            return None

        try:
            with self.session.request(
                method,
                url,
                headers={"User-Agent": self.config.user_agent},
                timeout=timeout,
                allow_redirects=False,
                stream=True,
            ) as resp:
                return resp.status_code
        except (requests.RequestException, ValueError) as e:
            logger.debug("%s %s failed: %s", method, url, e)
            return None

    def _attempt(self, url: str, token: CancelToken) -> bool:
        """One HEAD-then-GET accessibility attempt."""
        status = self._status("HEAD", url, token)
        if status is not None and 200 <= status < 400:
            return True

        status = self._status("GET", url, token)
        return status is not None and 200 <= status < 300

    def check(self, url: str, token: Optional[CancelToken] = None) -> bool:
        """Single attempt, no retries."""
        token = token or CancelToken()
        if not is_checkable(url):
            return False
        return self._attempt(url, token)

    def check_with_retry(self, url: str, token: Optional[CancelToken] = None) -> bool:
        """
        Check with exponential backoff between failed attempts.

        Attempt ``i`` is followed by a wait of ``2 ** i`` backoff units.
        Stops early on success or on cancellation.
        """
        token = token or CancelToken()
        if not is_checkable(url):
            logger.debug("Skipping non-HTTP link %s", url)
            return False

        attempts = self.config.attempts
        for attempt in range(attempts):
            if token.cancelled:
                return False
            if self._attempt(url, token):
                return True
            if attempt == attempts - 1:
                break
            if token.sleep(2 ** attempt * self.config.backoff_unit):
                break
        return False

    def check_all(self, urls: Iterable[str], token: Optional[CancelToken] = None) -> Dict[str, bool]:
        """
        Check every distinct URL with at most ``max_concurrent_links`` in flight.

        Returns a mapping of URL to accessibility. Checks that have not
        started when the token is cancelled report False without a request.
        """
        token = token or CancelToken()
        unique = list(dict.fromkeys(urls))
        if not unique:
            return {}

        limit = self.config.max_concurrent_links
        gate = threading.BoundedSemaphore(limit)

        def gated_check(url: str) -> bool:
            with gate:
                if token.cancelled:
                    return False
                return self.check_with_retry(url, token)

        results: Dict[str, bool] = {}
        with ThreadPoolExecutor(max_workers=min(limit, len(unique)), thread_name_prefix="link-check") as pool:
            futures = {pool.submit(gated_check, url): url for url in unique}
            for future in as_completed(futures):
                url = futures[future]
                results[url] = future.result()
                logger.debug("Link check %s -> %s", url, "accessible" if results[url] else "inaccessible")

        return results
