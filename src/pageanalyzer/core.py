"""
Page analysis pipeline: fetch, parse, extract, check links, classify forms.
"""
from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter

from pageanalyzer.cancellation import CancelToken
from pageanalyzer.config import AnalyzerConfig
from pageanalyzer.errors import AnalysisError, AnalysisTimeout, FetchFailed, InvalidURL, ParseFailed
from pageanalyzer.extractor import extract_page, parse_html
from pageanalyzer.forms import LoginPolicy, has_login_form
from pageanalyzer.link_checker import LinkChecker
from pageanalyzer.metrics import MetricsSink, NullMetrics, SafeMetrics
from pageanalyzer.models import AnalysisResult

logger = logging.getLogger(__name__)

HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")


class AnalysisState(str, Enum):
    CREATED = "created"
    FETCHING = "fetching"
    PARSING = "parsing"
    EXTRACTING = "extracting"
    CHECKING_LINKS = "checking_links"
    CLASSIFYING_FORMS = "classifying_forms"
    ASSEMBLED = "assembled"
    FAILED = "failed"


@dataclass(slots=True)
class AnalysisRun:
    """Progress of one analysis through its states."""
    url: str
    state: AnalysisState = AnalysisState.CREATED
    history: List[AnalysisState] = field(default_factory=lambda: [AnalysisState.CREATED])

    def transition(self, state: AnalysisState) -> None:
        logger.debug("Analysis of %s: %s -> %s", self.url, self.state.value, state.value)
        self.state = state
        self.history.append(state)


def validate_url(url: str) -> None:
    """Accept only absolute http(s) URLs."""
    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise InvalidURL(f"invalid URL {url!r}", e) from e
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidURL(f"invalid URL {url!r}, expected an absolute http:// or https:// URL")


def build_session(config: AnalyzerConfig) -> requests.Session:
    """Session shared by the page fetch and all link checks."""
    session = requests.Session()
    session.headers["User-Agent"] = config.user_agent
    adapter = HTTPAdapter(pool_connections=config.max_concurrent_links, pool_maxsize=config.max_concurrent_links)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


class PageAnalyzer:
    """
    Analyzes single web pages.

    One instance can serve many analyses, also concurrently: the config and
    session are only read, and every analysis builds its own result.

    Args:
        config: Analyzer settings. Defaults to ``AnalyzerConfig()``.
        session: HTTP session to use. When omitted the analyzer creates one
                 and closes it in ``close()``.
        metrics: Metrics sink. Ignored when ``config.enable_metrics`` is off.
    """

    def __init__(
        self,
        config: Optional[AnalyzerConfig] = None,
        session: Optional[requests.Session] = None,
        metrics: Optional[MetricsSink] = None,
    ):
        self.config = config or AnalyzerConfig()
        self._owns_session = session is None
        self.session = session if session is not None else build_session(self.config)
        sink = metrics if metrics is not None and self.config.enable_metrics else NullMetrics()
        self.metrics = SafeMetrics(sink)
        self.link_checker = LinkChecker(self.session, self.config)
        self.login_policy = LoginPolicy(self.config.login_policy)

    def __enter__(self) -> PageAnalyzer:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def analyze(
        self,
        url: str,
        token: Optional[CancelToken] = None,
        run: Optional[AnalysisRun] = None,
    ) -> AnalysisResult:
        """
        Analyze one page.

        Args:
            url: Absolute http(s) URL of the page.
            token: Cancellation context bounding the whole analysis.
            run: Optional progress record, updated on every state change.

        Returns:
            The assembled result.

        Raises:
            InvalidURL: ``url`` is not an absolute http(s) URL.
            AnalysisTimeout: The token was cancelled before the page arrived.
            FetchFailed: All fetch attempts failed or returned non-2xx.
            ParseFailed: The body is not parseable HTML.
        """
        token = token or CancelToken()
        run = run or AnalysisRun(url)
        start = time.perf_counter()

        self.metrics.record_request()
        logger.info("Starting analysis of %s", url)

        try:
            result = self._run(url, token, run)
        except AnalysisError as e:
            run.transition(AnalysisState.FAILED)
            self.metrics.record_error(e.code)
            logger.error("Analysis of %s failed: %s", url, e)
            raise
        finally:
            self.metrics.record_duration(time.perf_counter() - start)

        self.metrics.record_result(result)
        logger.info("Analysis of %s complete in %.2fs", url, time.perf_counter() - start)
        return result

    def _run(self, url: str, token: CancelToken, run: AnalysisRun) -> AnalysisResult:
        validate_url(url)
        token.raise_if_cancelled()

        run.transition(AnalysisState.FETCHING)
        response = self._fetch(url, token)

        run.transition(AnalysisState.PARSING)
        soup = self._parse(response)

        run.transition(AnalysisState.EXTRACTING)
        # Relative links resolve against the page we ended up on
        facts = extract_page(soup, response.url or url)

        # Forms are classified on this thread while the links are checked
        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="link-dispatch") as pool:
            run.transition(AnalysisState.CHECKING_LINKS)
            pending = pool.submit(
                self.link_checker.check_all,
                [link.resolved_url for link in facts.links],
                token,
            )
            run.transition(AnalysisState.CLASSIFYING_FORMS)
            login_form = has_login_form(facts.forms, self.login_policy)
            accessibility = pending.result()

        if token.cancelled:
            logger.warning("Deadline reached while checking links of %s; unchecked links count as inaccessible", url)

        result = AnalysisResult(
            url=url,
            html_version=facts.html_version,
            title=facts.title,
            headings=facts.headings,
            links=tuple(
                link.with_accessibility(accessibility.get(link.resolved_url, False))
                for link in facts.links
            ),
            has_login_form=login_form,
        )
        run.transition(AnalysisState.ASSEMBLED)
        return result

    def _fetch(self, url: str, token: CancelToken) -> requests.Response:
        """GET the page, retrying transport errors and non-2xx answers with backoff."""
        attempts = self.config.attempts
        last_error: Optional[FetchFailed] = None

        for attempt in range(attempts):
            token.raise_if_cancelled("page fetch")
            timeout = token.bound(self.config.timeout)
            if timeout <= 0:
                break

            try:
                resp = self.session.get(
                    url,
                    headers={"User-Agent": self.config.user_agent},
                    timeout=timeout,
                    allow_redirects=True,
                )
            except requests.RequestException as e:
                last_error = FetchFailed(f"error fetching {url}", e)
                logger.warning("Fetch attempt %d/%d for %s failed: %s", attempt + 1, attempts, url, e)
            else:
                if 200 <= resp.status_code < 300:
                    return resp
                last_error = FetchFailed(
                    f"HTTP error: {resp.status_code} {resp.reason or ''}".rstrip(),
                    status_code=resp.status_code,
                )
                logger.warning("Fetch attempt %d/%d for %s returned %d", attempt + 1, attempts, url, resp.status_code)
                resp.close()

            if attempt < attempts - 1 and token.sleep(2 ** attempt * self.config.backoff_unit):
                break

        if token.cancelled:
            raise AnalysisTimeout("page fetch cancelled or deadline exceeded", last_error)
        raise last_error or FetchFailed(f"error fetching {url}")

    def _parse(self, response: requests.Response):
        content_type = (response.headers.get("content-type") or "").lower()
        if content_type and not any(kind in content_type for kind in HTML_CONTENT_TYPES):
            logger.warning("Parsing %s served as %r", response.url, content_type)
        return parse_html(response.content)


def analyze(
    url: str,
    config: Optional[AnalyzerConfig] = None,
    token: Optional[CancelToken] = None,
    metrics: Optional[MetricsSink] = None,
) -> AnalysisResult:
    """Analyze one page with a throwaway analyzer."""
    with PageAnalyzer(config, metrics=metrics) as analyzer:
        return analyzer.analyze(url, token)
