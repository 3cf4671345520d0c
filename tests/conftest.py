import threading
import time

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from pageanalyzer.config import AnalyzerConfig


class FakeResponse:
    def __init__(self, status_code=200, content=b"", url="", headers=None, reason=""):
        self.status_code = status_code
        self.content = content
        self.url = url
        self.reason = reason
        self.headers = CaseInsensitiveDict(headers or {})
        self.closed = False

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class FakeSession:
    """
    Scripted stand-in for requests.Session.

    Routes map (method, url) to a status code, an exception instance, a
    FakeResponse, a list of those (consumed in order, last one repeats) or
    a callable returning one of those. Unknown routes answer 404.
    """

    def __init__(self, delay=0.0):
        self.routes = {}
        self.calls = []
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False
        self._lock = threading.Lock()

    def route(self, method, url, *outcomes):
        self.routes[(method, url)] = list(outcomes)
        return self

    def page(self, url, html, content_type="text/html; charset=utf-8", status=200):
        body = html.encode("utf-8") if isinstance(html, str) else html
        return self.route("GET", url, FakeResponse(status, body, url, {"Content-Type": content_type}))

    def _next_outcome(self, method, url):
        outcomes = self.routes.get((method, url))
        if not outcomes:
            return 404
        return outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]

    def request(self, method, url, **kwargs):
        with self._lock:
            self.calls.append((method, url, kwargs))
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            outcome = self._next_outcome(method, url)
        try:
            if self.delay:
                time.sleep(self.delay)
            if callable(outcome):
                outcome = outcome()
            if isinstance(outcome, BaseException):
                raise outcome
            if isinstance(outcome, FakeResponse):
                return outcome
            return FakeResponse(outcome, b"", url)
        finally:
            with self._lock:
                self.in_flight -= 1

    def get(self, url, **kwargs):
        return self.request("GET", url, **kwargs)

    def head(self, url, **kwargs):
        return self.request("HEAD", url, **kwargs)

    def close(self):
        self.closed = True

    def methods_for(self, url):
        return [method for method, called_url, _ in self.calls if called_url == url]


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def config():
    return AnalyzerConfig(timeout=2.0, max_concurrent_links=4, retry_attempts=3, backoff_unit=0.0)


@pytest.fixture
def connection_error():
    return requests.ConnectionError("connection refused")
