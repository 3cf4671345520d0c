"""
Metrics sinks injected into the analyzer.

Sinks receive fire-and-forget observations. ``SafeMetrics`` wraps any sink
so that a failing sink is logged and never fails an analysis.
"""
from __future__ import annotations

import logging
import threading
from collections import Counter
from typing import Dict, List, Protocol

from pageanalyzer.models import AnalysisResult

logger = logging.getLogger(__name__)


class MetricsSink(Protocol):
    def record_request(self) -> None: ...

    def record_duration(self, seconds: float) -> None: ...

    def record_error(self, code: str) -> None: ...

    def record_result(self, result: AnalysisResult) -> None: ...


class NullMetrics:
    """Sink used when metrics are disabled."""

    def record_request(self) -> None:
        pass

    def record_duration(self, seconds: float) -> None:
        pass

    def record_error(self, code: str) -> None:
        pass

    def record_result(self, result: AnalysisResult) -> None:
        pass


class InMemoryMetrics:
    """Thread-safe counters, one instance per process or per test."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.requests = 0
        self.durations: List[float] = []
        self.errors: Counter[str] = Counter()
        self.link_counts: Counter[str] = Counter()
        self.heading_counts: Dict[str, int] = {}
        self.login_forms = 0
        self.html_versions: Counter[str] = Counter()

    def record_request(self) -> None:
        with self._lock:
            self.requests += 1

    def record_duration(self, seconds: float) -> None:
        with self._lock:
            self.durations.append(seconds)

    def record_error(self, code: str) -> None:
        with self._lock:
            self.errors[code] += 1

    def record_result(self, result: AnalysisResult) -> None:
        with self._lock:
            self.link_counts["internal"] += result.internal_links
            self.link_counts["external"] += result.external_links
            self.link_counts["accessible"] += result.accessible_links
            self.link_counts["inaccessible"] += result.inaccessible_links
            # Gauge semantics: last analysis wins
            self.heading_counts = dict(result.headings)
            if result.has_login_form:
                self.login_forms += 1
            self.html_versions[result.html_version.value] += 1


class SafeMetrics:
    """Forward to a sink, logging and dropping any exception it raises."""

    def __init__(self, sink: MetricsSink):
        self.sink = sink

    def _call(self, name: str, *args) -> None:
        try:
            getattr(self.sink, name)(*args)
        except Exception:
            logger.warning("Metrics sink failed in %s", name, exc_info=True)

    def record_request(self) -> None:
        self._call("record_request")

    def record_duration(self, seconds: float) -> None:
        self._call("record_duration", seconds)

    def record_error(self, code: str) -> None:
        self._call("record_error", code)

    def record_result(self, result: AnalysisResult) -> None:
        self._call("record_result", result)
