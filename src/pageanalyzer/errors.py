"""
Typed errors raised by a page analysis.
"""
from __future__ import annotations

from typing import Optional

INVALID_URL = "INVALID_URL"
FETCH_FAILED = "FETCH_FAILED"
PARSE_FAILED = "PARSE_FAILED"
TIMEOUT = "TIMEOUT"
MAX_LINKS_REACHED = "MAX_LINKS_REACHED"
MAX_DEPTH_REACHED = "MAX_DEPTH_REACHED"


class AnalysisError(Exception):
    """Base class for every error that aborts an analysis."""
    code = "ANALYSIS_ERROR"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.code}: {self.message}: {self.cause}"
        return f"{self.code}: {self.message}"


class InvalidURL(AnalysisError):
    code = INVALID_URL


class FetchFailed(AnalysisError):
    code = FETCH_FAILED

    def __init__(self, message: str, cause: Optional[BaseException] = None, status_code: Optional[int] = None):
        super().__init__(message, cause)
        self.status_code = status_code


class ParseFailed(AnalysisError):
    code = PARSE_FAILED


class AnalysisTimeout(AnalysisError):
    code = TIMEOUT


# Reserved until crawl depth is configurable
class MaxLinksReached(AnalysisError):
    code = MAX_LINKS_REACHED


class MaxDepthReached(AnalysisError):
    code = MAX_DEPTH_REACHED
