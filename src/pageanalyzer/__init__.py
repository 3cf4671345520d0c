"""
Single-page web analyzer: HTML version, title, headings, links, link
accessibility and login-form detection.
"""
from pageanalyzer.cancellation import CancelToken
from pageanalyzer.config import AnalyzerConfig, load_config
from pageanalyzer.core import AnalysisRun, AnalysisState, PageAnalyzer, analyze
from pageanalyzer.errors import (
    AnalysisError,
    AnalysisTimeout,
    FetchFailed,
    InvalidURL,
    MaxDepthReached,
    MaxLinksReached,
    ParseFailed,
)
from pageanalyzer.models import AnalysisResult, HTMLVersion, LinkRecord

__version__ = "1.0.0"
__all__ = [
    "analyze",
    "AnalysisError",
    "AnalysisResult",
    "AnalysisRun",
    "AnalysisState",
    "AnalysisTimeout",
    "AnalyzerConfig",
    "CancelToken",
    "FetchFailed",
    "HTMLVersion",
    "InvalidURL",
    "LinkRecord",
    "load_config",
    "MaxDepthReached",
    "MaxLinksReached",
    "PageAnalyzer",
    "ParseFailed",
]
