"""
Analyzer configuration: defaults, validation and the JSON settings loader.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)

LOGIN_POLICIES = ("permissive", "strict")


@dataclass(frozen=True, slots=True)
class AnalyzerConfig:
    """
    Settings shared read-only by every analysis.

    Durations are in seconds. ``backoff_unit`` is the length of one backoff
    step; attempt ``i`` waits ``2 ** i * backoff_unit`` before retrying.
    ``max_links_per_page`` and ``max_depth`` are accepted but not enforced:
    an analysis never goes deeper than the requested page.
    """
    timeout: float = 10.0
    max_concurrent_links: int = 10
    user_agent: str = "Mozilla/5.0 WebPageAnalyzer/1.0"
    retry_attempts: int = 3
    max_links_per_page: int = 100
    max_depth: int = 1
    enable_metrics: bool = True
    backoff_unit: float = 1.0
    login_policy: str = "permissive"

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if self.max_concurrent_links < 1:
            raise ValueError(f"max_concurrent_links must be at least 1, got {self.max_concurrent_links}")
        if self.retry_attempts < 0:
            raise ValueError(f"retry_attempts cannot be negative, got {self.retry_attempts}")
        if self.backoff_unit < 0:
            raise ValueError(f"backoff_unit cannot be negative, got {self.backoff_unit}")
        if self.login_policy not in LOGIN_POLICIES:
            raise ValueError(f"login_policy must be one of {LOGIN_POLICIES}, got {self.login_policy!r}")

    @property
    def attempts(self) -> int:
        """Number of tries for a retried operation (always at least one)."""
        return max(1, self.retry_attempts)


def config_from_dict(data: Dict[str, Any]) -> AnalyzerConfig:
    """Build a config from a mapping, ignoring unknown keys."""
    known = {f.name for f in fields(AnalyzerConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        logger.warning("Ignoring unknown analyzer settings: %s", ", ".join(unknown))
    return AnalyzerConfig(**{k: v for k, v in data.items() if k in known})


def load_config(path: Optional[Union[str, Path]] = None) -> AnalyzerConfig:
    """
    Load analyzer settings from the ``"analyzer"`` section of a JSON file.

    A missing path or file yields the defaults. Malformed JSON and invalid
    values raise ``ValueError``.
    """
    if path is None:
        return AnalyzerConfig()

    config_path = Path(path)
    if not config_path.exists():
        logger.warning("Configuration file %s not found. Using defaults.", config_path)
        return AnalyzerConfig()

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {config_path}: {e}") from e

    section = data.get("analyzer", {}) if isinstance(data, dict) else None
    if not isinstance(section, dict):
        raise ValueError(f"'analyzer' section in {config_path} must be an object")

    return config_from_dict(section)
