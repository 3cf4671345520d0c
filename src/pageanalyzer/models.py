"""
Result data structures for a single page analysis.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from bs4 import Tag


class HTMLVersion(str, Enum):
    """HTML version as declared by the document type."""
    HTML5 = "HTML5"
    HTML4_01 = "HTML4.01"
    XHTML1_0 = "XHTML1.0"
    XHTML1_1 = "XHTML1.1"
    UNKNOWN = "Unknown"


@dataclass(frozen=True, slots=True)
class LinkRecord:
    """A single <a href> found on the page."""
    url: str
    is_internal: bool
    resolved_url: str = ""
    is_accessible: Optional[bool] = None

    def with_accessibility(self, accessible: bool) -> LinkRecord:
        """Return the checked copy of this record."""
        if self.is_accessible is not None:
            raise ValueError(f"Accessibility of {self.url!r} already determined")
        return replace(self, is_accessible=accessible)


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    """Complete, immutable analysis of one web page."""
    url: str
    html_version: HTMLVersion = HTMLVersion.UNKNOWN
    title: str = ""
    headings: Mapping[str, int] = field(default_factory=dict)
    links: Tuple[LinkRecord, ...] = ()
    has_login_form: bool = False

    def __post_init__(self) -> None:
        # Freeze the containers handed in by the caller
        object.__setattr__(self, "headings", MappingProxyType(dict(self.headings)))
        object.__setattr__(self, "links", tuple(self.links))

    @property
    def accessible_links(self) -> int:
        return sum(1 for link in self.links if link.is_accessible)

    @property
    def inaccessible_links(self) -> int:
        return len(self.links) - self.accessible_links

    @property
    def internal_links(self) -> int:
        return sum(1 for link in self.links if link.is_internal)

    @property
    def external_links(self) -> int:
        return len(self.links) - self.internal_links

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready representation, including the derived counts."""
        return {
            "url": self.url,
            "html_version": self.html_version.value,
            "title": self.title,
            "headings": dict(sorted(self.headings.items())),
            "links": [
                {
                    "url": link.url,
                    "is_internal": link.is_internal,
                    "is_accessible": link.is_accessible,
                }
                for link in self.links
            ],
            "internal_links": self.internal_links,
            "external_links": self.external_links,
            "accessible_links": self.accessible_links,
            "inaccessible_links": self.inaccessible_links,
            "has_login_form": self.has_login_form,
        }


@dataclass(slots=True)
class FormDescriptor:
    """Facts about one <form> subtree, used only while classifying forms."""
    node: Tag
    has_password_input: bool = False
    has_username_like_input: bool = False
    has_submit_control: bool = False
    action_suggests_login: bool = False


@dataclass(frozen=True, slots=True)
class PageFacts:
    """Everything the DOM extractor derives from one parsed document."""
    html_version: HTMLVersion
    title: str
    headings: Dict[str, int]
    links: Tuple[LinkRecord, ...]
    forms: Tuple[Tag, ...]
