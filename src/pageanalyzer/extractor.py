"""
Structural facts extracted from a parsed HTML document.
"""
from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple, Union
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Doctype, NavigableString, Tag
from bs4.builder import ParserRejectedMarkup

from pageanalyzer.errors import ParseFailed
from pageanalyzer.models import HTMLVersion, LinkRecord, PageFacts

# Exactly h1..h6; "hgroup", "header" and "hr" are not headings
HEADING_TAG = re.compile(r"^h[1-6]$")

# Href prefixes that never point at another resource
SKIPPED_HREF_PREFIXES: Tuple[str, ...] = ("javascript:", "#")

DOCTYPE_DECLARATION = re.compile(r"<!doctype\s+([^>]*)>", re.IGNORECASE)


def declared_doctype(markup: Union[str, bytes]) -> Optional[str]:
    """Text of the first ``<!DOCTYPE ...>`` declaration as written in the markup."""
    if isinstance(markup, bytes):
        markup = markup.decode("ascii", errors="ignore")
    match = DOCTYPE_DECLARATION.search(markup)
    return match.group(1).strip() if match else None


def parse_html(markup: Union[str, bytes]) -> BeautifulSoup:
    """
    Parse raw page markup into a traversable tree.

    lxml keeps only the root name of a doctype it does not recognise
    (``<!DOCTYPE HTML 4.01 Transitional>`` becomes ``HTML``), so the doctype
    node is rewritten with the declaration text found in the markup.
    """
    try:
        soup = BeautifulSoup(markup, "lxml")
    except ParserRejectedMarkup as e:
        raise ParseFailed("failed to parse HTML", e) from e

    doctype = next((node for node in soup.contents if isinstance(node, Doctype)), None)
    if doctype is not None:
        declared = declared_doctype(markup)
        if declared and declared != str(doctype):
            doctype.replace_with(Doctype(declared))
    return soup


def detect_html_version(soup: BeautifulSoup) -> HTMLVersion:
    """Classify the document type declaration."""
    doctype = next((node for node in soup.descendants if isinstance(node, Doctype)), None)
    if doctype is None:
        return HTMLVersion.UNKNOWN

    text = str(doctype).lower()
    if "html 5" in text or text == "html":
        return HTMLVersion.HTML5
    if "html 4.01" in text:
        return HTMLVersion.HTML4_01
    if "xhtml 1.0" in text:
        return HTMLVersion.XHTML1_0
    if "xhtml 1.1" in text:
        return HTMLVersion.XHTML1_1
    return HTMLVersion.UNKNOWN


def extract_title(soup: BeautifulSoup) -> str:
    """Text of the first <title>'s first text child, or an empty string."""
    title = soup.find("title")
    if title is None:
        return ""
    first = next(iter(title.children), None)
    return str(first) if isinstance(first, NavigableString) else ""


def count_headings(soup: BeautifulSoup) -> Dict[str, int]:
    """Count h1..h6 elements per level. Levels not present are omitted."""
    counts: Dict[str, int] = {}
    for heading in soup.find_all(HEADING_TAG):
        counts[heading.name] = counts.get(heading.name, 0) + 1
    return counts


def _host(netloc: str) -> str:
    """Strip userinfo from a network location."""
    return netloc.rpartition("@")[2]


def resolve_link(href: str, base_url: str) -> Optional[Tuple[str, bool]]:
    """
    Resolve ``href`` against ``base_url``.

    Returns ``(absolute_url, is_internal)``, or None when the href is
    filtered out or cannot be resolved.
    """
    if not href or href.startswith(SKIPPED_HREF_PREFIXES):
        return None

    try:
        resolved = urljoin(base_url, href)
        host = _host(urlparse(resolved).netloc)
        base_host = _host(urlparse(base_url).netloc)
    except ValueError:
        return None

    return resolved, host == "" or host == base_host


def extract_links(soup: BeautifulSoup, base_url: str) -> List[LinkRecord]:
    """Collect <a href> links in document order, keeping the raw href."""
    links: List[LinkRecord] = []
    for anchor in soup.find_all("a"):
        href = anchor.get("href")
        if href is None:
            continue
        resolved = resolve_link(href, base_url)
        if resolved is None:
            continue
        absolute, is_internal = resolved
        links.append(LinkRecord(url=href, is_internal=is_internal, resolved_url=absolute))
    return links


def extract_forms(soup: BeautifulSoup) -> List[Tag]:
    """Every <form> subtree, in document order."""
    return soup.find_all("form")


def extract_page(soup: BeautifulSoup, base_url: str) -> PageFacts:
    """Derive all structural facts of a parsed page."""
    return PageFacts(
        html_version=detect_html_version(soup),
        title=extract_title(soup),
        headings=count_headings(soup),
        links=tuple(extract_links(soup, base_url)),
        forms=tuple(extract_forms(soup)),
    )
