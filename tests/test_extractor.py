import pytest

from pageanalyzer.extractor import (
    count_headings,
    detect_html_version,
    extract_forms,
    extract_links,
    extract_page,
    extract_title,
    parse_html,
    resolve_link,
)
from pageanalyzer.models import HTMLVersion

BASE_URL = "http://test.local/index.html"

SAMPLE_PAGE = """<!DOCTYPE html>
<html>
<head><title>Test Page</title></head>
<body>
    <h1>Heading 1</h1>
    <h2>Heading 2</h2>
    <h2>Heading 2-2</h2>
    <h3>Heading 3</h3>
    <a href="/">Home</a>
    <a href="/about">About</a>
    <a href="https://example.com">External</a>
    <form action="/login">
        <input type="text" name="username">
        <input type="password" name="password">
        <button type="submit">Login</button>
    </form>
</body>
</html>
"""


@pytest.mark.parametrize(
    "doctype, expected",
    [
        ("<!DOCTYPE html>", HTMLVersion.HTML5),
        ("<!doctype HTML>", HTMLVersion.HTML5),
        (
            '<!DOCTYPE HTML PUBLIC "-//W3C//DTD HTML 4.01 Transitional//EN" '
            '"http://www.w3.org/TR/html4/loose.dtd">',
            HTMLVersion.HTML4_01,
        ),
        ("<!DOCTYPE HTML 4.01 Transitional>", HTMLVersion.HTML4_01),
        (
            '<!DOCTYPE html PUBLIC "-//W3C//DTD XHTML 1.0 Strict//EN" '
            '"http://www.w3.org/TR/xhtml1/DTD/xhtml1-strict.dtd">',
            HTMLVersion.XHTML1_0,
        ),
        (
            '<!DOCTYPE html PUBLIC "-//W3C//DTD XHTML 1.1//EN" '
            '"http://www.w3.org/TR/xhtml11/DTD/xhtml11.dtd">',
            HTMLVersion.XHTML1_1,
        ),
        ("", HTMLVersion.UNKNOWN),
    ],
)
def test_detect_html_version(doctype, expected):
    soup = parse_html(f"{doctype}<html><head><title>x</title></head><body></body></html>")
    assert detect_html_version(soup) == expected


def test_short_doctype_read_from_raw_bytes():
    soup = parse_html(b"<!DOCTYPE HTML 4.01 Transitional>\n<html><body><p>old</p></body></html>")
    assert detect_html_version(soup) == HTMLVersion.HTML4_01
    assert extract_page(soup, BASE_URL).html_version == HTMLVersion.HTML4_01


def test_later_doctype_text_does_not_replace_real_doctype():
    soup = parse_html('<!DOCTYPE html><html><body><script>var s = "<!DOCTYPE HTML 4.01>";</script></body></html>')
    assert detect_html_version(soup) == HTMLVersion.HTML5


def test_extract_title_first_title_wins():
    soup = parse_html("<html><head><title>First</title></head><body><title>Second</title></body></html>")
    assert extract_title(soup) == "First"


def test_extract_title_missing_or_empty():
    assert extract_title(parse_html("<html><body><p>no title</p></body></html>")) == ""
    assert extract_title(parse_html("<html><head><title></title></head></html>")) == ""


def test_count_headings_ignores_lookalike_tags():
    soup = parse_html(
        "<html><body><header>h</header><hgroup><h1>a</h1></hgroup><hr>"
        "<h2>b</h2><h6>c</h6><h6>d</h6></body></html>"
    )
    assert count_headings(soup) == {"h1": 1, "h2": 1, "h6": 2}


def test_extract_links_filters_and_classifies():
    soup = parse_html(
        """<html><body>
        <a href="">empty</a>
        <a href="#top">anchor</a>
        <a href="javascript:void(0)">js</a>
        <a>no href</a>
        <a href="/relative">relative</a>
        <a href="other.html">sibling</a>
        <a href="http://test.local/absolute">same host</a>
        <a href="https://example.com/x">other host</a>
        <a href="http://TEST.local/case">case differs</a>
        </body></html>"""
    )
    links = extract_links(soup, BASE_URL)

    assert [link.url for link in links] == [
        "/relative",
        "other.html",
        "http://test.local/absolute",
        "https://example.com/x",
        "http://TEST.local/case",
    ]
    assert [link.is_internal for link in links] == [True, True, True, False, False]
    assert links[1].resolved_url == "http://test.local/other.html"
    assert all(link.is_accessible is None for link in links)


def test_extract_links_drops_unresolvable_href():
    soup = parse_html('<html><body><a href="http://[::1/broken">bad</a><a href="/ok">ok</a></body></html>')
    assert [link.url for link in extract_links(soup, BASE_URL)] == ["/ok"]


def test_resolve_link_ignores_userinfo_in_host():
    assert resolve_link("http://user@test.local/x", BASE_URL) == ("http://user@test.local/x", True)
    assert resolve_link("#frag", BASE_URL) is None


def test_extract_forms_in_document_order():
    soup = parse_html('<html><body><form id="a"></form><div><form id="b"></form></div></body></html>')
    assert [form["id"] for form in extract_forms(soup)] == ["a", "b"]


def test_extract_page_scenario():
    facts = extract_page(parse_html(SAMPLE_PAGE), BASE_URL)

    assert facts.html_version == HTMLVersion.HTML5
    assert facts.title == "Test Page"
    assert facts.headings == {"h1": 1, "h2": 2, "h3": 1}
    assert sum(1 for link in facts.links if link.is_internal) == 2
    assert sum(1 for link in facts.links if not link.is_internal) == 1
    assert len(facts.forms) == 1


def test_extract_page_is_repeatable():
    soup = parse_html(SAMPLE_PAGE)
    assert extract_page(soup, BASE_URL) == extract_page(soup, BASE_URL)


def test_malformed_markup_yields_defaults():
    facts = extract_page(parse_html("<<<not really html"), BASE_URL)
    assert facts.html_version == HTMLVersion.UNKNOWN
    assert facts.title == ""
    assert facts.headings == {}
    assert facts.links == ()
