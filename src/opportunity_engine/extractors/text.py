from __future__ import annotations

import html as html_lib
import re
from dataclasses import dataclass, field

from bs4 import BeautifulSoup, Tag

_SCRIPT_STYLE = re.compile(r"<(script|style|noscript)[^>]*>.*?</\1>", re.IGNORECASE | re.DOTALL)
_BREAK_TAGS = re.compile(
    r"</?(?:br|p|li|div|tr|h\d|ul|ol|table|section|article|header|footer)[^>]*>",
    re.IGNORECASE,
)
_HTML_TAGS = re.compile(r"<[^>]+>")
_MARKDOWN_IMAGE = re.compile(r"!\[([^\]]*)\]\([^)]*\)")
_MARKDOWN_LINK = re.compile(r"\[([^\]]*)\]\([^)]*\)")
_MARKDOWN_MARKERS = re.compile(r"^\s*(?:#{1,6}|[*+-]|>)\s+", re.MULTILINE)
_MARKDOWN_EMPHASIS = re.compile(r"(\*\*|__)(.*?)\1")
_MULTISPACE = re.compile(r"\s+")


@dataclass(frozen=True, slots=True)
class PageView:
    """A crawled page prepared for field extraction."""

    url: str
    markup: str
    text: str
    title: str | None = None
    soup: BeautifulSoup | None = field(default=None, repr=False, compare=False)

    @classmethod
    def from_content(cls, url: str, content: str, title: str | None = None) -> PageView:
        return cls(
            url=url,
            markup=content,
            text=html_to_text(content),
            title=title,
            soup=parse_markup(content),
        )


def parse_markup(content: str) -> BeautifulSoup:
    return BeautifulSoup(content or "", "html.parser")


def element_text(element: Tag | None) -> str:
    if element is None:
        return ""
    return normalize_whitespace(element.get_text(" ", strip=True))


def html_to_text(value: str) -> str:
    without_scripts = _SCRIPT_STYLE.sub(" ", value)
    with_breaks = _BREAK_TAGS.sub("\n", without_scripts)
    without_tags = _HTML_TAGS.sub(" ", with_breaks)
    unescaped = html_lib.unescape(without_tags)
    unescaped = _MARKDOWN_IMAGE.sub(" ", unescaped)
    unescaped = _MARKDOWN_LINK.sub(r"\1", unescaped)
    unescaped = _MARKDOWN_MARKERS.sub("", unescaped)
    unescaped = _MARKDOWN_EMPHASIS.sub(r"\2", unescaped)

    cleaned_lines = []
    for line in unescaped.splitlines():
        normalized = normalize_whitespace(line)
        if normalized:
            cleaned_lines.append(normalized)
    return "\n".join(cleaned_lines)


def clean_text(value: str | None) -> str:
    """Strip tags, unescape entities and collapse whitespace into single spaces."""
    if not value:
        return ""
    without_tags = _HTML_TAGS.sub(" ", value)
    return normalize_whitespace(html_lib.unescape(without_tags))


def normalize_whitespace(value: str) -> str:
    return _MULTISPACE.sub(" ", value).strip()


def truncate(value: str, limit: int, suffix: str = "...") -> str:
    if len(value) <= limit:
        return value
    return f"{value[:limit].rstrip()}{suffix}"


def window_after(text: str, keywords: list[str], size: int) -> str | None:
    """Return ``size`` characters starting at the earliest keyword occurrence."""
    lowered = text.lower()
    positions = [
        index for index in (lowered.find(keyword.lower()) for keyword in keywords) if index >= 0
    ]
    if not positions:
        return None
    start = min(positions)
    return text[start : start + size]
