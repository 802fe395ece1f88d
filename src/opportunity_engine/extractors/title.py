from __future__ import annotations

import re

from bs4 import Tag

from opportunity_engine.utils.url_utils import host_matches

from .chain import first_accepted
from .text import PageView, clean_text, element_text

# CSS selectors for issuing bodies whose page layout is known.
SITE_TITLE_SELECTORS: dict[str, list[str]] = {
    "mimit.gov.it": ["h1.page-header", "div.item-title"],
    "mise.gov.it": ["h1.page-header"],
    "invitalia.it": ["h1.hero", "h1.hero__title", "div.incentive-title"],
    "regione.lombardia.it": ["div.titolo-bando", "h1.titolo-bando"],
    "ec.europa.eu": ["h1.ecl-page-header__title", "h1.ecl-page-header"],
}

_H1_MARKDOWN = re.compile(r"^\s*#\s+(.+?)\s*#*\s*$", re.M)
_H2_MARKDOWN = re.compile(r"^\s*##\s+(.+?)\s*#*\s*$", re.M)
_TITLE_HINT = re.compile(r"title|titolo", re.I)
_TITLE_HINT_ATTRIBUTES = ("class", "id", "itemprop")
_WORD = re.compile(r"[^\W\d_][\w'’-]*", re.U)

MIN_TITLE_LENGTH = 3
FALLBACK_TITLE_WORDS = 8


def from_site_container(page: PageView) -> str | None:
    if page.soup is None:
        return None
    for domain, selectors in SITE_TITLE_SELECTORS.items():
        if not host_matches(page.url, domain):
            continue
        for selector in selectors:
            candidate = element_text(page.soup.select_one(selector))
            if candidate:
                return candidate
    return None


def from_first_heading(page: PageView) -> str | None:
    return _first_heading(page, "h1", _H1_MARKDOWN)


def from_second_heading(page: PageView) -> str | None:
    return _first_heading(page, "h2", _H2_MARKDOWN)


def from_title_attribute(page: PageView) -> str | None:
    if page.soup is None:
        return None
    for element in page.soup.find_all(_has_title_hint):
        candidate = element_text(element)
        if is_plausible_title(candidate):
            return candidate
    return None


def from_crawler_title(page: PageView) -> str | None:
    return clean_text(page.title) or None


def from_leading_words(page: PageView) -> str | None:
    words = [word for word in _WORD.findall(page.text) if len(word) > 3]
    if not words:
        return None
    return " ".join(words[:FALLBACK_TITLE_WORDS])


TITLE_STRATEGIES = (
    from_site_container,
    from_first_heading,
    from_second_heading,
    from_title_attribute,
    from_crawler_title,
    from_leading_words,
)


def is_plausible_title(value: str) -> bool:
    return len(value) > MIN_TITLE_LENGTH


def extract_title(page: PageView) -> str | None:
    return first_accepted(TITLE_STRATEGIES, page, accept=is_plausible_title)


def _first_heading(page: PageView, tag_name: str, markdown_pattern: re.Pattern[str]) -> str | None:
    if page.soup is not None:
        candidate = element_text(page.soup.find(tag_name))
        if candidate:
            return candidate
    match = markdown_pattern.search(page.markup)
    if match:
        return clean_text(match.group(1)) or None
    return None


def _has_title_hint(element: Tag) -> bool:
    if element.name in {"html", "head", "title", "meta", "body"}:
        return False
    for attribute in _TITLE_HINT_ATTRIBUTES:
        value = element.get(attribute)
        if value is None:
            continue
        joined = " ".join(value) if isinstance(value, list) else str(value)
        if _TITLE_HINT.search(joined):
            return True
    return False
