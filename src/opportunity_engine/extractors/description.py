from __future__ import annotations

import re

from bs4 import Tag

from opportunity_engine.utils.url_utils import host_matches

from .chain import first_accepted
from .text import PageView, element_text, normalize_whitespace, truncate, window_after

SITE_CONTENT_SELECTORS: dict[str, list[str]] = {
    "mimit.gov.it": ["div.item-page", 'div[itemprop="articleBody"]'],
    "mise.gov.it": ['div[itemprop="articleBody"]'],
    "invitalia.it": ["div.abstract", "div.intro"],
    "regione.lombardia.it": ["div.descrizione"],
    "ec.europa.eu": ["div.topic-description"],
}

_SENTENCE_SPLIT = re.compile(r"(?<=[.!?;])\s+|\n+")

MIN_DESCRIPTION_LENGTH = 30
DESCRIPTION_LIMIT = 500
RAW_FALLBACK_LIMIT = 300
FULL_DESCRIPTION_LIMIT = 5000
SENTENCES_IN_DESCRIPTION = 4

REQUIREMENTS_HEADINGS = [
    "requisiti",
    "beneficiari",
    "soggetti ammissibili",
    "destinatari",
    "chi può partecipare",
]
REQUIREMENTS_LIMIT = 600

SUBMISSION_HEADINGS = [
    "modalità di presentazione",
    "presentazione della domanda",
    "come presentare",
    "come partecipare",
]
SUBMISSION_LIMIT = 400


def from_site_container(page: PageView) -> str | None:
    if page.soup is None:
        return None
    for domain, selectors in SITE_CONTENT_SELECTORS.items():
        if not host_matches(page.url, domain):
            continue
        for selector in selectors:
            container = page.soup.select_one(selector)
            if container is None:
                continue
            candidate = _container_text(container)
            if len(candidate) > MIN_DESCRIPTION_LENGTH:
                return truncate(candidate, DESCRIPTION_LIMIT, suffix="")
    return None


def from_leading_sentences(page: PageView) -> str | None:
    sentences = [
        normalize_whitespace(segment)
        for segment in _SENTENCE_SPLIT.split(page.text)
        if len(segment.strip()) > MIN_DESCRIPTION_LENGTH
    ]
    if not sentences:
        return None
    return truncate(" ".join(sentences[:SENTENCES_IN_DESCRIPTION]), DESCRIPTION_LIMIT)


def from_raw_prefix(page: PageView) -> str | None:
    if not page.markup:
        return None
    return f"{page.markup[:RAW_FALLBACK_LIMIT]}..."


def is_plausible_description(value: str) -> bool:
    return len(value) > MIN_DESCRIPTION_LENGTH


def extract_description(page: PageView) -> str | None:
    description = first_accepted(
        (from_site_container, from_leading_sentences),
        page,
        accept=is_plausible_description,
    )
    return description or from_raw_prefix(page)


def extract_full_description(page: PageView) -> str | None:
    text = normalize_whitespace(page.text)
    if not text:
        return None
    return truncate(text, FULL_DESCRIPTION_LIMIT)


def extract_requirements(page: PageView) -> str | None:
    return _section(page.text, REQUIREMENTS_HEADINGS, REQUIREMENTS_LIMIT)


def extract_submission_mode(page: PageView) -> str | None:
    return _section(page.text, SUBMISSION_HEADINGS, SUBMISSION_LIMIT)


def _section(text: str, headings: list[str], limit: int) -> str | None:
    section = window_after(text, headings, limit)
    if section is None:
        return None
    return normalize_whitespace(section) or None


def _container_text(container: Tag) -> str:
    paragraphs = [element_text(paragraph) for paragraph in container.find_all(["p", "li"])]
    paragraphs = [text for text in paragraphs if text]
    if paragraphs:
        return " ".join(paragraphs)
    return element_text(container)
