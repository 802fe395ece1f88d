from __future__ import annotations

import logging
import re
from datetime import datetime

from opportunity_engine.config import ExtractionSettings
from opportunity_engine.extractors.issuer import classify_issuer
from opportunity_engine.extractors.text import clean_text, element_text, parse_markup
from opportunity_engine.models import (
    FAR_FUTURE_DEADLINE,
    CrawledPage,
    IssuerType,
    Opportunity,
    Provenance,
    Sector,
    build_fingerprint,
    opportunity_id_for,
)
from opportunity_engine.utils.datetime_utils import utc_now
from opportunity_engine.utils.url_utils import canonicalize_url, host_matches, resolve_link

logger = logging.getLogger(__name__)

_MARKDOWN_LINK = re.compile(r"(?<!!)\[([^\]]+)\]\(\s*([^)\s]+)[^)]*\)")

OPPORTUNITY_LINK_KEYWORDS = (
    "bando",
    "bandi",
    "incentiv",
    "agevolazion",
    "contribut",
    "finanziament",
    "voucher",
    "avviso",
    "fondo",
    "call for",
)
_IGNORED_HREF_PREFIXES = ("#", "mailto:", "javascript:", "tel:")


class BatchDeduplicator:
    """Rejects candidates whose URL or fingerprint was already seen in the batch.

    The first candidate seen wins; later duplicates are discarded, not merged.
    """

    def __init__(self) -> None:
        self._seen_urls: set[str] = set()
        self._seen_fingerprints: set[str] = set()

    def admit(self, opportunity: Opportunity) -> bool:
        url = canonicalize_url(opportunity.source_url)
        fingerprint = opportunity.fingerprint

        if url in self._seen_urls or fingerprint in self._seen_fingerprints:
            logger.debug(
                "discarding duplicate %s (fingerprint %s)",
                opportunity.source_url,
                fingerprint,
            )
            return False

        if url:
            self._seen_urls.add(url)
        self._seen_fingerprints.add(fingerprint)
        return True

    @property
    def fingerprints(self) -> set[str]:
        return set(self._seen_fingerprints)

    def __len__(self) -> int:
        return len(self._seen_fingerprints)


def fallback_source_for(url: str, settings: ExtractionSettings) -> str | None:
    for domain in settings.fallback_sources:
        if host_matches(url, domain):
            return domain
    return None


class LinkFallbackExtractor:
    """Synthesizes low-confidence opportunities from listing-page links.

    Used only for known hard-to-parse sources whose primary pass produced
    nothing. Every record is tagged ``Provenance.FALLBACK_LINK``.
    """

    def __init__(
        self,
        settings: ExtractionSettings | None = None,
        *,
        extraction_time: datetime | None = None,
    ) -> None:
        self.settings = settings or ExtractionSettings()
        self.extraction_time = extraction_time or utc_now()

    def extract(self, page: CrawledPage) -> list[Opportunity]:
        issuer = classify_issuer(page.url, "")
        amount_min, amount_max = self.settings.default_amount_ranges.get(
            issuer.issuer_type,
            self.settings.default_amount_ranges[IssuerType.OTHER],
        )

        opportunities: list[Opportunity] = []
        for text, href in _iter_links(page.content):
            if href.lower().startswith(_IGNORED_HREF_PREFIXES):
                continue
            lowered = text.lower()
            if len(text) <= 3 or not any(keyword in lowered for keyword in OPPORTUNITY_LINK_KEYWORDS):
                continue

            fingerprint = build_fingerprint(text, issuer.source_name)
            opportunities.append(
                Opportunity(
                    id=opportunity_id_for(fingerprint),
                    title=text,
                    source_name=issuer.source_name,
                    source_url=resolve_link(page.url, href),
                    issuer_type=issuer.issuer_type,
                    sectors=(Sector.OTHER.value,),
                    description=text,
                    extraction_date=self.extraction_time,
                    deadline=FAR_FUTURE_DEADLINE,
                    amount_min=amount_min,
                    amount_max=amount_max,
                    provenance=Provenance.FALLBACK_LINK,
                    confidence=self.settings.fallback_confidence,
                )
            )

        logger.debug("link fallback found %d candidates on %s", len(opportunities), page.url)
        return opportunities


def _iter_links(content: str) -> list[tuple[str, str]]:
    links: list[tuple[str, str]] = []
    for anchor in parse_markup(content).find_all("a", href=True):
        links.append((element_text(anchor), str(anchor["href"]).strip()))
    for match in _MARKDOWN_LINK.finditer(content):
        links.append((clean_text(match.group(1)), match.group(2).strip()))
    return links
