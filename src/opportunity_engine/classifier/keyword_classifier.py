from __future__ import annotations

import logging

from opportunity_engine.config import ClassifierSettings
from opportunity_engine.models import CrawledPage

from .base import ClassificationResult, PageClassifier

logger = logging.getLogger(__name__)


class KeywordPageClassifier(PageClassifier):
    def __init__(self, settings: ClassifierSettings | None = None) -> None:
        self.settings = settings or ClassifierSettings()

    def evaluate(self, page: CrawledPage) -> ClassificationResult:
        content = page.content or ""
        if not content.strip():
            return ClassificationResult(matched=False, reasons=["empty content"])

        forced_path = _find_forced_path(self.settings.forced_url_paths, page.url)
        if forced_path:
            result = ClassificationResult(
                matched=True,
                reasons=[f"url path override: {forced_path}"],
            )
            _log_decision(page, result)
            return result

        lowered = content.lower()
        hits = _distinct_hits(
            [*self.settings.general_keywords, *self.settings.procedural_keywords],
            lowered,
        )
        if len(hits) >= self.settings.min_distinct_keywords:
            result = ClassificationResult(
                matched=True,
                reasons=[f"keywords ({len(hits)}): {', '.join(hits)}"],
            )
            _log_decision(page, result)
            return result

        deadline_hits = _distinct_hits(self.settings.deadline_terms, lowered)
        currency_hits = _distinct_hits(self.settings.currency_terms, lowered)
        beneficiary_hits = _distinct_hits(self.settings.beneficiary_terms, lowered)
        if deadline_hits and currency_hits and beneficiary_hits:
            result = ClassificationResult(
                matched=True,
                reasons=[
                    "deadline+currency+beneficiary terms: "
                    f"{deadline_hits[0]}, {currency_hits[0].strip()}, {beneficiary_hits[0]}"
                ],
            )
            _log_decision(page, result)
            return result

        result = ClassificationResult(
            matched=False,
            reasons=[
                f"only {len(hits)} keyword(s) "
                f"(< {self.settings.min_distinct_keywords}) and no deadline/currency/beneficiary triple"
            ],
        )
        _log_decision(page, result)
        return result


def _distinct_hits(keywords: list[str], lowered_content: str) -> list[str]:
    hits: list[str] = []
    seen: set[str] = set()
    for keyword in keywords:
        normalized = keyword.lower()
        if not normalized.strip() or normalized in seen:
            continue
        seen.add(normalized)
        if normalized in lowered_content:
            hits.append(keyword)
    return hits


def _find_forced_path(paths: list[str], url: str) -> str | None:
    lowered_url = (url or "").lower()
    for path in paths:
        if path and path.lower() in lowered_url:
            return path
    return None


def _log_decision(page: CrawledPage, result: ClassificationResult) -> None:
    logger.debug(
        "classified %s as %s (%s)",
        page.url,
        "opportunity" if result.matched else "non-opportunity",
        result.reason_text(),
    )
