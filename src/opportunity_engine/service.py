from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field

from opportunity_engine.classifier import PageClassifier
from opportunity_engine.config import ExtractionSettings
from opportunity_engine.dedupe import BatchDeduplicator, LinkFallbackExtractor, fallback_source_for
from opportunity_engine.extractors import OpportunityExtractor
from opportunity_engine.models import ClientProfile, CrawledPage, CrawlResult, MatchScore, Opportunity
from opportunity_engine.scoring import MatchGenerator
from opportunity_engine.store import Store

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ExtractionStats:
    processed: int = 0
    ignored: int = 0
    not_classified: int = 0
    classified: int = 0
    extracted: int = 0
    skipped: int = 0
    duplicates: int = 0
    fallback_generated: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass(slots=True)
class ExtractionReport:
    opportunities: list[Opportunity] = field(default_factory=list)
    stats: ExtractionStats = field(default_factory=ExtractionStats)

    @property
    def fingerprints(self) -> set[str]:
        return {opportunity.fingerprint for opportunity in self.opportunities}


@dataclass(slots=True)
class RunStats:
    extraction: ExtractionStats = field(default_factory=ExtractionStats)
    saved_opportunities: int = 0
    already_stored: int = 0
    matches_saved: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors and self.extraction.ok


class ExtractionService:
    def __init__(
        self,
        *,
        classifier: PageClassifier,
        extractor: OpportunityExtractor,
        fallback_extractor: LinkFallbackExtractor | None = None,
        settings: ExtractionSettings | None = None,
    ) -> None:
        self.classifier = classifier
        self.extractor = extractor
        self.settings = settings or extractor.settings
        self.fallback_extractor = fallback_extractor or LinkFallbackExtractor(
            self.settings,
            extraction_time=extractor.extraction_time,
        )

    def run(self, crawl_result: CrawlResult) -> ExtractionReport:
        report = ExtractionReport()
        stats = report.stats
        deduplicator = BatchDeduplicator()
        fallback_pages: dict[str, list[CrawledPage]] = defaultdict(list)
        primary_counts: dict[str, int] = defaultdict(int)

        for page in crawl_result.pages:
            stats.processed += 1

            if not page.content or not page.content.strip():
                stats.ignored += 1
                continue

            fallback_domain = fallback_source_for(page.url, self.settings)
            if fallback_domain is not None:
                fallback_pages[fallback_domain].append(page)

            try:
                if not self.classifier.classify(page):
                    stats.not_classified += 1
                    continue
                stats.classified += 1
                opportunity = self.extractor.extract(page)
            except Exception as exc:  # noqa: BLE001
                message = f"extraction failed for {page.url}: {exc}"
                logger.exception(message)
                stats.errors.append(message)
                continue

            if opportunity is None:
                stats.skipped += 1
                continue

            stats.extracted += 1
            if fallback_domain is not None:
                primary_counts[fallback_domain] += 1
            self._admit(opportunity, deduplicator, report)

        for domain, pages in fallback_pages.items():
            if primary_counts[domain]:
                continue
            logger.info(
                "Primary pass found nothing for %s; scanning %d page(s) for links",
                domain,
                len(pages),
            )
            for page in pages:
                try:
                    candidates = self.fallback_extractor.extract(page)
                except Exception as exc:  # noqa: BLE001
                    message = f"link fallback failed for {page.url}: {exc}"
                    logger.exception(message)
                    stats.errors.append(message)
                    continue
                for candidate in candidates:
                    if self._admit(candidate, deduplicator, report):
                        stats.fallback_generated += 1

        logger.info(
            "Extraction complete | processed=%d classified=%d extracted=%d ignored=%d "
            "skipped=%d duplicates=%d fallback=%d errors=%d",
            stats.processed,
            stats.classified,
            stats.extracted,
            stats.ignored,
            stats.skipped,
            stats.duplicates,
            stats.fallback_generated,
            len(stats.errors),
        )
        return report

    @staticmethod
    def _admit(
        opportunity: Opportunity,
        deduplicator: BatchDeduplicator,
        report: ExtractionReport,
    ) -> bool:
        if not deduplicator.admit(opportunity):
            report.stats.duplicates += 1
            return False
        report.opportunities.append(opportunity)
        return True


class OpportunityEngine:
    """Extracts a crawl batch, persists it and generates matches for new opportunities."""

    def __init__(
        self,
        *,
        extraction: ExtractionService,
        matcher: MatchGenerator,
        store: Store,
    ) -> None:
        self.extraction = extraction
        self.matcher = matcher
        self.store = store

    def run_once(self, crawl_result: CrawlResult, clients: list[ClientProfile]) -> RunStats:
        stats = RunStats()
        report = self.extraction.run(crawl_result)
        stats.extraction = report.stats

        for opportunity in report.opportunities:
            try:
                inserted = self.store.save_opportunity(opportunity)
            except Exception as exc:  # noqa: BLE001
                message = f"failed to save opportunity {opportunity.id}: {exc}"
                logger.exception(message)
                stats.errors.append(message)
                continue
            if inserted:
                stats.saved_opportunities += 1
            else:
                stats.already_stored += 1

            try:
                matches = self.matcher.generate_for_opportunity(opportunity, clients)
            except Exception as exc:  # noqa: BLE001
                message = f"match generation failed for {opportunity.id}: {exc}"
                logger.exception(message)
                stats.errors.append(message)
                continue
            stats.matches_saved += len(matches)

        return stats

    def rescore(self, clients: list[ClientProfile]) -> list[MatchScore]:
        """Recompute matches for every stored opportunity and upsert them."""
        matches = self.matcher.generate(clients, self.store.list_opportunities())
        saved: list[MatchScore] = []
        for match in matches:
            if self.store.save_match(match):
                saved.append(match)
        return saved
