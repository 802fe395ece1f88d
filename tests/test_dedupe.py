from __future__ import annotations

from datetime import date, datetime, timezone

from opportunity_engine.classifier import ClassificationResult, KeywordPageClassifier, PageClassifier
from opportunity_engine.dedupe import BatchDeduplicator
from opportunity_engine.extractors import OpportunityExtractor
from opportunity_engine.models import (
    FAR_FUTURE_DEADLINE,
    CrawledPage,
    CrawlResult,
    IssuerType,
    Opportunity,
    Provenance,
)
from opportunity_engine.service import ExtractionService

FIXED_NOW = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


class AlwaysOpportunityClassifier(PageClassifier):
    def evaluate(self, page: CrawledPage) -> ClassificationResult:
        return ClassificationResult(matched=True, reasons=["test match"])


class ExplodingExtractor(OpportunityExtractor):
    def extract(self, page: CrawledPage) -> Opportunity | None:
        if "boom" in page.url:
            raise RuntimeError("broken markup")
        return super().extract(page)


def _service(classifier: PageClassifier | None = None) -> ExtractionService:
    return ExtractionService(
        classifier=classifier or KeywordPageClassifier(),
        extractor=OpportunityExtractor(extraction_time=FIXED_NOW),
    )


def _batch(*pages: CrawledPage) -> CrawlResult:
    return CrawlResult(pages=list(pages))


def test_same_title_and_source_collapse_to_first() -> None:
    service = _service()
    first = CrawledPage(
        url="https://www.example.org/bandi/x-1",
        content="<h1>Bando X</h1><p>Contributo per imprese.</p>",
    )
    second = CrawledPage(
        url="https://www.example.org/bandi/x-2",
        content="<h1>bando  x </h1><p>Contributo per imprese.</p>",
    )

    report = service.run(_batch(first, second))

    assert len(report.opportunities) == 1
    assert report.opportunities[0].source_url == "https://www.example.org/bandi/x-1"
    assert report.stats.duplicates == 1


def test_same_url_is_kept_once() -> None:
    service = _service()
    page_a = CrawledPage(url="https://www.example.org/bandi/y", content="<h1>Bando Y</h1>")
    page_b = CrawledPage(url="https://www.example.org/bandi/y/", content="<h1>Bando Y bis</h1>")

    report = service.run(_batch(page_a, page_b))

    assert [opportunity.title for opportunity in report.opportunities] == ["Bando Y"]


def test_rerunning_a_batch_gives_the_same_fingerprints() -> None:
    pages = [
        CrawledPage(url="https://www.example.org/bandi/a", content="<h1>Bando A</h1>"),
        CrawledPage(url="https://www.example.org/bandi/b", content="<h1>Bando B</h1>"),
        CrawledPage(url="https://www.example.org/bandi/c", content="<h1>bando a</h1>"),
    ]

    first = _service().run(_batch(*pages))
    second = _service().run(_batch(*pages))

    assert first.fingerprints == second.fingerprints
    assert [item.id for item in first.opportunities] == [item.id for item in second.opportunities]


def test_deduplicator_tracks_fingerprints() -> None:
    deduplicator = BatchDeduplicator()
    opportunity = Opportunity(
        id="opp-1",
        title="Bando Z",
        source_name="Invitalia",
        source_url="https://www.invitalia.it/z",
        issuer_type=IssuerType.NATIONAL,
        sectors=(),
        description="Bando Z",
        extraction_date=FIXED_NOW,
    )

    assert deduplicator.admit(opportunity) is True
    assert deduplicator.admit(opportunity) is False
    assert deduplicator.fingerprints == {"bando z|invitalia"}
    assert len(deduplicator) == 1
    assert opportunity.sectors == ("Altro",)


def test_stats_count_each_outcome() -> None:
    service = _service()
    report = service.run(
        _batch(
            CrawledPage(url="https://www.example.org/empty", content="  "),
            CrawledPage(url="https://www.example.org/info", content="Orari della biblioteca."),
            CrawledPage(url="https://www.example.org/bandi/numeri", content="123 456"),
            CrawledPage(url="https://www.example.org/bandi/ok", content="<h1>Bando Ok</h1>"),
        )
    )

    stats = report.stats
    assert stats.processed == 4
    assert stats.ignored == 1
    assert stats.not_classified == 1
    assert stats.classified == 2
    assert stats.skipped == 1
    assert stats.extracted == 1
    assert stats.ok is True


def test_failing_page_does_not_abort_the_batch() -> None:
    service = ExtractionService(
        classifier=AlwaysOpportunityClassifier(),
        extractor=ExplodingExtractor(extraction_time=FIXED_NOW),
    )

    report = service.run(
        _batch(
            CrawledPage(url="https://www.example.org/boom", content="<h1>Bando Rotto</h1>"),
            CrawledPage(url="https://www.example.org/fine", content="<h1>Bando Buono</h1>"),
        )
    )

    assert [item.title for item in report.opportunities] == ["Bando Buono"]
    assert len(report.stats.errors) == 1
    assert "https://www.example.org/boom" in report.stats.errors[0]
    assert report.stats.ok is False


_LISTING = (
    "<ul>"
    '<li><a href="/it/incentivi/voucher-3i">Voucher 3I per le startup</a></li>'
    '<li><a href="/it/contatti">Contatti</a></li>'
    '<li><a href="https://www.mimit.gov.it/it/incentivi/fondo-crescita">'
    "Fondo crescita sostenibile</a></li>"
    "</ul>"
)


def test_link_fallback_runs_when_known_source_yields_nothing() -> None:
    service = _service()

    report = service.run(
        _batch(CrawledPage(url="https://www.mimit.gov.it/it/elenco", content=_LISTING))
    )

    assert report.stats.not_classified == 1
    assert report.stats.fallback_generated == 2
    urls = [item.source_url for item in report.opportunities]
    assert urls == [
        "https://www.mimit.gov.it/it/incentivi/voucher-3i",
        "https://www.mimit.gov.it/it/incentivi/fondo-crescita",
    ]
    for item in report.opportunities:
        assert item.provenance is Provenance.FALLBACK_LINK
        assert item.is_fallback is True
        assert item.confidence == 0.3
        assert item.issuer_type is IssuerType.NATIONAL
        assert item.sectors == ("Altro",)
        assert item.deadline == FAR_FUTURE_DEADLINE
        assert (item.amount_min, item.amount_max) == (20_000.0, 1_000_000.0)


def test_link_fallback_skipped_when_primary_extraction_succeeds() -> None:
    service = _service()

    report = service.run(
        _batch(
            CrawledPage(
                url="https://www.mimit.gov.it/it/incentivi/macchinari",
                content="<h1>Nuova Sabatini</h1><p>Scadenza 31/12/2030.</p>",
            ),
            CrawledPage(url="https://www.mimit.gov.it/it/elenco", content=_LISTING),
        )
    )

    assert report.stats.fallback_generated == 0
    assert [item.title for item in report.opportunities] == ["Nuova Sabatini"]
    assert report.opportunities[0].deadline == date(2030, 12, 31)
    assert report.opportunities[0].provenance is Provenance.PRIMARY


def test_unknown_source_never_uses_link_fallback() -> None:
    service = _service()

    report = service.run(
        _batch(CrawledPage(url="https://www.example.org/elenco", content=_LISTING))
    )

    assert report.opportunities == []
    assert report.stats.fallback_generated == 0


def test_link_fallback_reads_anchor_text_across_nested_markup() -> None:
    service = _service()
    listing = (
        "<div class='card'>"
        "<a class=\"card-link\" title='Apri' href='/it/incentivi/brevetti'>"
        "<span>Bando</span> <em>Brevetti+</em></a>"
        "</div>"
    )

    report = service.run(
        _batch(CrawledPage(url="https://www.mimit.gov.it/it/elenco", content=listing))
    )

    assert [item.title for item in report.opportunities] == ["Bando Brevetti+"]
    assert report.opportunities[0].source_url == "https://www.mimit.gov.it/it/incentivi/brevetti"
