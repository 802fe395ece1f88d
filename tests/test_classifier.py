from __future__ import annotations

from opportunity_engine.classifier import KeywordPageClassifier
from opportunity_engine.config import ClassifierSettings
from opportunity_engine.models import CrawledPage


def _page(content: str, url: str = "https://www.example.org/news/agri") -> CrawledPage:
    return CrawledPage(url=url, content=content)


def test_classifies_page_with_three_distinct_keywords() -> None:
    classifier = KeywordPageClassifier()

    result = classifier.evaluate(
        _page("<p>Scadenza 30/06/2025. Contributo € 500.000 per PMI del settore agricolo.</p>")
    )

    assert result.matched is True
    assert "keywords (3)" in result.reason_text()


def test_deadline_currency_and_beneficiary_terms_trigger_classification() -> None:
    classifier = KeywordPageClassifier()

    result = classifier.evaluate(
        _page("Le aziende possono presentare domanda entro il 10/10/2030. Disponibili 200.000 euro.")
    )

    assert result.matched is True
    assert "deadline+currency+beneficiary" in result.reason_text()


def test_known_issuer_path_forces_classification() -> None:
    classifier = KeywordPageClassifier()

    result = classifier.evaluate(
        _page("Pagina informativa", url="https://www.mimit.gov.it/it/incentivi/nuova-sabatini")
    )

    assert result.matched is True
    assert "url path override: /incentivi/" in result.reason_text()


def test_unrelated_page_is_not_classified() -> None:
    classifier = KeywordPageClassifier()

    assert classifier.classify(_page("Orari di apertura della biblioteca comunale.")) is False


def test_empty_content_is_rejected_without_error() -> None:
    classifier = KeywordPageClassifier()

    result = classifier.evaluate(_page("   "))

    assert result.matched is False
    assert result.reason_text() == "empty content"


def test_keyword_threshold_is_configurable() -> None:
    classifier = KeywordPageClassifier(ClassifierSettings(min_distinct_keywords=5))

    result = classifier.evaluate(
        _page("<p>Scadenza 30/06/2025. Contributo € 500.000 per PMI del settore agricolo.</p>")
    )

    assert result.matched is False
    assert "only 3 keyword(s)" in result.reason_text()
