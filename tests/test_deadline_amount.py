from __future__ import annotations

from datetime import date

import pytest

from opportunity_engine.config import ExtractionSettings
from opportunity_engine.extractors import (
    AmountExtractor,
    DeadlineExtractor,
    PageView,
    parse_italian_number,
)
from opportunity_engine.models import IssuerType

REFERENCE_DATE = date(2026, 10, 19)


def _view(text: str) -> PageView:
    return PageView.from_content("https://www.example.org/bandi/1", text)


def _deadline(text: str) -> date | None:
    match = DeadlineExtractor(ExtractionSettings(), REFERENCE_DATE).extract(_view(text))
    return match.value if match else None


def test_deadline_after_keyword_even_if_past() -> None:
    extractor = DeadlineExtractor(ExtractionSettings(), REFERENCE_DATE)

    match = extractor.extract(
        _view("Scadenza 30/06/2025. Contributo € 500.000 per PMI del settore agricolo.")
    )

    assert match is not None
    assert match.value == date(2025, 6, 30)
    assert match.raw == "30/06/2025"


def test_deadline_accepts_dot_separator_and_two_digit_year() -> None:
    assert _deadline("Termine ultimo: 15.03.27") == date(2027, 3, 15)


def test_invalid_calendar_date_is_skipped() -> None:
    assert _deadline("Scadenza 31/02/2027 oppure 28/02/2027") == date(2027, 2, 28)


def test_free_floating_date_must_be_in_the_future() -> None:
    text = (
        "Scadenza: vedere il regolamento. "
        + "x" * 200
        + " Pubblicato il 01/01/2020 e aggiornato il 05/05/2030"
    )

    assert _deadline(text) == date(2030, 5, 5)


def test_italian_month_name_near_keyword() -> None:
    extractor = DeadlineExtractor(ExtractionSettings(), REFERENCE_DATE)

    match = extractor.extract(_view("Domande entro il 12 marzo 2031."))

    assert match is not None
    assert match.value == date(2031, 3, 12)
    assert match.raw == "12 marzo 2031"


def test_month_name_without_keyword_is_ignored() -> None:
    assert _deadline("Evento del 12 marzo 2031.") is None


def test_no_deadline_returns_none() -> None:
    assert _deadline("Nessuna data indicata.") is None


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1.234.567,89", 1234567.89),
        ("500.000", 500000.0),
        ("2,5", 2.5),
        ("1.5", 1.5),
        ("1,000,000", 1000000.0),
        ("abc", None),
    ],
)
def test_parse_italian_number(raw: str, expected: float | None) -> None:
    assert parse_italian_number(raw) == expected


def test_single_amount_sets_max_and_derived_min() -> None:
    settings = ExtractionSettings()
    extractor = AmountExtractor(settings)

    amount = extractor.extract(
        _view("Scadenza 30/06/2025. Contributo € 500.000 per PMI del settore agricolo."),
        IssuerType.NATIONAL,
    )

    default_min = settings.default_amount_ranges[IssuerType.NATIONAL][0]
    assert amount.maximum == 500000
    assert amount.minimum == min(500000 / 5, default_min)
    assert amount.defaulted is False


def test_magnitude_word_multiplies_value() -> None:
    settings = ExtractionSettings()
    extractor = AmountExtractor(settings)

    amount = extractor.extract(
        _view("Il bando mette a disposizione 2 milioni di euro"), IssuerType.OTHER
    )

    default_min = settings.default_amount_ranges[IssuerType.OTHER][0]
    assert amount.maximum == 2_000_000
    assert amount.minimum == min(400_000, default_min)


def test_multiple_amounts_give_a_range() -> None:
    amount = AmountExtractor(ExtractionSettings()).extract(
        _view("Contributi da € 50.000 fino a € 250.000"), IssuerType.REGIONAL
    )

    assert amount.minimum == 50_000
    assert amount.maximum == 250_000
    assert amount.raw == "€ 250.000"


def test_billions_with_decimal_comma() -> None:
    amount = AmountExtractor(ExtractionSettings()).extract(
        _view("Dotazione di 1,5 miliardi di euro"), IssuerType.EUROPEAN
    )

    assert amount.maximum == 1_500_000_000


def test_financial_keyword_without_currency() -> None:
    amount = AmountExtractor(ExtractionSettings()).extract(
        _view("Importo massimo 75.000 per progetto"), IssuerType.OTHER
    )

    assert amount.maximum == 75_000


def test_year_after_financial_keyword_is_not_an_amount() -> None:
    settings = ExtractionSettings()
    extractor = AmountExtractor(settings)

    amount = extractor.extract(_view("Bando contributi 2026 per le imprese"), IssuerType.NATIONAL)

    assert amount.defaulted is True
    assert (amount.minimum, amount.maximum) == settings.default_amount_ranges[IssuerType.NATIONAL]
    assert extractor.extract(_view("Contributo 2026 euro"), IssuerType.NATIONAL).maximum == 2026


def test_percentages_fall_back_to_issuer_defaults() -> None:
    settings = ExtractionSettings()

    amount = AmountExtractor(settings).extract(
        _view("Contributo del 50% delle spese ammissibili"), IssuerType.REGIONAL
    )

    assert amount.defaulted is True
    assert (amount.minimum, amount.maximum) == settings.default_amount_ranges[IssuerType.REGIONAL]


@pytest.mark.parametrize(
    "text",
    [
        "Contributo € 1.000",
        "Fino a 3 mln di euro, minimo € 10.000",
        "Nessun importo",
        "Finanziamento di 20.000 euro e 15.000 euro",
    ],
)
@pytest.mark.parametrize("issuer_type", list(IssuerType))
def test_minimum_never_exceeds_maximum(text: str, issuer_type: IssuerType) -> None:
    amount = AmountExtractor(ExtractionSettings()).extract(_view(text), issuer_type)

    assert amount.minimum <= amount.maximum
