from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from opportunity_engine.config import ScoringSettings
from opportunity_engine.models import ClientProfile, IssuerType, Opportunity
from opportunity_engine.scoring import CompatibilityScorer, company_size_bucket

FIXED_NOW = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


def _opportunity(**overrides) -> Opportunity:
    opportunity = Opportunity(
        id="opp-test",
        title="Bando Test",
        source_name="MIMIT",
        source_url="https://www.mimit.gov.it/it/incentivi/test",
        issuer_type=None,
        sectors=("Altro",),
        description="Bando di prova",
        extraction_date=FIXED_NOW,
    )
    return replace(opportunity, **overrides)


def test_national_call_in_primary_sector() -> None:
    scorer = CompatibilityScorer()
    client = ClientProfile(id="c1", sector="Tecnologia", region="Lombardia")
    opportunity = _opportunity(issuer_type=IssuerType.NATIONAL, sectors=("Tecnologia", "Startup"))

    breakdown = scorer.breakdown(client, opportunity)

    assert breakdown.applicable_weight == 70
    assert breakdown.earned == pytest.approx(60)
    assert scorer.score(client, opportunity) == 86


def test_regional_call_for_another_region_is_penalized() -> None:
    scorer = CompatibilityScorer()
    client = ClientProfile(id="c1", sector="Tecnologia", region="Lombardia")
    opportunity = _opportunity(
        issuer_type=IssuerType.REGIONAL,
        sectors=("Tecnologia",),
        requirements="Possono partecipare le imprese con sede in Veneto.",
    )

    assert scorer.score(client, opportunity) == 29


def test_regional_call_open_to_client_region() -> None:
    scorer = CompatibilityScorer()
    client = ClientProfile(id="c1", sector="Tecnologia", region="Lombardia")
    opportunity = _opportunity(
        issuer_type=IssuerType.REGIONAL,
        sectors=("Tecnologia",),
        requirements="Imprese con sede operativa in Lombardia.",
    )

    assert scorer.score(client, opportunity) == 100


def test_sector_interest_earns_reduced_credit_with_half_up_rounding() -> None:
    scorer = CompatibilityScorer()
    client = ClientProfile(id="c1", sector="Turismo", sector_interests=["Startup"])
    opportunity = _opportunity(sectors=("Tecnologia", "Startup"))

    breakdown = scorer.breakdown(client, opportunity)

    assert breakdown.earned == pytest.approx(25)
    assert breakdown.score == 63


def test_no_applicable_factor_scores_zero() -> None:
    scorer = CompatibilityScorer()
    breakdown = scorer.breakdown(ClientProfile(id="c1"), _opportunity())

    assert breakdown.factors == []
    assert breakdown.score == 0
    assert breakdown.reason_text() == "no applicable factors"


def test_unknown_issuer_level_counts_region_without_credit() -> None:
    scorer = CompatibilityScorer()
    client = ClientProfile(id="c1", sector="Tecnologia", region="Lombardia")
    opportunity = _opportunity(issuer_type=IssuerType.OTHER, sectors=("Tecnologia",))

    assert scorer.score(client, opportunity) == 57


def test_company_size_terms_in_requirements() -> None:
    scorer = CompatibilityScorer()
    requirements = "Destinatari: micro, piccole e medie imprese (PMI)"
    small = ClientProfile(id="small", revenue=2_000_000, employee_count=10)
    large = ClientProfile(id="large", revenue=100_000_000, employee_count=600)
    opportunity = _opportunity(requirements=requirements)

    assert scorer.score(small, opportunity) == 100
    assert scorer.score(large, opportunity) == 0


def test_funding_relevance_depends_on_revenue_band() -> None:
    scorer = CompatibilityScorer()
    client = ClientProfile(id="c1", revenue=5_000_000)

    assert scorer.score(client, _opportunity(amount_max=40_000)) == 0
    assert scorer.score(client, _opportunity(amount_max=60_000)) == 100


@pytest.mark.parametrize(
    ("revenue", "expected"),
    [(500_000, 10_000), (5_000_000, 50_000), (20_000_000, 200_000), (80_000_000, 1_000_000)],
)
def test_relevance_threshold_bands(revenue: float, expected: float) -> None:
    assert CompatibilityScorer().relevance_threshold(revenue) == expected


@pytest.mark.parametrize(
    ("revenue", "employees", "bucket"),
    [
        (2_000_000, 10, "small"),
        (10_000_000, 49, "small"),
        (20_000_000, 49, "medium"),
        (5_000_000, 120, "medium"),
        (60_000_000, 100, "large"),
        (5_000_000, 300, "large"),
    ],
)
def test_company_size_bucket(revenue: float, employees: int, bucket: str) -> None:
    assert company_size_bucket(revenue, employees) == bucket


def test_adding_client_sector_never_lowers_score() -> None:
    scorer = CompatibilityScorer()
    client = ClientProfile(id="c1", sector="Tecnologia", region="Lombardia")
    before = _opportunity(issuer_type=IssuerType.REGIONAL, sectors=("Energia",))
    after = replace(before, sectors=("Energia", "Tecnologia"))

    assert scorer.score(client, before) == 0
    assert scorer.score(client, after) == 29
    assert scorer.score(client, after) >= scorer.score(client, before)


def test_scores_stay_within_bounds() -> None:
    scorer = CompatibilityScorer()
    clients = [
        ClientProfile(id="a"),
        ClientProfile(id="b", sector="Agricoltura", region="Sicilia"),
        ClientProfile(id="c", sector="Tecnologia", revenue=1e9, employee_count=5000),
        ClientProfile(id="d", sector="Turismo", sector_interests=["Cultura"], revenue=0, employee_count=1),
    ]
    opportunities = [
        _opportunity(),
        _opportunity(issuer_type=IssuerType.REGIONAL, requirements="solo grandi imprese"),
        _opportunity(issuer_type=IssuerType.EUROPEAN, sectors=("Cultura",), amount_max=1e7),
        _opportunity(issuer_type=IssuerType.NATIONAL, sectors=("Agricoltura",), amount_max=1.0),
    ]

    for client in clients:
        for opportunity in opportunities:
            assert 0 <= scorer.score(client, opportunity) <= 100


def test_weights_are_configurable() -> None:
    scorer = CompatibilityScorer(ScoringSettings(sector_weight=10, region_weight=90))
    client = ClientProfile(id="c1", sector="Tecnologia", region="Lombardia")
    opportunity = _opportunity(issuer_type=IssuerType.NATIONAL, sectors=("Tecnologia",))

    assert scorer.score(client, opportunity) == 70
