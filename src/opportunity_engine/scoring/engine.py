from __future__ import annotations

import math
from dataclasses import dataclass, field

from opportunity_engine.config import ScoringSettings
from opportunity_engine.models import ClientProfile, IssuerType, Opportunity

SMALL_COMPANY_MAX_EMPLOYEES = 50
SMALL_COMPANY_MAX_REVENUE = 10_000_000
MEDIUM_COMPANY_MAX_EMPLOYEES = 250
MEDIUM_COMPANY_MAX_REVENUE = 50_000_000


@dataclass(frozen=True, slots=True)
class FactorResult:
    name: str
    weight: float
    earned: float
    reason: str


@dataclass(slots=True)
class ScoreBreakdown:
    factors: list[FactorResult] = field(default_factory=list)

    @property
    def applicable_weight(self) -> float:
        return sum(factor.weight for factor in self.factors)

    @property
    def earned(self) -> float:
        return sum(factor.earned for factor in self.factors)

    @property
    def score(self) -> int:
        if self.applicable_weight <= 0:
            return 0
        raw = self.earned / self.applicable_weight * 100
        return max(0, min(100, math.floor(raw + 0.5)))

    def reason_text(self) -> str:
        if not self.factors:
            return "no applicable factors"
        return "; ".join(
            f"{factor.name} {factor.earned:g}/{factor.weight:g} ({factor.reason})"
            for factor in self.factors
        )


class CompatibilityScorer:
    """Weighted client/opportunity compatibility score in ``[0, 100]``.

    A factor only counts towards the denominator when the fields it needs are
    present on both sides, so missing data neither rewards nor punishes a pair.
    """

    def __init__(self, settings: ScoringSettings | None = None) -> None:
        self.settings = settings or ScoringSettings()

    def score(self, client: ClientProfile, opportunity: Opportunity) -> int:
        return self.breakdown(client, opportunity).score

    def breakdown(self, client: ClientProfile, opportunity: Opportunity) -> ScoreBreakdown:
        result = ScoreBreakdown()
        for factor in (
            self._sector_factor(client, opportunity),
            self._region_factor(client, opportunity),
            self._company_size_factor(client, opportunity),
            self._funding_factor(client, opportunity),
        ):
            if factor is not None:
                result.factors.append(factor)
        return result

    def _sector_factor(self, client: ClientProfile, opportunity: Opportunity) -> FactorResult | None:
        primary = (client.sector or "").strip().lower()
        sectors = [sector.strip().lower() for sector in opportunity.sectors if sector.strip()]
        if not primary or not sectors:
            return None

        weight = self.settings.sector_weight
        if any(_overlaps(primary, sector) for sector in sectors):
            return FactorResult("sector", weight, weight, f"primary sector {client.sector}")

        interests = [interest.strip().lower() for interest in client.sector_interests if interest.strip()]
        if any(_overlaps(interest, sector) for interest in interests for sector in sectors):
            return FactorResult(
                "sector",
                weight,
                weight * self.settings.sector_interest_ratio,
                "sector interest overlap",
            )
        return FactorResult("sector", weight, 0.0, "no sector overlap")

    def _region_factor(self, client: ClientProfile, opportunity: Opportunity) -> FactorResult | None:
        region = (client.region or "").strip()
        if not region or opportunity.issuer_type is None:
            return None

        weight = self.settings.region_weight
        if opportunity.issuer_type is IssuerType.REGIONAL:
            requirements = (opportunity.requirements or "").lower()
            if region.lower() in requirements:
                return FactorResult("region", weight, weight, f"open to {region}")
            return FactorResult(
                "region",
                weight,
                -weight * self.settings.region_penalty_ratio,
                f"regional call not mentioning {region}",
            )
        if opportunity.issuer_type in (IssuerType.NATIONAL, IssuerType.EUROPEAN):
            return FactorResult(
                "region",
                weight,
                weight * self.settings.region_flat_ratio,
                f"{opportunity.issuer_type.value} call without regional restriction",
            )
        return FactorResult("region", weight, 0.0, "issuer level unknown")

    def _company_size_factor(
        self, client: ClientProfile, opportunity: Opportunity
    ) -> FactorResult | None:
        requirements = (opportunity.requirements or "").lower()
        if client.revenue is None or client.employee_count is None or not requirements.strip():
            return None

        weight = self.settings.company_size_weight
        bucket = company_size_bucket(client.revenue, client.employee_count)
        terms = self.settings.size_terms.get(bucket, [])
        if any(term.lower() in requirements for term in terms):
            return FactorResult("company_size", weight, weight, f"{bucket} companies eligible")
        return FactorResult("company_size", weight, 0.0, f"no {bucket}-company terms")

    def _funding_factor(self, client: ClientProfile, opportunity: Opportunity) -> FactorResult | None:
        if client.revenue is None or opportunity.amount_max is None:
            return None

        weight = self.settings.funding_weight
        threshold = self.relevance_threshold(client.revenue)
        if opportunity.amount_max >= threshold:
            return FactorResult("funding", weight, weight, f"max amount >= {threshold:g}")
        return FactorResult("funding", weight, 0.0, f"max amount < {threshold:g}")

    def relevance_threshold(self, revenue: float) -> float:
        for ceiling, minimum_amount in self.settings.funding_bands:
            if ceiling is None or revenue < ceiling:
                return minimum_amount
        return self.settings.funding_bands[-1][1]


def company_size_bucket(revenue: float, employee_count: int) -> str:
    if employee_count < SMALL_COMPANY_MAX_EMPLOYEES and revenue <= SMALL_COMPANY_MAX_REVENUE:
        return "small"
    if employee_count < MEDIUM_COMPANY_MAX_EMPLOYEES and revenue <= MEDIUM_COMPANY_MAX_REVENUE:
        return "medium"
    return "large"


def _overlaps(left: str, right: str) -> bool:
    return left in right or right in left
