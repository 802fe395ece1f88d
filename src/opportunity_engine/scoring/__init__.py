"""Client/opportunity compatibility scoring."""

from .engine import CompatibilityScorer, FactorResult, ScoreBreakdown, company_size_bucket
from .matcher import MatchGenerator

__all__ = [
    "CompatibilityScorer",
    "FactorResult",
    "MatchGenerator",
    "ScoreBreakdown",
    "company_size_bucket",
]
