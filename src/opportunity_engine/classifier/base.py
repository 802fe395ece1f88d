from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from opportunity_engine.models import CrawledPage


@dataclass(slots=True)
class ClassificationResult:
    matched: bool
    reasons: list[str] = field(default_factory=list)

    def reason_text(self) -> str:
        return "; ".join(self.reasons) if self.reasons else "no specific reason"


class PageClassifier(ABC):
    @abstractmethod
    def evaluate(self, page: CrawledPage) -> ClassificationResult:
        """Decide whether a page describes a funding opportunity, with reasons."""

    def classify(self, page: CrawledPage) -> bool:
        return self.evaluate(page).matched
