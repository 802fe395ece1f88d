from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from opportunity_engine.utils.url_utils import stable_hash

FAR_FUTURE_DEADLINE = date(2099, 12, 31)

_MULTISPACE = re.compile(r"\s+")


class IssuerType(str, Enum):
    EUROPEAN = "european"
    NATIONAL = "national"
    REGIONAL = "regional"
    OTHER = "other"


class Sector(str, Enum):
    AGRICULTURE = "Agricoltura"
    TECHNOLOGY = "Tecnologia"
    ENERGY = "Energia"
    INDUSTRY = "Industria"
    STARTUP = "Startup"
    TOURISM = "Turismo"
    CULTURE = "Cultura"
    HEALTH = "Sanità"
    TRAINING = "Formazione"
    ENVIRONMENT = "Ambiente"
    COMMERCE = "Commercio"
    RESEARCH = "Ricerca"
    OTHER = "Altro"


class Provenance(str, Enum):
    PRIMARY = "primary"
    FALLBACK_LINK = "fallback_link"


@dataclass(frozen=True, slots=True)
class CrawledPage:
    url: str
    content: str
    title: str | None = None


@dataclass(slots=True)
class CrawlResult:
    pages: list[CrawledPage] = field(default_factory=list)
    source_url: str | None = None


def normalize_key(value: str | None) -> str:
    return _MULTISPACE.sub(" ", value or "").strip().lower()


def build_fingerprint(title: str, source_name: str) -> str:
    return f"{normalize_key(title)}|{normalize_key(source_name)}"


def opportunity_id_for(fingerprint: str) -> str:
    return f"opp-{stable_hash(fingerprint)[:16]}"


@dataclass(frozen=True, slots=True)
class Opportunity:
    id: str
    title: str
    source_name: str
    source_url: str
    issuer_type: IssuerType | None
    sectors: tuple[str, ...]
    description: str
    extraction_date: datetime
    full_description: str | None = None
    deadline: date | None = None
    deadline_raw: str | None = None
    amount_min: float | None = None
    amount_max: float | None = None
    amount_raw: str | None = None
    requirements: str | None = None
    submission_mode: str | None = None
    provenance: Provenance = Provenance.PRIMARY
    confidence: float = 1.0

    def __post_init__(self) -> None:
        if (
            self.amount_min is not None
            and self.amount_max is not None
            and self.amount_min > self.amount_max
        ):
            raise ValueError(
                f"amount_min ({self.amount_min}) exceeds amount_max ({self.amount_max})"
            )
        if not self.sectors:
            object.__setattr__(self, "sectors", (Sector.OTHER.value,))

    @property
    def fingerprint(self) -> str:
        return build_fingerprint(self.title, self.source_name)

    @property
    def is_fallback(self) -> bool:
        return self.provenance is not Provenance.PRIMARY


@dataclass(slots=True)
class ClientProfile:
    id: str
    sector: str | None = None
    sector_interests: list[str] = field(default_factory=list)
    region: str | None = None
    revenue: float | None = None
    employee_count: int | None = None
    name: str | None = None


@dataclass(frozen=True, slots=True)
class MatchScore:
    client_id: str
    opportunity_id: str
    score: int
    computed_at: datetime

    def __post_init__(self) -> None:
        if not 0 <= self.score <= 100:
            raise ValueError(f"score must be within [0, 100], got {self.score}")
