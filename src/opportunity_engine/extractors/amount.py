from __future__ import annotations

import re
from dataclasses import dataclass

from opportunity_engine.config import ExtractionSettings
from opportunity_engine.models import IssuerType

from .text import PageView

_NUM = r"(?<![\d.,])(\d{1,3}(?:\.\d{3})+(?:,\d+)?|\d+(?:[.,]\d+)?)"
_MAGNITUDE = r"(milioni|milione|mln|miliardi|miliardo|mld)\b"
_CURRENCY = r"(?:€|eur(?:o)?\b)"

_CURRENCY_PREFIXED = re.compile(rf"{_CURRENCY}\s*{_NUM}(?:\s*{_MAGNITUDE})?", re.I)
_CURRENCY_SUFFIXED = re.compile(rf"{_NUM}\s*(?:{_MAGNITUDE}\s*(?:di\s+)?)?{_CURRENCY}", re.I)
_MAGNITUDE_ONLY = re.compile(rf"{_NUM}\s*{_MAGNITUDE}", re.I)
# A bare 19xx/20xx token after a financial keyword is a year, not an amount.
_BARE_YEAR = r"(?!(?:19|20)\d{2}(?!\d|[.,]\d)(?!\s*(?:€|eur|milion|mln|miliard|mld)))"
_FINANCIAL_KEYWORD = re.compile(
    r"\b(?:contribut\w*|finanziament\w*|importo|budget|investiment\w*)\b"
    rf"[^\d\n]{{0,40}}?{_BARE_YEAR}{_NUM}(?![/\-]\d)(?:\s*{_MAGNITUDE})?",
    re.I,
)

_MULTIPLIERS = {
    "milioni": 1_000_000,
    "milione": 1_000_000,
    "mln": 1_000_000,
    "miliardi": 1_000_000_000,
    "miliardo": 1_000_000_000,
    "mld": 1_000_000_000,
}

SINGLE_VALUE_MIN_DIVISOR = 5


@dataclass(frozen=True, slots=True)
class AmountHit:
    value: float
    raw: str


@dataclass(frozen=True, slots=True)
class AmountRange:
    minimum: float
    maximum: float
    raw: str | None = None
    defaulted: bool = False


def parse_italian_number(raw: str) -> float | None:
    """Parse ``1.234.567,89`` style numbers, treating dots as thousand separators."""
    value = raw.strip().replace("\u00a0", "").replace(" ", "")
    if not value:
        return None

    if "." in value and "," in value:
        if value.rfind(",") > value.rfind("."):
            value = value.replace(".", "").replace(",", ".")
        else:
            value = value.replace(",", "")
    elif "," in value:
        groups = value.split(",")
        if len(groups) > 2 and all(len(group) == 3 for group in groups[1:]):
            value = value.replace(",", "")
        else:
            value = value.replace(",", ".")
    elif "." in value:
        groups = value.split(".")
        if all(len(group) == 3 for group in groups[1:]):
            value = value.replace(".", "")
        elif len(groups) > 2:
            return None

    try:
        return float(value)
    except ValueError:
        return None


class AmountExtractor:
    def __init__(self, settings: ExtractionSettings) -> None:
        self.settings = settings
        self.collectors = (
            self.currency_prefixed,
            self.currency_suffixed,
            self.magnitude_words,
            self.financial_keywords,
        )

    def extract(self, page: PageView, issuer_type: IssuerType | None) -> AmountRange:
        found: dict[float, str] = {}
        for collector in self.collectors:
            for hit in collector(page):
                if hit.value > 0:
                    found.setdefault(hit.value, hit.raw)

        default_min, default_max = self.settings.default_amount_ranges.get(
            issuer_type or IssuerType.OTHER,
            self.settings.default_amount_ranges[IssuerType.OTHER],
        )
        if not found:
            return AmountRange(minimum=default_min, maximum=default_max, defaulted=True)

        values = sorted(found)
        maximum = values[-1]
        if len(values) > 1:
            minimum = values[0]
        else:
            minimum = min(maximum / SINGLE_VALUE_MIN_DIVISOR, default_min)
        return AmountRange(minimum=minimum, maximum=maximum, raw=found[maximum])

    def currency_prefixed(self, page: PageView) -> list[AmountHit]:
        return _collect(_CURRENCY_PREFIXED, page.text)

    def currency_suffixed(self, page: PageView) -> list[AmountHit]:
        return _collect(_CURRENCY_SUFFIXED, page.text)

    def magnitude_words(self, page: PageView) -> list[AmountHit]:
        return _collect(_MAGNITUDE_ONLY, page.text)

    def financial_keywords(self, page: PageView) -> list[AmountHit]:
        return [
            hit
            for hit in _collect(_FINANCIAL_KEYWORD, page.text)
            if hit.value > self.settings.min_keyword_amount
        ]


def _collect(pattern: re.Pattern[str], text: str) -> list[AmountHit]:
    hits: list[AmountHit] = []
    for match in pattern.finditer(text):
        number, magnitude = match.group(1), match.group(2)
        value = parse_italian_number(number)
        if value is None:
            continue
        if magnitude:
            value *= _MULTIPLIERS[magnitude.lower()]
        hits.append(AmountHit(value=value, raw=match.group(0).strip()))
    return hits
