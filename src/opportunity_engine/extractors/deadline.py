from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

from opportunity_engine.config import ExtractionSettings

from .chain import first_accepted
from .text import PageView

_NUMERIC_DATE = re.compile(r"(?<!\d)(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{4}|\d{2})(?!\d)")

ITALIAN_MONTHS = {
    "gennaio": 1,
    "febbraio": 2,
    "marzo": 3,
    "aprile": 4,
    "maggio": 5,
    "giugno": 6,
    "luglio": 7,
    "agosto": 8,
    "settembre": 9,
    "ottobre": 10,
    "novembre": 11,
    "dicembre": 12,
}
_TEXTUAL_DATE = re.compile(
    r"(?<!\d)(\d{1,2})(?:°|º)?\s+(" + "|".join(ITALIAN_MONTHS) + r")\s+(\d{4})(?!\d)",
    re.IGNORECASE,
)


@dataclass(frozen=True, slots=True)
class DeadlineMatch:
    value: date
    raw: str


class DeadlineExtractor:
    """Finds the application deadline of a page.

    Dates anchored to a deadline keyword win over free-floating ones. A
    free-floating date is only accepted when it lies after the reference date.
    """

    def __init__(self, settings: ExtractionSettings, reference_date: date) -> None:
        self.keywords = settings.deadline_keywords
        self.window = settings.deadline_window_chars
        self.reference_date = reference_date

    def extract(self, page: PageView) -> DeadlineMatch | None:
        return first_accepted(
            (self.from_keyword_window, self.from_future_date, self.from_month_name),
            page,
        )

    def from_keyword_window(self, page: PageView) -> DeadlineMatch | None:
        for window in self._keyword_windows(page.text):
            for match in _NUMERIC_DATE.finditer(window):
                parsed = _numeric_match_to_date(match)
                if parsed is not None:
                    return DeadlineMatch(value=parsed, raw=match.group(0))
        return None

    def from_future_date(self, page: PageView) -> DeadlineMatch | None:
        for match in _NUMERIC_DATE.finditer(page.text):
            parsed = _numeric_match_to_date(match)
            if parsed is not None and parsed > self.reference_date:
                return DeadlineMatch(value=parsed, raw=match.group(0))
        return None

    def from_month_name(self, page: PageView) -> DeadlineMatch | None:
        for window in self._keyword_windows(page.text):
            for match in _TEXTUAL_DATE.finditer(window):
                day, month_name, year = match.groups()
                parsed = build_date(int(day), ITALIAN_MONTHS[month_name.lower()], int(year))
                if parsed is not None:
                    return DeadlineMatch(value=parsed, raw=match.group(0))
        return None

    def _keyword_windows(self, text: str) -> list[str]:
        lowered = text.lower()
        anchors: list[int] = []
        for keyword in self.keywords:
            needle = keyword.lower()
            if not needle:
                continue
            start = lowered.find(needle)
            while start >= 0:
                anchors.append(start + len(needle))
                start = lowered.find(needle, start + 1)
        return [text[anchor : anchor + self.window] for anchor in sorted(set(anchors))]


def build_date(day: int, month: int, year: int) -> date | None:
    if not 1 <= day <= 31 or not 1 <= month <= 12:
        return None
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _numeric_match_to_date(match: re.Match[str]) -> date | None:
    day, month, year = match.groups()
    full_year = int(year) + 2000 if len(year) == 2 else int(year)
    return build_date(int(day), int(month), full_year)
