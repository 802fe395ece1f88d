from __future__ import annotations

from abc import ABC, abstractmethod

from opportunity_engine.models import MatchScore, Opportunity


class Store(ABC):
    @abstractmethod
    def init_db(self) -> None:
        """Create any required schema."""

    @abstractmethod
    def save_opportunity(self, opportunity: Opportunity) -> bool:
        """Insert an opportunity unless its fingerprint is already stored.

        Returns True when a new row was written. Stored opportunities are never
        updated.
        """

    @abstractmethod
    def save_match(self, match: MatchScore) -> bool:
        """Upsert a match keyed by (client_id, opportunity_id); return success."""

    @abstractmethod
    def has_matches_for(self, opportunity_id: str) -> bool:
        """Return True if any match exists for the opportunity."""

    @abstractmethod
    def list_opportunities(self) -> list[Opportunity]:
        """Return all stored opportunities."""

    @abstractmethod
    def list_matches(self, opportunity_id: str | None = None) -> list[MatchScore]:
        """Return stored matches, optionally for one opportunity."""
