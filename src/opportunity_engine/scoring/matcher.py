from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Iterable

from opportunity_engine.models import ClientProfile, MatchScore, Opportunity
from opportunity_engine.store import Store
from opportunity_engine.utils.datetime_utils import utc_now

from .engine import CompatibilityScorer

logger = logging.getLogger(__name__)

LOCK_STRIPES = 64


class MatchGenerator:
    """Materializes ``MatchScore`` records for pairs at or above one cutoff.

    Batch and incremental generation share ``cutoff``.
    """

    def __init__(
        self,
        scorer: CompatibilityScorer,
        *,
        cutoff: int,
        store: Store | None = None,
    ) -> None:
        if not 0 <= cutoff <= 100:
            raise ValueError(f"cutoff must be within [0, 100], got {cutoff}")
        self.scorer = scorer
        self.cutoff = cutoff
        self.store = store
        self._locks = [threading.Lock() for _ in range(LOCK_STRIPES)]

    def generate(
        self,
        clients: Iterable[ClientProfile],
        opportunities: Iterable[Opportunity],
        *,
        computed_at: datetime | None = None,
    ) -> list[MatchScore]:
        timestamp = computed_at or utc_now()
        opportunity_list = list(opportunities)
        matches: list[MatchScore] = []
        for client in clients:
            for opportunity in opportunity_list:
                match = self._score_pair(client, opportunity, timestamp)
                if match is not None:
                    matches.append(match)
        logger.info(
            "generated %d matches at cutoff %d over %d opportunities",
            len(matches),
            self.cutoff,
            len(opportunity_list),
        )
        return matches

    def generate_for_opportunity(
        self,
        opportunity: Opportunity,
        clients: Iterable[ClientProfile],
    ) -> list[MatchScore]:
        """Score a newly imported opportunity once; repeated calls return ``[]``.

        The existence check and the saves run under a lock striped by opportunity
        id, so one opportunity is never matched twice concurrently.
        The store's ``(client_id, opportunity_id)`` key still guards against
        other processes.
        """
        if self.store is None:
            raise RuntimeError("incremental match generation requires a store")

        with self._lock_for(opportunity.id):
            if self.store.has_matches_for(opportunity.id):
                logger.debug("matches already exist for %s", opportunity.id)
                return []

            matches = self.generate(clients, [opportunity])
            saved: list[MatchScore] = []
            for match in matches:
                if self.store.save_match(match):
                    saved.append(match)
                else:
                    logger.error(
                        "failed to save match %s/%s", match.client_id, match.opportunity_id
                    )
            return saved

    def _score_pair(
        self,
        client: ClientProfile,
        opportunity: Opportunity,
        timestamp: datetime,
    ) -> MatchScore | None:
        breakdown = self.scorer.breakdown(client, opportunity)
        score = breakdown.score
        if score < self.cutoff:
            return None
        logger.debug(
            "match %s x %s = %d (%s)",
            client.id,
            opportunity.id,
            score,
            breakdown.reason_text(),
        )
        return MatchScore(
            client_id=client.id,
            opportunity_id=opportunity.id,
            score=score,
            computed_at=timestamp,
        )

    def _lock_for(self, opportunity_id: str) -> threading.Lock:
        return self._locks[hash(opportunity_id) % len(self._locks)]
