from __future__ import annotations

import json
import logging
import sqlite3
from datetime import date
from pathlib import Path

from opportunity_engine.models import (
    FAR_FUTURE_DEADLINE,
    IssuerType,
    MatchScore,
    Opportunity,
    Provenance,
)
from opportunity_engine.utils.datetime_utils import parse_date, parse_datetime_utc, to_utc, utc_now

from .base import Store

logger = logging.getLogger(__name__)


class SQLiteStore(Store):
    def __init__(self, db_path: str) -> None:
        self.db_path = Path(db_path)

    def init_db(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as connection:
            connection.execute(
                """
                CREATE TABLE IF NOT EXISTS opportunities (
                    id TEXT PRIMARY KEY,
                    fingerprint TEXT NOT NULL UNIQUE,
                    title TEXT NOT NULL,
                    source_name TEXT NOT NULL,
                    source_url TEXT NOT NULL,
                    issuer_type TEXT NULL,
                    sectors TEXT NOT NULL,
                    description TEXT NOT NULL,
                    full_description TEXT NULL,
                    deadline TEXT NOT NULL,
                    deadline_raw TEXT NULL,
                    amount_min REAL NULL,
                    amount_max REAL NULL,
                    amount_raw TEXT NULL,
                    extraction_date TEXT NOT NULL,
                    requirements TEXT NULL,
                    submission_mode TEXT NULL,
                    provenance TEXT NOT NULL,
                    confidence REAL NOT NULL
                )
                """
            )
            connection.execute(
                """
                CREATE TABLE IF NOT EXISTS match_scores (
                    client_id TEXT NOT NULL,
                    opportunity_id TEXT NOT NULL,
                    score INTEGER NOT NULL CHECK (score BETWEEN 0 AND 100),
                    computed_at TEXT NOT NULL,
                    PRIMARY KEY (client_id, opportunity_id)
                )
                """
            )
            connection.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_match_scores_opportunity
                ON match_scores (opportunity_id)
                """
            )
            connection.commit()

    def save_opportunity(self, opportunity: Opportunity) -> bool:
        deadline = opportunity.deadline or FAR_FUTURE_DEADLINE
        with self._connect() as connection:
            cursor = connection.execute(
                """
                INSERT INTO opportunities (
                    id, fingerprint, title, source_name, source_url, issuer_type,
                    sectors, description, full_description, deadline, deadline_raw,
                    amount_min, amount_max, amount_raw, extraction_date,
                    requirements, submission_mode, provenance, confidence
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT DO NOTHING
                """,
                (
                    opportunity.id,
                    opportunity.fingerprint,
                    opportunity.title,
                    opportunity.source_name,
                    opportunity.source_url,
                    opportunity.issuer_type.value if opportunity.issuer_type else None,
                    json.dumps(list(opportunity.sectors), ensure_ascii=False),
                    opportunity.description,
                    opportunity.full_description,
                    deadline.isoformat(),
                    opportunity.deadline_raw,
                    opportunity.amount_min,
                    opportunity.amount_max,
                    opportunity.amount_raw,
                    to_utc(opportunity.extraction_date).isoformat(),
                    opportunity.requirements,
                    opportunity.submission_mode,
                    opportunity.provenance.value,
                    opportunity.confidence,
                ),
            )
            connection.commit()
        inserted = cursor.rowcount == 1
        if not inserted:
            logger.debug("opportunity %s already stored", opportunity.fingerprint)
        return inserted

    def save_match(self, match: MatchScore) -> bool:
        try:
            with self._connect() as connection:
                connection.execute(
                    """
                    INSERT INTO match_scores (client_id, opportunity_id, score, computed_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(client_id, opportunity_id) DO UPDATE SET
                        score = excluded.score,
                        computed_at = excluded.computed_at
                    """,
                    (
                        match.client_id,
                        match.opportunity_id,
                        match.score,
                        to_utc(match.computed_at).isoformat(),
                    ),
                )
                connection.commit()
        except sqlite3.Error:
            logger.exception(
                "failed to save match %s/%s", match.client_id, match.opportunity_id
            )
            return False
        return True

    def has_matches_for(self, opportunity_id: str) -> bool:
        with self._connect() as connection:
            row = connection.execute(
                "SELECT 1 FROM match_scores WHERE opportunity_id = ? LIMIT 1",
                (opportunity_id,),
            ).fetchone()
        return row is not None

    def list_opportunities(self) -> list[Opportunity]:
        with self._connect() as connection:
            rows = connection.execute("SELECT * FROM opportunities ORDER BY deadline, title").fetchall()
        return [_row_to_opportunity(row) for row in rows]

    def list_matches(self, opportunity_id: str | None = None) -> list[MatchScore]:
        query = "SELECT client_id, opportunity_id, score, computed_at FROM match_scores"
        params: tuple[str, ...] = ()
        if opportunity_id is not None:
            query += " WHERE opportunity_id = ?"
            params = (opportunity_id,)
        query += " ORDER BY score DESC, client_id"

        with self._connect() as connection:
            rows = connection.execute(query, params).fetchall()

        return [
            MatchScore(
                client_id=row["client_id"],
                opportunity_id=row["opportunity_id"],
                score=row["score"],
                computed_at=parse_datetime_utc(row["computed_at"]) or utc_now(),
            )
            for row in rows
        ]

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self.db_path)
        connection.row_factory = sqlite3.Row
        return connection


def _row_to_opportunity(row: sqlite3.Row) -> Opportunity:
    deadline: date | None = parse_date(row["deadline"])
    return Opportunity(
        id=row["id"],
        title=row["title"],
        source_name=row["source_name"],
        source_url=row["source_url"],
        issuer_type=IssuerType(row["issuer_type"]) if row["issuer_type"] else None,
        sectors=tuple(json.loads(row["sectors"])),
        description=row["description"],
        full_description=row["full_description"],
        deadline=deadline,
        deadline_raw=row["deadline_raw"],
        amount_min=row["amount_min"],
        amount_max=row["amount_max"],
        amount_raw=row["amount_raw"],
        extraction_date=parse_datetime_utc(row["extraction_date"]) or utc_now(),
        requirements=row["requirements"],
        submission_mode=row["submission_mode"],
        provenance=Provenance(row["provenance"]),
        confidence=row["confidence"],
    )
