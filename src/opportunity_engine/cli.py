from __future__ import annotations

import argparse
import logging
import sys

from opportunity_engine.classifier import KeywordPageClassifier
from opportunity_engine.clients import load_clients
from opportunity_engine.config import ConfigError, EngineConfig, load_config
from opportunity_engine.extractors import OpportunityExtractor
from opportunity_engine.logging_config import setup_logging
from opportunity_engine.models import ClientProfile, Opportunity
from opportunity_engine.scoring import CompatibilityScorer, MatchGenerator
from opportunity_engine.service import ExtractionService, OpportunityEngine
from opportunity_engine.sources import (
    CrawlProvider,
    CrawlProviderError,
    FileCrawlProvider,
    ProviderRegistrationError,
    create_provider,
)
from opportunity_engine.store import SQLiteStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="opportunity-engine",
        description="Extract funding opportunities from crawled pages and match them to clients.",
    )
    parser.add_argument(
        "-c",
        "--config",
        default="config.yaml",
        help="Path to config YAML file (default: config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        help="Override config log level (e.g. INFO, DEBUG)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("init-db", help="Initialize SQLite schema")

    extract = subparsers.add_parser(
        "extract",
        help="Crawl once and print extracted opportunities without saving",
    )
    extract.add_argument("--crawl-file", help="Read pages from a crawl dump instead of the provider")

    run = subparsers.add_parser("run", help="Crawl, save opportunities and generate matches")
    run.add_argument("--clients", required=True, help="Path to clients YAML file")
    run.add_argument("--crawl-file", help="Read pages from a crawl dump instead of the provider")

    score = subparsers.add_parser("score", help="Rescore all stored opportunities for clients")
    score.add_argument("--clients", required=True, help="Path to clients YAML file")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        app_config = load_config(args.config)
    except ConfigError as exc:
        print(f"Config error: {exc}", file=sys.stderr)
        return 2

    log_level = args.log_level or app_config.log_level
    setup_logging(log_level)

    try:
        store = _build_store(app_config)
    except ConfigError as exc:
        logger.error("Config error: %s", exc)
        return 2

    if args.command == "init-db":
        store.init_db()
        logger.info("Initialized SQLite database at %s", app_config.storage.path)
        return 0

    clients: list[ClientProfile] = []
    provider: CrawlProvider | None = None
    try:
        if args.command in {"run", "score"}:
            clients = load_clients(args.clients)
        if args.command in {"extract", "run"}:
            provider = _build_provider(app_config, args.crawl_file)
    except (ConfigError, ProviderRegistrationError) as exc:
        logger.error("Config error: %s", exc)
        return 2

    store.init_db()
    engine = _build_engine(app_config, store)

    if args.command == "score":
        matches = engine.rescore(clients)
        for match in matches:
            print(f"{match.client_id}\t{match.opportunity_id}\t{match.score}")
        logger.info(
            "Scoring complete | matches=%d cutoff=%d",
            len(matches),
            app_config.scoring.match_cutoff,
        )
        return 0

    if provider is None:
        parser.error(f"{args.command} needs a crawl provider")
    try:
        crawl_result = provider.crawl()
    except CrawlProviderError as exc:
        logger.error("Crawl failed via %s: %s", provider.provider_id, exc)
        return 1

    if args.command == "extract":
        report = engine.extraction.run(crawl_result)
        for opportunity in report.opportunities:
            _print_opportunity(opportunity)
        return 0 if report.stats.ok else 1

    stats = engine.run_once(crawl_result, clients)
    logger.info(
        "Run complete | processed=%d extracted=%d saved=%d already_stored=%d matches=%d errors=%d",
        stats.extraction.processed,
        stats.extraction.extracted,
        stats.saved_opportunities,
        stats.already_stored,
        stats.matches_saved,
        len(stats.errors) + len(stats.extraction.errors),
    )
    return 0 if stats.ok else 1


def _build_store(app_config: EngineConfig) -> SQLiteStore:
    if app_config.storage.type != "sqlite":
        raise ConfigError(f"Unsupported storage type: {app_config.storage.type}")
    return SQLiteStore(app_config.storage.path)


def _build_provider(app_config: EngineConfig, crawl_file: str | None) -> CrawlProvider:
    if crawl_file:
        return FileCrawlProvider(crawl_file)
    return create_provider(app_config.crawl)


def _build_engine(app_config: EngineConfig, store: SQLiteStore) -> OpportunityEngine:
    extractor = OpportunityExtractor(app_config.extraction)
    extraction = ExtractionService(
        classifier=KeywordPageClassifier(app_config.classifier),
        extractor=extractor,
    )
    matcher = MatchGenerator(
        CompatibilityScorer(app_config.scoring),
        cutoff=app_config.scoring.match_cutoff,
        store=store,
    )
    return OpportunityEngine(extraction=extraction, matcher=matcher, store=store)


def _print_opportunity(opportunity: Opportunity) -> None:
    marker = " [fallback]" if opportunity.is_fallback else ""
    print(f"{opportunity.title}{marker}")
    print(f"  URL: {opportunity.source_url}")
    print(f"  Source: {opportunity.source_name} ({_issuer_label(opportunity)})")
    print(f"  Sectors: {', '.join(opportunity.sectors)}")
    deadline = opportunity.deadline.isoformat() if opportunity.deadline else "Not specified"
    print(f"  Deadline: {deadline}")
    print(f"  Amount: {_format_amount(opportunity.amount_min)} - {_format_amount(opportunity.amount_max)}")
    print("")


def _issuer_label(opportunity: Opportunity) -> str:
    return opportunity.issuer_type.value if opportunity.issuer_type else "unknown"


def _format_amount(value: float | None) -> str:
    if value is None:
        return "n/a"
    return f"EUR {value:,.0f}"


if __name__ == "__main__":
    raise SystemExit(main())
