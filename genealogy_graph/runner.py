from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from genealogy_graph.config import DEFAULT_SEED, load_crawl_settings
from genealogy_graph.db.neo4j_connector import Neo4jConnector
from genealogy_graph.errors import ConfigError, GenealogyGraphError
from genealogy_graph.services.crawl.base import QueueItem
from genealogy_graph.services.crawl.page_source import PageSource
from genealogy_graph.services.crawl.pipeline import html_to_snapshot
from genealogy_graph.services.crawl.scheduler import CrawlScheduler
from genealogy_graph.services.graph import clear_database, get_database_stats
from genealogy_graph.services.import_service import BatchLoader, load_snapshot
from genealogy_graph.services.reconcile_service import find_missing, log_report, write_report

logger = logging.getLogger("genealogy_graph")


def _connect() -> Neo4jConnector:
    db = Neo4jConnector.from_env()
    db.verify_connectivity()
    return db


def run_crawl(args) -> int:
    settings = load_crawl_settings()
    batch_size = args.batch_size or settings.batch_size
    max_records = args.max_records if args.max_records is not None else settings.max_records
    skip_save = args.skip_save or settings.skip_save
    save_html = settings.save_html and not args.no_save_html
    data_dir = args.data_dir or settings.data_dir
    try:
        seeds = [QueueItem.parse(s) for s in (args.seed or [DEFAULT_SEED])]
    except ValueError as exc:
        raise ConfigError(f"{exc} (expected --seed like {DEFAULT_SEED})") from exc

    # Credentials are checked before any page is fetched.
    db = None if skip_save else _connect()
    try:
        with PageSource(
            base_url=args.base_url or settings.base_url,
            cache={},
            data_dir=data_dir,
            save_html=save_html,
            delay_seconds=args.delay if args.delay is not None else settings.delay_seconds,
        ) as source:
            scheduler = CrawlScheduler(
                source,
                BatchLoader(db) if db is not None else None,
                batch_size=batch_size,
                max_records=max_records,
                visited=set(),
            )
            stats = scheduler.run(seeds)
    finally:
        if db is not None:
            db.close()
    print(json.dumps(stats.to_dict(), indent=2))
    return 0


def run_snapshot(args) -> int:
    settings = load_crawl_settings()
    out = args.out or settings.snapshot_path
    snapshot = html_to_snapshot(args.data_dir or settings.data_dir, out)
    print(out)
    logger.info("Found %d unique people in %d files", snapshot.metadata.total_people, snapshot.metadata.total_files)
    return 0


def run_load_snapshot(args) -> int:
    settings = load_crawl_settings()
    with _connect() as db:
        summary = load_snapshot(
            db,
            args.snapshot or settings.snapshot_path,
            batch_size=args.batch_size,
            confirm_delay=0 if args.yes else 5,
        )
    print(json.dumps(summary, indent=2))
    return 0


def run_find_missing(args) -> int:
    settings = load_crawl_settings()
    with _connect() as db:
        report = find_missing(db, args.data_dir or settings.data_dir)
    log_report(report, base_url=settings.base_url)
    if args.out:
        write_report(report, args.out)
    print(json.dumps(report.to_dict(), indent=2))
    return 0


def run_stats(args) -> int:
    with _connect() as db:
        stats = get_database_stats(db)
    print(json.dumps(stats, indent=2, ensure_ascii=False, default=str))
    return 0


def run_wipe(args) -> int:
    if not args.yes:
        logger.error("Refusing to delete all data without --yes")
        return 2
    with _connect() as db:
        logger.warning("Deleting ALL nodes and relationships from the database")
        summary = clear_database(db, batch_size=args.batch_size)
    print(json.dumps(summary, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Crawl the genealogy site and manage the Neo4j graph")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING, ...)")
    sub = parser.add_subparsers(dest="cmd", required=True)

    crawl = sub.add_parser("crawl", help="Breadth-first crawl from seed records and load people into Neo4j")
    crawl.add_argument("--seed", action="append", help=f"Seed record as page#anchor (repeatable, default {DEFAULT_SEED})")
    crawl.add_argument("--batch-size", type=int, default=None, help="People per store write")
    crawl.add_argument("--max-records", type=int, default=None, help="Stop scheduling after this many people")
    crawl.add_argument("--skip-save", action="store_true", help="Parse only; do not write to Neo4j")
    crawl.add_argument("--no-save-html", action="store_true", help="Do not write fetched pages to the data dir")
    crawl.add_argument("--data-dir", default=None, help="HTML cache directory")
    crawl.add_argument("--base-url", default=None, help="Site base URL")
    crawl.add_argument("--delay", type=float, default=None, help="Seconds to wait after each network fetch")
    crawl.set_defaults(func=run_crawl)

    snap = sub.add_parser("snapshot", help="Convert the cached HTML pages into one JSON snapshot")
    snap.add_argument("--data-dir", default=None, help="HTML cache directory")
    snap.add_argument("--out", default=None, help="Snapshot output path")
    snap.set_defaults(func=run_snapshot)

    load = sub.add_parser("load-snapshot", help="Replace the whole graph with the contents of a snapshot")
    load.add_argument("--snapshot", default=None, help="Snapshot JSON path")
    load.add_argument("--batch-size", type=int, default=100, help="People per store write")
    load.add_argument("--yes", action="store_true", help="Skip the 5 second cancel window")
    load.set_defaults(func=run_load_snapshot)

    missing = sub.add_parser("find-missing", help="Report ids present in cached HTML but absent from Neo4j")
    missing.add_argument("--data-dir", default=None, help="HTML cache directory")
    missing.add_argument("--out", default=None, help="Also write the report to this JSON file")
    missing.set_defaults(func=run_find_missing)

    stats = sub.add_parser("stats", help="Print node and relationship counts")
    stats.set_defaults(func=run_stats)

    wipe = sub.add_parser("wipe", help="Delete every node and relationship")
    wipe.add_argument("--yes", action="store_true", help="Confirm the deletion")
    wipe.add_argument("--batch-size", type=int, default=10000, help="Nodes deleted per statement")
    wipe.set_defaults(func=run_wipe)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return 2
    except GenealogyGraphError as exc:
        logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
