import argparse
import functools
import logging
import sys

from twamp_ingest.config.settings import load_settings
from twamp_ingest.ingestion.errors import StartupError
from twamp_ingest.ingestion.es_bulk import BulkIndexer
from twamp_ingest.ingestion.pipeline import ingest_file
from twamp_ingest.monitoring.log_config import configure_logging
from twamp_ingest.store.es_client import get_es_client, wait_for_es
from twamp_ingest.watcher.gz_watcher import GzFileWatcher

logger = logging.getLogger(__name__)


def build_watcher(settings, es=None) -> GzFileWatcher:
    """Wire client -> indexer -> pipeline -> watcher."""
    if es is None:
        es = get_es_client(settings)
    indexer = BulkIndexer(es, index=settings.es_index)
    ingest = functools.partial(ingest_file, indexer=indexer, arity_policy=settings.arity_policy)
    return GzFileWatcher(ingest, settle_seconds=settings.settle_seconds)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Watch a directory for .gz CSV exports and bulk-load them into Elasticsearch."
    )
    parser.add_argument("--env-file", default=".env", help="Environment file to load (default: .env)")
    parser.add_argument(
        "--backfill",
        action="store_true",
        help="Ingest .gz files already in the directory before watching for new ones.",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    configure_logging()

    try:
        settings = load_settings(args.env_file)
        configure_logging(settings.log_level)
        es = get_es_client(settings)
        if settings.es_wait_timeout > 0:
            wait_for_es(es, timeout=settings.es_wait_timeout)
        watcher = build_watcher(settings, es=es)
        watcher.start(settings.watch_dir)
    except StartupError as e:
        logger.critical(f"Startup failed: {e}")
        return 1

    logger.info(f"🔧 index='{settings.es_index}' | arity_policy={settings.arity_policy}")
    if args.backfill:
        watcher.backfill()

    if not watcher.run_forever():
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
