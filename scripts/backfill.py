# scripts/backfill.py
import argparse
import os
import sys

from twamp_ingest.config.settings import load_settings
from twamp_ingest.ingestion.errors import StartupError
from twamp_ingest.main import build_watcher
from twamp_ingest.monitoring.log_config import configure_logging


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="One-shot ingest of the .gz exports already sitting in a directory."
    )
    parser.add_argument("directory", nargs="?", help="Directory to scan (default: FILE_PATH)")
    parser.add_argument("--env-file", default=".env")
    args = parser.parse_args(argv)

    configure_logging()
    try:
        settings = load_settings(args.env_file)
        configure_logging(settings.log_level)
        watcher = build_watcher(settings)
    except StartupError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    directory = args.directory or settings.watch_dir
    if not os.path.isdir(directory):
        print(f"❌ Not a directory: {directory}", file=sys.stderr)
        return 1
    print(f"🔧 Backfilling {directory} -> {settings.es_url} | index='{settings.es_index}'")
    results = [r for r in watcher.backfill(directory) if r is not None]

    failed = [r for r in results if not r.ok]
    accepted = sum(r.accepted for r in results)
    print(f"✅ Done. files={len(results)} accepted={accepted} failed={len(failed)}")
    for r in failed:
        print(f"  ✗ {r.file} [{r.error_kind}] {r.error}", file=sys.stderr)
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
