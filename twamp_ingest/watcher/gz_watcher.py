import logging
import os
import threading
import time
from typing import Any, Callable, List, Optional

from tqdm.auto import tqdm
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from twamp_ingest.ingestion.errors import StartupError
from twamp_ingest.ingestion.gz_reader import GZ_SUFFIX

logger = logging.getLogger(__name__)

MAX_SETTLE_CHECKS = 30


def is_candidate(path: str, suffix: str = GZ_SUFFIX) -> bool:
    return os.path.basename(path).endswith(suffix)


def wait_until_stable(path: str, settle_seconds: float, max_checks: int = MAX_SETTLE_CHECKS) -> bool:
    """
    Poll the file size until two reads `settle_seconds` apart agree.

    Returns False if the file vanished or never settled; the caller still
    attempts ingestion and lets the reader report what it finds.
    """
    try:
        last = os.path.getsize(path)
        for _ in range(max_checks):
            time.sleep(settle_seconds)
            size = os.path.getsize(path)
            if size == last:
                return True
            last = size
    except OSError as e:
        logger.warning(f"{path} disappeared while settling: {e}")
        return False
    logger.warning(f"{path} still growing after {max_checks} checks, ingesting anyway")
    return False


class _GzEventHandler(FileSystemEventHandler):
    def __init__(self, watcher: "GzFileWatcher"):
        self.watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self.watcher.dispatch(os.fsdecode(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        # a file renamed into the directory is a new arrival
        if event.is_directory:
            return
        self.watcher.dispatch(os.fsdecode(event.dest_path))


class GzFileWatcher:
    """
    Watches one directory (non-recursive) and hands every new `.gz` file to
    `ingest`.

    `ingest` runs synchronously on the observer thread, under a lock shared with
    `backfill`, so at most one file is ingested at a time. Repeated events for
    the same path are not deduplicated.
    """

    def __init__(
        self,
        ingest: Callable[[str], Any],
        settle_seconds: float = 0.0,
        lock: Optional[threading.Lock] = None,
    ):
        self.ingest = ingest
        self.settle_seconds = settle_seconds
        self.lock = lock or threading.Lock()
        self.directory: Optional[str] = None
        self.observer: Optional[Observer] = None

    def dispatch(self, path: str) -> Any:
        if not is_candidate(path):
            logger.debug(f"Ignoring {path} (not {GZ_SUFFIX})")
            return None

        logger.info(f"New {GZ_SUFFIX} file detected: {path}")
        if self.settle_seconds > 0:
            wait_until_stable(path, self.settle_seconds)

        with self.lock:
            try:
                return self.ingest(path)
            except Exception:
                logger.exception(f"Unexpected error while ingesting {path}")
                return None

    def start(self, directory: str) -> Observer:
        if not os.path.isdir(directory):
            raise StartupError(f"Cannot watch {directory}: not an existing directory")
        if not os.access(directory, os.R_OK | os.X_OK):
            raise StartupError(f"Cannot watch {directory}: permission denied")

        observer = Observer()
        try:
            observer.schedule(_GzEventHandler(self), directory, recursive=False)
            observer.start()
        except OSError as e:
            raise StartupError(f"Cannot watch {directory}: {e}") from e

        self.directory = directory
        self.observer = observer
        logger.info(f"👀 Watching {directory} for new {GZ_SUFFIX} files")
        return observer

    def backfill(self, directory: Optional[str] = None) -> List[Any]:
        """Ingest the `.gz` files already in the directory, in name order."""
        directory = directory or self.directory
        if directory is None:
            raise ValueError("backfill needs a directory (call start() first or pass one)")

        paths = sorted(
            os.path.join(directory, name)
            for name in os.listdir(directory)
            if is_candidate(name) and os.path.isfile(os.path.join(directory, name))
        )
        logger.info(f"Backfilling {len(paths)} existing {GZ_SUFFIX} files from {directory}")

        results = []
        for path in tqdm(paths, desc="Backfill", unit="file", dynamic_ncols=True):
            with self.lock:
                try:
                    results.append(self.ingest(path))
                except Exception:
                    logger.exception(f"Unexpected error while ingesting {path}")
        return results

    def stop(self) -> None:
        if self.observer is None:
            return
        self.observer.stop()
        self.observer.join()
        self.observer = None

    def run_forever(self, poll_interval: float = 1.0) -> bool:
        """
        Block until interrupted. Returns True for a user stop, False when the
        observer thread died on its own and the directory is no longer watched.
        """
        try:
            while self.observer is not None and self.observer.is_alive():
                time.sleep(poll_interval)
            logger.error(f"Observer for {self.directory} stopped unexpectedly")
            return False
        except KeyboardInterrupt:
            logger.info("⏹️ Stopped by user.")
            return True
        finally:
            self.stop()
