import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from twamp_ingest.ingestion.errors import IngestError
from twamp_ingest.ingestion.es_bulk import BulkIndexer
from twamp_ingest.ingestion.gz_reader import open_and_decode
from twamp_ingest.ingestion.record_mapper import map_rows

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    file: str
    status: str
    rows_read: int = 0
    rows_skipped: int = 0
    accepted: int = 0
    error_kind: Optional[str] = None
    error: Optional[str] = None
    duration_sec: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == "indexed"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def ingest_file(path: str, indexer: BulkIndexer, arity_policy: str = "skip") -> IngestResult:
    """
    Decode one .gz export and bulk-index its rows.

    Per-file failures are logged and reported in the returned result instead of
    being raised, so a bad file never stops the caller.
    """
    start = time.time()
    result = IngestResult(file=str(path), status="failed")

    try:
        decoded = open_and_decode(path)
        result.rows_read = len(decoded.rows)

        mapped = map_rows(decoded.headers, decoded.rows, arity_policy=arity_policy)
        result.rows_skipped = mapped.skipped
        logger.info(f"length: {len(mapped.records)}")

        outcome = indexer.submit_batch(mapped.records)
        result.accepted = outcome.accepted
        result.status = "indexed"
    except IngestError as e:
        result.error_kind = e.kind
        result.error = str(e)
        logger.error(f"❌ Failed to ingest {path} [{e.kind}]: {e}")

    result.duration_sec = round(time.time() - start, 3)
    if result.ok:
        logger.info(
            f"📥 Ingest summary | file={result.file} | rows={result.rows_read} | "
            f"skipped={result.rows_skipped} | accepted={result.accepted} | took={result.duration_sec:.3f}s"
        )
    return result
