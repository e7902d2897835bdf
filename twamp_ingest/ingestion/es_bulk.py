import io
import json
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Sequence

from elastic_transport import TransportError as ESTransportError
from elasticsearch import ApiError, Elasticsearch

from twamp_ingest.ingestion.errors import BulkError, SerializationError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_INDEX = "twamp-data"


@dataclass
class BulkOutcome:
    accepted: int
    took: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class BulkIndexer:
    """
    Sends all records of one file to Elasticsearch as a single bulk request.

    Every record becomes a `create` action without an `_id`, so Elasticsearch
    assigns ids and re-sending the same records makes new documents.
    """

    def __init__(self, es: Elasticsearch, index: str = DEFAULT_INDEX, refresh: bool = True):
        self.es = es
        self.index = index
        self.refresh = refresh

    def action_line(self) -> bytes:
        return json.dumps({"create": {"_index": self.index}}).encode("utf-8") + b"\n"

    def build_payload(self, records: Sequence[Dict[str, Any]]) -> bytes:
        buf = io.BytesIO()
        meta = self.action_line()
        for n, record in enumerate(records, 1):
            try:
                data = json.dumps(record, ensure_ascii=False).encode("utf-8")
            except (TypeError, ValueError) as e:
                raise SerializationError(f"record {n} cannot be serialized: {e}") from e
            buf.write(meta)
            buf.write(data)
            buf.write(b"\n")
        return buf.getvalue()

    def submit_batch(self, records: Sequence[Dict[str, Any]]) -> BulkOutcome:
        """
        Build the NDJSON payload and send it with an explicit refresh.

        Raises SerializationError before any request is made, TransportError if
        the cluster can't be reached, and BulkError (with the decoded response
        body as `detail`) if the request is rejected or the response carries the
        top-level `errors` flag. Item-level results are not inspected.
        """
        if not records:
            logger.info(f"Nothing to submit to '{self.index}' (empty batch)")
            return BulkOutcome(accepted=0)

        payload = self.build_payload(records)

        try:
            resp = self.es.bulk(operations=payload, refresh=self.refresh)
        except ApiError as e:
            raise BulkError(
                f"bulk request to '{self.index}' rejected ({e.meta.status}): {e.message}",
                detail=e.body,
            ) from e
        except ESTransportError as e:
            raise TransportError(f"failure indexing batch: {e}") from e

        body = resp.body
        if body.get("errors"):
            raise BulkError(f"error indexing batch: {body}", detail=body)

        logger.info(f"Successfully indexed batch of {len(records)} documents into '{self.index}'")
        return BulkOutcome(accepted=len(records), took=body.get("took"))
