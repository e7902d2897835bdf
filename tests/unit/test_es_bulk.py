# =============================================================================
# Unit Tests: Bulk Indexer
# =============================================================================

import json

import pytest
from elasticsearch import BadRequestError
from elasticsearch import ConnectionError as ESConnectionError

from conftest import make_bulk_response, make_meta
from twamp_ingest.ingestion.errors import BulkError, SerializationError, TransportError
from twamp_ingest.ingestion.es_bulk import DEFAULT_INDEX, BulkIndexer

RECORDS = [
    {"session_id": "1", "source_port": "5000", "@timestamp": "2024-01-01T00:00:00Z"},
    {"session_id": "2", "source_port": "5001", "@timestamp": "2024-01-01T00:01:00Z"},
]


def payload_lines(payload: bytes):
    return [json.loads(line) for line in payload.decode("utf-8").splitlines()]


# =============================================================================
# Test: build_payload
# =============================================================================

class TestBuildPayload:
    """Tests for the NDJSON bulk body."""

    def test_create_directive_then_document(self, mock_es):
        """Each record is a create action followed by its source."""
        payload = BulkIndexer(mock_es).build_payload(RECORDS)
        lines = payload_lines(payload)
        assert lines == [
            {"create": {"_index": DEFAULT_INDEX}},
            RECORDS[0],
            {"create": {"_index": DEFAULT_INDEX}},
            RECORDS[1],
        ]

    def test_payload_ends_with_newline(self, mock_es):
        assert BulkIndexer(mock_es).build_payload(RECORDS).endswith(b"\n")

    def test_no_document_id(self, mock_es):
        """Ids are left to Elasticsearch."""
        lines = payload_lines(BulkIndexer(mock_es).build_payload(RECORDS))
        assert all("_id" not in line["create"] for line in lines[::2])

    def test_custom_index(self, mock_es):
        lines = payload_lines(BulkIndexer(mock_es, index="probes").build_payload(RECORDS[:1]))
        assert lines[0] == {"create": {"_index": "probes"}}

    def test_non_ascii_values(self, mock_es):
        lines = payload_lines(BulkIndexer(mock_es).build_payload([{"site": "서울"}]))
        assert lines[1] == {"site": "서울"}

    def test_unserializable_record(self, mock_es):
        with pytest.raises(SerializationError, match="record 2"):
            BulkIndexer(mock_es).build_payload([RECORDS[0], {"bad": object()}])


# =============================================================================
# Test: submit_batch
# =============================================================================

class TestSubmitBatch:
    """Tests for submit_batch."""

    def test_success_reports_accepted_count(self, mock_es):
        outcome = BulkIndexer(mock_es).submit_batch(RECORDS)
        assert outcome.accepted == 2
        assert outcome.took == 3

    def test_single_request_with_refresh(self, mock_es):
        """The whole batch goes in one bulk call with refresh."""
        BulkIndexer(mock_es).submit_batch(RECORDS)
        mock_es.bulk.assert_called_once()
        kwargs = mock_es.bulk.call_args.kwargs
        assert kwargs["refresh"] is True
        assert len(payload_lines(kwargs["operations"])) == 4

    def test_serialization_failure_sends_nothing(self, mock_es):
        """One bad record aborts the batch before any request."""
        with pytest.raises(SerializationError):
            BulkIndexer(mock_es).submit_batch([RECORDS[0], {"bad": {1, 2}}, RECORDS[1]])
        mock_es.bulk.assert_not_called()

    def test_errors_flag_raises_bulk_error_with_body(self, mock_es):
        """A 200 response with errors=true surfaces the decoded body."""
        items = [{"create": {"status": 400, "error": {"type": "mapper_parsing_exception"}}}]
        mock_es.bulk.return_value = make_bulk_response(errors=True, items=items)
        with pytest.raises(BulkError) as exc_info:
            BulkIndexer(mock_es).submit_batch(RECORDS)
        assert exc_info.value.detail["errors"] is True
        assert exc_info.value.detail["items"] == items
        assert exc_info.value.kind == "bulk"

    def test_http_error_raises_bulk_error(self, mock_es):
        body = {"error": {"type": "illegal_argument_exception"}, "status": 400}
        mock_es.bulk.side_effect = BadRequestError(
            message="illegal_argument_exception", meta=make_meta(400), body=body
        )
        with pytest.raises(BulkError, match="400") as exc_info:
            BulkIndexer(mock_es).submit_batch(RECORDS)
        assert exc_info.value.detail == body

    def test_connection_failure_raises_transport_error(self, mock_es):
        cause = ESConnectionError("connection refused")
        mock_es.bulk.side_effect = cause
        with pytest.raises(TransportError) as exc_info:
            BulkIndexer(mock_es).submit_batch(RECORDS)
        assert exc_info.value.__cause__ is cause

    def test_empty_batch_not_sent(self, mock_es):
        outcome = BulkIndexer(mock_es).submit_batch([])
        assert outcome.accepted == 0
        mock_es.bulk.assert_not_called()

    def test_resubmission_creates_new_documents(self, mock_es):
        """
        Sending the same records twice issues two full sets of create actions;
        nothing de-duplicates them.
        """
        indexer = BulkIndexer(mock_es)
        indexer.submit_batch(RECORDS)
        indexer.submit_batch(RECORDS)
        assert mock_es.bulk.call_count == 2
        creates = sum(
            1
            for call in mock_es.bulk.call_args_list
            for line in payload_lines(call.kwargs["operations"])
            if "create" in line
        )
        assert creates == 2 * len(RECORDS)
