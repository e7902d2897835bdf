"""
Shared pytest fixtures for the ingester tests.

Builds gzip CSV exports on disk and an Elasticsearch client double whose
`bulk` returns real transport response objects.
"""

import gzip
from unittest.mock import Mock

import pytest
from elastic_transport import ApiResponseMeta, HttpHeaders, NodeConfig, ObjectApiResponse


# =============================================================================
# Response helpers
# =============================================================================

def make_meta(status=200):
    return ApiResponseMeta(
        status=status,
        http_version="1.1",
        headers=HttpHeaders(),
        duration=0.0,
        node=NodeConfig("http", "localhost", 9200),
    )


def make_bulk_response(errors=False, items=None, took=3):
    body = {"took": took, "errors": errors, "items": items or []}
    return ObjectApiResponse(body=body, meta=make_meta(200))


# =============================================================================
# File fixtures
# =============================================================================

@pytest.fixture
def write_gz(tmp_path):
    """Write `text` gzip-compressed to tmp_path/name and return the path as str."""

    def _write(name, text, directory=None):
        path = (directory or tmp_path) / name
        with gzip.open(path, "wb") as f:
            f.write(text.encode("utf-8"))
        return str(path)

    return _write


@pytest.fixture
def probe_csv():
    """The two-row probe export used throughout the tests."""
    return (
        "session_id,source_port,@timestamp\n"
        "1,5000,2024-01-01T00:00:00Z\n"
        "2,5001,2024-01-01T00:01:00Z\n"
    )


@pytest.fixture
def probe_file(write_gz, probe_csv):
    return write_gz("probe_001.gz", probe_csv)


# =============================================================================
# Elasticsearch fixtures
# =============================================================================

@pytest.fixture
def mock_es():
    es = Mock()
    es.bulk.return_value = make_bulk_response()
    return es
