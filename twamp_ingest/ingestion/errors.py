from typing import Any, Optional


class StartupError(Exception):
    """Configuration, watch or client failure that should end the process."""


class IngestError(Exception):
    """Base class for failures that abort ingestion of a single file."""

    kind = "ingest"

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class FileOpenError(IngestError):
    kind = "io"


class FormatError(IngestError):
    kind = "format"


class SerializationError(IngestError):
    kind = "serialization"


class TransportError(IngestError):
    kind = "transport"


class BulkError(IngestError):
    """The datastore answered but reported the bulk request as failed."""

    kind = "bulk"

    def __init__(self, message: str, detail: Any = None, path: Optional[str] = None):
        super().__init__(message, path=path)
        self.detail = detail
