import csv
import gzip
import io
import logging
import zlib
from dataclasses import dataclass, field
from typing import List

from twamp_ingest.ingestion.errors import FileOpenError, FormatError

logger = logging.getLogger(__name__)

GZ_SUFFIX = ".gz"


@dataclass
class DecodedFile:
    headers: List[str]
    rows: List[List[str]] = field(default_factory=list)


def open_and_decode(path: str, encoding: str = "utf-8") -> DecodedFile:
    """
    Read a gzip-compressed CSV export into its header row and data rows.

    The whole file is decoded into memory; the first row becomes the header.
    Raises FileOpenError when the file can't be opened and FormatError when the
    content isn't a gzip stream, isn't valid text, or has no header.
    """
    try:
        raw = open(path, "rb")
    except OSError as e:
        raise FileOpenError(f"cannot open {path}: {e}", path=path) from e

    with raw:
        try:
            with gzip.GzipFile(fileobj=raw) as gz:
                text = io.TextIOWrapper(gz, encoding=encoding, newline="")
                # csv.reader yields [] for blank lines; they are not rows
                reader = (row for row in csv.reader(text, delimiter=",") if row)
                headers = next(reader, None)
                if headers is None:
                    raise FormatError(f"{path} is empty, no header row", path=path)
                rows = list(reader)
        except (gzip.BadGzipFile, EOFError, zlib.error) as e:
            raise FormatError(f"{path} is not a valid gzip stream: {e}", path=path) from e
        except UnicodeDecodeError as e:
            raise FormatError(f"{path} is not {encoding} text: {e}", path=path) from e
        except csv.Error as e:
            raise FormatError(f"{path} is not valid CSV: {e}", path=path) from e

    logger.info(f"header: {headers}")
    return DecodedFile(headers=headers, rows=rows)
