import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

logger = logging.getLogger(__name__)

ARITY_POLICIES = ("skip", "pad")


@dataclass
class MappedRows:
    records: List[Dict[str, str]] = field(default_factory=list)
    skipped: int = 0


def map_rows(
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    arity_policy: str = "skip",
) -> MappedRows:
    """
    Zip every data row with the header row, in file order.

    Rows whose cell count differs from the header's are dropped ("skip") or
    padded with "" / truncated to the header width ("pad").
    """
    if arity_policy not in ARITY_POLICIES:
        raise ValueError(
            f"Unknown arity policy: {arity_policy!r} (expected one of {ARITY_POLICIES})"
        )

    width = len(headers)
    out = MappedRows()
    for n, row in enumerate(rows, 1):
        if len(row) != width:
            if arity_policy == "skip":
                logger.warning(
                    f"Skipping data row {n}: {len(row)} cells, header has {width}"
                )
                out.skipped += 1
                continue
            logger.warning(
                f"Data row {n} has {len(row)} cells, header has {width}; fitting to header"
            )
            row = list(row[:width]) + [""] * (width - len(row))

        record: Dict[str, str] = {}
        for i, header in enumerate(headers):
            record[header] = row[i]
        out.records.append(record)

    return out
