"""
Recording parser: read a CSV session recording into validated fix and step events.

Expected header:

    kind,ts,lat,lon,accuracy,speed,altitude,steps

`kind` is `fix` (uses lat/lon/accuracy and optionally speed/altitude) or
`steps` (uses steps, and an optional extra `acceleration` column when
present). `ts` is epoch milliseconds. Empty cells are treated as missing.
"""

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Union

from pydantic import ValidationError

from wt.utils.log import get_logger
from wt.utils.validate import FixRecord, StepRecord

logger = get_logger(__name__)

REQUIRED_COLUMNS = ("kind", "ts")
FIX_COLUMNS      = ("ts", "lat", "lon", "accuracy", "speed", "altitude")
STEP_COLUMNS     = ("ts", "steps", "acceleration")

Record = Union[FixRecord, StepRecord]


@dataclass
class ParseStats:
    """
    Row counters for one parse.
    """
    rows_total: int = 0
    fixes: int = 0
    steps: int = 0
    skipped: int = 0


def _cells(row: dict[str, str]) -> dict[str, str]:
    """Drop empty cells so pydantic defaults apply."""
    return {k: v.strip() for k, v in row.items() if k and v is not None and v.strip() != ""}


def _to_record(row: dict[str, str]) -> Record:
    cells = _cells(row)
    kind = cells.get("kind", "").lower()
    if kind == "fix":
        return FixRecord.model_validate({k: cells[k] for k in FIX_COLUMNS if k in cells})
    if kind == "steps":
        return StepRecord.model_validate({k: cells[k] for k in STEP_COLUMNS if k in cells})
    raise ValueError(f"unknown row kind {kind!r}")


def parse_recording(file_path: str | Path, stats: ParseStats | None = None) -> Iterator[Record]:
    """
    Yield FixRecord / StepRecord events in file order.

    Parameters
    ----------
    file_path
        Path to the CSV recording.
    stats
        Optional counters, filled in as rows are read.

    Raises
    ------
    KeyError
        If the header lacks a required column.
    """
    stats = stats if stats is not None else ParseStats()
    with open(file_path, "r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        fieldnames = reader.fieldnames or []
        missing = [c for c in REQUIRED_COLUMNS if c not in fieldnames]
        if missing:
            raise KeyError(f"recording is missing columns {missing}; found {fieldnames}")

        for line_no, row in enumerate(reader, start=2):
            stats.rows_total += 1
            try:
                record = _to_record(row)
            except (ValidationError, ValueError) as exc:
                stats.skipped += 1
                logger.warning("Skipping %s line %d: %s", file_path, line_no, exc)
                continue
            if isinstance(record, FixRecord):
                stats.fixes += 1
            else:
                stats.steps += 1
            yield record
