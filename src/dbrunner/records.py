"""
Record normalisation: every record becomes an ordered list of (field name, value) pairs.
Accepts dicts, sequences of pairs, lists of either, and pandas DataFrames (one record per row).
"""
from collections.abc import Mapping, Sequence
from typing import Any

import pandas as pd

from src.dbrunner.errors import BuildError

Fields = list[tuple[str, Any]]


def _is_pair(item: Any) -> bool:
    return isinstance(item, tuple) and len(item) == 2 and isinstance(item[0], str)


def as_fields(record: Any) -> Fields:
    """Return one record as ordered (name, value) pairs."""
    if isinstance(record, Mapping):
        fields = [(str(k), v) for k, v in record.items()]
    elif isinstance(record, Sequence) and not isinstance(record, (str, bytes)) and all(_is_pair(i) for i in record):
        fields = list(record)
    else:
        raise BuildError(f"Unsupported record type: {type(record).__name__}")
    names = [name for name, _ in fields]
    if len(set(names)) != len(names):
        raise BuildError(f"Duplicate field names in record: {names}")
    return fields


def frame_records(df: pd.DataFrame) -> list[Fields]:
    """Rows of a DataFrame as records; NaN/NaT become None."""
    clean = df.astype(object).where(pd.notna(df), None)
    return [[(str(k), v) for k, v in row.items()] for row in clean.to_dict(orient="records")]


def as_records(record_or_records: Any) -> list[Fields]:
    """Normalise a single record or a record set into a non-empty list of records."""
    if isinstance(record_or_records, pd.DataFrame):
        records = frame_records(record_or_records)
    elif isinstance(record_or_records, Mapping):
        records = [as_fields(record_or_records)]
    elif isinstance(record_or_records, Sequence) and not isinstance(record_or_records, (str, bytes)):
        items = list(record_or_records)
        if items and all(_is_pair(i) for i in items):
            records = [as_fields(items)]
        else:
            records = [as_fields(r) for r in items]
    else:
        raise BuildError(f"Unsupported record set type: {type(record_or_records).__name__}")
    if not records:
        raise BuildError("No records given")
    if any(not r for r in records):
        raise BuildError("Records must have at least one field")
    return records
