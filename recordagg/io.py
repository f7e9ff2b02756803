"""Helpers for reading records and requests from JSON and writing aggregation results."""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Mapping

from .metrics.aggregation.records import AggregationResult

JSON_LINES_SUFFIXES = (".jsonl", ".ndjson")


def _encode(value: Any) -> Any:
    # Metadata states are Decimals; strings keep every digit and re-parse exactly.
    if isinstance(value, Decimal):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def read_records(path: Path) -> List[Dict[str, Any]]:
    """Load a JSON array of records, or one record per line for ``.jsonl`` files."""
    text = path.read_text(encoding="utf-8")
    if path.suffix in JSON_LINES_SUFFIXES:
        records = [json.loads(line) for line in text.splitlines() if line.strip()]
    else:
        records = json.loads(text)
    if not isinstance(records, list) or not all(isinstance(record, dict) for record in records):
        raise ValueError(f"{path} must hold a list of JSON objects.")
    return records


def read_request(path: Path) -> Mapping[str, Any]:
    """Load aggregation options (``matchKeys``, ``fields``, ...) from a JSON object."""
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"{path} must hold a JSON object of aggregation options.")
    return payload


def dumps_result(result: AggregationResult, indent: int = 2) -> str:
    return json.dumps(result.to_dict(), default=_encode, indent=indent)


def write_result(path: Path, result: AggregationResult) -> None:
    """Persist a result so its grouped records can be fed back into a later run."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps_result(result), encoding="utf-8")


__all__ = ["JSON_LINES_SUFFIXES", "dumps_result", "read_records", "read_request", "write_result"]
