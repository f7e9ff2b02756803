"""Mergeable per-group statistical state and its wire representation."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Tuple, Union

from ...config import (
    MAX,
    METADATA_COUNT,
    METADATA_MATCH_KEYS,
    METADATA_SOURCES,
    MIN,
    SUM,
    SUM_OF_SQUARES,
    TOTAL_WEIGHT,
    WEIGHTED_SUM,
    MetadataPayload,
    StandardStatePayload,
    WeightedStatePayload,
)
from ...diagnostics import Diagnostic
from .helpers import NEGATIVE_INFINITY, POSITIVE_INFINITY, ZERO, to_count, to_decimal


class MetadataError(ValueError):
    """Raised when a record's aggregation metadata cannot be read."""


def _require(payload: Any, keys: Tuple[str, ...], what: str) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise MetadataError(f"{what} must be a mapping, received {type(payload).__name__}")
    missing = [key for key in keys if key not in payload]
    if missing:
        raise MetadataError(f"{what} is missing {', '.join(missing)}")
    return payload


@dataclass(frozen=True)
class MetricState:
    """Running sum, sum of squares and extrema for one source field."""

    sum: Decimal = ZERO
    sum_of_squares: Decimal = ZERO
    min: Decimal = POSITIVE_INFINITY
    max: Decimal = NEGATIVE_INFINITY

    @classmethod
    def from_payload(cls, payload: Any) -> "MetricState":
        data = _require(payload, (SUM, SUM_OF_SQUARES, MIN, MAX), "Metric state")
        return cls(
            sum=to_decimal(data[SUM]),
            sum_of_squares=to_decimal(data[SUM_OF_SQUARES]),
            min=to_decimal(data[MIN]),
            max=to_decimal(data[MAX]),
        )

    def to_payload(self) -> StandardStatePayload:
        return {
            SUM: self.sum,
            SUM_OF_SQUARES: self.sum_of_squares,
            MIN: self.min,
            MAX: self.max,
        }


@dataclass(frozen=True)
class WeightedMetricState:
    """Running weighted sum and total weight for one (source, weight) pair."""

    weighted_sum: Decimal = ZERO
    total_weight: Decimal = ZERO

    @classmethod
    def from_payload(cls, payload: Any) -> "WeightedMetricState":
        data = _require(payload, (WEIGHTED_SUM, TOTAL_WEIGHT), "Weighted metric state")
        return cls(
            weighted_sum=to_decimal(data[WEIGHTED_SUM]),
            total_weight=to_decimal(data[TOTAL_WEIGHT]),
        )

    def to_payload(self) -> WeightedStatePayload:
        return {WEIGHTED_SUM: self.weighted_sum, TOTAL_WEIGHT: self.total_weight}


SourceState = Union[MetricState, WeightedMetricState]


@dataclass
class AggregationMetadata:
    """Accumulator for one group: record count plus per-metric state.

    Instances are owned by a single aggregation run; the states they hold are
    immutable and replaced on every fold.
    """

    match_keys: Tuple[str, ...]
    count: int = 0
    sources: Dict[str, SourceState] = field(default_factory=dict)

    def to_payload(self) -> MetadataPayload:
        return {
            METADATA_MATCH_KEYS: list(self.match_keys),
            METADATA_COUNT: self.count,
            METADATA_SOURCES: {key: state.to_payload() for key, state in self.sources.items()},
        }


@dataclass(frozen=True)
class RecordedMetadata:
    """Read-only view of metadata found on an input record.

    Metric states are parsed on demand so that entries the current request does
    not need are never inspected.
    """

    match_keys: Tuple[str, ...]
    count: int
    sources: Mapping[str, Any]

    @classmethod
    def from_payload(cls, payload: Any) -> "RecordedMetadata":
        data = _require(payload, (METADATA_MATCH_KEYS, METADATA_COUNT, METADATA_SOURCES), "Aggregation metadata")
        match_keys = data[METADATA_MATCH_KEYS]
        if isinstance(match_keys, (str, bytes)) or not isinstance(match_keys, (list, tuple)):
            raise MetadataError("Aggregation metadata matchKeys must be a list of paths")
        if not isinstance(data[METADATA_SOURCES], Mapping):
            raise MetadataError("Aggregation metadata sources must be a mapping")
        try:
            count = to_count(data[METADATA_COUNT])
        except ValueError as exc:
            raise MetadataError(str(exc)) from exc
        return cls(
            match_keys=tuple(str(key) for key in match_keys),
            count=count,
            sources=data[METADATA_SOURCES],
        )

    def standard_state(self, key: str) -> MetricState:
        return MetricState.from_payload(self.sources[key])

    def weighted_state(self, key: str) -> WeightedMetricState:
        return WeightedMetricState.from_payload(self.sources[key])


@dataclass(frozen=True)
class AggregationResult:
    """Grouped output records plus the grand total over every input record."""

    grouped_records: List[Dict[str, Any]]
    totals: Dict[str, Any]
    diagnostics: Tuple[Diagnostic, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"groupedRecords": self.grouped_records, "totals": self.totals}


__all__ = [
    "AggregationMetadata",
    "AggregationResult",
    "MetadataError",
    "MetricState",
    "RecordedMetadata",
    "SourceState",
    "WeightedMetricState",
]
