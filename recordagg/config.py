"""Static configuration for aggregation metadata wire names and numeric precision."""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, TypedDict, Union

# Reserved key carrying aggregation state on every produced record. Persisted
# aggregates are only re-aggregatable while this name stays unchanged.
METADATA_FIELD = "_aggregationMetadata"

METADATA_MATCH_KEYS = "matchKeys"
METADATA_COUNT = "count"
METADATA_SOURCES = "sources"

SUM = "sum"
SUM_OF_SQUARES = "sumOfSquares"
MIN = "min"
MAX = "max"
WEIGHTED_SUM = "weightedSum"
TOTAL_WEIGHT = "totalWeight"

WEIGHTED_KEY_PREFIX = "weightedAverage"
WEIGHTED_KEY_SEPARATOR = ","

# Significant digits kept while accumulating sums.
DECIMAL_PRECISION = 60

# ---------------------------------------------------------------------------
# Wire payloads as they appear under METADATA_FIELD.

WireNumber = Union[Decimal, int, float, str]


class StandardStatePayload(TypedDict):
    sum: WireNumber
    sumOfSquares: WireNumber
    min: WireNumber
    max: WireNumber


class WeightedStatePayload(TypedDict):
    weightedSum: WireNumber
    totalWeight: WireNumber


class MetadataPayload(TypedDict):
    matchKeys: List[str]
    count: int
    sources: Dict[str, Union[StandardStatePayload, WeightedStatePayload]]


__all__ = [
    "DECIMAL_PRECISION",
    "MAX",
    "METADATA_COUNT",
    "METADATA_FIELD",
    "METADATA_MATCH_KEYS",
    "METADATA_SOURCES",
    "MIN",
    "MetadataPayload",
    "StandardStatePayload",
    "SUM",
    "SUM_OF_SQUARES",
    "TOTAL_WEIGHT",
    "WEIGHTED_KEY_PREFIX",
    "WEIGHTED_KEY_SEPARATOR",
    "WEIGHTED_SUM",
    "WeightedStatePayload",
    "WireNumber",
]
