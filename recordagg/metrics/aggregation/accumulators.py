"""Pure merge functions for group accumulators and the readers deriving outputs from them."""

from __future__ import annotations

from typing import Any, Callable, Dict, Literal, Optional, Tuple, Union, get_args

from ...config import WEIGHTED_KEY_PREFIX, WEIGHTED_KEY_SEPARATOR
from .helpers import ARITHMETIC, ZERO, to_decimal
from .records import AggregationMetadata, MetricState, WeightedMetricState

Method = Literal["min", "max", "sum", "count", "average", "standardDeviation", "weightedAverage"]
METHODS: Tuple[str, ...] = get_args(Method)

Number = Union[int, float]


def weighted_metric_key(source_field: str, weight_field: str) -> str:
    """Metric key for a (source, weight) pair; never equal to a plain source path."""
    return WEIGHTED_KEY_SEPARATOR.join((WEIGHTED_KEY_PREFIX, source_field, weight_field))


# ---------------------------------------------------------------------------
# Merge functions


def fold_count(count: int, contribution: int = 1) -> int:
    return count + contribution


def fold_value(state: MetricState, value: Any) -> MetricState:
    """Fold one raw value into ``state``."""
    number = to_decimal(value)
    return MetricState(
        sum=ARITHMETIC.add(state.sum, number),
        sum_of_squares=ARITHMETIC.add(state.sum_of_squares, ARITHMETIC.multiply(number, number)),
        min=ARITHMETIC.min(state.min, number),
        max=ARITHMETIC.max(state.max, number),
    )


def merge_states(state: MetricState, other: MetricState) -> MetricState:
    """Fold a pre-aggregated state into ``state`` without touching derived values."""
    return MetricState(
        sum=ARITHMETIC.add(state.sum, other.sum),
        sum_of_squares=ARITHMETIC.add(state.sum_of_squares, other.sum_of_squares),
        min=ARITHMETIC.min(state.min, other.min),
        max=ARITHMETIC.max(state.max, other.max),
    )


def fold_weighted_value(state: WeightedMetricState, value: Any, weight: Any) -> WeightedMetricState:
    number = to_decimal(value)
    coefficient = to_decimal(weight)
    return WeightedMetricState(
        weighted_sum=ARITHMETIC.add(state.weighted_sum, ARITHMETIC.multiply(number, coefficient)),
        total_weight=ARITHMETIC.add(state.total_weight, coefficient),
    )


def merge_weighted_states(state: WeightedMetricState, other: WeightedMetricState) -> WeightedMetricState:
    return WeightedMetricState(
        weighted_sum=ARITHMETIC.add(state.weighted_sum, other.weighted_sum),
        total_weight=ARITHMETIC.add(state.total_weight, other.total_weight),
    )


# ---------------------------------------------------------------------------
# Derived outputs


def _standard(metadata: AggregationMetadata, source_field: Optional[str]) -> MetricState:
    state = metadata.sources.get(source_field or "")
    return state if isinstance(state, MetricState) else MetricState()


def _weighted(metadata: AggregationMetadata, source_field: Optional[str], weight_field: Optional[str]) -> WeightedMetricState:
    key = weighted_metric_key(source_field or "", weight_field or "")
    state = metadata.sources.get(key)
    return state if isinstance(state, WeightedMetricState) else WeightedMetricState()


def _average(metadata: AggregationMetadata, source_field: Optional[str], _: Optional[str]) -> float:
    state = _standard(metadata, source_field)
    return float(ARITHMETIC.divide(state.sum, to_decimal(metadata.count)))


def _standard_deviation(metadata: AggregationMetadata, source_field: Optional[str], _: Optional[str]) -> float:
    state = _standard(metadata, source_field)
    count = to_decimal(metadata.count)
    mean = ARITHMETIC.divide(state.sum, count)
    variance = ARITHMETIC.subtract(ARITHMETIC.divide(state.sum_of_squares, count), ARITHMETIC.multiply(mean, mean))
    # Rounding can push a zero variance just below zero.
    if not variance.is_nan() and variance.is_signed():
        variance = ZERO
    return float(ARITHMETIC.sqrt(variance))


def _weighted_average(metadata: AggregationMetadata, source_field: Optional[str], weight_field: Optional[str]) -> float:
    state = _weighted(metadata, source_field, weight_field)
    return float(ARITHMETIC.divide(state.weighted_sum, state.total_weight))


Reader = Callable[[AggregationMetadata, Optional[str], Optional[str]], Number]

READERS: Dict[str, Reader] = {
    "min": lambda metadata, source_field, _: float(_standard(metadata, source_field).min),
    "max": lambda metadata, source_field, _: float(_standard(metadata, source_field).max),
    "sum": lambda metadata, source_field, _: float(_standard(metadata, source_field).sum),
    "count": lambda metadata, _source, _weight: metadata.count,
    "average": _average,
    "standardDeviation": _standard_deviation,
    "weightedAverage": _weighted_average,
}


def derive(
    method: str,
    metadata: AggregationMetadata,
    source_field: Optional[str] = None,
    weight_field: Optional[str] = None,
) -> Number:
    """Compute the output value for ``method`` from a group's accumulated state."""
    try:
        reader = READERS[method]
    except KeyError as exc:
        raise ValueError(f"Unknown aggregation method '{method}'. Available: {list(READERS)}") from exc
    return reader(metadata, source_field, weight_field)


__all__ = [
    "METHODS",
    "Method",
    "READERS",
    "derive",
    "fold_count",
    "fold_value",
    "fold_weighted_value",
    "merge_states",
    "merge_weighted_states",
    "weighted_metric_key",
]
