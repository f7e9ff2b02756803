"""Composable grouped aggregation over loosely-structured records."""

from .accumulators import METHODS, Method, derive, weighted_metric_key
from .grouping import GroupingAggregator, check_metadata, is_re_aggregatable
from .pooling import aggregate, aggregate_records
from .records import AggregationMetadata, AggregationResult, MetricState, WeightedMetricState
from .request import AggregationConfigError, AggregationRequest, FieldSpec

__all__ = [
    "METHODS",
    "AggregationConfigError",
    "AggregationMetadata",
    "AggregationRequest",
    "AggregationResult",
    "FieldSpec",
    "GroupingAggregator",
    "Method",
    "MetricState",
    "WeightedMetricState",
    "aggregate",
    "aggregate_records",
    "check_metadata",
    "derive",
    "is_re_aggregatable",
    "weighted_metric_key",
]
