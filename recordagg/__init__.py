"""Composable, augmentable grouped statistics over loosely-structured records."""

from loguru import logger

from .config import METADATA_FIELD
from .diagnostics import Diagnostic, DiagnosticObserver
from .metrics.aggregation import (
    AggregationConfigError,
    AggregationRequest,
    AggregationResult,
    FieldSpec,
    aggregate,
    aggregate_records,
    is_re_aggregatable,
    weighted_metric_key,
)
from .pipelines.bucketing import assign_bucket, parse_bucket_label
from .records.paths import get_path, set_path

# Library logging stays silent until an application calls `logger.enable("recordagg")`.
logger.disable(__name__)

__all__ = [
    "METADATA_FIELD",
    "AggregationConfigError",
    "AggregationRequest",
    "AggregationResult",
    "Diagnostic",
    "DiagnosticObserver",
    "FieldSpec",
    "aggregate",
    "aggregate_records",
    "assign_bucket",
    "get_path",
    "is_re_aggregatable",
    "parse_bucket_label",
    "set_path",
    "weighted_metric_key",
]
