"""Group records by composite key and fold them into mergeable accumulators."""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass
from decimal import Decimal
from numbers import Real
from typing import Any, Dict, Hashable, Iterable, List, Mapping, Optional, Tuple

from loguru import logger

from ...config import METADATA_FIELD
from ...diagnostics import Diagnostic, DiagnosticObserver, DiagnosticSink, Reason, Stage
from ...records.paths import get_path, set_path
from .accumulators import (
    derive,
    fold_count,
    fold_value,
    fold_weighted_value,
    merge_states,
    merge_weighted_states,
)
from .records import AggregationMetadata, MetadataError, MetricState, RecordedMetadata, SourceState, WeightedMetricState
from .request import AggregationRequest

GroupKey = Tuple[Hashable, ...]


@dataclass(frozen=True)
class PreAggregate:
    """Contribution of a re-aggregatable record: its count and the metric states the request needs."""

    count: int
    states: Mapping[str, SourceState]


@dataclass(frozen=True)
class MetadataIssue:
    reason: Reason
    message: str
    record_match_keys: Tuple[str, ...] = ()
    metric_keys: Tuple[str, ...] = ()


@dataclass
class _Group:
    record: Dict[str, Any]
    metadata: AggregationMetadata


def check_metadata(
    record: Mapping[str, Any],
    request: AggregationRequest,
    standard_keys: Optional[Tuple[str, ...]] = None,
    weighted_keys: Optional[Tuple[Tuple[str, str, str], ...]] = None,
) -> Tuple[Optional[PreAggregate], Optional[MetadataIssue]]:
    """Decide whether ``record`` can be merged as a pre-aggregated unit.

    Returns ``(contribution, None)`` when it can, ``(None, issue)`` when it carries
    metadata that does not fit ``request`` and ``(None, None)`` for plain records.
    ``standard_keys`` and ``weighted_keys`` default to the request's own listings.
    """
    if not isinstance(record, Mapping) or METADATA_FIELD not in record:
        return None, None
    try:
        recorded = RecordedMetadata.from_payload(record[METADATA_FIELD])
    except MetadataError as exc:
        return None, MetadataIssue(reason="malformed_metadata", message=str(exc))

    if not set(request.match_keys).issubset(recorded.match_keys):
        return None, MetadataIssue(
            reason="match_keys",
            message=(
                f"record was aggregated on {list(recorded.match_keys)}, which does not include "
                f"the current match keys {list(request.match_keys)}"
            ),
            record_match_keys=recorded.match_keys,
        )

    if standard_keys is None:
        standard_keys = request.standard_metric_keys()
    if weighted_keys is None:
        weighted_keys = request.weighted_metric_keys()
    needed = list(standard_keys) + [key for key, _, _ in weighted_keys]
    missing = tuple(key for key in needed if key not in recorded.sources)
    if missing:
        return None, MetadataIssue(
            reason="missing_metric",
            message=f"metadata has no state for {', '.join(missing)}",
            record_match_keys=recorded.match_keys,
            metric_keys=missing,
        )

    states: Dict[str, SourceState] = {}
    readers = [(key, recorded.standard_state) for key in standard_keys]
    readers += [(key, recorded.weighted_state) for key, _, _ in weighted_keys]
    for key, read in readers:
        try:
            states[key] = read(key)
        except MetadataError as exc:
            return None, MetadataIssue(
                reason="malformed_metadata",
                message=f"metric state for {key} is unreadable: {exc}",
                record_match_keys=recorded.match_keys,
                metric_keys=(key,),
            )
    return PreAggregate(count=recorded.count, states=states), None


def is_re_aggregatable(record: Mapping[str, Any], request: AggregationRequest) -> bool:
    """True when ``record``'s metadata can be merged under ``request``."""
    contribution, _ = check_metadata(record, request)
    return contribution is not None


def _group_token(label: Any) -> Hashable:
    # True == 1 == 1.0 under hashing; keep booleans in their own groups.
    if isinstance(label, bool):
        return ("bool", label)
    try:
        hash(label)
    except TypeError:
        return ("json", json.dumps(label, sort_keys=True, default=str))
    return label


def _sort_token(value: Any) -> Tuple[int, Any]:
    if value is None:
        return (3, 0)
    if isinstance(value, (Real, Decimal)) and not isinstance(value, bool):
        return (0, float(value))
    if isinstance(value, str):
        return (1, value)
    return (2, json.dumps(value, sort_keys=True, default=str))


class GroupingAggregator:
    """Folds records into per-group accumulators and renders the grouped output records."""

    def __init__(
        self,
        request: AggregationRequest,
        stage: Stage = "grouped",
        observer: Optional[DiagnosticObserver] = None,
        sink: Optional[DiagnosticSink] = None,
    ) -> None:
        self.request = request
        self.stage = stage
        self._sink = sink or DiagnosticSink(observer)
        self._plans = request.bucket_plans()
        self._standard_keys = request.standard_metric_keys()
        self._weighted_keys = request.weighted_metric_keys()
        self._groups: Dict[GroupKey, _Group] = {}
        self._folded = 0
        if not request.match_keys:
            # The ungrouped total exists even when no record is folded.
            self._open_group((), record={})

    def fit(self, records: Iterable[Mapping[str, Any]]) -> None:
        """Fold every record in ``records`` into its group."""
        for index, record in enumerate(records):
            self.fold(record, index)
        logger.debug(
            "Folded {} records into {} groups ({} stage)",
            self._folded,
            len(self._groups),
            self.stage,
        )

    def fold(self, record: Mapping[str, Any], index: int = 0) -> None:
        contribution = self._classify(record, index)
        labels = self._labels(record)
        key = tuple(_group_token(label) for label in labels)
        group = self._groups.get(key)
        if group is None:
            group = self._open_group(key, record=self._identity(labels))

        metadata = group.metadata
        sources = metadata.sources
        if contribution is None:
            metadata.count = fold_count(metadata.count)
            for metric_key in self._standard_keys:
                sources[metric_key] = fold_value(sources[metric_key], get_path(record, metric_key))
            for metric_key, source_field, weight_field in self._weighted_keys:
                sources[metric_key] = fold_weighted_value(
                    sources[metric_key], get_path(record, source_field), get_path(record, weight_field)
                )
        else:
            metadata.count = fold_count(metadata.count, contribution.count)
            for metric_key in self._standard_keys:
                sources[metric_key] = merge_states(sources[metric_key], contribution.states[metric_key])
            for metric_key, _, _ in self._weighted_keys:
                sources[metric_key] = merge_weighted_states(sources[metric_key], contribution.states[metric_key])
        self._folded += 1

    def grouped_records(self) -> List[Dict[str, Any]]:
        """Render one output record per group, sorted when the request asks for it."""
        rendered = [self._render(group) for group in self._groups.values()]
        if self.request.sort_by:
            rendered.sort(key=self._sort_key)
        return rendered

    @property
    def diagnostics(self) -> Tuple[Diagnostic, ...]:
        return self._sink.items

    # -----------------------------------------------------------------------
    # Internals

    def _classify(self, record: Mapping[str, Any], index: int) -> Optional[PreAggregate]:
        contribution, issue = check_metadata(record, self.request, self._standard_keys, self._weighted_keys)
        if issue is not None:
            self._sink.emit(
                Diagnostic(
                    stage=self.stage,
                    record_index=index,
                    reason=issue.reason,
                    message=issue.message,
                    record_match_keys=issue.record_match_keys,
                    request_match_keys=self.request.match_keys,
                    metric_keys=issue.metric_keys,
                    record=record,
                )
            )
        return contribution

    def _labels(self, record: Mapping[str, Any]) -> List[Any]:
        labels = []
        for match_key in self.request.match_keys:
            value = get_path(record, match_key)
            plan = self._plans.get(match_key)
            labels.append(plan.label_for(value) if plan is not None else value)
        return labels

    def _identity(self, labels: List[Any]) -> Dict[str, Any]:
        record: Dict[str, Any] = {}
        for match_key, label in zip(self.request.match_keys, labels):
            set_path(record, match_key, copy.deepcopy(label))
        return record

    def _open_group(self, key: GroupKey, record: Dict[str, Any]) -> _Group:
        sources: Dict[str, SourceState] = {metric_key: MetricState() for metric_key in self._standard_keys}
        for metric_key, _, _ in self._weighted_keys:
            sources[metric_key] = WeightedMetricState()
        group = _Group(record=record, metadata=AggregationMetadata(match_keys=self.request.match_keys, sources=sources))
        self._groups[key] = group
        return group

    def _render(self, group: _Group) -> Dict[str, Any]:
        record = copy.deepcopy(group.record)
        for output_field, spec in self.request.fields.items():
            value = derive(spec.method, group.metadata, spec.source_field, spec.weight_field)
            set_path(record, output_field, value)
        if self.request.include_metadata:
            record[METADATA_FIELD] = group.metadata.to_payload()
        return record

    def _sort_key(self, record: Mapping[str, Any]) -> Tuple[Tuple[int, Any], ...]:
        tokens = []
        for sort_key in self.request.sort_by or ():
            value = get_path(record, sort_key)
            plan = self._plans.get(sort_key)
            if plan is not None:
                value = plan.lower_bound(value)
            tokens.append(_sort_token(value))
        return tuple(tokens)


__all__ = ["GroupingAggregator", "MetadataIssue", "PreAggregate", "check_metadata", "is_re_aggregatable"]
