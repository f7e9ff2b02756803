"""Public entry point for grouped aggregation with a grand total."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from ...diagnostics import DiagnosticObserver, DiagnosticSink
from .grouping import GroupingAggregator
from .records import AggregationResult
from .request import AggregationRequest, FieldSpec


def aggregate(
    request: Union[AggregationRequest, Mapping[str, Any]],
    observer: Optional[DiagnosticObserver] = None,
) -> AggregationResult:
    """Group the request's records and compute the totals in one call.

    Input records may mix raw records with records produced by an earlier call;
    the latter are merged through their attached metadata, so
    ``aggregate(a + b)`` equals ``aggregate(aggregate(a).grouped_records + b)``.

    Args:
        request: An ``AggregationRequest`` or a mapping of camelCase options
            (``records``, ``matchKeys``, ``buckets``, ``fields``, ``sortBy``,
            ``includeMetadata``).
        observer: Optional callable receiving a ``Diagnostic`` for every record
            whose metadata could not be merged.

    Returns:
        AggregationResult with grouped records, totals and diagnostics.

    Raises:
        AggregationConfigError: the request is malformed. Raised before any
            record is folded.
    """
    if not isinstance(request, AggregationRequest):
        request = AggregationRequest.from_mapping(request)
    request.validate()

    sink = DiagnosticSink(observer)
    grouped = GroupingAggregator(request, stage="grouped", sink=sink)
    grouped.fit(request.records)
    totals = GroupingAggregator(request.totals_request(), stage="totals", sink=sink)
    totals.fit(request.records)

    return AggregationResult(
        grouped_records=grouped.grouped_records(),
        totals=totals.grouped_records()[0],
        diagnostics=sink.items,
    )


def aggregate_records(
    records: Iterable[Mapping[str, Any]],
    fields: Mapping[str, Union[FieldSpec, Mapping[str, Any]]],
    match_keys: Sequence[str] = (),
    buckets: Optional[Mapping[str, Sequence[float]]] = None,
    sort_by: Optional[Sequence[str]] = None,
    include_metadata: bool = True,
    observer: Optional[DiagnosticObserver] = None,
) -> AggregationResult:
    """Keyword wrapper around ``aggregate``."""
    request = AggregationRequest(
        records=tuple(records),
        fields=fields,
        match_keys=tuple(match_keys),
        buckets=buckets or {},
        sort_by=tuple(sort_by) if sort_by is not None else None,
        include_metadata=include_metadata,
    )
    return aggregate(request, observer=observer)


__all__ = ["aggregate", "aggregate_records"]
