"""Declarative aggregation requests and their up-front validation."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from ...config import METADATA_FIELD
from ...pipelines.bucketing import BucketPlan
from ...records.paths import parse_path
from .accumulators import METHODS, weighted_metric_key

SOURCE_FREE_METHODS = frozenset({"count"})

# camelCase option names accepted by `AggregationRequest.from_mapping`.
_OPTION_ALIASES = {
    "records": "records",
    "matchKeys": "match_keys",
    "match_keys": "match_keys",
    "buckets": "buckets",
    "fields": "fields",
    "sortBy": "sort_by",
    "sort_by": "sort_by",
    "includeMetadata": "include_metadata",
    "include_metadata": "include_metadata",
}


class AggregationConfigError(ValueError):
    """Raised for malformed requests, before any record is processed."""


@dataclass(frozen=True)
class FieldSpec:
    """How one output field is computed."""

    method: str
    source_field: Optional[str] = None
    weight_field: Optional[str] = None

    @classmethod
    def from_mapping(cls, payload: Any) -> "FieldSpec":
        if isinstance(payload, FieldSpec):
            return payload
        if not isinstance(payload, Mapping):
            raise AggregationConfigError(f"Field specs must be mappings, received {type(payload).__name__}")
        if "method" not in payload:
            raise AggregationConfigError("Field specs must name a 'method'.")
        return cls(
            method=payload["method"],
            source_field=payload.get("sourceField", payload.get("source_field")),
            weight_field=payload.get("weightField", payload.get("weight_field")),
        )

    @property
    def is_weighted(self) -> bool:
        return self.method == "weightedAverage"

    def validate(self, output_field: str) -> None:
        if self.method not in METHODS:
            raise AggregationConfigError(
                f"Unknown method {self.method!r} for output field '{output_field}'. Available: {list(METHODS)}"
            )
        if self.method not in SOURCE_FREE_METHODS and not _is_path(self.source_field):
            raise AggregationConfigError(f'"{self.method}" aggregations must specify a "sourceField" ({output_field}).')
        if self.is_weighted and not _is_path(self.weight_field):
            raise AggregationConfigError(f'"weightedAverage" aggregations must specify a "weightField" ({output_field}).')


def _is_path(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def _check_path(path: Any, role: str) -> None:
    if not _is_path(path):
        raise AggregationConfigError(f"{role} must be a non-empty string path, received {path!r}")
    parse_path(path)


@dataclass(frozen=True)
class AggregationRequest:
    """Records to aggregate plus how to group them and which outputs to compute."""

    records: Sequence[Mapping[str, Any]] = ()
    fields: Mapping[str, FieldSpec] = field(default_factory=dict)
    match_keys: Tuple[str, ...] = ()
    buckets: Mapping[str, Sequence[float]] = field(default_factory=dict)
    sort_by: Optional[Tuple[str, ...]] = None
    include_metadata: bool = True

    def __post_init__(self) -> None:
        # Normalise containers so the request can be iterated more than once.
        object.__setattr__(self, "records", tuple(self.records or ()))
        if isinstance(self.match_keys, str):
            raise AggregationConfigError("match_keys must be a sequence of paths, not a single string.")
        object.__setattr__(self, "match_keys", tuple(self.match_keys or ()))
        if self.sort_by is not None:
            if isinstance(self.sort_by, str):
                raise AggregationConfigError("sort_by must be a sequence of paths, not a single string.")
            object.__setattr__(self, "sort_by", tuple(self.sort_by))
        if not isinstance(self.fields, Mapping):
            raise AggregationConfigError("fields must map output paths to field specs.")
        object.__setattr__(
            self, "fields", {output: FieldSpec.from_mapping(spec) for output, spec in self.fields.items()}
        )
        object.__setattr__(self, "buckets", dict(self.buckets or {}))

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "AggregationRequest":
        """Build a request from camelCase options (``matchKeys``, ``sortBy``, ...).

        The legacy ``noAggregateMetadata`` flag is honoured as the negation of
        ``includeMetadata``.
        """
        kwargs: Dict[str, Any] = {}
        for name, value in options.items():
            if name == "noAggregateMetadata":
                kwargs["include_metadata"] = not value
                continue
            try:
                kwargs[_OPTION_ALIASES[name]] = value
            except KeyError as exc:
                raise AggregationConfigError(f"Unknown aggregation option '{name}'.") from exc
        return cls(**kwargs)

    def validate(self) -> None:
        seen = set()
        for match_key in self.match_keys:
            _check_path(match_key, "Match keys")
            if match_key in seen:
                raise AggregationConfigError(f"Duplicate match key '{match_key}'.")
            seen.add(match_key)

        for output_field, spec in self.fields.items():
            _check_path(output_field, "Output fields")
            if parse_path(output_field)[0] == METADATA_FIELD:
                raise AggregationConfigError(f"Output field '{output_field}' collides with reserved key {METADATA_FIELD}.")
            spec.validate(output_field)

        for sort_key in self.sort_by or ():
            _check_path(sort_key, "Sort keys")

        unknown = [key for key in self.buckets if key not in seen]
        if unknown:
            raise AggregationConfigError(f"Bucketed keys must be match keys: {', '.join(map(str, unknown))}")
        self.bucket_plans()

    def bucket_plans(self) -> Dict[str, BucketPlan]:
        plans: Dict[str, BucketPlan] = {}
        for key, breakpoints in self.buckets.items():
            try:
                plans[key] = BucketPlan.from_breakpoints(breakpoints)
            except (TypeError, ValueError) as exc:
                raise AggregationConfigError(f"Invalid buckets for '{key}': {exc}") from exc
        return plans

    def standard_metric_keys(self) -> Tuple[str, ...]:
        """Deduplicated source fields read by non-weighted methods, in request order."""
        keys: Dict[str, None] = {}
        for spec in self.fields.values():
            if spec.is_weighted or spec.method in SOURCE_FREE_METHODS or spec.source_field is None:
                continue
            keys.setdefault(spec.source_field, None)
        return tuple(keys)

    def weighted_metric_keys(self) -> Tuple[Tuple[str, str, str], ...]:
        """Deduplicated ``(metric_key, source_field, weight_field)`` triples."""
        keys: Dict[str, Tuple[str, str, str]] = {}
        for spec in self.fields.values():
            if not spec.is_weighted or spec.source_field is None or spec.weight_field is None:
                continue
            key = weighted_metric_key(spec.source_field, spec.weight_field)
            keys.setdefault(key, (key, spec.source_field, spec.weight_field))
        return tuple(keys.values())

    def totals_request(self) -> "AggregationRequest":
        """Same request with a single implicit group."""
        return replace(self, match_keys=(), buckets={}, sort_by=None)


__all__ = ["AggregationConfigError", "AggregationRequest", "FieldSpec", "SOURCE_FREE_METHODS"]
