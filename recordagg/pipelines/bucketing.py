"""Discretise numeric match-key values into labelled breakpoint buckets."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from decimal import Decimal
from numbers import Real
from typing import Any, Iterable, Optional, Tuple

import numpy as np

_NUMBER = r"-?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?"
_LOWER_LABEL = re.compile(rf"^<=(?P<hi>{_NUMBER})$")
_UPPER_LABEL = re.compile(rf"^(?P<lo>{_NUMBER})\+$")
_RANGE_LABEL = re.compile(rf"^(?P<lo>{_NUMBER})-(?P<hi>{_NUMBER})$")


def format_breakpoint(value: float) -> str:
    """Render a breakpoint the way it appears inside a label (``10`` not ``10.0``)."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def normalize_breakpoints(breakpoints: Iterable[Any]) -> Tuple[float, ...]:
    """Sort and de-duplicate breakpoints, rejecting empty or non-finite input."""
    values = np.asarray(list(breakpoints), dtype=float)
    if values.ndim != 1 or values.size == 0:
        raise ValueError("Bucket breakpoints must be a non-empty flat sequence of numbers.")
    if not np.all(np.isfinite(values)):
        raise ValueError("Bucket breakpoints must be finite numbers.")
    return tuple(float(value) for value in np.unique(values))


def bucket_labels(breakpoints: Tuple[float, ...]) -> Tuple[str, ...]:
    """All labels produced by ``breakpoints``, lowest interval first."""
    labels = [f"<={format_breakpoint(breakpoints[0])}"]
    for lower, upper in zip(breakpoints, breakpoints[1:]):
        labels.append(f"{format_breakpoint(lower)}-{format_breakpoint(upper)}")
    labels.append(f"{format_breakpoint(breakpoints[-1])}+")
    return tuple(labels)


def assign_bucket(value: float, breakpoints: Tuple[float, ...]) -> str:
    """Return the label of the bucket holding ``value``.

    ``breakpoints`` must already be normalised. A value equal to a breakpoint
    falls in the lower bucket; infinities land in the outer buckets.
    """
    index = int(np.searchsorted(np.asarray(breakpoints, dtype=float), value, side="left"))
    if index == 0:
        return f"<={format_breakpoint(breakpoints[0])}"
    if index == len(breakpoints):
        return f"{format_breakpoint(breakpoints[-1])}+"
    return f"{format_breakpoint(breakpoints[index - 1])}-{format_breakpoint(breakpoints[index])}"


def parse_bucket_label(label: str) -> Tuple[float, float]:
    """Recover ``(lower, upper)`` from a bucket label, using infinities for open ends."""
    match = _LOWER_LABEL.match(label)
    if match:
        return -math.inf, float(match.group("hi"))
    match = _UPPER_LABEL.match(label)
    if match:
        return float(match.group("lo")), math.inf
    match = _RANGE_LABEL.match(label)
    if match:
        return float(match.group("lo")), float(match.group("hi"))
    raise ValueError(f"Not a bucket label: {label!r}")


@dataclass(frozen=True)
class BucketPlan:
    """Normalised breakpoints for one match key plus the labels they produce."""

    breakpoints: Tuple[float, ...]
    labels: Tuple[str, ...] = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "labels", bucket_labels(self.breakpoints))

    @classmethod
    def from_breakpoints(cls, breakpoints: Iterable[Any]) -> "BucketPlan":
        return cls(normalize_breakpoints(breakpoints))

    def label_for(self, value: Any) -> Optional[str]:
        """Bucket ``value``; existing labels of this plan pass through unchanged.

        Values that are neither real numbers nor one of this plan's labels get
        ``None``.
        """
        if isinstance(value, str):
            return value if value in self.labels else None
        if isinstance(value, bool) or not isinstance(value, (Real, Decimal)):
            return None
        if math.isnan(float(value)):
            return None
        return assign_bucket(float(value), self.breakpoints)

    def lower_bound(self, label: Any) -> Optional[float]:
        if not isinstance(label, str):
            return None
        try:
            return parse_bucket_label(label)[0]
        except ValueError:
            return None


__all__ = [
    "BucketPlan",
    "assign_bucket",
    "bucket_labels",
    "format_breakpoint",
    "normalize_breakpoints",
    "parse_bucket_label",
]
