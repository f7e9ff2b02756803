"""Structured reports for input records whose aggregation metadata cannot be merged."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Literal, Optional, Protocol, Tuple

from loguru import logger

Stage = Literal["grouped", "totals"]
Reason = Literal["malformed_metadata", "match_keys", "missing_metric"]


@dataclass(frozen=True)
class Diagnostic:
    """A record that carried metadata but was folded in as a single raw record."""

    stage: Stage
    record_index: int
    reason: Reason
    message: str
    record_match_keys: Tuple[str, ...] = ()
    request_match_keys: Tuple[str, ...] = ()
    metric_keys: Tuple[str, ...] = ()
    record: Any = field(default=None, compare=False, repr=False)


class DiagnosticObserver(Protocol):
    """Callable notified once per degraded input record."""

    def __call__(self, diagnostic: Diagnostic) -> None:
        ...


def log_diagnostic(diagnostic: Diagnostic) -> None:
    logger.bind(
        event="aggregation_degraded_input",
        stage=diagnostic.stage,
        record_index=diagnostic.record_index,
        reason=diagnostic.reason,
    ).warning(
        "Record {} treated as raw data during {} aggregation: {}",
        diagnostic.record_index,
        diagnostic.stage,
        diagnostic.message,
    )


class DiagnosticSink:
    """Collects diagnostics for one run, logging each and forwarding it to an observer."""

    def __init__(self, observer: Optional[DiagnosticObserver] = None) -> None:
        self._observer = observer
        self._items: List[Diagnostic] = []

    def emit(self, diagnostic: Diagnostic) -> None:
        self._items.append(diagnostic)
        log_diagnostic(diagnostic)
        if self._observer is not None:
            self._observer(diagnostic)

    @property
    def items(self) -> Tuple[Diagnostic, ...]:
        return tuple(self._items)


__all__ = ["Diagnostic", "DiagnosticObserver", "DiagnosticSink", "Reason", "Stage", "log_diagnostic"]
