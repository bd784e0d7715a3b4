from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, NamedTuple

from flyover.model import Point
from flyover.store import AnnotationStore
from flyover.surface import EditingSurface

logger = logging.getLogger(__name__)


class DiagnosticSpan(NamedTuple):
    start: Point
    end: Point
    message: str


@dataclass(frozen=True)
class ReconcileResult:
    created: int = 0
    updated: int = 0
    removed: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.created or self.updated or self.removed)


def diagnostic_span(diagnostic: object) -> DiagnosticSpan | None:
    """Read start, end and message off an lsprotocol-shaped diagnostic.

    Returns ``None`` for anything that does not carry a usable range and a
    message; callers skip those.
    """
    try:
        span = getattr(diagnostic, "range")
        start = Point.of(span.start)
        end = Point.of(span.end)
    except (AttributeError, TypeError, ValueError):
        return None
    message = getattr(diagnostic, "message", None)
    if not isinstance(message, str):
        return None
    if start.line < 0 or start.character < 0:
        return None
    if end < start:
        end = start
    return DiagnosticSpan(start, end, message)


def diagnostic_spans(diagnostics: Iterable[object] | None) -> list[DiagnosticSpan]:
    if diagnostics is None:
        return []
    try:
        items = list(diagnostics)
    except TypeError:
        logger.debug("ignoring non-iterable diagnostics payload %r", diagnostics)
        return []
    spans: list[DiagnosticSpan] = []
    for item in items:
        span = diagnostic_span(item)
        if span is None:
            logger.debug("skipping malformed diagnostic %r", item)
            continue
        spans.append(span)
    return spans


class Reconciler:
    """Bring an :class:`AnnotationStore` in line with a diagnostics report."""

    def __init__(self, store: AnnotationStore, surface: EditingSurface) -> None:
        self._store = store
        self._surface = surface

    @property
    def store(self) -> AnnotationStore:
        return self._store

    def reconcile(self, diagnostics: Iterable[object] | None) -> ReconcileResult:
        self._store.sync()
        spans = diagnostic_spans(diagnostics)
        current = {span.start for span in spans}

        stale = [start for start in self._store.starts() if start not in current]
        for start in stale:
            self._store.remove(start)

        created = 0
        updated = 0
        seen: set[Point] = set()
        for span in spans:
            anchor_end = self._surface.line_start_after(span.end, 1)
            existed = span.start in self._store
            self._store.upsert(span.start, anchor_end, span.message)
            if span.start in seen:
                continue
            seen.add(span.start)
            if existed:
                updated += 1
            else:
                created += 1

        result = ReconcileResult(created=created, updated=updated, removed=len(stale))
        logger.debug(
            "reconciled %d diagnostics: created=%d updated=%d removed=%d",
            len(spans),
            result.created,
            result.updated,
            result.removed,
        )
        return result
