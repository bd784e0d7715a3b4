from __future__ import annotations

import logging
from typing import Iterator

from flyover.formatting import MessageFormatter, format_message, safe_format
from flyover.model import Annotation, Point, RegionHandle
from flyover.surface import EditingSurface

logger = logging.getLogger(__name__)


class AnnotationStore:
    """Live annotations of one document, keyed by anchor start.

    The store is the only owner of anchored regions on the surface: every
    annotation holds exactly one region and releasing the annotation releases
    the region. Visibility changes go through :meth:`set_visible` so the
    surface always mirrors the ``visible`` flag.
    """

    def __init__(
        self,
        surface: EditingSurface,
        formatter: MessageFormatter | None = None,
        language: str | None = None,
    ) -> None:
        self._surface = surface
        self._formatter: MessageFormatter = formatter or format_message
        self.language = language
        self._annotations: dict[Point, Annotation] = {}
        # Region spans as last seen by the store; sync() re-keys only on drift.
        self._spans: dict[RegionHandle, tuple[Point, Point] | None] = {}

    def __len__(self) -> int:
        return len(self._annotations)

    def __contains__(self, anchor_start: object) -> bool:
        return anchor_start in self._annotations

    def __iter__(self) -> Iterator[Annotation]:
        return iter(list(self._annotations.values()))

    @property
    def surface(self) -> EditingSurface:
        return self._surface

    def get(self, anchor_start: Point) -> Annotation | None:
        return self._annotations.get(anchor_start)

    def all(self) -> list[Annotation]:
        return list(self._annotations.values())

    def starts(self) -> set[Point]:
        return set(self._annotations)

    def upsert(self, anchor_start: Point, anchor_end: Point, raw_text: str) -> Annotation:
        content = safe_format(self._formatter, raw_text, self.language)
        existing = self._annotations.get(anchor_start)
        if existing is not None:
            existing.anchor_end = anchor_end
            existing.message = raw_text
            existing.display_content = content
            self._surface.move_region(existing.region, anchor_start, anchor_end)
            self._spans[existing.region] = self._surface.region_span(existing.region)
            if existing.visible:
                self._surface.set_trailing(existing.region, content)
            return existing
        region = self._surface.create_region(anchor_start, anchor_end)
        self._spans[region] = self._surface.region_span(region)
        annotation = Annotation(
            anchor_start=anchor_start,
            anchor_end=anchor_end,
            message=raw_text,
            display_content=content,
            region=region,
        )
        self._annotations[anchor_start] = annotation
        return annotation

    def remove(self, anchor_start: Point) -> None:
        annotation = self._annotations.pop(anchor_start, None)
        if annotation is None:
            return
        self._spans.pop(annotation.region, None)
        self._surface.release(annotation.region)

    def find_by_position(self, point: Point) -> Annotation | None:
        regions = set(self._surface.regions_at(point))
        if not regions:
            return None
        for annotation in reversed(list(self._annotations.values())):
            if annotation.region in regions:
                return annotation
        return None

    def set_visible(self, annotation: Annotation, visible: bool) -> None:
        annotation.visible = visible
        self._surface.set_trailing(
            annotation.region, annotation.display_content if visible else None
        )

    def clear(self) -> None:
        for annotation in self._annotations.values():
            self._surface.release(annotation.region)
        self._annotations.clear()
        self._spans.clear()

    def sync(self) -> None:
        """Re-read anchors from the surface after the document was edited.

        Regions move with edits, so an annotation's start can drift away from
        its key. Stale regions drop their annotation; when two regions end up
        sharing a start, the later one keeps the slot.
        """
        refreshed: dict[Point, Annotation] = {}
        for annotation in self._annotations.values():
            span = self._surface.region_span(annotation.region)
            if span is None:
                logger.debug("dropping annotation at %s: region is gone", annotation.anchor_start)
                self._spans.pop(annotation.region, None)
                continue
            if span != self._spans.get(annotation.region):
                annotation.anchor_start, annotation.anchor_end = span
                self._spans[annotation.region] = span
            displaced = refreshed.pop(annotation.anchor_start, None)
            if displaced is not None:
                self._spans.pop(displaced.region, None)
                self._surface.release(displaced.region)
            refreshed[annotation.anchor_start] = annotation
        self._annotations = refreshed
