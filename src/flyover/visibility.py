from __future__ import annotations

from enum import Enum

from flyover.model import Point
from flyover.store import AnnotationStore


class ToggleOutcome(str, Enum):
    POINT = "point"
    HIDE_ALL = "hide_all"
    SHOW_ALL = "show_all"
    EMPTY = "empty"


def toggle_at_point(store: AnnotationStore, point: Point) -> bool:
    annotation = store.find_by_position(point)
    if annotation is None:
        return False
    store.set_visible(annotation, not annotation.visible)
    return True


def show_all(store: AnnotationStore) -> None:
    for annotation in store.all():
        store.set_visible(annotation, True)


def hide_all(store: AnnotationStore) -> None:
    for annotation in store.all():
        store.set_visible(annotation, False)


def smart_toggle(store: AnnotationStore, point: Point) -> ToggleOutcome:
    """Toggle the annotation at ``point``, or every annotation when none is there.

    The aggregate case hides everything if anything is showing and shows
    everything otherwise.
    """
    if toggle_at_point(store, point):
        return ToggleOutcome.POINT
    annotations = store.all()
    if not annotations:
        return ToggleOutcome.EMPTY
    if any(annotation.visible for annotation in annotations):
        hide_all(store)
        return ToggleOutcome.HIDE_ALL
    show_all(store)
    return ToggleOutcome.SHOW_ALL
