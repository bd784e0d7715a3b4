from __future__ import annotations

from flyover.model import Point
from flyover.visibility import (
    ToggleOutcome,
    hide_all,
    show_all,
    smart_toggle,
    toggle_at_point,
)
from tests.overlay_helpers import shown


def _three(store):
    return [
        store.upsert(Point(1, 0), Point(2, 0), "one"),
        store.upsert(Point(4, 0), Point(5, 0), "two"),
        store.upsert(Point(8, 0), Point(9, 0), "three"),
    ]


def test_toggle_at_point_flips_visibility_back_and_forth(store, surface) -> None:
    annotation = store.upsert(Point(3, 0), Point(4, 0), "msg")
    store.set_visible(annotation, True)
    assert toggle_at_point(store, Point(3, 2)) is True
    assert annotation.visible is False
    assert shown(surface, annotation) is None
    assert toggle_at_point(store, Point(3, 2)) is True
    assert annotation.visible is True
    assert shown(surface, annotation) == "msg\n"


def test_toggle_at_point_without_annotation_changes_nothing(store) -> None:
    annotations = _three(store)
    store.set_visible(annotations[1], True)
    assert toggle_at_point(store, Point(6, 0)) is False
    assert [item.visible for item in annotations] == [False, True, False]


def test_smart_toggle_aggregate_hides_then_shows_all(store, surface) -> None:
    annotations = _three(store)
    store.set_visible(annotations[0], True)
    assert smart_toggle(store, Point(11, 0)) is ToggleOutcome.HIDE_ALL
    assert [item.visible for item in annotations] == [False, False, False]
    assert smart_toggle(store, Point(11, 0)) is ToggleOutcome.SHOW_ALL
    assert [item.visible for item in annotations] == [True, True, True]
    assert [shown(surface, item) for item in annotations] == ["one\n", "two\n", "three\n"]


def test_smart_toggle_at_annotation_only_touches_that_one(store) -> None:
    annotations = _three(store)
    store.set_visible(annotations[2], True)
    assert smart_toggle(store, Point(4, 1)) is ToggleOutcome.POINT
    assert [item.visible for item in annotations] == [False, True, True]


def test_smart_toggle_on_empty_store(store) -> None:
    assert smart_toggle(store, Point(0, 0)) is ToggleOutcome.EMPTY


def test_show_and_hide_all(store) -> None:
    annotations = _three(store)
    show_all(store)
    assert all(item.visible for item in annotations)
    hide_all(store)
    assert not any(item.visible for item in annotations)
