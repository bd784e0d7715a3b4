"""Editing-surface contract and an in-memory buffer implementation.

The engine never touches an editor directly. Everything it needs (anchored
regions that follow edits, trailing display text, line arithmetic) goes
through :class:`EditingSurface`. :class:`BufferSurface` implements it over a
plain string so the language server and the CLI can host sessions without a
real editor attached.
"""

from __future__ import annotations

import bisect
import itertools
from dataclasses import dataclass
from typing import Iterator, Protocol

from rich.text import Text

from flyover.model import Point, RegionHandle


class EditingSurface(Protocol):
    def create_region(self, start: Point, end: Point) -> RegionHandle: ...

    def move_region(self, region: RegionHandle, start: Point, end: Point) -> None: ...

    def set_trailing(self, region: RegionHandle, content: Text | None) -> None: ...

    def release(self, region: RegionHandle) -> None: ...

    def region_span(self, region: RegionHandle) -> tuple[Point, Point] | None: ...

    def regions_at(self, point: Point) -> list[RegionHandle]: ...

    def line_start_after(self, point: Point, lines: int = 1) -> Point: ...


@dataclass
class _Region:
    start: int
    end: int
    trailing: Text | None = None


class BufferSurface:
    """Anchored regions over an in-memory text buffer.

    Regions keep their front edge fixed and grow at the rear: text inserted
    exactly at a region's end lands inside it. Offsets are character offsets
    into the buffer; every public method speaks :class:`Point`.
    """

    def __init__(self, text: str = "") -> None:
        self._text = text
        self._line_offsets = _line_offsets(text)
        self._regions: dict[int, _Region] = {}
        self._ids = itertools.count(1)
        self._closed = False

    @property
    def text(self) -> str:
        return self._text

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def line_count(self) -> int:
        return len(self._line_offsets)

    def __iter__(self) -> Iterator[RegionHandle]:
        return iter([RegionHandle(region_id) for region_id in self._regions])

    # -- positions -------------------------------------------------------

    def offset_of(self, point: Point) -> int:
        line = min(max(point.line, 0), len(self._line_offsets) - 1)
        line_start = self._line_offsets[line]
        line_end = self._line_end(line)
        return min(line_start + max(point.character, 0), line_end)

    def point_of(self, offset: int) -> Point:
        offset = min(max(offset, 0), len(self._text))
        line = bisect.bisect_right(self._line_offsets, offset) - 1
        return Point(line, offset - self._line_offsets[line])

    def end_point(self) -> Point:
        return self.point_of(len(self._text))

    def line_start_after(self, point: Point, lines: int = 1) -> Point:
        line = min(max(point.line, 0), len(self._line_offsets) - 1) + lines
        if line >= len(self._line_offsets):
            return self.end_point()
        return Point(max(line, 0), 0)

    def _line_end(self, line: int) -> int:
        if line + 1 < len(self._line_offsets):
            return self._line_offsets[line + 1] - 1
        return len(self._text)

    # -- regions ---------------------------------------------------------

    def create_region(self, start: Point, end: Point) -> RegionHandle:
        region_id = next(self._ids)
        if self._closed:
            return RegionHandle(region_id)
        start_offset, end_offset = sorted((self.offset_of(start), self.offset_of(end)))
        self._regions[region_id] = _Region(start_offset, end_offset)
        return RegionHandle(region_id)

    def move_region(self, region: RegionHandle, start: Point, end: Point) -> None:
        entry = self._regions.get(region.region_id)
        if entry is None:
            return
        entry.start, entry.end = sorted((self.offset_of(start), self.offset_of(end)))

    def set_trailing(self, region: RegionHandle, content: Text | None) -> None:
        entry = self._regions.get(region.region_id)
        if entry is None:
            return
        entry.trailing = content

    def trailing(self, region: RegionHandle) -> Text | None:
        entry = self._regions.get(region.region_id)
        return None if entry is None else entry.trailing

    def release(self, region: RegionHandle) -> None:
        self._regions.pop(region.region_id, None)

    def region_span(self, region: RegionHandle) -> tuple[Point, Point] | None:
        entry = self._regions.get(region.region_id)
        if entry is None:
            return None
        return self.point_of(entry.start), self.point_of(entry.end)

    def regions_at(self, point: Point) -> list[RegionHandle]:
        offset = self.offset_of(point)
        at_end = offset == len(self._text)
        found: list[RegionHandle] = []
        for region_id, entry in self._regions.items():
            if entry.start <= offset < entry.end:
                found.append(RegionHandle(region_id))
            elif at_end and entry.end == offset and entry.start <= offset:
                found.append(RegionHandle(region_id))
        return found

    def close(self) -> None:
        """Invalidate every region, as when the document goes away."""
        self._closed = True
        self._regions.clear()

    # -- edits -----------------------------------------------------------

    def apply_edit(self, start: Point, end: Point, text: str) -> None:
        """Replace the ``[start, end)`` range with ``text``, shifting regions."""
        first, last = sorted((self.offset_of(start), self.offset_of(end)))
        self._splice(first, last, text)

    def replace_text(self, text: str) -> None:
        """Replace the whole buffer, shifting regions around the changed span."""
        old = self._text
        prefix = 0
        limit = min(len(old), len(text))
        while prefix < limit and old[prefix] == text[prefix]:
            prefix += 1
        suffix = 0
        while (
            suffix < limit - prefix
            and old[len(old) - 1 - suffix] == text[len(text) - 1 - suffix]
        ):
            suffix += 1
        self._splice(prefix, len(old) - suffix, text[prefix : len(text) - suffix])

    def _splice(self, first: int, last: int, inserted: str) -> None:
        added = len(inserted)
        for entry in self._regions.values():
            entry.start = _shift_front(_collapse(entry.start, first, last), first, added)
            entry.end = _shift_rear(_collapse(entry.end, first, last), first, added)
        self._text = self._text[:first] + inserted + self._text[last:]
        self._line_offsets = _line_offsets(self._text)

    # -- display ---------------------------------------------------------

    def render(self) -> Text:
        """Return the buffer with every attached trailing text spliced in."""
        inserts = sorted(
            (
                (entry.end, region_id, entry.trailing)
                for region_id, entry in self._regions.items()
                if entry.trailing is not None
            ),
            key=lambda item: (item[0], item[1]),
        )
        rendered = Text()
        cursor = 0
        for offset, _region_id, content in inserts:
            rendered.append(self._text[cursor:offset])
            cursor = offset
            if offset > 0 and self._text[offset - 1] != "\n":
                rendered.append("\n")
            rendered.append_text(content)
        rendered.append(self._text[cursor:])
        return rendered


def _line_offsets(text: str) -> list[int]:
    offsets = [0]
    for index, char in enumerate(text):
        if char == "\n":
            offsets.append(index + 1)
    return offsets


def _collapse(marker: int, first: int, last: int) -> int:
    if marker <= first:
        return marker
    if marker >= last:
        return marker - (last - first)
    return first


def _shift_front(marker: int, at: int, added: int) -> int:
    return marker + added if marker > at else marker


def _shift_rear(marker: int, at: int, added: int) -> int:
    return marker + added if marker >= at else marker
