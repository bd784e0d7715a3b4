from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple

from rich.text import Text


class Point(NamedTuple):
    """Zero-based document position, ordered by line then character."""

    line: int
    character: int

    @classmethod
    def of(cls, position: object) -> "Point":
        """Build a point from anything with ``line``/``character`` attributes."""
        return cls(int(getattr(position, "line")), int(getattr(position, "character")))


@dataclass(frozen=True)
class RegionHandle:
    """Opaque reference to an anchored region owned by an editing surface."""

    region_id: int


@dataclass
class Annotation:
    anchor_start: Point
    anchor_end: Point
    message: str
    display_content: Text
    region: RegionHandle
    visible: bool = False
