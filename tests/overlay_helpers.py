from __future__ import annotations

from flyover.model import Annotation
from flyover.surface import BufferSurface

DOCUMENT_URI = "file:///workspace/sample.py"


def document_text(lines: int = 12) -> str:
    return "".join(f"line {index} text here\n" for index in range(lines))


def shown(surface: BufferSurface, annotation: Annotation) -> str | None:
    trailing = surface.trailing(annotation.region)
    return None if trailing is None else trailing.plain
