from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT, ROOT / "src"):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


import pytest
from lsprotocol.types import Diagnostic, Position, Range

from flyover.feed import DiagnosticsHub
from flyover.formatting import plain_formatter
from flyover.store import AnnotationStore
from flyover.surface import BufferSurface
from tests.overlay_helpers import document_text


@pytest.fixture
def make_diagnostic():
    def _make(
        start: tuple[int, int],
        end: tuple[int, int] | None = None,
        message: str = "problem",
    ) -> Diagnostic:
        end = end if end is not None else start
        return Diagnostic(
            range=Range(
                start=Position(line=start[0], character=start[1]),
                end=Position(line=end[0], character=end[1]),
            ),
            message=message,
        )

    return _make


@pytest.fixture
def surface() -> BufferSurface:
    return BufferSurface(document_text())


@pytest.fixture
def store(surface: BufferSurface) -> AnnotationStore:
    return AnnotationStore(surface, plain_formatter())


@pytest.fixture
def hub() -> DiagnosticsHub:
    return DiagnosticsHub()
