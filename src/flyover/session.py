"""Per-document overlay sessions and their activation lifecycle."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from flyover.feed import DiagnosticsFeed
from flyover.formatting import MessageFormatter
from flyover.model import Annotation, Point
from flyover.reconcile import ReconcileResult, Reconciler
from flyover.store import AnnotationStore
from flyover.surface import EditingSurface
from flyover import visibility
from flyover.visibility import ToggleOutcome

logger = logging.getLogger(__name__)


class OverlaySession:
    """Owns the annotations of one open document.

    While active, every report the feed announces for ``uri`` is reconciled
    into the store. Activation starts from an empty store and reconciles the
    diagnostics the feed already holds, so calling it twice neither doubles
    the listener nor leaks annotations.
    """

    def __init__(
        self,
        uri: str,
        surface: EditingSurface,
        feed: DiagnosticsFeed,
        formatter: MessageFormatter | None = None,
        language: str | None = None,
    ) -> None:
        self.uri = uri
        self.surface = surface
        self._feed = feed
        self.store = AnnotationStore(surface, formatter, language)
        self._reconciler = Reconciler(self.store, surface)
        self._active = False
        self.last_result: ReconcileResult | None = None

    @property
    def active(self) -> bool:
        return self._active

    @property
    def language(self) -> str | None:
        return self.store.language

    def activate(self) -> ReconcileResult:
        self.store.clear()
        self._feed.unsubscribe(self.uri, self._on_report)
        self._feed.subscribe(self.uri, self._on_report)
        if not self._active:
            logger.info("overlays active for %s", self.uri)
        self._active = True
        return self.refresh()

    def deactivate(self) -> None:
        self._feed.unsubscribe(self.uri, self._on_report)
        self.store.clear()
        if self._active:
            logger.info("overlays inactive for %s", self.uri)
        self._active = False

    def refresh(self) -> ReconcileResult:
        return self.reconcile(self._feed.diagnostics(self.uri))

    def reconcile(self, diagnostics: Iterable[object] | None) -> ReconcileResult:
        self.last_result = self._reconciler.reconcile(diagnostics)
        return self.last_result

    def _on_report(self) -> None:
        self.refresh()

    def annotations(self) -> list[Annotation]:
        return self.store.all()

    def toggle_at_point(self, point: Point) -> bool:
        return visibility.toggle_at_point(self.store, point)

    def smart_toggle(self, point: Point) -> ToggleOutcome:
        return visibility.smart_toggle(self.store, point)

    def show_all(self) -> None:
        visibility.show_all(self.store)

    def hide_all(self) -> None:
        visibility.hide_all(self.store)


class SessionRegistry:
    """One :class:`OverlaySession` per open document uri."""

    def __init__(
        self, feed: DiagnosticsFeed, formatter: MessageFormatter | None = None
    ) -> None:
        self.feed = feed
        self.formatter = formatter
        self._sessions: dict[str, OverlaySession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, uri: object) -> bool:
        return uri in self._sessions

    def __iter__(self) -> Iterator[OverlaySession]:
        return iter(list(self._sessions.values()))

    def get(self, uri: str) -> OverlaySession | None:
        return self._sessions.get(uri)

    def open(
        self, uri: str, surface: EditingSurface, language: str | None = None
    ) -> OverlaySession:
        """Start (or restart over a new surface) the session for ``uri``."""
        previous = self._sessions.pop(uri, None)
        if previous is not None:
            previous.deactivate()
        session = OverlaySession(
            uri, surface, self.feed, formatter=self.formatter, language=language
        )
        self._sessions[uri] = session
        session.activate()
        return session

    def close(self, uri: str) -> bool:
        session = self._sessions.pop(uri, None)
        if session is None:
            return False
        session.deactivate()
        return True

    def close_all(self) -> None:
        for uri in list(self._sessions):
            self.close(uri)
