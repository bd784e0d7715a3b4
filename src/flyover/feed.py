"""Diagnostics feed contract and the in-process hub behind it."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Protocol, Sequence, TypeAlias

logger = logging.getLogger(__name__)

ReportListener: TypeAlias = Callable[[], None]


class DiagnosticsFeed(Protocol):
    def diagnostics(self, uri: str) -> Sequence[object]: ...

    def subscribe(self, uri: str, listener: ReportListener) -> None: ...

    def unsubscribe(self, uri: str, listener: ReportListener) -> None: ...


class DiagnosticsHub:
    """Holds the latest diagnostics per document and notifies on each report.

    Listeners carry no payload: after a report they re-query
    :meth:`diagnostics`. Subscribing the same listener twice for one uri keeps
    a single registration.
    """

    def __init__(self) -> None:
        self._diagnostics: dict[str, list[object]] = {}
        self._listeners: dict[str, list[ReportListener]] = {}

    def diagnostics(self, uri: str) -> Sequence[object]:
        return list(self._diagnostics.get(uri, ()))

    def subscribe(self, uri: str, listener: ReportListener) -> None:
        listeners = self._listeners.setdefault(uri, [])
        if listener not in listeners:
            listeners.append(listener)

    def unsubscribe(self, uri: str, listener: ReportListener) -> None:
        listeners = self._listeners.get(uri)
        if not listeners:
            return
        if listener in listeners:
            listeners.remove(listener)
        if not listeners:
            self._listeners.pop(uri, None)

    def listener_count(self, uri: str) -> int:
        return len(self._listeners.get(uri, ()))

    def publish(self, uri: str, diagnostics: Iterable[object] | None) -> None:
        self._diagnostics[uri] = list(diagnostics or ())
        listeners = list(self._listeners.get(uri, ()))
        logger.debug(
            "report for %s: %d diagnostics, %d listeners",
            uri,
            len(self._diagnostics[uri]),
            len(listeners),
        )
        for listener in listeners:
            listener()

    def forget(self, uri: str) -> None:
        self._diagnostics.pop(uri, None)
