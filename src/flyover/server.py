from __future__ import annotations

import logging
from typing import Callable

from pygls.lsp.server import LanguageServer
from pydantic import BaseModel, ValidationError
from lsprotocol.types import (
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_CLOSE,
    TEXT_DOCUMENT_DID_OPEN,
    TEXT_DOCUMENT_INLAY_HINT,
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    InlayHint,
    InlayHintParams,
    Position,
)

from flyover import __version__
from flyover.config import OverlayConfig, resolve_formatter
from flyover.feed import DiagnosticsHub
from flyover.invariants import never
from flyover.json_types import JSONObject
from flyover.model import Point
from flyover.schema import (
    AnnotationDTO,
    AnnotationsResponse,
    DocumentRequest,
    PointRequest,
    ReconcileResponse,
    ReportRequest,
    ToggleResponse,
    parse_diagnostics,
)
from flyover.session import OverlaySession, SessionRegistry
from flyover.surface import BufferSurface
from flyover.visibility import ToggleOutcome

logger = logging.getLogger(__name__)

REPORT_COMMAND = "flyover.report"
TOGGLE_AT_POINT_COMMAND = "flyover.toggleAtPoint"
SMART_TOGGLE_COMMAND = "flyover.smartToggle"
SHOW_ALL_COMMAND = "flyover.showAll"
HIDE_ALL_COMMAND = "flyover.hideAll"
ACTIVATE_COMMAND = "flyover.activate"
DEACTIVATE_COMMAND = "flyover.deactivate"
ANNOTATIONS_COMMAND = "flyover.annotations"


class OverlayHost:
    """Diagnostics hub plus the session registry fed by it."""

    def __init__(self, config: OverlayConfig | None = None) -> None:
        self.hub = DiagnosticsHub()
        self.config = config or OverlayConfig()
        self.sessions = SessionRegistry(self.hub, resolve_formatter(self.config))

    def configure(self, config: OverlayConfig) -> None:
        self.config = config
        self.sessions.formatter = resolve_formatter(config)

    def open_document(self, uri: str, text: str, language_id: str | None) -> OverlaySession:
        language = self.config.language or language_id or None
        return self.sessions.open(uri, BufferSurface(text), language=language)

    def close_document(self, uri: str) -> None:
        session = self.sessions.get(uri)
        self.sessions.close(uri)
        if session is not None and isinstance(session.surface, BufferSurface):
            session.surface.close()
        self.hub.forget(uri)


class FlyoverLanguageServer(LanguageServer):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.host = OverlayHost()


server = FlyoverLanguageServer("flyover", __version__)


def _require_payload(payload: object, *, command: str) -> dict[str, object]:
    if payload is None:
        never("missing command payload", command=command)
    if not isinstance(payload, dict):
        never(
            "invalid command payload type",
            command=command,
            payload_type=type(payload).__name__,
        )
    return payload


def _error(*messages: str) -> JSONObject:
    return {"exit_code": 2, "errors": list(messages)}


def _ok(response: BaseModel) -> JSONObject:
    return {"exit_code": 0, **response.model_dump()}


def _require_session(host: OverlayHost, uri: str) -> OverlaySession | None:
    session = host.sessions.get(uri)
    if session is None:
        logger.debug("no open document for %s", uri)
    return session


def _refresh_hints(ls: object) -> None:
    refresh = getattr(ls, "workspace_inlay_hint_refresh", None)
    if refresh is None:
        return
    refresh(None)


def _run_point_command(
    ls: FlyoverLanguageServer,
    payload: object,
    *,
    command: str,
    action: Callable[[OverlaySession, Point], ToggleOutcome | bool],
) -> JSONObject:
    data = _require_payload(payload, command=command)
    try:
        request = PointRequest.model_validate(data)
    except ValidationError as exc:
        return _error(str(exc))
    session = _require_session(ls.host, request.uri)
    if session is None:
        return _error(f"document is not open: {request.uri}")
    result = action(session, request.to_point())
    if isinstance(result, ToggleOutcome):
        response = ToggleResponse(
            uri=request.uri,
            toggled=result is not ToggleOutcome.EMPTY,
            outcome=result.value,
        )
    else:
        response = ToggleResponse(uri=request.uri, toggled=bool(result))
    if response.toggled:
        _refresh_hints(ls)
    return _ok(response)


def _run_document_command(
    ls: FlyoverLanguageServer,
    payload: object,
    *,
    command: str,
    action: Callable[[OverlaySession], object],
) -> JSONObject:
    data = _require_payload(payload, command=command)
    try:
        request = DocumentRequest.model_validate(data)
    except ValidationError as exc:
        return _error(str(exc))
    session = _require_session(ls.host, request.uri)
    if session is None:
        return _error(f"document is not open: {request.uri}")
    action(session)
    _refresh_hints(ls)
    return _ok(_annotations_response(session))


def _annotations_response(session: OverlaySession) -> AnnotationsResponse:
    return AnnotationsResponse(
        uri=session.uri,
        active=session.active,
        annotations=[AnnotationDTO.from_annotation(item) for item in session.annotations()],
    )


@server.command(REPORT_COMMAND)
def report(ls: FlyoverLanguageServer, payload: dict | None = None) -> JSONObject:
    data = _require_payload(payload, command=REPORT_COMMAND)
    try:
        request = ReportRequest.model_validate(data)
    except ValidationError as exc:
        return _error(str(exc))
    ls.host.hub.publish(request.uri, parse_diagnostics(request.diagnostics))
    session = ls.host.sessions.get(request.uri)
    response = ReconcileResponse(uri=request.uri)
    if session is not None and session.active and session.last_result is not None:
        result = session.last_result
        response = ReconcileResponse(
            uri=request.uri,
            created=result.created,
            updated=result.updated,
            removed=result.removed,
        )
        if result.changed:
            _refresh_hints(ls)
    return _ok(response)


@server.command(TOGGLE_AT_POINT_COMMAND)
def toggle_at_point(ls: FlyoverLanguageServer, payload: dict | None = None) -> JSONObject:
    return _run_point_command(
        ls,
        payload,
        command=TOGGLE_AT_POINT_COMMAND,
        action=lambda session, point: session.toggle_at_point(point),
    )


@server.command(SMART_TOGGLE_COMMAND)
def smart_toggle(ls: FlyoverLanguageServer, payload: dict | None = None) -> JSONObject:
    return _run_point_command(
        ls,
        payload,
        command=SMART_TOGGLE_COMMAND,
        action=lambda session, point: session.smart_toggle(point),
    )


@server.command(SHOW_ALL_COMMAND)
def show_all(ls: FlyoverLanguageServer, payload: dict | None = None) -> JSONObject:
    return _run_document_command(
        ls, payload, command=SHOW_ALL_COMMAND, action=OverlaySession.show_all
    )


@server.command(HIDE_ALL_COMMAND)
def hide_all(ls: FlyoverLanguageServer, payload: dict | None = None) -> JSONObject:
    return _run_document_command(
        ls, payload, command=HIDE_ALL_COMMAND, action=OverlaySession.hide_all
    )


@server.command(ACTIVATE_COMMAND)
def activate(ls: FlyoverLanguageServer, payload: dict | None = None) -> JSONObject:
    return _run_document_command(
        ls, payload, command=ACTIVATE_COMMAND, action=OverlaySession.activate
    )


@server.command(DEACTIVATE_COMMAND)
def deactivate(ls: FlyoverLanguageServer, payload: dict | None = None) -> JSONObject:
    return _run_document_command(
        ls, payload, command=DEACTIVATE_COMMAND, action=OverlaySession.deactivate
    )


@server.command(ANNOTATIONS_COMMAND)
def annotations(ls: FlyoverLanguageServer, payload: dict | None = None) -> JSONObject:
    data = _require_payload(payload, command=ANNOTATIONS_COMMAND)
    try:
        request = DocumentRequest.model_validate(data)
    except ValidationError as exc:
        return _error(str(exc))
    session = _require_session(ls.host, request.uri)
    if session is None:
        return _ok(AnnotationsResponse(uri=request.uri, active=False))
    return _ok(_annotations_response(session))


@server.feature(TEXT_DOCUMENT_INLAY_HINT)
def inlay_hints(ls: FlyoverLanguageServer, params: InlayHintParams) -> list[InlayHint]:
    session = ls.host.sessions.get(params.text_document.uri)
    if session is None:
        return []
    first = Point.of(params.range.start)
    last = Point.of(params.range.end)
    hints: list[InlayHint] = []
    for annotation in session.annotations():
        if not annotation.visible:
            continue
        if not first <= annotation.anchor_end <= last:
            continue
        hints.append(
            InlayHint(
                position=Position(
                    line=annotation.anchor_end.line,
                    character=annotation.anchor_end.character,
                ),
                label=annotation.display_content.plain.rstrip("\n"),
                padding_left=True,
            )
        )
    return hints


@server.feature(TEXT_DOCUMENT_DID_OPEN)
def did_open(ls: FlyoverLanguageServer, params: DidOpenTextDocumentParams) -> None:
    document = params.text_document
    ls.host.open_document(document.uri, document.text, document.language_id)


@server.feature(TEXT_DOCUMENT_DID_CHANGE)
def did_change(ls: FlyoverLanguageServer, params: DidChangeTextDocumentParams) -> None:
    session = ls.host.sessions.get(params.text_document.uri)
    if session is None or not isinstance(session.surface, BufferSurface):
        return
    for change in params.content_changes:
        change_range = getattr(change, "range", None)
        if change_range is None:
            session.surface.replace_text(change.text)
        else:
            session.surface.apply_edit(
                Point.of(change_range.start), Point.of(change_range.end), change.text
            )
    session.store.sync()
    _refresh_hints(ls)


@server.feature(TEXT_DOCUMENT_DID_CLOSE)
def did_close(ls: FlyoverLanguageServer, params: DidCloseTextDocumentParams) -> None:
    ls.host.close_document(params.text_document.uri)


def start(start_fn: Callable[[], None] | None = None) -> None:
    """Start the language server over stdio."""
    (start_fn or server.start_io)()


if __name__ == "__main__":  # pragma: no cover
    start()  # pragma: no cover
