from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.syntax import Syntax

from flyover.config import OverlayConfig, load_overlay_config, resolve_formatter
from flyover.exceptions import NeverThrown
from flyover.feed import DiagnosticsHub
from flyover.json_types import JSONValue
from flyover.model import Point
from flyover.schema import AnnotationDTO, parse_diagnostics
from flyover.session import OverlaySession, SessionRegistry
from flyover.surface import BufferSurface

app = typer.Typer(add_completion=False)

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_INSTALLED_HANDLERS: list[logging.Handler] = []


def configure_logging(level: str, log_file: Path | None = None) -> None:
    """Send logs to stderr (and optionally a file); stdout belongs to the LSP transport."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise typer.BadParameter(f"Unknown log level: {level}")
    root_logger = logging.getLogger()
    root_logger.setLevel(numeric)
    while _INSTALLED_HANDLERS:
        stale = _INSTALLED_HANDLERS.pop()
        root_logger.removeHandler(stale)
        stale.close()
    formatter = logging.Formatter(_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    for handler in handlers:
        handler.setLevel(numeric)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)
        _INSTALLED_HANDLERS.append(handler)


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level"),
    log_file: Optional[Path] = typer.Option(None, "--log-file"),
) -> None:
    """Inline diagnostic overlays for text documents."""
    configure_logging(log_level, log_file)


def _load_config(
    root: Optional[Path], config: Optional[Path], formatter: Optional[str] = None
) -> OverlayConfig:
    return load_overlay_config(
        root=root, config_path=config, overrides={"formatter": formatter}
    )


def _load_diagnostics(path: Path) -> list[JSONValue]:
    try:
        loaded = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"Invalid JSON diagnostics: {exc}") from exc
    if isinstance(loaded, dict):
        loaded = loaded.get("diagnostics", [])
    if not isinstance(loaded, list):
        raise typer.BadParameter("Diagnostics must be a JSON list or an object with 'diagnostics'.")
    return loaded


def _parse_point(raw: str) -> Point:
    line, sep, character = raw.partition(":")
    try:
        if not sep:
            return Point(int(line), 0)
        return Point(int(line), int(character))
    except ValueError as exc:
        raise typer.BadParameter(f"Point must look like LINE[:CHARACTER], got {raw!r}") from exc


def _guess_language(path: Path, text: str) -> str | None:
    name = Syntax.guess_lexer(str(path), text)
    return None if name == "default" else name


def open_file_session(
    file: Path,
    diagnostics_path: Path,
    *,
    config: OverlayConfig,
    language: Optional[str] = None,
) -> OverlaySession:
    text = file.read_text(encoding="utf-8")
    try:
        formatter = resolve_formatter(config)
    except NeverThrown as exc:
        raise typer.BadParameter(f"{exc.reason}: {exc.env_payload}") from exc
    hub = DiagnosticsHub()
    registry = SessionRegistry(hub, formatter)
    uri = file.resolve().as_uri()
    hub.publish(uri, parse_diagnostics(_load_diagnostics(diagnostics_path)))
    resolved_language = language or config.language or _guess_language(file, text)
    return registry.open(uri, BufferSurface(text), language=resolved_language)


@app.command("serve")
def serve(
    root: Optional[Path] = typer.Option(None, "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
    formatter: Optional[str] = typer.Option(
        None, "--formatter", help="Override the configured message formatter."
    ),
) -> None:
    """Run the overlay language server over stdio."""
    from flyover import server

    overlay_config = _load_config(root, config, formatter)
    try:
        server.server.host.configure(overlay_config)
    except NeverThrown as exc:
        raise typer.BadParameter(f"{exc.reason}: {exc.env_payload}") from exc
    server.start()


@app.command("preview")
def preview(
    file: Path = typer.Argument(..., exists=True, dir_okay=False),
    diagnostics: Path = typer.Option(..., "--diagnostics", exists=True, dir_okay=False),
    show_all: bool = typer.Option(False, "--show-all"),
    toggle: Optional[List[str]] = typer.Option(
        None, "--toggle", help="Toggle the annotation at LINE[:CHARACTER] (repeatable)."
    ),
    language: Optional[str] = typer.Option(None, "--language"),
    root: Optional[Path] = typer.Option(None, "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
    formatter: Optional[str] = typer.Option(
        None, "--formatter", help="Override the configured message formatter."
    ),
) -> None:
    """Print FILE with its diagnostics rendered beneath the offending lines."""
    session = open_file_session(
        file, diagnostics, config=_load_config(root, config, formatter), language=language
    )
    if show_all:
        session.show_all()
    for raw in toggle or []:
        session.toggle_at_point(_parse_point(raw))
    surface = session.surface
    if not isinstance(surface, BufferSurface):  # pragma: no cover
        return
    Console(highlight=False, soft_wrap=True).print(surface.render(), end="")


@app.command("annotations")
def annotations(
    file: Path = typer.Argument(..., exists=True, dir_okay=False),
    diagnostics: Path = typer.Option(..., "--diagnostics", exists=True, dir_okay=False),
    language: Optional[str] = typer.Option(None, "--language"),
    root: Optional[Path] = typer.Option(None, "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
    formatter: Optional[str] = typer.Option(
        None, "--formatter", help="Override the configured message formatter."
    ),
) -> None:
    """Emit the annotations FILE would carry as JSON."""
    session = open_file_session(
        file, diagnostics, config=_load_config(root, config, formatter), language=language
    )
    payload = [
        AnnotationDTO.from_annotation(item).model_dump() for item in session.annotations()
    ]
    typer.echo(json.dumps(payload, indent=2, sort_keys=True))
