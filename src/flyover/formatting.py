"""Turn raw diagnostic messages into display-ready rich text."""

from __future__ import annotations

import logging
from typing import Callable, TypeAlias

from rich.style import Style
from rich.syntax import Syntax
from rich.text import Text

logger = logging.getLogger(__name__)

DEFAULT_THEME = "ansi_dark"
DEFAULT_BASE_STYLE = "italic"

MessageFormatter: TypeAlias = Callable[[str, str | None], Text]


def highlight(raw_text: str, language: str | None, *, theme: str = DEFAULT_THEME) -> Text:
    """Highlight ``raw_text`` as standalone ``language`` source.

    Unknown languages come back unstyled (rich resolves no lexer); anything
    the highlighter raises is logged and also answered with unstyled text.
    """
    if not language:
        return Text(raw_text)
    try:
        syntax = Syntax(raw_text, language, theme=theme, background_color="default")
        text = syntax.highlight(raw_text)
    except Exception:
        logger.debug("highlighting failed for language=%r", language, exc_info=True)
        return Text(raw_text)
    # newer rich releases append a line ending to the highlighted code
    if text.plain.endswith("\n") and not raw_text.endswith("\n"):
        text.right_crop(1)
    return text


def _finish(text: Text, base_style: str | Style) -> Text:
    text.stylize_before(base_style)
    text.append("\n")
    return text


def format_message(
    raw_text: str,
    language: str | None = None,
    *,
    theme: str = DEFAULT_THEME,
    base_style: str | Style = DEFAULT_BASE_STYLE,
) -> Text:
    return _finish(highlight(raw_text, language, theme=theme), base_style)


def plain_message(
    raw_text: str,
    language: str | None = None,
    *,
    base_style: str | Style = DEFAULT_BASE_STYLE,
) -> Text:
    return _finish(Text(raw_text), base_style)


def highlight_formatter(
    *, theme: str = DEFAULT_THEME, base_style: str | Style = DEFAULT_BASE_STYLE
) -> MessageFormatter:
    def _format(raw_text: str, language: str | None) -> Text:
        return format_message(raw_text, language, theme=theme, base_style=base_style)

    return _format


def plain_formatter(*, base_style: str | Style = DEFAULT_BASE_STYLE) -> MessageFormatter:
    def _format(raw_text: str, language: str | None) -> Text:
        return plain_message(raw_text, language, base_style=base_style)

    return _format


def safe_format(formatter: MessageFormatter, raw_text: str, language: str | None) -> Text:
    """Run a pluggable formatter, falling back to plain text if it misbehaves."""
    try:
        content = formatter(raw_text, language)
    except Exception:
        logger.debug("formatter %r failed; using plain text", formatter, exc_info=True)
        return plain_message(raw_text, language)
    if isinstance(content, str):
        return Text(content)
    if not isinstance(content, Text):
        logger.debug("formatter %r returned %s; using plain text", formatter, type(content).__name__)
        return plain_message(raw_text, language)
    return content
