from __future__ import annotations

from rich.text import Span, Text

from flyover import formatting
from flyover.formatting import (
    format_message,
    highlight_formatter,
    plain_formatter,
    plain_message,
    safe_format,
)


def test_format_message_appends_line_break_and_base_style() -> None:
    content = format_message("unused variable x")
    assert content.plain == "unused variable x\n"
    assert content.spans[0] == Span(0, 17, "italic")


def test_format_message_highlights_known_language_over_base_style() -> None:
    content = format_message("def f(): return 'x'", "python")
    assert content.plain == "def f(): return 'x'\n"
    assert content.spans[0] == Span(0, 19, "italic")
    assert any(span.style != "italic" for span in content.spans[1:])


def test_format_message_unknown_language_is_unstyled() -> None:
    content = format_message("x", "no-such-language")
    assert content.plain == "x\n"
    assert content.spans == [Span(0, 1, "italic")]


def test_highlight_failure_falls_back_to_plain_text(monkeypatch) -> None:
    class _BrokenSyntax:
        def __init__(self, *_args, **_kwargs) -> None:
            raise RuntimeError("lexer exploded")

    monkeypatch.setattr(formatting, "Syntax", _BrokenSyntax)
    content = format_message("x = 1", "python")
    assert content.plain == "x = 1\n"
    assert content.spans == [Span(0, 5, "italic")]


def test_plain_message_uses_custom_base_style() -> None:
    content = plain_message("boom", base_style="bold red")
    assert content.plain == "boom\n"
    assert content.spans == [Span(0, 4, "bold red")]


def test_configured_formatters_carry_their_options() -> None:
    plain = plain_formatter(base_style="dim")
    assert plain("a", "python").spans == [Span(0, 1, "dim")]
    highlighted = highlight_formatter(base_style="underline")
    assert highlighted("a", None).spans == [Span(0, 1, "underline")]


def test_safe_format_recovers_from_misbehaving_formatters() -> None:
    def _raises(raw_text: str, language: str | None) -> Text:
        raise ValueError(raw_text)

    def _returns_str(raw_text: str, language: str | None) -> str:
        return raw_text.upper()

    def _returns_none(raw_text: str, language: str | None) -> None:
        return None

    assert safe_format(_raises, "oops", None).plain == "oops\n"
    assert safe_format(_returns_str, "oops", None).plain == "OOPS"
    assert safe_format(_returns_none, "oops", None).plain == "oops\n"


def test_highlighted_multiline_message_ends_with_single_line_break() -> None:
    content = format_message("x = 1\ny = 2", "python")
    assert content.plain == "x = 1\ny = 2\n"
    assert content.spans[0] == Span(0, 11, "italic")
    assert all(span.end <= 11 for span in content.spans)


def test_highlight_adds_no_line_break_of_its_own() -> None:
    assert formatting.highlight("unused variable x", "python").plain == "unused variable x"
    assert formatting.highlight("x", "no-such-language").plain == "x"
