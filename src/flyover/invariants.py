"""Invariant markers for flyover."""

from __future__ import annotations

from typing import NoReturn

from flyover.exceptions import NeverThrown


def never(reason: str = "", **env: object) -> NoReturn:
    """Mark a code path as intentionally unreachable.

    The optional env payload is carried on the raised exception for callers
    that report it; it is not evaluated.
    """
    raise NeverThrown(reason or "never() marker reached", env=env)
