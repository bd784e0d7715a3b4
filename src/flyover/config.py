from __future__ import annotations

import importlib
import os
from dataclasses import dataclass
from datetime import date, datetime, time
from pathlib import Path
from typing import TypeAlias
import tomllib

from flyover.formatting import (
    DEFAULT_BASE_STYLE,
    DEFAULT_THEME,
    MessageFormatter,
    highlight_formatter,
    plain_formatter,
)
from flyover.invariants import never

DEFAULT_CONFIG_NAME = "flyover.toml"
FORMATTER_ENV = "FLYOVER_FORMATTER"

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError:
        return {}
    try:
        data = tomllib.loads(raw)
    except Exception:
        return {}
    return data if isinstance(data, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is None:
        base = root if root is not None else Path.cwd()
        config_path = base / DEFAULT_CONFIG_NAME
    return _load_toml(config_path)


def overlay_defaults(
    root: Path | None = None, config_path: Path | None = None
) -> TomlTable:
    data = load_config(root=root, config_path=config_path)
    section = data.get("overlays", {})
    return section if isinstance(section, dict) else {}


def _as_str(value: TomlValue, default: str | None) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def merge_payload(payload: TomlTable, defaults: TomlTable) -> TomlTable:
    merged = dict(defaults)
    for key, value in payload.items():
        if value is None:
            continue
        merged[key] = value
    return merged


@dataclass(frozen=True)
class OverlayConfig:
    formatter: str = "highlight"
    theme: str = DEFAULT_THEME
    base_style: str = DEFAULT_BASE_STYLE
    language: str | None = None

    @classmethod
    def from_section(cls, section: TomlTable | None) -> "OverlayConfig":
        if not isinstance(section, dict):
            section = {}
        return cls(
            formatter=_as_str(section.get("formatter"), cls.formatter) or cls.formatter,
            theme=_as_str(section.get("theme"), DEFAULT_THEME) or DEFAULT_THEME,
            base_style=_as_str(section.get("base_style"), DEFAULT_BASE_STYLE)
            or DEFAULT_BASE_STYLE,
            language=_as_str(section.get("language"), None),
        )


def load_overlay_config(
    root: Path | None = None,
    config_path: Path | None = None,
    overrides: TomlTable | None = None,
) -> OverlayConfig:
    """Resolve overlay settings: explicit overrides, then the environment, then the file."""
    section = overlay_defaults(root=root, config_path=config_path)
    env_formatter = os.getenv(FORMATTER_ENV, "").strip() or None
    section = merge_payload({"formatter": env_formatter}, section)
    section = merge_payload(overrides or {}, section)
    return OverlayConfig.from_section(section)


def resolve_formatter(config: OverlayConfig) -> MessageFormatter:
    """Map the configured strategy name to a message formatter.

    ``highlight`` and ``plain`` are built in; anything of the form
    ``module:attribute`` is imported and must be callable.
    """
    name = config.formatter
    if name == "highlight":
        return highlight_formatter(theme=config.theme, base_style=config.base_style)
    if name == "plain":
        return plain_formatter(base_style=config.base_style)
    module_name, sep, attr = name.partition(":")
    if not sep or not module_name or not attr:
        never("unknown formatter strategy", formatter=name)
    try:
        module = importlib.import_module(module_name)
    except ImportError:
        never("formatter module is not importable", formatter=name)
    candidate = getattr(module, attr, None)
    if not callable(candidate):
        never("formatter attribute is not callable", formatter=name)
    return candidate
