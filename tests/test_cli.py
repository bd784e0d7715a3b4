from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from flyover import cli


def _write_inputs(tmp_path: Path) -> tuple[Path, Path]:
    source = tmp_path / "sample.txt"
    source.write_text("alpha\nbeta\ngamma\n", encoding="utf-8")
    diagnostics = tmp_path / "diagnostics.json"
    diagnostics.write_text(
        json.dumps(
            {
                "diagnostics": [
                    {
                        "range": {
                            "start": {"line": 1, "character": 0},
                            "end": {"line": 1, "character": 4},
                        },
                        "message": "beta is suspicious",
                    },
                    {"message": "malformed entry"},
                ]
            }
        ),
        encoding="utf-8",
    )
    return source, diagnostics


def test_preview_hides_annotations_by_default(tmp_path: Path) -> None:
    source, diagnostics = _write_inputs(tmp_path)
    result = CliRunner().invoke(cli.app, ["preview", str(source), "--diagnostics", str(diagnostics)])
    assert result.exit_code == 0, result.output
    assert result.output == "alpha\nbeta\ngamma\n"


def test_preview_show_all_renders_message_below_line(tmp_path: Path) -> None:
    source, diagnostics = _write_inputs(tmp_path)
    result = CliRunner().invoke(
        cli.app,
        ["preview", str(source), "--diagnostics", str(diagnostics), "--show-all"],
    )
    assert result.exit_code == 0, result.output
    assert result.output == "alpha\nbeta\nbeta is suspicious\ngamma\n"


def test_preview_toggle_point(tmp_path: Path) -> None:
    source, diagnostics = _write_inputs(tmp_path)
    result = CliRunner().invoke(
        cli.app,
        [
            "preview",
            str(source),
            "--diagnostics",
            str(diagnostics),
            "--toggle",
            "1:2",
            "--toggle",
            "0",
        ],
    )
    assert result.exit_code == 0, result.output
    assert "beta is suspicious" in result.output


def test_preview_rejects_bad_toggle_point(tmp_path: Path) -> None:
    source, diagnostics = _write_inputs(tmp_path)
    result = CliRunner().invoke(
        cli.app,
        ["preview", str(source), "--diagnostics", str(diagnostics), "--toggle", "a:b"],
    )
    assert result.exit_code == 2


def test_annotations_emits_json(tmp_path: Path) -> None:
    source, diagnostics = _write_inputs(tmp_path)
    result = CliRunner().invoke(cli.app, ["annotations", str(source), "--diagnostics", str(diagnostics)])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload == [
        {
            "anchor_start": {"line": 1, "character": 0},
            "anchor_end": {"line": 2, "character": 0},
            "message": "beta is suspicious",
            "content": "beta is suspicious\n",
            "visible": False,
        }
    ]


def test_invalid_diagnostics_json_is_a_usage_error(tmp_path: Path) -> None:
    source, _ = _write_inputs(tmp_path)
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    result = CliRunner().invoke(cli.app, ["annotations", str(source), "--diagnostics", str(broken)])
    assert result.exit_code == 2
    scalar = tmp_path / "scalar.json"
    scalar.write_text("3", encoding="utf-8")
    result = CliRunner().invoke(cli.app, ["annotations", str(source), "--diagnostics", str(scalar)])
    assert result.exit_code == 2


def test_unknown_formatter_in_config_is_a_usage_error(tmp_path: Path) -> None:
    source, diagnostics = _write_inputs(tmp_path)
    config = tmp_path / "flyover.toml"
    config.write_text('[overlays]\nformatter = "sparkly"\n', encoding="utf-8")
    result = CliRunner().invoke(
        cli.app,
        ["preview", str(source), "--diagnostics", str(diagnostics), "--config", str(config)],
    )
    assert result.exit_code == 2


def test_unknown_log_level_is_rejected(tmp_path: Path) -> None:
    source, diagnostics = _write_inputs(tmp_path)
    result = CliRunner().invoke(
        cli.app,
        ["--log-level", "chatty", "annotations", str(source), "--diagnostics", str(diagnostics)],
    )
    assert result.exit_code == 2


def test_formatter_option_overrides_config(tmp_path: Path) -> None:
    source, diagnostics = _write_inputs(tmp_path)
    config = tmp_path / "flyover.toml"
    config.write_text('[overlays]\nformatter = "sparkly"\n', encoding="utf-8")
    result = CliRunner().invoke(
        cli.app,
        [
            "annotations",
            str(source),
            "--diagnostics",
            str(diagnostics),
            "--config",
            str(config),
            "--formatter",
            "plain",
        ],
    )
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)[0]["content"] == "beta is suspicious\n"
