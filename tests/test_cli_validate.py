"""Tests for the `covo validate` and `covo rules` CLI commands."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from click.testing import CliRunner

from covo import __version__
from covo.cli import main

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    import pytest

    from covo.graph.model import Model


# ---------------------------------------------------------------------------
# covo validate
# ---------------------------------------------------------------------------


class TestValidate:
    def test_clean_model_json(
        self,
        consistent_model: Model,
        write_model: Callable[..., Path],
        monkeypatch: pytest.MonkeyPatch,
        tmp_path: Path,
    ) -> None:
        monkeypatch.chdir(tmp_path)
        path = write_model(consistent_model)
        result = CliRunner().invoke(main, ["validate", str(path), "--format", "json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["summary"]["failed_ids"] == []
        assert data["partial"] is False

    def test_porcelain_is_default_when_piped(
        self, scenario_model: Model, write_model: Callable[..., Path]
    ) -> None:
        path = write_model(scenario_model)
        result = CliRunner().invoke(main, ["validate", str(path)])
        assert result.exit_code == 0
        assert "C6:element:Cap1" in result.output.splitlines()

    def test_rich_output(self, scenario_model: Model, write_model: Callable[..., Path]) -> None:
        path = write_model(scenario_model)
        result = CliRunner().invoke(main, ["validate", str(path), "--format", "rich"])
        assert result.exit_code == 0
        assert "Overall status: FAILED" in result.output
        assert "C6 - Capability impact" in result.output

    def test_strict_with_violations(
        self, scenario_model: Model, write_model: Callable[..., Path]
    ) -> None:
        path = write_model(scenario_model)
        result = CliRunner().invoke(main, ["validate", str(path), "--strict"])
        assert result.exit_code == 1

    def test_strict_clean(self, consistent_model: Model, write_model: Callable[..., Path]) -> None:
        path = write_model(consistent_model)
        result = CliRunner().invoke(main, ["validate", str(path), "--strict"])
        assert result.exit_code == 0
        assert result.output == ""

    def test_select(self, scenario_model: Model, write_model: Callable[..., Path]) -> None:
        path = write_model(scenario_model)
        result = CliRunner().invoke(
            main, ["validate", str(path), "--select", "Obj1", "--format", "json"]
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["partial"] is True
        assert data["elements_checked"] == 1

    def test_selection_file_merges_with_select(
        self, scenario_model: Model, write_model: Callable[..., Path], tmp_path: Path
    ) -> None:
        path = write_model(scenario_model)
        selection = tmp_path / "selection.yml"
        selection.write_text("elements: [Cap2]\n", encoding="utf-8")
        result = CliRunner().invoke(
            main,
            [
                "validate",
                str(path),
                "--selection",
                str(selection),
                "--select",
                "Obj1",
                "--format",
                "json",
            ],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["elements_checked"] == 2
        assert data["relationships_checked"] == 1

    def test_unknown_selection_id(
        self, scenario_model: Model, write_model: Callable[..., Path]
    ) -> None:
        path = write_model(scenario_model)
        result = CliRunner().invoke(main, ["validate", str(path), "--select", "ghost"])
        assert result.exit_code == 2
        assert "Error:" in result.output
        assert "ghost" in result.output

    def test_malformed_model(self, tmp_path: Path) -> None:
        path = tmp_path / "model.yml"
        path.write_text("elements:\n  - id: x\n    type: business-actor\n", encoding="utf-8")
        result = CliRunner().invoke(main, ["validate", str(path)])
        assert result.exit_code == 2
        assert "unsupported type" in result.output

    def test_missing_model_path(self, tmp_path: Path) -> None:
        result = CliRunner().invoke(main, ["validate", str(tmp_path / "absent.yml")])
        assert result.exit_code != 0

    def test_config_disables_rules(
        self, scenario_model: Model, write_model: Callable[..., Path], tmp_path: Path
    ) -> None:
        path = write_model(scenario_model)
        config = tmp_path / "config.yml"
        config.write_text("validation:\n  disabled_rules: [C6]\n", encoding="utf-8")
        result = CliRunner().invoke(
            main, ["validate", str(path), "--config", str(config), "--format", "json"]
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert "C6" not in [r["id"] for r in data["results"]]

    def test_invalid_config(
        self, scenario_model: Model, write_model: Callable[..., Path], tmp_path: Path
    ) -> None:
        path = write_model(scenario_model)
        config = tmp_path / "config.yml"
        config.write_text("validation:\n  disabled_rules: [C99]\n", encoding="utf-8")
        result = CliRunner().invoke(main, ["validate", str(path), "--config", str(config)])
        assert result.exit_code == 2
        assert "C99" in result.output

    def test_directory_model(self, tmp_path: Path) -> None:
        model_dir = tmp_path / "model"
        model_dir.mkdir()
        (model_dir / "elements.yml").write_text(
            "elements:\n  - id: v\n    type: business-process\n"
            "  - id: c\n    type: business-function\n"
            "  - id: o\n    type: business-object\n",
            encoding="utf-8",
        )
        (model_dir / "relationships.yml").write_text(
            "relationships:\n"
            "  - id: m\n    type: serving-relationship\n    source: c\n    target: v\n"
            "  - id: t\n    type: access-relationship\n    source: c\n    target: o\n",
            encoding="utf-8",
        )
        result = CliRunner().invoke(main, ["validate", str(model_dir), "--strict"])
        assert result.exit_code == 0, result.output


# ---------------------------------------------------------------------------
# covo rules / global options
# ---------------------------------------------------------------------------


class TestRulesCommand:
    def test_text(self) -> None:
        result = CliRunner().invoke(main, ["rules"])
        assert result.exit_code == 0
        assert "C0   Valid level" in result.output
        assert "C15  Grounded dependencies" in result.output

    def test_json(self) -> None:
        result = CliRunner().invoke(main, ["rules", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert len(data) == 16
        assert data[1] == {
            "id": "C1",
            "name": "Unique parent",
            "statement": "Each element has at most one parent.",
        }


class TestGlobalOptions:
    def test_version(self) -> None:
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_verbose_flag(self, consistent_model: Model, write_model: Callable[..., Path]) -> None:
        path = write_model(consistent_model)
        result = CliRunner().invoke(main, ["-v", "validate", str(path), "--format", "json"])
        assert result.exit_code == 0
