"""Tests for project config loading and scaffolding."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from quantcalc.formulas import DEFAULT_MAX_DEPTH, MAX_DEPTH_CEILING
from quantcalc.project import (
    CONFIG_FILENAME,
    DEFAULT_CONFIG,
    get_max_depth,
    load_project_config,
    scaffold_project,
)


class TestLoadConfig:
    def test_defaults_without_file(self, tmp_path: Path) -> None:
        assert load_project_config(tmp_path) == DEFAULT_CONFIG

    def test_user_values_override(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("max_depth: 50\nlogging_fsync: true\n")
        cfg = load_project_config(tmp_path)
        assert cfg["max_depth"] == 50
        assert cfg["logging_fsync"] is True
        assert cfg["logging_enabled"] is True

    def test_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("")
        assert load_project_config(tmp_path) == DEFAULT_CONFIG

    def test_non_mapping_rejected(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="YAML mapping"):
            load_project_config(tmp_path)


class TestMaxDepth:
    def test_no_project(self) -> None:
        assert get_max_depth(None) == DEFAULT_MAX_DEPTH

    def test_configured(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("max_depth: 12\n")
        assert get_max_depth(tmp_path) == 12

    @pytest.mark.parametrize("value", ["0", "-3", "true", "'deep'", "2.5"])
    def test_invalid_values(self, tmp_path: Path, value: str) -> None:
        (tmp_path / CONFIG_FILENAME).write_text(f"max_depth: {value}\n")
        with pytest.raises(ValueError, match="max_depth"):
            get_max_depth(tmp_path)

    def test_ceiling(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text(f"max_depth: {MAX_DEPTH_CEILING}\n")
        assert get_max_depth(tmp_path) == MAX_DEPTH_CEILING

    def test_above_ceiling_rejected(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("max_depth: 100000\n")
        with pytest.raises(ValueError, match="must not exceed"):
            get_max_depth(tmp_path)


class TestScaffold:
    def test_creates_config_and_logs(self, tmp_path: Path) -> None:
        target = tmp_path / "proj"
        assert scaffold_project(target) == target
        cfg = yaml.safe_load((target / CONFIG_FILENAME).read_text())
        assert cfg["max_depth"] == DEFAULT_MAX_DEPTH
        assert cfg["logging_enabled"] is True
        assert (target / "logs").is_dir()

    def test_scaffolded_config_loads(self, tmp_path: Path) -> None:
        scaffold_project(tmp_path)
        assert get_max_depth(tmp_path) == DEFAULT_MAX_DEPTH

    def test_refuses_to_overwrite(self, tmp_path: Path) -> None:
        scaffold_project(tmp_path)
        with pytest.raises(FileExistsError):
            scaffold_project(tmp_path)
