"""Tests for studio configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from workflow_studio.core.config import StudioConfig, load_config
from workflow_studio.core.errors import ConfigError
from workflow_studio.core.models import Position


class TestStudioConfig:
    """Tests for defaults and YAML loading."""

    def test_defaults(self):
        config = StudioConfig()

        assert config.canvas.node_width == 150
        assert config.canvas.anchor_y_offset == 40
        assert config.canvas.default_origin == Position(x=100, y=100)
        assert config.config_fields.enum_options["method"] == ["GET", "POST", "PUT", "PATCH", "DELETE"]
        assert config.config_fields.hidden_fields == ["description"]
        assert config.history.default_limit == 50
        assert config.history.max_records is None
        assert config.execution.default_trigger == "manual"

    def test_from_yaml(self, config_file: Path):
        config = StudioConfig.from_yaml(config_file)

        assert config.canvas.default_spacing == 200
        assert config.canvas.default_origin == Position(x=50, y=60)
        assert config.canvas.node_width == 150
        assert config.config_fields.enum_options["format"] == ["pdf", "docx"]
        assert config.history.max_records == 3
        assert config.execution.default_trigger == "schedule"

    def test_empty_file_gives_defaults(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert StudioConfig.from_yaml(path) == StudioConfig()

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("canvas: [")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            StudioConfig.from_yaml(path)

    def test_schema_violation(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("history:\n  default_limit: 0\n")
        with pytest.raises(ConfigError, match="Invalid config"):
            StudioConfig.from_yaml(path)

    def test_non_mapping(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            StudioConfig.from_yaml(path)


class TestLoadConfig:
    """Tests for the config search path."""

    def test_explicit_path(self, config_file: Path):
        assert load_config(config_file).execution.default_trigger == "schedule"

    def test_project_config_found(self, tmp_path: Path, monkeypatch, config_file: Path):
        project = tmp_path / "project"
        (project / ".workflow-studio").mkdir(parents=True)
        (project / ".workflow-studio" / "config.yaml").write_text(config_file.read_text())
        monkeypatch.chdir(project)

        assert load_config().history.max_records == 3

    def test_defaults_when_nothing_found(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(
            "workflow_studio.core.config.CONFIG_SEARCH_PATHS",
            [Path(".workflow-studio/config.yaml")],
        )
        assert load_config() == StudioConfig()
