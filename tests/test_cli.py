"""Tests for CLI commands.

Tests all workflow-studio CLI commands using Click's CliRunner:
- catalog, templates, new
- show, validate
- run (dry-run execution with history dashboard)
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from workflow_studio.cli import main
from workflow_studio.core.graph import WorkflowGraph
from workflow_studio.core.serialization import load_graph, save_graph


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def workflow_file(tmp_path: Path, chain_graph: WorkflowGraph) -> Path:
    path = tmp_path / "workflow.json"
    save_graph(chain_graph, path)
    return path


# =============================================================================
# Catalog and Gallery Commands
# =============================================================================


class TestCatalogCommands:
    """Tests for browsing node templates and workflow templates."""

    def test_catalog_lists_groups(self, cli_runner):
        result = cli_runner.invoke(main, ["catalog"])

        assert result.exit_code == 0
        assert "Triggers" in result.output
        assert "Integrations" in result.output
        assert "Webhook" in result.output

    def test_catalog_query(self, cli_runner):
        result = cli_runner.invoke(main, ["catalog", "slack"])

        assert result.exit_code == 0
        assert "Slack Message" in result.output
        assert "Triggers" not in result.output

    def test_catalog_no_match(self, cli_runner):
        result = cli_runner.invoke(main, ["catalog", "zzz"])
        assert result.exit_code == 0
        assert "No templates match" in result.output

    def test_catalog_with_extra_templates(self, cli_runner, tmp_path: Path):
        path = tmp_path / "templates.yaml"
        path.write_text("templates:\n  - {name: Discord Post, category: Chat, type: integration}\n")

        result = cli_runner.invoke(main, ["--templates", str(path), "catalog", "discord"])

        assert result.exit_code == 0
        assert "Discord Post" in result.output

    def test_templates_by_category(self, cli_runner):
        result = cli_runner.invoke(main, ["templates", "--category", "finance"])

        assert result.exit_code == 0
        assert "Invoice Processing" in result.output
        assert "Employee Onboarding" not in result.output

    def test_templates_invalid_category(self, cli_runner):
        result = cli_runner.invoke(main, ["templates", "--category", "space"])
        assert result.exit_code != 0

    def test_new_from_template(self, cli_runner, tmp_path: Path):
        output = tmp_path / "deploy.yaml"

        result = cli_runner.invoke(main, ["new", "it-deploy", "-o", str(output)])

        assert result.exit_code == 0
        graph = load_graph(output)
        assert graph.name == "Deployment Pipeline"
        assert len(graph) == 3

    def test_new_unknown_template(self, cli_runner, tmp_path: Path):
        result = cli_runner.invoke(main, ["new", "nope", "-o", str(tmp_path / "x.json")])
        assert result.exit_code == 1
        assert "not found" in result.output


# =============================================================================
# Show and Validate Commands
# =============================================================================


class TestShowAndValidate:
    """Tests for inspecting workflow files."""

    def test_show_tree(self, cli_runner, workflow_file):
        result = cli_runner.invoke(main, ["show", str(workflow_file)])

        assert result.exit_code == 0
        assert "Chain" in result.output
        assert "TRIGGER" in result.output
        assert "Connections:" in result.output

    def test_show_levels(self, cli_runner, workflow_file):
        result = cli_runner.invoke(main, ["show", "--levels", str(workflow_file)])
        assert result.exit_code == 0

    def test_show_invalid_file(self, cli_runner, tmp_path: Path):
        path = tmp_path / "bad.json"
        path.write_text("{oops")

        result = cli_runner.invoke(main, ["show", str(path)])

        assert result.exit_code == 1
        assert "Invalid workflow JSON" in result.output

    def test_validate_clean(self, cli_runner, workflow_file):
        result = cli_runner.invoke(main, ["validate", str(workflow_file)])

        assert result.exit_code == 0
        assert "valid" in result.output

    def test_validate_with_warnings(self, cli_runner, tmp_path: Path, node_factory):
        graph = WorkflowGraph(name="No trigger")
        graph.add_node(node_factory("a"))
        path = tmp_path / "wf.json"
        save_graph(graph, path)

        result = cli_runner.invoke(main, ["validate", str(path)])

        assert result.exit_code == 1
        assert "no trigger" in result.output


# =============================================================================
# Run Command
# =============================================================================


class TestRunCommand:
    """Tests for dry-running workflows."""

    def test_run_success(self, cli_runner, workflow_file):
        result = cli_runner.invoke(main, ["run", str(workflow_file), "--runs", "2"])

        assert result.exit_code == 0
        assert "Execution History" in result.output
        assert "100.0%" in result.output

    def test_run_with_failing_node(self, cli_runner, workflow_file):
        result = cli_runner.invoke(main, ["run", str(workflow_file), "--fail-node", "a"])

        assert result.exit_code == 1
        assert "Simulated failure" in result.output

    def test_run_unknown_fail_node(self, cli_runner, workflow_file):
        result = cli_runner.invoke(main, ["run", str(workflow_file), "-f", "ghost"])

        assert result.exit_code == 1
        assert "Unknown node id" in result.output

    def test_run_without_trigger(self, cli_runner, tmp_path: Path, node_factory):
        graph = WorkflowGraph()
        graph.add_node(node_factory("a"))
        path = tmp_path / "wf.json"
        save_graph(graph, path)

        result = cli_runner.invoke(main, ["run", str(path)])

        assert result.exit_code == 1
        assert "Cannot run workflow" in result.output

    def test_run_save_updates_execution_count(self, cli_runner, workflow_file):
        result = cli_runner.invoke(main, ["run", str(workflow_file), "-n", "3", "--save"])

        assert result.exit_code == 0
        assert json.loads(workflow_file.read_text())["executionCount"] == 3

    def test_run_uses_config_trigger(self, cli_runner, workflow_file, config_file):
        result = cli_runner.invoke(main, ["--config", str(config_file), "run", str(workflow_file)])

        assert result.exit_code == 0
        assert "schedule" in result.output

    def test_invalid_config_file(self, cli_runner, workflow_file, tmp_path: Path):
        bad = tmp_path / "bad.yaml"
        bad.write_text("history: {default_limit: -5}\n")

        result = cli_runner.invoke(main, ["--config", str(bad), "run", str(workflow_file)])

        assert result.exit_code == 1
        assert "Invalid config" in result.output
