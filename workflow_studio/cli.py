"""CLI entry point for the workflow studio.

Commands:
- workflow-studio catalog: List node templates grouped by type
- workflow-studio templates: Browse the workflow template gallery
- workflow-studio new: Create a workflow file from a gallery template
- workflow-studio show: Render a workflow file as a tree
- workflow-studio validate: Report structural warnings for a workflow file
- workflow-studio run: Dry-run a workflow and show its execution history
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from workflow_studio import __version__
from workflow_studio.cli_ui.graph_renderer import NodeTableRenderer, TerminalGraphRenderer
from workflow_studio.core.catalog import NodeCatalog
from workflow_studio.core.config import StudioConfig, load_config
from workflow_studio.core.engine import DryRunExecutor, ExecutorRegistry
from workflow_studio.core.errors import WorkflowStudioError
from workflow_studio.core.graph import WorkflowGraph
from workflow_studio.core.models import ExecutionStatus
from workflow_studio.core.serialization import load_graph, save_graph
from workflow_studio.core.session import WorkflowSession
from workflow_studio.core.templates import (
    ALL_CATEGORIES,
    WORKFLOW_CATEGORIES,
    filter_templates,
    get_template,
    graph_from_template,
)
from workflow_studio.metrics.dashboard import HistoryDashboard

console = Console()


def _load_graph_or_exit(workflow_file: str) -> WorkflowGraph:
    try:
        return load_graph(Path(workflow_file))
    except WorkflowStudioError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)


def _catalog(ctx: click.Context) -> NodeCatalog:
    templates_file = ctx.obj.get("templates_file")
    if templates_file is None:
        return NodeCatalog()
    return NodeCatalog.from_yaml(Path(templates_file))


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="Studio config YAML (default: .workflow-studio/config.yaml)",
)
@click.option(
    "--templates",
    "templates_file",
    type=click.Path(exists=True, dir_okay=False),
    help="Extra node templates YAML",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, config_file: str | None, templates_file: str | None) -> None:
    """Workflow Studio - build and run node-based workflows."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = load_config(Path(config_file) if config_file else None)
    except WorkflowStudioError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)
    ctx.obj["templates_file"] = templates_file


@main.command()
@click.argument("query", required=False, default="")
@click.pass_context
def catalog(ctx: click.Context, query: str) -> None:
    """List node templates, optionally filtered by QUERY."""
    try:
        groups = _catalog(ctx).grouped(query)
    except WorkflowStudioError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)

    if not groups:
        console.print(f"[yellow]No templates match '{escape(query)}'[/yellow]")
        return

    for group, templates in groups:
        table = Table(title=f"{group.title} [dim]- {group.description}[/dim]")
        table.add_column("Name", style="cyan")
        table.add_column("Category")
        table.add_column("Description", style="dim")
        for template in templates:
            table.add_row(
                escape(template.name), escape(template.category), escape(template.description)
            )
        console.print(table)


@main.command()
@click.argument("query", required=False, default="")
@click.option(
    "--category",
    "-c",
    type=click.Choice([ALL_CATEGORIES] + [c.id for c in WORKFLOW_CATEGORIES]),
    default=ALL_CATEGORIES,
    help="Only show templates in this category",
)
def templates(query: str, category: str) -> None:
    """Browse the workflow template gallery."""
    matches = filter_templates(query, category)
    if not matches:
        console.print("[yellow]No workflow templates found[/yellow]")
        return

    names = {c.id: c.name for c in WORKFLOW_CATEGORIES}
    title = "Workflow Templates"
    if category != ALL_CATEGORIES:
        title = f"{title}: {names[category]}"
    table = Table(title=title)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="bold")
    table.add_column("Description", style="dim")
    for template in matches:
        table.add_row(template.id, template.name, template.description)
    console.print(table)


@main.command()
@click.argument("template_id")
@click.option(
    "--output", "-o", type=click.Path(dir_okay=False), required=True, help="Workflow file to write"
)
@click.pass_context
def new(ctx: click.Context, template_id: str, output: str) -> None:
    """Create a workflow file from a gallery template."""
    config: StudioConfig = ctx.obj["config"]
    try:
        graph = graph_from_template(get_template(template_id), _catalog(ctx), config.canvas)
        save_graph(graph, Path(output))
    except WorkflowStudioError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)
    console.print(f"[green]Created[/green] {escape(graph.name)} ({len(graph)} nodes) -> {output}")


@main.command()
@click.argument("workflow_file", type=click.Path(exists=True))
@click.option("--levels", is_flag=True, help="Show topological levels instead of a tree")
def show(workflow_file: str, levels: bool) -> None:
    """Render a workflow graph in the terminal."""
    workflow = _load_graph_or_exit(workflow_file)
    renderer = TerminalGraphRenderer(console)

    if levels:
        console.print(renderer.render_levels(workflow))
    else:
        console.print(renderer.render_as_tree(workflow))
    console.print(NodeTableRenderer().render_nodes(workflow))

    console.print()
    console.print(f"[bold]Nodes:[/] {len(workflow)}")
    console.print(f"[bold]Connections:[/] {workflow.edge_count()}")
    console.print(f"[bold]Active:[/] {'yes' if workflow.is_active else 'no'}")
    console.print(f"[bold]Executions:[/] {workflow.execution_count}")

    warnings = workflow.validate_graph()
    if warnings:
        console.print("\n[yellow bold]Warnings:[/]")
        for warning in warnings:
            console.print(f"  [yellow]• {escape(warning)}[/]")


@main.command()
@click.argument("workflow_file", type=click.Path(exists=True))
def validate(workflow_file: str) -> None:
    """Report structural warnings. Exits 1 when there are any."""
    workflow = _load_graph_or_exit(workflow_file)
    warnings = workflow.validate_graph()
    if warnings:
        console.print("[yellow]Validation warnings:[/yellow]")
        for warning in warnings:
            console.print(f"  - {escape(warning)}")
        sys.exit(1)
    console.print("[green]✓ Workflow is valid[/green]")


@main.command()
@click.argument("workflow_file", type=click.Path(exists=True))
@click.option("--trigger", "-t", default=None, help="Trigger label recorded on the run")
@click.option("--fail-node", "-f", multiple=True, help="Node id whose execution should fail")
@click.option("--runs", "-n", type=click.IntRange(min=1), default=1, help="Number of runs")
@click.option("--save", is_flag=True, help="Write the updated execution count back to the file")
@click.pass_context
def run(
    ctx: click.Context,
    workflow_file: str,
    trigger: str | None,
    fail_node: tuple[str, ...],
    runs: int,
    save: bool,
) -> None:
    """Dry-run a workflow: every node succeeds except those given with --fail-node."""
    workflow = _load_graph_or_exit(workflow_file)
    unknown = [node_id for node_id in fail_node if node_id not in workflow]
    if unknown:
        console.print(f"[red]Error:[/red] Unknown node id(s): {escape(', '.join(unknown))}")
        sys.exit(1)

    session = WorkflowSession(
        workflow,
        config=ctx.obj["config"],
        registry=ExecutorRegistry(fallback=DryRunExecutor(fail_node)),
    )

    async def run_all():
        return [await session.run(trigger) for _ in range(runs)]

    try:
        records = asyncio.run(run_all())
    except WorkflowStudioError as e:
        console.print(f"[red]Cannot run workflow:[/red] {escape(str(e))}")
        sys.exit(1)

    table_renderer = NodeTableRenderer()
    for record in records:
        console.print(table_renderer.render_record(record))
    HistoryDashboard(session.history, console).show()

    if save:
        save_graph(workflow, Path(workflow_file))

    if any(r.status == ExecutionStatus.FAILED for r in records):
        sys.exit(1)
