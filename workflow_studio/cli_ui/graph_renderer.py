"""Terminal graph rendering for workflow visualization.

Provides level and tree-based views of workflow graphs using Rich.
"""

import networkx as nx
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from workflow_studio.core.graph import WorkflowGraph
from workflow_studio.core.models import ExecutionRecord, ExecutionStatus, Node, NodeType


class TerminalGraphRenderer:
    """
    Renders workflow graphs in the terminal.

    Features:
    - Topological layout (one line per generation)
    - Color-coded node types
    - Tree view rooted at every trigger

    NOTE: render_levels() falls back to insertion order when the graph has
    cycles. Use render_as_tree() for the exact connection structure.
    """

    # Node type symbols and colors
    NODE_STYLES = {
        NodeType.TRIGGER: ("[T]", "green"),
        NodeType.ACTION: ("[A]", "cyan"),
        NodeType.CONDITION: ("[?]", "yellow"),
        NodeType.TRANSFORM: ("[~]", "magenta"),
        NodeType.INTEGRATION: ("[I]", "blue"),
    }

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def node_label(self, node: Node) -> str:
        symbol, color = self.NODE_STYLES.get(node.type, ("[ ]", "white"))
        # SECURITY: Escape node names to prevent Rich markup injection
        return f"[{color}]{escape(symbol)} {escape(node.name or node.id)}[/]"

    def render_levels(self, workflow: WorkflowGraph) -> str:
        """Render the graph as topological generations, one line each."""
        G = workflow.to_networkx()
        try:
            levels = [list(level) for level in nx.topological_generations(G)]
        except nx.NetworkXUnfeasible:
            levels = [list(workflow.nodes)]

        lines = []
        for level_idx, level in enumerate(levels):
            lines.append("  |  ".join(self.node_label(workflow.nodes[node_id]) for node_id in level))
            if level_idx < len(levels) - 1:
                lines.append("  v")
        return "\n".join(lines)

    def render_as_tree(self, workflow: WorkflowGraph, max_depth: int = 50) -> Tree:
        """
        Render workflow as a Rich Tree with one branch per trigger.

        Nodes reachable from no trigger are listed under a separate branch.
        """
        tree = Tree(f"[bold]{escape(workflow.name)}[/] [dim]({escape(workflow.id)})[/]")

        triggers = workflow.trigger_nodes()
        if not triggers:
            tree.add("[red]No trigger node[/]")

        for trigger in triggers:
            self._add_node_to_tree(tree, trigger, workflow, visited=set(), depth=0, max_depth=max_depth)

        reachable = workflow.reachable_from_triggers()
        orphans = [n for n in workflow.nodes.values() if n.id not in reachable]
        if orphans:
            branch = tree.add("[dim]Unreachable[/]")
            for node in orphans:
                branch.add(self.node_label(node))
        return tree

    def _add_node_to_tree(
        self,
        parent: Tree,
        node: Node,
        workflow: WorkflowGraph,
        visited: set,
        depth: int = 0,
        max_depth: int = 50,
    ):
        """Recursively add nodes, marking back-edges instead of following them."""
        if depth >= max_depth:
            parent.add("[dim]... (max depth reached)[/]")
            return
        if node.id in visited:
            parent.add(f"[dim]↩ {escape(node.name)} (loop)[/]")
            return

        visited.add(node.id)
        branch = parent.add(self.node_label(node))
        for target_id in node.connections:
            child = workflow.find_node(target_id)
            if child:
                self._add_node_to_tree(
                    branch, child, workflow, visited.copy(), depth + 1, max_depth
                )


class NodeTableRenderer:
    """Renders a graph's nodes as a Rich table.

    SECURITY: node names and config values are escaped to prevent Rich
    markup injection.
    """

    STATUS_STYLES = {
        ExecutionStatus.PENDING: "[dim]○ Pending[/]",
        ExecutionStatus.RUNNING: "[blue]⟳ Running[/]",
        ExecutionStatus.SUCCESS: "[green]✓ Success[/]",
        ExecutionStatus.FAILED: "[red]✗ Failed[/]",
    }

    def render_nodes(self, workflow: WorkflowGraph) -> Table:
        table = Table(title=f"{escape(workflow.name)}: {len(workflow)} nodes")
        table.add_column("Node", style="cyan")
        table.add_column("Type", style="magenta")
        table.add_column("Category")
        table.add_column("Connects to", max_width=40)

        for node in workflow.nodes.values():
            targets = ", ".join(escape(workflow.nodes[t].name) for t in node.connections)
            table.add_row(escape(node.name), node.type.value, escape(node.category), targets or "-")
        return table

    def render_record(self, record: ExecutionRecord) -> Table:
        """Single execution record as a two-column table."""
        table = Table(title=f"Execution: {escape(record.id[:8])}...", show_header=False)
        table.add_column("Field", style="dim")
        table.add_column("Value")

        table.add_row("Status", self.STATUS_STYLES.get(record.status, record.status.value))
        table.add_row("Trigger", escape(record.trigger))
        table.add_row("Nodes", f"{record.nodes_executed}/{record.nodes_total}")
        table.add_row("Duration", f"{record.duration_ms}ms")
        if record.error:
            table.add_row("Error", f"[red]{escape(record.error)}[/]")
        return table
