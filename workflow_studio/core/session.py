"""One editing session over one workflow.

Wires the catalog, canvas controller, config store, execution engine and
history together, and owns the session's ``CanvasInteractionState``.
Selection on the canvas drives which node the config store is editing.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

from workflow_studio.core.canvas import (
    CanvasController,
    CanvasInteractionState,
    ConnectionPath,
    PointerEvent,
    connection_paths,
)
from workflow_studio.core.catalog import NodeCatalog
from workflow_studio.core.config import StudioConfig
from workflow_studio.core.engine import ExecutionEngine, ExecutionRun, ExecutorRegistry, utc_now
from workflow_studio.core.errors import InvalidWorkflowError, NodeTemplateNotFoundError
from workflow_studio.core.graph import WorkflowGraph
from workflow_studio.core.history import ExecutionHistoryStore
from workflow_studio.core.models import ExecutionRecord, Node, NodeTemplate, Position
from workflow_studio.core.node_config import NodeConfigEditor, NodeConfigStore
from workflow_studio.core.templates import get_template, graph_from_template

logger = logging.getLogger(__name__)


class WorkflowSession:
    """Editing + execution facade for a single workflow graph."""

    def __init__(
        self,
        graph: WorkflowGraph | None = None,
        *,
        catalog: NodeCatalog | None = None,
        config: StudioConfig | None = None,
        registry: ExecutorRegistry | None = None,
        history: ExecutionHistoryStore | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.config = config or StudioConfig()
        self.graph = graph or WorkflowGraph()
        self.catalog = catalog or NodeCatalog()
        self.history = history or ExecutionHistoryStore(
            max_records=self.config.history.max_records,
            default_limit=self.config.history.default_limit,
        )
        self.canvas = CanvasController(self.graph, self.config.canvas)
        self.config_store = NodeConfigStore(self.graph, self.config.config_fields)
        self.engine = ExecutionEngine(registry or ExecutorRegistry(), self.history, clock)
        self.state = CanvasInteractionState()

    @classmethod
    def from_template(cls, template_id: str, **kwargs) -> WorkflowSession:
        catalog = kwargs.get("catalog") or NodeCatalog()
        config = kwargs.get("config") or StudioConfig()
        graph = graph_from_template(get_template(template_id), catalog, config.canvas)
        kwargs.update(catalog=catalog, config=config)
        return cls(graph, **kwargs)

    # ── Workflow metadata ──

    def rename(self, name: str) -> None:
        if not name.strip():
            raise InvalidWorkflowError("Workflow name cannot be empty")
        self.graph.name = name

    def set_description(self, description: str) -> None:
        self.graph.description = description

    def set_active(self, active: bool) -> None:
        self.graph.is_active = active
        logger.info(f"Workflow {self.graph.id} {'activated' if active else 'deactivated'}")

    def toggle_active(self) -> bool:
        self.set_active(not self.graph.is_active)
        return self.graph.is_active

    # ── Editing ──

    def add_node(self, template: NodeTemplate | str, position: Position | None = None) -> Node:
        """Add a node from a template (or a template name) to the canvas."""
        if isinstance(template, str):
            resolved = self.catalog.get(template)
            if resolved is None:
                raise NodeTemplateNotFoundError(template)
            template = resolved
        return self.canvas.add_from_template(self.catalog, template, position)

    def connect(self, from_id: str, to_id: str) -> bool:
        return self.graph.connect(from_id, to_id)

    def delete_node(self, node_id: str) -> Node:
        removed = self.graph.get_node(node_id)
        self.state = self.canvas.delete_node(self.state, node_id)
        self.config_store.forget(node_id)
        return removed

    def handle(self, event: PointerEvent) -> CanvasInteractionState:
        """Apply one pointer event and keep the config editor on the selection."""
        self.state = self.canvas.handle(self.state, event)
        self._sync_editor()
        return self.state

    def select(self, node_id: str) -> NodeConfigEditor:
        self.state = self.canvas.select(self.state, node_id)
        self._sync_editor()
        return self.config_store.active

    def deselect(self) -> list[str]:
        """Clear the selection. Returns keys of discarded unsaved edits."""
        self.state = self.canvas.clear_selection(self.state)
        return self.config_store.close()

    def selected_node(self) -> Node | None:
        return self.canvas.selected_node(self.state)

    def connection_paths(self) -> list[ConnectionPath]:
        return connection_paths(self.graph, self.config.canvas)

    def _sync_editor(self) -> None:
        selected = self.state.selected_node_id
        active = self.config_store.active
        if selected is None:
            if active is not None:
                self.config_store.close()
        elif active is None or active.node_id != selected:
            self.config_store.open(selected)

    # ── Execution ──

    async def run(self, trigger: str | None = None) -> ExecutionRecord:
        """Execute a snapshot of the graph and wait for the result."""
        record = await self.engine.execute_graph(
            self.graph, trigger or self.config.execution.default_trigger
        )
        self.graph.execution_count += 1
        return record

    def start_run(self, trigger: str | None = None) -> ExecutionRun:
        """Start a background run; editing may continue while it executes."""
        run = self.engine.start(self.graph, trigger or self.config.execution.default_trigger)
        run.task.add_done_callback(self._on_run_done)
        return run

    def cancel_run(self) -> ExecutionRun:
        return self.engine.cancel(self.graph.id)

    def is_running(self) -> bool:
        return self.engine.is_running(self.graph.id)

    def _on_run_done(self, task: asyncio.Task) -> None:
        if not task.cancelled():
            self.graph.execution_count += 1
