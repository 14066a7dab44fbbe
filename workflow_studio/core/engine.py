"""Workflow execution engine.

Runs one graph snapshot at a time per workflow:
- Preconditions (empty graph, no trigger, already running) are checked
  before any node executes and raise without touching history
- Traversal is breadth-first from every trigger, following connections;
  a visited set makes each reachable node execute at most once per run,
  so cycles terminate
- Nodes execute sequentially through externally supplied NodeExecutors
- The first failing node ends the run; failures are recorded, not raised
- ``nodes_executed`` counts nodes that completed successfully, so a run
  that fails at its third node reports 2
- Cancellation is cooperative and honored only between nodes

Each run is an explicit task (``ExecutionRun``) moving through
pending -> running -> success | failed.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import uuid
from collections import deque
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from pydantic import ValidationError

from workflow_studio.core.errors import (
    AlreadyRunningError,
    EmptyGraphError,
    NoTriggerError,
    RunNotFoundError,
)
from workflow_studio.core.graph import WorkflowGraph
from workflow_studio.core.models import ExecutionRecord, Node, NodeResult, NodeType

if TYPE_CHECKING:
    from workflow_studio.core.history import ExecutionHistoryStore

logger = logging.getLogger(__name__)

CANCELLED = "cancelled"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RuntimeContext:
    """Per-run data handed to every executor call."""

    workflow_id: str
    execution_id: str
    trigger: str
    outputs: dict[str, Any] = field(default_factory=dict)
    variables: dict[str, Any] = field(default_factory=dict)

    def output_of(self, node_id: str, default: Any = None) -> Any:
        return self.outputs.get(node_id, default)


@runtime_checkable
class NodeExecutor(Protocol):
    """Performs a node's real effect. May be sync or async.

    Sync executors run in a worker thread so they never block the loop.
    Returning a non-success result, or raising, fails the run.
    """

    def execute(
        self, node: Node, context: RuntimeContext
    ) -> NodeResult | dict | Awaitable[NodeResult | dict]: ...


class FunctionExecutor:
    """Adapts a plain (sync or async) callable to the NodeExecutor protocol."""

    def __init__(self, func: Callable[[Node, RuntimeContext], Any]):
        self.func = func

    def execute(self, node: Node, context: RuntimeContext) -> Any:
        return self.func(node, context)


class DryRunExecutor:
    """Succeeds for every node except the ids it is told to fail.

    Useful for trying a graph's shape without side effects.
    """

    def __init__(self, fail_nodes: Iterable[str] = ()):
        self.fail_nodes = set(fail_nodes)
        self.calls: list[str] = []

    async def execute(self, node: Node, context: RuntimeContext) -> NodeResult:
        self.calls.append(node.id)
        if node.id in self.fail_nodes:
            return NodeResult.fail(f"Simulated failure in node '{node.name}'")
        return NodeResult.ok({"node": node.id, "type": node.type.value})


class ExecutorRegistry:
    """Resolves the executor for a node.

    Lookup order: (type, category) exact match, then type alone, then the
    fallback executor if one was set.
    """

    def __init__(self, fallback: NodeExecutor | None = None):
        self._by_category: dict[tuple[NodeType, str], NodeExecutor] = {}
        self._by_type: dict[NodeType, NodeExecutor] = {}
        self.fallback = fallback

    def register(
        self,
        executor: NodeExecutor | Callable[[Node, RuntimeContext], Any],
        node_type: NodeType | str,
        category: str | None = None,
    ) -> None:
        if not isinstance(executor, NodeExecutor):
            executor = FunctionExecutor(executor)
        node_type = NodeType(node_type)
        if category is None:
            self._by_type[node_type] = executor
        else:
            self._by_category[(node_type, category.lower())] = executor

    def resolve(self, node: Node) -> NodeExecutor | None:
        executor = self._by_category.get((node.type, node.category.lower()))
        if executor is None:
            executor = self._by_type.get(node.type)
        return executor or self.fallback


class ExecutionRun:
    """One cancellable run of a graph snapshot."""

    def __init__(self, snapshot: WorkflowGraph, record: ExecutionRecord):
        self.snapshot = snapshot
        self.record = record
        self.task: asyncio.Task | None = None
        self._cancel_requested = False

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def workflow_id(self) -> str:
        return self.snapshot.id

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested

    def cancel(self) -> bool:
        """Request cancellation at the next checkpoint. False if already finished."""
        if self.record.is_finished:
            return False
        self._cancel_requested = True
        return True

    async def wait(self) -> ExecutionRecord:
        """Wait for a run started with ``ExecutionEngine.start``."""
        if self.task is not None:
            return await self.task
        return self.record


class ExecutionEngine:
    """Executes workflow graph snapshots.

    USAGE:
        engine = ExecutionEngine(registry, history=history)
        record = await engine.execute_graph(graph)

        run = engine.start(graph)        # inside a running event loop
        engine.cancel(graph.id)
        record = await run.wait()
    """

    def __init__(
        self,
        registry: ExecutorRegistry,
        history: ExecutionHistoryStore | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.registry = registry
        self.history = history
        self.clock = clock
        self._running: dict[str, ExecutionRun] = {}

    # ── Queries ──

    def is_running(self, workflow_id: str) -> bool:
        return workflow_id in self._running

    def active_run(self, workflow_id: str) -> ExecutionRun | None:
        return self._running.get(workflow_id)

    # ── Lifecycle ──

    def _prepare(self, graph: WorkflowGraph, trigger: str = "manual") -> ExecutionRun:
        """Check preconditions, snapshot the graph and claim the run slot.

        Raises before anything is recorded if the run cannot start.
        """
        if not graph.nodes:
            raise EmptyGraphError(graph.id)
        if not graph.trigger_nodes():
            raise NoTriggerError(graph.id)
        active = self._running.get(graph.id)
        if active is not None:
            raise AlreadyRunningError(graph.id, active.id)

        snapshot = graph.snapshot()
        record = ExecutionRecord(
            id=str(uuid.uuid4()),
            workflow_id=graph.id,
            started_at=self.clock(),
            trigger=trigger,
            nodes_total=len(snapshot.reachable_from_triggers()),
        )
        run = ExecutionRun(snapshot, record)
        self._running[graph.id] = run
        return run

    async def execute_graph(self, graph: WorkflowGraph, trigger: str = "manual") -> ExecutionRecord:
        """Run the graph to completion and return the finished record."""
        run = self._prepare(graph, trigger)
        return await self._drive(run)

    def start(self, graph: WorkflowGraph, trigger: str = "manual") -> ExecutionRun:
        """Start a run as a background task. Must be called inside a running loop."""
        loop = asyncio.get_running_loop()
        run = self._prepare(graph, trigger)
        run.task = loop.create_task(self._drive(run))
        return run

    def cancel(self, workflow_id: str) -> ExecutionRun:
        run = self._running.get(workflow_id)
        if run is None:
            raise RunNotFoundError(f"No run in flight for workflow '{workflow_id}'")
        run.cancel()
        logger.info(f"Cancellation requested for execution {run.id}")
        return run

    # ── Traversal ──

    async def _drive(self, run: ExecutionRun) -> ExecutionRecord:
        try:
            await self._traverse(run)
        except asyncio.CancelledError:
            # Task torn down from outside; close the record before unwinding.
            if not run.record.is_finished:
                self._finish(run, run.record.nodes_executed, CANCELLED)
            raise
        finally:
            self._running.pop(run.workflow_id, None)
        return run.record

    async def _traverse(self, run: ExecutionRun) -> None:
        snapshot = run.snapshot
        run.record = run.record.mark_running()
        logger.info(
            f"Execution {run.id} started for workflow {snapshot.id} "
            f"({run.record.nodes_total} reachable nodes, trigger={run.record.trigger})"
        )

        context = RuntimeContext(
            workflow_id=snapshot.id,
            execution_id=run.id,
            trigger=run.record.trigger,
        )
        triggers = [n.id for n in snapshot.trigger_nodes()]
        queue: deque[str] = deque(triggers)
        visited: set[str] = set(triggers)
        executed = 0

        while queue:
            if run.cancel_requested:
                self._finish(run, executed, CANCELLED)
                return

            node = snapshot.nodes[queue.popleft()]
            result = await self._invoke(node, context)
            if not result.success:
                error = result.error or f"Node '{node.name}' ({node.id}) failed"
                logger.warning(f"Execution {run.id}: node {node.id} failed: {error}")
                self._finish(run, executed, error)
                return

            executed += 1
            run.record = run.record.mark_progress(executed)
            context.outputs[node.id] = result.output
            for target in node.connections:
                if target not in visited:
                    visited.add(target)
                    queue.append(target)

        self._finish(run, executed, None)

    async def _invoke(self, node: Node, context: RuntimeContext) -> NodeResult:
        executor = self.registry.resolve(node)
        if executor is None:
            return NodeResult.fail(
                f"No executor registered for node type '{node.type.value}' "
                f"(category '{node.category}')"
            )

        try:
            if inspect.iscoroutinefunction(executor.execute):
                outcome = await executor.execute(node, context)
            else:
                outcome = await asyncio.to_thread(executor.execute, node, context)
                if inspect.isawaitable(outcome):
                    outcome = await outcome
        except Exception as e:
            logger.error(f"Executor for node {node.id} raised: {e!r}")
            return NodeResult.fail(str(e) or type(e).__name__)

        if isinstance(outcome, NodeResult):
            return outcome
        if isinstance(outcome, dict):
            try:
                return NodeResult.model_validate(outcome)
            except ValidationError as e:
                return NodeResult.fail(
                    f"Executor for node '{node.id}' returned an invalid result: {e}"
                )
        return NodeResult.fail(
            f"Executor for node '{node.id}' returned {type(outcome).__name__}, "
            "expected a NodeResult"
        )

    def _finish(self, run: ExecutionRun, executed: int, error: str | None) -> None:
        run.record = run.record.mark_finished(self.clock(), executed, error)
        status = run.record.status.value
        logger.info(
            f"Execution {run.id} finished: {status} "
            f"({run.record.nodes_executed}/{run.record.nodes_total} nodes, "
            f"{run.record.duration_ms}ms)"
        )
        if self.history is not None:
            self.history.append(run.record)
