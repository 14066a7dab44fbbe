"""Core modules for the workflow studio."""

from workflow_studio.core.catalog import NodeCatalog
from workflow_studio.core.engine import ExecutionEngine, ExecutorRegistry, NodeExecutor
from workflow_studio.core.graph import WorkflowGraph
from workflow_studio.core.history import ExecutionHistoryStore
from workflow_studio.core.models import (
    ExecutionRecord,
    ExecutionStatus,
    Node,
    NodeResult,
    NodeTemplate,
    NodeType,
    Position,
)
from workflow_studio.core.session import WorkflowSession

__all__ = [
    "ExecutionEngine",
    "ExecutionHistoryStore",
    "ExecutionRecord",
    "ExecutionStatus",
    "ExecutorRegistry",
    "Node",
    "NodeCatalog",
    "NodeExecutor",
    "NodeResult",
    "NodeTemplate",
    "NodeType",
    "Position",
    "WorkflowGraph",
    "WorkflowSession",
]
