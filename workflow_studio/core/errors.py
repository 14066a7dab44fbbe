"""Exception taxonomy for the workflow studio.

Structural and precondition errors are raised synchronously to the caller
and never leave the graph partially mutated. Runtime failures of node
executors are captured into the ExecutionRecord instead of being raised.
"""

from __future__ import annotations


class WorkflowStudioError(Exception):
    """Base class for all workflow studio errors."""

    pass


# --- Structural errors (graph mutations) ---


class GraphError(WorkflowStudioError):
    """A graph mutation was rejected. The graph is unchanged."""

    pass


class DuplicateNodeError(GraphError):
    """Node id already present in the graph, or previously retired."""

    def __init__(self, node_id: str, retired: bool = False):
        self.node_id = node_id
        self.retired = retired
        reason = "was used by a deleted node" if retired else "already exists"
        super().__init__(f"Node id '{node_id}' {reason}")


class NodeNotFoundError(GraphError):
    """Referenced node does not exist in the graph."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node '{node_id}' not found")


class SelfConnectionError(GraphError):
    """A node cannot be connected to itself."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Cannot connect node '{node_id}' to itself")


class InvalidNodeUpdateError(GraphError):
    """Partial update names unsupported fields or fails validation."""

    pass


# --- Execution preconditions ---


class ExecutionPreconditionError(WorkflowStudioError):
    """A run was refused before any node executed."""

    pass


class EmptyGraphError(ExecutionPreconditionError):
    """The graph has no nodes."""

    def __init__(self, workflow_id: str):
        self.workflow_id = workflow_id
        super().__init__(f"Workflow '{workflow_id}' has no nodes")


class NoTriggerError(ExecutionPreconditionError):
    """The graph has nodes but none of type trigger."""

    def __init__(self, workflow_id: str):
        self.workflow_id = workflow_id
        super().__init__(f"Workflow '{workflow_id}' has no trigger node")


class AlreadyRunningError(ExecutionPreconditionError):
    """A run is already in flight for this graph."""

    def __init__(self, workflow_id: str, execution_id: str):
        self.workflow_id = workflow_id
        self.execution_id = execution_id
        super().__init__(
            f"Workflow '{workflow_id}' is already running (execution {execution_id})"
        )


class RunNotFoundError(WorkflowStudioError):
    """No in-flight run matches the request."""

    pass


# --- Configuration ---


class ConfigFieldError(WorkflowStudioError):
    """A config field edit could not be parsed or validated."""

    def __init__(self, key: str, message: str):
        self.key = key
        self.message = message
        super().__init__(f"Field '{key}': {message}")


class ConfigError(WorkflowStudioError):
    """Studio configuration file is unreadable or invalid."""

    pass


class SerializationError(WorkflowStudioError):
    """A serialized graph payload could not be decoded."""

    pass


class TemplateNotFoundError(WorkflowStudioError):
    """Requested workflow template does not exist."""

    pass


class NodeTemplateNotFoundError(WorkflowStudioError):
    """No node template with the requested name is in the catalog."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No node template named '{name}'")


class InvalidWorkflowError(WorkflowStudioError):
    """A workflow metadata edit was rejected. The workflow is unchanged."""

    pass
