"""Data models for the workflow studio.

Uses Pydantic for schema-enforced node, template and execution records.
Wire names are camelCase (``isActive``, ``durationMs``) to match the
persistence and reporting collaborators; Python attributes stay snake_case.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class NodeType(str, Enum):
    """Kinds of nodes that can be placed on the canvas."""

    TRIGGER = "trigger"  # Seeds execution traversal
    ACTION = "action"  # Performs an operation
    CONDITION = "condition"  # Control flow logic
    TRANSFORM = "transform"  # Modifies data
    INTEGRATION = "integration"  # Talks to a third-party service


class ExecutionStatus(str, Enum):
    """Lifecycle of one run: pending -> running -> success | failed."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ExecutionStatus.SUCCESS, ExecutionStatus.FAILED)


class WireModel(BaseModel):
    """Base model serializing to camelCase while accepting either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Position(WireModel):
    """Canvas coordinates of a node's top-left corner."""

    x: float = 0.0
    y: float = 0.0

    def __sub__(self, other: Position) -> Position:
        return Position(x=self.x - other.x, y=self.y - other.y)

    def __add__(self, other: Position) -> Position:
        return Position(x=self.x + other.x, y=self.y + other.y)


class NodeTemplate(WireModel):
    """Immutable catalog entry that nodes are instantiated from."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    name: str
    category: str
    type: NodeType
    description: str = ""
    default_config: dict[str, Any] = Field(default_factory=dict)


class Node(WireModel):
    """A configured template instance placed on the canvas.

    ``connections`` holds outgoing edges only, as target node ids. It behaves
    as an insertion-ordered set: duplicates are collapsed on validation.
    """

    id: str
    type: NodeType
    category: str
    name: str
    position: Position = Field(default_factory=Position)
    config: dict[str, Any] = Field(default_factory=dict)
    connections: list[str] = Field(default_factory=list)

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Node id must be a non-empty string")
        return v

    @field_validator("connections")
    @classmethod
    def dedupe_connections(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(v))

    @property
    def is_trigger(self) -> bool:
        return self.type == NodeType.TRIGGER


class NodeResult(BaseModel):
    """What a NodeExecutor reports back for one node."""

    success: bool
    output: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, output: Any = None) -> NodeResult:
        return cls(success=True, output=output)

    @classmethod
    def fail(cls, error: str) -> NodeResult:
        return cls(success=False, error=error)


class ExecutionRecord(WireModel):
    """Result of one run of a graph.

    Records are frozen: every state transition returns a new record, and a
    record in a terminal status refuses further transitions.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    workflow_id: str | None = None
    status: ExecutionStatus = ExecutionStatus.PENDING
    started_at: datetime
    finished_at: datetime | None = None
    duration_ms: int = 0
    trigger: str = "manual"
    nodes_executed: int = 0
    nodes_total: int = 0
    error: str | None = None

    @property
    def is_finished(self) -> bool:
        return self.status.is_terminal

    def mark_running(self) -> ExecutionRecord:
        if self.status != ExecutionStatus.PENDING:
            raise ValueError(f"Cannot start run {self.id} from status '{self.status.value}'")
        return self.model_copy(update={"status": ExecutionStatus.RUNNING})

    def mark_progress(self, nodes_executed: int) -> ExecutionRecord:
        if self.status != ExecutionStatus.RUNNING:
            raise ValueError(f"Run {self.id} is not running")
        return self.model_copy(update={"nodes_executed": nodes_executed})

    def mark_finished(
        self,
        finished_at: datetime,
        nodes_executed: int,
        error: str | None = None,
    ) -> ExecutionRecord:
        """Close the record as success (no error) or failed (error given)."""
        if self.status != ExecutionStatus.RUNNING:
            raise ValueError(f"Cannot finish run {self.id} from status '{self.status.value}'")
        duration = finished_at - self.started_at
        return self.model_copy(
            update={
                "status": ExecutionStatus.FAILED if error else ExecutionStatus.SUCCESS,
                "finished_at": finished_at,
                "duration_ms": max(0, int(duration.total_seconds() * 1000)),
                "nodes_executed": nodes_executed,
                "error": error,
            }
        )

    def to_dict(self) -> dict[str, Any]:
        """Wire form surfaced to the reporting UI."""
        return self.model_dump(mode="json", by_alias=True)
